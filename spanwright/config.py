"""Tracer configuration: pydantic models, TOML file and environment loading."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from spanwright.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "spanwright.toml"

ENV_SERVICE_NAME = "SPANWRIGHT_SERVICE_NAME"
ENV_SAMPLER_TYPE = "SPANWRIGHT_SAMPLER_TYPE"
ENV_SAMPLER_PARAM = "SPANWRIGHT_SAMPLER_PARAM"
ENV_TRACEID_128BIT = "SPANWRIGHT_TRACEID_128BIT"
ENV_TAGS = "SPANWRIGHT_TAGS"
ENV_REPORTER_TYPE = "SPANWRIGHT_REPORTER_TYPE"
ENV_ENDPOINT = "SPANWRIGHT_ENDPOINT"


class SamplerConfig(BaseModel):
    type: Literal["const", "probabilistic", "ratelimiting"] = "const"
    param: float = 1.0


class ReporterConfig(BaseModel):
    type: Literal["logging", "console", "otlp", "memory", "noop"] = "logging"
    endpoint: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout: float = 10.0
    max_queue_size: int = Field(default=5000, gt=0)
    max_export_batch_size: int = Field(default=512, gt=0)
    flush_interval_ms: int = Field(default=1000, gt=0)


class BaggageConfig(BaseModel):
    max_value_length: int = Field(default=2048, gt=0)
    # None permits every key
    allowed_keys: Optional[List[str]] = None


class TracerConfig(BaseModel):
    service_name: str
    trace_id_128bit: bool = False
    tags: Dict[str, str] = Field(default_factory=dict)
    metrics: Literal["noop", "memory", "otel"] = "noop"
    sampler: SamplerConfig = Field(default_factory=SamplerConfig)
    reporter: ReporterConfig = Field(default_factory=ReporterConfig)
    baggage: BaggageConfig = Field(default_factory=BaggageConfig)

    @field_validator("service_name")
    @classmethod
    def _service_name_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("service_name must not be blank")
        return value.strip()


def find_config_file() -> Optional[str]:
    """Return ``./spanwright.toml`` or ``~/.spanwright.toml``, whichever exists first."""
    candidates = [Path.cwd() / CONFIG_FILE_NAME, Path.home() / f".{CONFIG_FILE_NAME}"]
    for candidate in candidates:
        if candidate.is_file():
            return str(candidate)
    return None


def load_toml_config(path: str) -> Dict[str, Any]:
    """
    Load a TOML config file.

    Returns an empty dict when the file does not exist.

    Raises:
        ConfigError: if the file is not valid TOML
    """
    config_path = Path(path)
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}", {"error": str(e)}) from e
    # a [tracer] table is accepted as the root
    return data.get("tracer", data)


def parse_tags(value: str) -> Dict[str, str]:
    """Parse ``k1=v1,k2=v2``; ``${ENV_VAR:default}`` values are resolved from the environment."""
    tags = {}
    for item in value.split(","):
        if "=" not in item:
            continue
        key, val = (part.strip() for part in item.split("=", 1))
        if val.startswith("${") and val.endswith("}"):
            name, _, default = val[2:-1].partition(":")
            val = os.environ.get(name, default)
        if key:
            tags[key] = val
    return tags


def env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Collect configuration values from ``SPANWRIGHT_*`` environment variables."""
    env = os.environ if environ is None else environ
    result: Dict[str, Any] = {}
    if env.get(ENV_SERVICE_NAME):
        result["service_name"] = env[ENV_SERVICE_NAME]
    if env.get(ENV_TRACEID_128BIT):
        result["trace_id_128bit"] = env[ENV_TRACEID_128BIT].strip().lower() in ("1", "true", "yes")
    if env.get(ENV_TAGS):
        result["tags"] = parse_tags(env[ENV_TAGS])
    sampler: Dict[str, Any] = {}
    if env.get(ENV_SAMPLER_TYPE):
        sampler["type"] = env[ENV_SAMPLER_TYPE]
    if env.get(ENV_SAMPLER_PARAM):
        sampler["param"] = env[ENV_SAMPLER_PARAM]
    if sampler:
        result["sampler"] = sampler
    reporter: Dict[str, Any] = {}
    if env.get(ENV_REPORTER_TYPE):
        reporter["type"] = env[ENV_REPORTER_TYPE]
    if env.get(ENV_ENDPOINT):
        reporter["endpoint"] = env[ENV_ENDPOINT]
    if reporter:
        result["reporter"] = reporter
    return result


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        elif value is not None:
            merged[key] = value
    return merged


def validate_config(data: Dict[str, Any]) -> TracerConfig:
    """
    Validate a raw config mapping.

    Raises:
        ConfigError: if any value is missing or invalid
    """
    try:
        return TracerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError("Invalid tracer configuration", {"errors": e.errors()}) from e


def load_config(config_file: Optional[str] = None, **overrides: Any) -> TracerConfig:
    """
    Build a :class:`TracerConfig` from, lowest priority first: the config file,
    ``SPANWRIGHT_*`` environment variables, keyword overrides.
    """
    path = config_file or find_config_file()
    data: Dict[str, Any] = load_toml_config(path) if path else {}
    if path:
        logger.debug("Loaded tracer config from %s", path)
    data = _merge(data, env_overrides())
    data = _merge(data, overrides)
    return validate_config(data)


def create_tracer(config: TracerConfig):
    """Build a :class:`spanwright.Tracer` from a validated config."""
    from spanwright.baggage import DefaultBaggageRestrictionManager, StaticBaggageRestrictionManager
    from spanwright.metrics import InMemoryMetricsFactory, Metrics, NoopMetricsFactory, OpenTelemetryMetricsFactory
    from spanwright.reporters import InMemoryReporter, LoggingReporter, NoopReporter, RemoteReporter
    from spanwright.samplers import ConstSampler, ProbabilisticSampler, RateLimitingSampler
    from spanwright.tracer.tracer import TracerBuilder

    factories = {
        "noop": NoopMetricsFactory,
        "memory": InMemoryMetricsFactory,
        "otel": OpenTelemetryMetricsFactory,
    }
    metrics = Metrics(factories[config.metrics]())

    sampler_config = config.sampler
    if sampler_config.type == "const":
        sampler = ConstSampler(bool(sampler_config.param))
    elif sampler_config.type == "probabilistic":
        sampler = ProbabilisticSampler(sampler_config.param)
    else:
        sampler = RateLimitingSampler(sampler_config.param)

    reporter_config = config.reporter
    if reporter_config.type in ("console", "otlp"):
        if reporter_config.type == "console":
            from spanwright.exporter import ConsoleExporter

            exporter = ConsoleExporter()
        else:
            from spanwright.exporter import OTLPExporter

            exporter = OTLPExporter(
                endpoint=reporter_config.endpoint,
                timeout=reporter_config.timeout,
                headers=reporter_config.headers,
            )
        reporter = RemoteReporter(
            exporter,
            max_queue_size=reporter_config.max_queue_size,
            max_export_batch_size=reporter_config.max_export_batch_size,
            flush_interval_ms=reporter_config.flush_interval_ms,
            metrics=metrics,
        )
    elif reporter_config.type == "memory":
        reporter = InMemoryReporter()
    elif reporter_config.type == "noop":
        reporter = NoopReporter()
    else:
        reporter = LoggingReporter()

    baggage_config = config.baggage
    if baggage_config.allowed_keys is None:
        restriction_manager = DefaultBaggageRestrictionManager(baggage_config.max_value_length)
    else:
        restriction_manager = StaticBaggageRestrictionManager(
            {key: baggage_config.max_value_length for key in baggage_config.allowed_keys},
            default_max_value_length=baggage_config.max_value_length,
        )

    builder = (
        TracerBuilder(config.service_name)
        .with_sampler(sampler)
        .with_reporter(reporter)
        .with_metrics(metrics)
        .with_baggage_restriction_manager(restriction_manager)
        .with_trace_id_128bit(config.trace_id_128bit)
    )
    for key, value in config.tags.items():
        builder.with_tag(key, value)
    return builder.build()
