"""Spanwright: span creation, trace identity and context propagation for Python services."""

__version__ = "0.3.0"

from spanwright.baggage import (
    BaggageRestrictionManager,
    DefaultBaggageRestrictionManager,
    Restriction,
    StaticBaggageRestrictionManager,
)
from spanwright.context import Extractor, Format, Injector, PropagationRegistry, Scope
from spanwright.errors import ConfigError, ExportError, PropagationError, SpanwrightError
from spanwright.instrumentation import traced
from spanwright.metrics import InMemoryMetricsFactory, Metrics, NoopMetricsFactory, OpenTelemetryMetricsFactory
from spanwright.reporters import CompositeReporter, InMemoryReporter, LoggingReporter, NoopReporter, RemoteReporter, Reporter
from spanwright.samplers import ConstSampler, ProbabilisticSampler, RateLimitingSampler, Sampler, SamplingResult
from spanwright.tracer import Reference, ReferenceType, Span, SpanBuilder, SpanContext, Tracer, TracerBuilder


def init_tracer(config_file=None, **overrides) -> Tracer:
    """
    Build a tracer from ``spanwright.toml``, ``SPANWRIGHT_*`` environment
    variables and keyword overrides (highest priority).

    Nothing is registered globally; keep the returned tracer and close it at shutdown.
    """
    from spanwright.config import create_tracer, load_config

    return create_tracer(load_config(config_file, **overrides))


__all__ = [
    "__version__",
    "init_tracer",
    "Tracer",
    "TracerBuilder",
    "Span",
    "SpanBuilder",
    "SpanContext",
    "Reference",
    "ReferenceType",
    "Scope",
    "Format",
    "Injector",
    "Extractor",
    "PropagationRegistry",
    "Sampler",
    "SamplingResult",
    "ConstSampler",
    "ProbabilisticSampler",
    "RateLimitingSampler",
    "Reporter",
    "NoopReporter",
    "InMemoryReporter",
    "CompositeReporter",
    "LoggingReporter",
    "RemoteReporter",
    "Metrics",
    "NoopMetricsFactory",
    "InMemoryMetricsFactory",
    "OpenTelemetryMetricsFactory",
    "BaggageRestrictionManager",
    "DefaultBaggageRestrictionManager",
    "StaticBaggageRestrictionManager",
    "Restriction",
    "traced",
    "SpanwrightError",
    "ConfigError",
    "PropagationError",
    "ExportError",
]
