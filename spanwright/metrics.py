"""Counters and gauges emitted by the tracer, with pluggable backends."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Dict, Mapping, Optional, Tuple

from opentelemetry import metrics as otel_metrics

METRIC_PREFIX = "spanwright_tracer_"


class Counter:
    def inc(self, delta: int = 1) -> None:
        raise NotImplementedError


class Gauge:
    def update(self, value: int) -> None:
        raise NotImplementedError


class MetricsFactory:
    """Creates named, tagged counters and gauges."""

    def create_counter(self, name: str, tags: Mapping[str, str]) -> Counter:
        raise NotImplementedError

    def create_gauge(self, name: str, tags: Mapping[str, str]) -> Gauge:
        raise NotImplementedError


class _NoopCounter(Counter):
    def inc(self, delta: int = 1) -> None:
        return None


class _NoopGauge(Gauge):
    def update(self, value: int) -> None:
        return None


class NoopMetricsFactory(MetricsFactory):
    def create_counter(self, name: str, tags: Mapping[str, str]) -> Counter:
        return _NoopCounter()

    def create_gauge(self, name: str, tags: Mapping[str, str]) -> Gauge:
        return _NoopGauge()


def _tags_key(tags: Mapping[str, str]) -> str:
    return ",".join(f"{k}={tags[k]}" for k in sorted(tags))


class _InMemoryCounter(Counter):
    def __init__(self, factory: "InMemoryMetricsFactory", key: Tuple[str, str]) -> None:
        self._factory = factory
        self._key = key

    def inc(self, delta: int = 1) -> None:
        with self._factory._lock:
            self._factory._counters[self._key] += delta


class _InMemoryGauge(Gauge):
    def __init__(self, factory: "InMemoryMetricsFactory", key: Tuple[str, str]) -> None:
        self._factory = factory
        self._key = key

    def update(self, value: int) -> None:
        with self._factory._lock:
            self._factory._gauges[self._key] = value


class InMemoryMetricsFactory(MetricsFactory):
    """
    Keeps metric values in process memory.

    Values are looked up by metric name and a ``"k1=v1,k2=v2"`` tag string
    with keys in sorted order, e.g. ``get_counter(name, "sampled=y,state=started")``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Dict[Tuple[str, str], int] = defaultdict(int)
        self._gauges: Dict[Tuple[str, str], int] = defaultdict(int)

    def create_counter(self, name: str, tags: Mapping[str, str]) -> Counter:
        return _InMemoryCounter(self, (name, _tags_key(tags)))

    def create_gauge(self, name: str, tags: Mapping[str, str]) -> Gauge:
        return _InMemoryGauge(self, (name, _tags_key(tags)))

    def get_counter(self, name: str, tags: str = "") -> int:
        with self._lock:
            return self._counters.get((name, tags), 0)

    def get_gauge(self, name: str, tags: str = "") -> int:
        with self._lock:
            return self._gauges.get((name, tags), 0)


class _OTelCounter(Counter):
    def __init__(self, instrument, attributes: Dict[str, str]) -> None:
        self._instrument = instrument
        self._attributes = attributes

    def inc(self, delta: int = 1) -> None:
        self._instrument.add(delta, attributes=self._attributes)


class _OTelGauge(Gauge):
    """Gauge on top of an up-down counter; records the delta from the last value."""

    def __init__(self, instrument, attributes: Dict[str, str]) -> None:
        self._instrument = instrument
        self._attributes = attributes
        self._value = 0
        self._lock = threading.Lock()

    def update(self, value: int) -> None:
        with self._lock:
            delta = value - self._value
            self._value = value
        if delta:
            self._instrument.add(delta, attributes=self._attributes)


class OpenTelemetryMetricsFactory(MetricsFactory):
    """Metrics backed by the OpenTelemetry metrics API."""

    def __init__(self, meter_provider: Optional[otel_metrics.MeterProvider] = None) -> None:
        provider = meter_provider or otel_metrics.get_meter_provider()
        self._meter = provider.get_meter("spanwright")
        self._instruments: Dict[str, object] = {}
        self._lock = threading.Lock()

    def _instrument(self, name: str, gauge: bool):
        with self._lock:
            instrument = self._instruments.get(name)
            if instrument is None:
                if gauge:
                    instrument = self._meter.create_up_down_counter(name)
                else:
                    instrument = self._meter.create_counter(name)
                self._instruments[name] = instrument
            return instrument

    def create_counter(self, name: str, tags: Mapping[str, str]) -> Counter:
        return _OTelCounter(self._instrument(name, gauge=False), dict(tags))

    def create_gauge(self, name: str, tags: Mapping[str, str]) -> Gauge:
        return _OTelGauge(self._instrument(name, gauge=True), dict(tags))


class Metrics:
    """The tracer's named counters, created once from a factory."""

    def __init__(self, factory: Optional[MetricsFactory] = None) -> None:
        self.factory = factory or NoopMetricsFactory()

        def counter(name: str, **tags: str) -> Counter:
            return self.factory.create_counter(METRIC_PREFIX + name, tags)

        self.spans_started_sampled = counter("started_spans", sampled="y")
        self.spans_started_not_sampled = counter("started_spans", sampled="n")
        self.spans_finished = counter("finished_spans")
        self.traces_started_sampled = counter("traces", sampled="y", state="started")
        self.traces_started_not_sampled = counter("traces", sampled="n", state="started")
        self.baggage_update_success = counter("baggage_updates", result="ok")
        self.baggage_update_denied = counter("baggage_updates", result="denied")
        self.baggage_truncations = counter("baggage_truncations")
        self.decoding_errors = counter("span_context_decoding_errors")
        self.reporter_success = counter("reporter_spans", result="ok")
        self.reporter_failure = counter("reporter_spans", result="err")
        self.reporter_dropped = counter("reporter_spans", result="dropped")
        self.reporter_queue_length = self.factory.create_gauge(
            METRIC_PREFIX + "reporter_queue_length", {}
        )

    @classmethod
    def noop(cls) -> "Metrics":
        return cls(NoopMetricsFactory())
