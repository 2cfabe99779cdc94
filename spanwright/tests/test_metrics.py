"""Tests for metrics factories."""

from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from spanwright import ConstSampler, InMemoryMetricsFactory, Metrics, NoopMetricsFactory, OpenTelemetryMetricsFactory, TracerBuilder
from spanwright.reporters import InMemoryReporter


def collect(reader):
    points = {}
    for resource_metrics in reader.get_metrics_data().resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                for point in metric.data.data_points:
                    key = (metric.name, tuple(sorted(point.attributes.items())))
                    points[key] = point.value
    return points


def test_in_memory_counter_and_gauge():
    factory = InMemoryMetricsFactory()
    factory.create_counter("requests", {"b": "2", "a": "1"}).inc(3)
    factory.create_counter("requests", {"a": "1", "b": "2"}).inc()
    factory.create_gauge("depth", {}).update(7)
    assert factory.get_counter("requests", "a=1,b=2") == 4
    assert factory.get_counter("requests", "a=1") == 0
    assert factory.get_gauge("depth") == 7


def test_metrics_names():
    factory = InMemoryMetricsFactory()
    metrics = Metrics(factory)
    metrics.traces_started_sampled.inc(1)
    metrics.baggage_update_denied.inc(1)
    assert factory.get_counter("spanwright_tracer_traces", "sampled=y,state=started") == 1
    assert factory.get_counter("spanwright_tracer_baggage_updates", "result=denied") == 1


def test_noop_factory():
    metrics = Metrics(NoopMetricsFactory())
    metrics.spans_started_sampled.inc(5)
    metrics.reporter_queue_length.update(3)
    assert isinstance(Metrics().factory, NoopMetricsFactory)


def test_opentelemetry_factory():
    reader = InMemoryMetricReader()
    factory = OpenTelemetryMetricsFactory(MeterProvider(metric_readers=[reader]))
    tracer = (
        TracerBuilder("otel-metrics")
        .with_reporter(InMemoryReporter())
        .with_sampler(ConstSampler(True))
        .with_metrics_factory(factory)
        .build()
    )
    root = tracer.build_span("root").start()
    tracer.build_span("child").as_child_of(root).start()

    points = collect(reader)
    assert points[("spanwright_tracer_started_spans", (("sampled", "y"),))] == 2
    assert points[("spanwright_tracer_traces", (("sampled", "y"), ("state", "started")))] == 1


def test_opentelemetry_gauge_tracks_last_value():
    reader = InMemoryMetricReader()
    factory = OpenTelemetryMetricsFactory(MeterProvider(metric_readers=[reader]))
    gauge = factory.create_gauge("queue", {})
    gauge.update(5)
    gauge.update(2)
    assert collect(reader)[("queue", ())] == 2
