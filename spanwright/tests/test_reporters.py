"""Tests for reporters and span queue drop policies."""

import io
import logging
import threading
from collections import deque
from unittest import mock

from spanwright import ConstSampler, InMemoryMetricsFactory, Metrics, TracerBuilder
from spanwright.exporter import ConsoleExporter
from spanwright.reporters import (
    CompositeReporter,
    DropNewestPolicy,
    DropOldestPolicy,
    InMemoryReporter,
    LoggingReporter,
    RemoteReporter,
    Reporter,
)


class RecordingExporter:
    def __init__(self, result=True):
        self.result = result
        self.batches = []
        self.shutdown_called = False
        self.exported = threading.Event()

    def export(self, spans):
        self.batches.append(list(spans))
        self.exported.set()
        return self.result

    def shutdown(self):
        self.shutdown_called = True


def finished_span(tracer, name="op"):
    span = tracer.build_span(name).start()
    span.finish()
    return span


def make_tracer(reporter):
    return TracerBuilder("reporter-test").with_reporter(reporter).with_sampler(ConstSampler(True)).build()


class TestDropPolicies:
    def test_drop_oldest(self):
        queue = deque([1, 2])
        assert DropOldestPolicy().handle(queue, 3, 2) == 1
        assert list(queue) == [2, 3]

    def test_drop_newest(self):
        queue = deque([1, 2])
        assert DropNewestPolicy().handle(queue, 3, 2) == 1
        assert list(queue) == [1, 2]
        assert DropNewestPolicy().handle(queue, 3, 3) == 0
        assert list(queue) == [1, 2, 3]


class TestRemoteReporter:
    def test_close_flushes_and_shuts_down(self):
        exporter = RecordingExporter()
        factory = InMemoryMetricsFactory()
        reporter = RemoteReporter(exporter, flush_interval_ms=60000, metrics=Metrics(factory))
        tracer = make_tracer(reporter)
        spans = [finished_span(tracer) for _ in range(3)]

        tracer.close()

        exported = [span for batch in exporter.batches for span in batch]
        assert exported == spans
        assert exporter.shutdown_called
        assert factory.get_counter("spanwright_tracer_reporter_spans", "result=ok") == 3
        assert factory.get_gauge("spanwright_tracer_reporter_queue_length") == 0

    def test_batches_respect_max_size(self):
        exporter = RecordingExporter()
        reporter = RemoteReporter(exporter, flush_interval_ms=60000, max_export_batch_size=2)
        tracer = make_tracer(reporter)
        for _ in range(5):
            finished_span(tracer)
        reporter.close()
        assert all(len(batch) <= 2 for batch in exporter.batches)
        assert sum(len(batch) for batch in exporter.batches) == 5

    def test_background_flush(self):
        exporter = RecordingExporter()
        reporter = RemoteReporter(exporter, flush_interval_ms=10)
        tracer = make_tracer(reporter)
        finished_span(tracer)
        assert exporter.exported.wait(timeout=5)
        reporter.close()

    def test_queue_overflow_counts_dropped(self):
        exporter = RecordingExporter()
        factory = InMemoryMetricsFactory()
        reporter = RemoteReporter(
            exporter,
            flush_interval_ms=60000,
            max_queue_size=2,
            max_export_batch_size=100,
            drop_policy=DropNewestPolicy(),
            metrics=Metrics(factory),
        )
        tracer = make_tracer(reporter)
        for _ in range(4):
            finished_span(tracer)
        assert factory.get_counter("spanwright_tracer_reporter_spans", "result=dropped") == 2
        reporter.close()
        assert sum(len(batch) for batch in exporter.batches) == 2

    def test_export_failure_counted(self, caplog):
        factory = InMemoryMetricsFactory()
        reporter = RemoteReporter(RecordingExporter(result=False), flush_interval_ms=60000, metrics=Metrics(factory))
        tracer = make_tracer(reporter)
        finished_span(tracer)
        with caplog.at_level(logging.WARNING, logger="spanwright.reporters.remote_reporter"):
            reporter.close()
        assert factory.get_counter("spanwright_tracer_reporter_spans", "result=err") == 1
        assert any("Failed to export" in record.getMessage() for record in caplog.records)

    def test_report_after_close_dropped(self):
        factory = InMemoryMetricsFactory()
        exporter = RecordingExporter()
        reporter = RemoteReporter(exporter, metrics=Metrics(factory))
        reporter.close()
        reporter.report(mock.Mock())
        assert factory.get_counter("spanwright_tracer_reporter_spans", "result=dropped") == 1
        assert exporter.batches == []


class TestSimpleReporters:
    def test_in_memory(self):
        reporter = InMemoryReporter()
        tracer = make_tracer(reporter)
        span = finished_span(tracer)
        assert reporter.get_spans() == [span]
        reporter.clear()
        assert reporter.get_spans() == []

    def test_composite_survives_failures(self):
        failing = mock.Mock(spec=Reporter)
        failing.report.side_effect = RuntimeError("report")
        failing.close.side_effect = RuntimeError("close")
        healthy = InMemoryReporter()
        composite = CompositeReporter(failing, healthy)
        tracer = make_tracer(composite)
        span = finished_span(tracer)
        tracer.close()
        assert healthy.get_spans() == [span]
        failing.close.assert_called_once_with()

    def test_logging_reporter(self, caplog):
        tracer = make_tracer(LoggingReporter())
        with caplog.at_level(logging.INFO, logger="spanwright.traces"):
            finished_span(tracer, "logged-op")
        assert any("logged-op" in record.getMessage() for record in caplog.records)

    def test_console_exporter(self):
        stream = io.StringIO()
        tracer = make_tracer(InMemoryReporter())
        span = finished_span(tracer, "printed-op")
        assert ConsoleExporter(stream).export([span])
        assert "operation=printed-op" in stream.getvalue()
        assert span.context.trace_id in stream.getvalue()

    def test_console_exporter_prints_follows_from(self):
        stream = io.StringIO()
        tracer = make_tracer(InMemoryReporter())
        cause = finished_span(tracer, "cause")
        span = tracer.build_span("effect").follows_from(cause).start()
        span.finish()
        ConsoleExporter(stream).export([span])
        assert f"follows_from={cause.context}" in stream.getvalue()

    def test_console_exporter_prints_every_reference(self):
        stream = io.StringIO()
        tracer = make_tracer(InMemoryReporter())
        parent = finished_span(tracer, "parent")
        cause = finished_span(tracer, "cause")
        span = tracer.build_span("effect").as_child_of(parent).follows_from(cause).start()
        span.finish()
        ConsoleExporter(stream).export([span])
        line = stream.getvalue()
        assert f"child_of={parent.context}" in line
        assert f"follows_from={cause.context}" in line
        assert span.context.parent_id == parent.context.span_id
