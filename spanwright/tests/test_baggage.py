"""Tests for baggage restriction and the metrics it emits."""

import pytest

from spanwright import ConstSampler, InMemoryMetricsFactory, InMemoryReporter, Metrics, TracerBuilder
from spanwright.baggage import DefaultBaggageRestrictionManager, Restriction, StaticBaggageRestrictionManager


def build(factory, manager=None, sampled=True):
    builder = (
        TracerBuilder("baggage-service")
        .with_reporter(InMemoryReporter())
        .with_sampler(ConstSampler(sampled))
        .with_metrics(Metrics(factory))
    )
    if manager is not None:
        builder.with_baggage_restriction_manager(manager)
    return builder.build()


def ok_count(factory):
    return factory.get_counter("spanwright_tracer_baggage_updates", "result=ok")


def denied_count(factory):
    return factory.get_counter("spanwright_tracer_baggage_updates", "result=denied")


def test_default_manager_permits_everything():
    assert DefaultBaggageRestrictionManager().get_restriction("svc", "anything") == Restriction(True, 2048)


def test_accepted_updates_counted_once_each():
    factory = InMemoryMetricsFactory()
    span = build(factory).build_span("op").start()
    span.set_baggage_item("a", "1")
    span.set_baggage_item("b", "2")
    assert ok_count(factory) == 2
    assert denied_count(factory) == 0
    assert dict(span.context.baggage) == {"a": "1", "b": "2"}


def test_denied_update_leaves_baggage_untouched():
    factory = InMemoryMetricsFactory()
    manager = StaticBaggageRestrictionManager({"allowed": 10})
    span = build(factory, manager).build_span("op").start()
    span.set_baggage_item("allowed", "yes")
    context_before = span.context

    span.set_baggage_item("forbidden", "no")

    assert span.context is context_before
    assert span.get_baggage_item("forbidden") is None
    assert denied_count(factory) == 1
    assert ok_count(factory) == 1


def test_denied_update_logged_on_sampled_span():
    factory = InMemoryMetricsFactory()
    span = build(factory, StaticBaggageRestrictionManager({})).build_span("op").start()
    span.set_baggage_item("k", "v")
    assert span.logs[-1].fields == {"event": "baggage", "key": "k", "value": "v", "invalid": True}


def test_no_log_on_unsampled_span():
    factory = InMemoryMetricsFactory()
    span = build(factory, sampled=False).build_span("op").start()
    span.set_baggage_item("k", "v")
    assert span.logs == []
    assert span.get_baggage_item("k") == "v"


def test_value_truncated():
    factory = InMemoryMetricsFactory()
    span = build(factory, DefaultBaggageRestrictionManager(max_value_length=3)).build_span("op").start()
    span.set_baggage_item("k", "abcdef")
    assert span.get_baggage_item("k") == "abc"
    assert factory.get_counter("spanwright_tracer_baggage_truncations") == 1
    assert span.logs[-1].fields["truncated"] is True


def test_static_manager_update_and_unknown_keys():
    manager = StaticBaggageRestrictionManager({"a": 5}, deny_unknown=False)
    assert manager.get_restriction("svc", "a") == Restriction(True, 5)
    assert manager.get_restriction("svc", "b").key_allowed
    manager.update({"b": 7})
    assert manager.get_restriction("svc", "b") == Restriction(True, 7)
    assert manager.get_restriction("svc", "a") == Restriction(True, 2048)


@pytest.mark.parametrize("deny_unknown", [True, False])
def test_static_manager_default(deny_unknown):
    manager = StaticBaggageRestrictionManager(deny_unknown=deny_unknown)
    assert manager.get_restriction("svc", "x").key_allowed is not deny_unknown


def test_none_value_removes_key_and_context_stays_injectable():
    from spanwright import Format

    factory = InMemoryMetricsFactory()
    tracer = build(factory)
    span = tracer.build_span("op").start()
    span.set_baggage_item("k", "v")
    span.set_baggage_item("other", "x")
    span.set_baggage_item("k", None)
    assert dict(span.context.baggage) == {"other": "x"}
    assert span.get_baggage_item("k") is None

    headers = {}
    tracer.inject(span.context, Format.HTTP_HEADERS, headers)
    assert headers["swctx-other"] == "x"
    assert "swctx-k" not in headers
    carrier = bytearray()
    tracer.inject(span.context, Format.BINARY, carrier)
    assert tracer.extract(Format.BINARY, carrier) == span.context
