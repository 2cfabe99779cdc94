"""Tests for SpanContext value semantics."""

import dataclasses

import pytest

from spanwright.tracer.span_context import DEBUG_FLAG, SAMPLED_FLAG, SpanContext


def test_has_trace():
    assert SpanContext(trace_id_low=1).has_trace()
    assert SpanContext(trace_id_high=1).has_trace()
    assert not SpanContext().has_trace()


def test_is_sampled_independent_of_trace():
    assert SpanContext.sampling_only(SAMPLED_FLAG).is_sampled()
    assert not SpanContext(trace_id_low=1, flags=DEBUG_FLAG).is_sampled()
    assert SpanContext(trace_id_low=1, flags=SAMPLED_FLAG | DEBUG_FLAG).is_debug()


def test_with_flags_replaces():
    context = SpanContext(trace_id_low=1, span_id=2, flags=SAMPLED_FLAG | DEBUG_FLAG)
    updated = context.with_flags(4)
    assert updated.flags == 4
    assert context.flags == SAMPLED_FLAG | DEBUG_FLAG
    assert updated.span_id == 2


def test_with_baggage_item_returns_new_context():
    context = SpanContext(trace_id_low=1).with_baggage_item("a", "1")
    updated = context.with_baggage_item("b", "2").with_baggage_item("a", "3")
    assert dict(context.baggage) == {"a": "1"}
    assert dict(updated.baggage) == {"a": "3", "b": "2"}


def test_baggage_is_read_only():
    context = SpanContext(baggage={"a": "1"})
    with pytest.raises(TypeError):
        context.baggage["b"] = "2"


def test_baggage_is_copied_on_construction():
    source = {"a": "1"}
    context = SpanContext(baggage=source)
    source["a"] = "changed"
    assert context.get_baggage_item("a") == "1"


def test_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        SpanContext().flags = 1


def test_string_form():
    context = SpanContext(trace_id_low=0xABC, span_id=0x1, parent_id=0x2, flags=SAMPLED_FLAG)
    assert str(context) == "0000000000000abc:0000000000000001:0000000000000002:1"
    assert context.trace_id == "0000000000000abc"


def test_equality_includes_baggage():
    assert SpanContext(trace_id_low=1, baggage={"a": "1"}) == SpanContext(trace_id_low=1, baggage={"a": "1"})
    assert SpanContext(trace_id_low=1, baggage={"a": "1"}) != SpanContext(trace_id_low=1)


def test_default_baggage_is_empty_and_read_only():
    (baggage_field,) = [f for f in dataclasses.fields(SpanContext) if f.name == "baggage"]
    assert baggage_field.default is dataclasses.MISSING
    context = SpanContext(trace_id_low=1)
    assert dict(context.baggage) == {}
    with pytest.raises(TypeError):
        context.baggage["k"] = "v"
    assert hash(context) == hash(SpanContext(trace_id_low=1))


def test_with_baggage_item_none_removes_key():
    context = SpanContext(trace_id_low=1, baggage={"a": "1", "b": "2"})
    assert dict(context.with_baggage_item("a", None).baggage) == {"b": "2"}
    assert context.with_baggage_item("missing", None) == context
