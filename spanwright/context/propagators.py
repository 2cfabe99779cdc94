"""Built-in codecs for carrying a SpanContext across process boundaries."""

from __future__ import annotations

import struct
from typing import Any, Dict, Mapping, MutableMapping, Optional
from urllib.parse import quote, unquote

from opentelemetry import baggage as otel_baggage
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.context import Context
from opentelemetry.trace import NonRecordingSpan, TraceFlags, get_current_span, set_span_in_context
from opentelemetry.trace import SpanContext as OTelSpanContext
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from spanwright.context.registry import Extractor, Format, Injector, PropagationRegistry
from spanwright.errors import PropagationError
from spanwright.tracer.span_context import SAMPLED_FLAG, SpanContext
from spanwright.utils.helpers import parse_flags, parse_span_id, parse_trace_id

TRACE_CONTEXT_HEADER = "spanwright-trace-id"
BAGGAGE_HEADER_PREFIX = "swctx-"
DEBUG_ID_HEADER = "spanwright-debug-id"
BAGGAGE_HEADER = "spanwright-baggage"

_MAX_ID = (1 << 64) - 1


def context_from_string(value: str) -> SpanContext:
    """
    Parse ``{trace-id}:{span-id}:{parent-id}:{flags}`` (all hex).

    Raises:
        PropagationError: if the value is malformed or carries a zero trace id
    """
    parts = value.split(":")
    if len(parts) != 4:
        raise PropagationError("String does not match tracer state format", {"value": value})
    try:
        trace_id_high, trace_id_low = parse_trace_id(parts[0])
        span_id = parse_span_id(parts[1])
        parent_id = parse_span_id(parts[2])
        flags = parse_flags(parts[3])
    except ValueError as e:
        raise PropagationError(str(e), {"value": value}) from e
    if trace_id_high == 0 and trace_id_low == 0:
        raise PropagationError("Trace id cannot be zero", {"value": value})
    return SpanContext(
        trace_id_low=trace_id_low,
        trace_id_high=trace_id_high,
        span_id=span_id,
        parent_id=parent_id,
        flags=flags,
    )


def context_as_string(span_context: SpanContext) -> str:
    return str(span_context)


def parse_baggage_header(value: str) -> Dict[str, str]:
    """Parse ``k1=v1, k2=v2``; entries without ``=`` are skipped."""
    result = {}
    for item in value.split(","):
        item = item.strip()
        if not item or "=" not in item:
            continue
        key, val = item.split("=", 1)
        key = key.strip()
        if key:
            result[key] = val.strip()
    return result


class TextMapCodec(Injector, Extractor):
    """
    Codec for string-to-string carriers such as dicts of HTTP headers.

    The trace identity goes under one header, each baggage entry under its own
    prefixed header. With ``url_encoding`` values are percent-encoded.
    """

    def __init__(
        self,
        url_encoding: bool = False,
        context_key: str = TRACE_CONTEXT_HEADER,
        baggage_prefix: str = BAGGAGE_HEADER_PREFIX,
    ) -> None:
        self.url_encoding = url_encoding
        self.context_key = context_key.lower()
        self.baggage_prefix = baggage_prefix.lower()

    def _encode(self, value: str) -> str:
        return quote(value, safe="") if self.url_encoding else value

    def _decode(self, value: str) -> str:
        return unquote(value) if self.url_encoding else value

    def inject(self, span_context: SpanContext, carrier: MutableMapping[str, str]) -> None:
        if span_context.has_trace():
            carrier[self.context_key] = self._encode(context_as_string(span_context))
        for key, value in span_context.baggage.items():
            carrier[self.baggage_prefix + key] = self._encode(value)

    def extract(self, carrier: Mapping[str, str]) -> Optional[SpanContext]:
        span_context = None
        baggage: Dict[str, str] = {}
        debug_id = None
        for raw_key, raw_value in carrier.items():
            key = raw_key.lower()
            if key == self.context_key:
                span_context = context_from_string(self._decode(raw_value))
            elif key.startswith(self.baggage_prefix):
                baggage[key[len(self.baggage_prefix):]] = self._decode(raw_value)
            elif key == DEBUG_ID_HEADER:
                debug_id = self._decode(raw_value)
            elif key == BAGGAGE_HEADER:
                baggage.update(parse_baggage_header(self._decode(raw_value)))

        if span_context is None:
            if debug_id is None and not baggage:
                return None
            return SpanContext.sampling_only(flags=0, baggage=baggage, debug_id=debug_id)
        if baggage:
            span_context = span_context.with_baggage(baggage)
        return span_context

    def __repr__(self) -> str:
        return f"TextMapCodec(url_encoding={self.url_encoding}, context_key={self.context_key!r})"


_HEADER = struct.Struct(">QQQQB")
_LENGTH = struct.Struct(">I")


class BinaryCodec(Injector, Extractor):
    """
    Fixed big-endian layout: trace id high, trace id low, span id, parent id,
    flags, then a count of baggage entries each written as length-prefixed
    UTF-8 key and value. Inject appends to a ``bytearray``.
    """

    def inject(self, span_context: SpanContext, carrier: bytearray) -> None:
        carrier.extend(_HEADER.pack(
            span_context.trace_id_high,
            span_context.trace_id_low,
            span_context.span_id,
            span_context.parent_id,
            span_context.flags & 0xFF,
        ))
        carrier.extend(_LENGTH.pack(len(span_context.baggage)))
        for key, value in span_context.baggage.items():
            for item in (key, value):
                data = item.encode("utf-8")
                carrier.extend(_LENGTH.pack(len(data)))
                carrier.extend(data)

    def extract(self, carrier: Any) -> Optional[SpanContext]:
        data = bytes(carrier or b"")
        if not data:
            return None
        try:
            trace_id_high, trace_id_low, span_id, parent_id, flags = _HEADER.unpack_from(data, 0)
            offset = _HEADER.size
            (count,) = _LENGTH.unpack_from(data, offset)
            offset += _LENGTH.size
            baggage = {}
            for _ in range(count):
                items = []
                for _ in range(2):
                    (length,) = _LENGTH.unpack_from(data, offset)
                    offset += _LENGTH.size
                    if offset + length > len(data):
                        raise PropagationError("Truncated baggage entry in binary carrier")
                    items.append(data[offset:offset + length].decode("utf-8"))
                    offset += length
                baggage[items[0]] = items[1]
        except (struct.error, UnicodeDecodeError) as e:
            raise PropagationError(f"Cannot decode binary carrier: {e}") from e
        return SpanContext(
            trace_id_low=trace_id_low,
            trace_id_high=trace_id_high,
            span_id=span_id,
            parent_id=parent_id,
            flags=flags,
            baggage=baggage,
        )


class W3CCodec(Injector, Extractor):
    """
    W3C Trace Context (traceparent/tracestate) plus W3C baggage, using
    OpenTelemetry's standard propagators. Only the sampled bit survives the trip.
    """

    def __init__(self) -> None:
        self._trace_propagator = TraceContextTextMapPropagator()
        self._baggage_propagator = W3CBaggagePropagator()

    def inject(self, span_context: SpanContext, carrier: MutableMapping[str, str]) -> None:
        if not span_context.has_trace() and not span_context.baggage:
            return
        ctx = Context()
        if span_context.has_trace():
            otel_context = OTelSpanContext(
                trace_id=(span_context.trace_id_high << 64) | span_context.trace_id_low,
                span_id=span_context.span_id,
                is_remote=False,
                trace_flags=TraceFlags(span_context.flags & SAMPLED_FLAG),
            )
            ctx = set_span_in_context(NonRecordingSpan(otel_context), context=ctx)
        for key, value in span_context.baggage.items():
            ctx = otel_baggage.set_baggage(key, value, context=ctx)
        self._trace_propagator.inject(carrier, context=ctx)
        self._baggage_propagator.inject(carrier, context=ctx)

    def extract(self, carrier: Mapping[str, str]) -> Optional[SpanContext]:
        ctx = self._trace_propagator.extract(carrier, context=Context())
        ctx = self._baggage_propagator.extract(carrier, context=ctx)
        baggage = {k: str(v) for k, v in otel_baggage.get_all(ctx).items()}
        otel_context = get_current_span(ctx).get_span_context()
        if not otel_context.is_valid:
            if not baggage:
                return None
            return SpanContext.sampling_only(flags=0, baggage=baggage)
        return SpanContext(
            trace_id_low=otel_context.trace_id & _MAX_ID,
            trace_id_high=otel_context.trace_id >> 64,
            span_id=otel_context.span_id,
            flags=int(otel_context.trace_flags),
            baggage=baggage,
        )


def register_default_codecs(registry: PropagationRegistry) -> None:
    registry.register_codec(Format.TEXT_MAP, TextMapCodec(url_encoding=False))
    registry.register_codec(Format.HTTP_HEADERS, TextMapCodec(url_encoding=True))
    registry.register_codec(Format.BINARY, BinaryCodec())
    registry.register_codec(Format.W3C, W3CCodec())


__all__ = [
    "TRACE_CONTEXT_HEADER",
    "BAGGAGE_HEADER_PREFIX",
    "DEBUG_ID_HEADER",
    "BAGGAGE_HEADER",
    "TextMapCodec",
    "BinaryCodec",
    "W3CCodec",
    "context_from_string",
    "context_as_string",
    "parse_baggage_header",
    "register_default_codecs",
]
