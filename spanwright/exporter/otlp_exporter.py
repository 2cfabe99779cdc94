"""OTLP exporter using the OpenTelemetry OTLP HTTP exporter."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as OTelOTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import Event, ReadableSpan
from opentelemetry.sdk.trace.export import SpanExportResult
from opentelemetry.trace import Link, SpanKind, Status, StatusCode, TraceFlags
from opentelemetry.trace import SpanContext as OTelSpanContext

from spanwright import tags as tags_module
from spanwright.tracer.span import Span
from spanwright.tracer.span_builder import ReferenceType
from spanwright.tracer.span_context import SAMPLED_FLAG, SpanContext
from spanwright.utils.helpers import convert_to_otel_type

_SPAN_KINDS = {
    tags_module.SPAN_KIND_SERVER: SpanKind.SERVER,
    tags_module.SPAN_KIND_CLIENT: SpanKind.CLIENT,
    tags_module.SPAN_KIND_PRODUCER: SpanKind.PRODUCER,
    tags_module.SPAN_KIND_CONSUMER: SpanKind.CONSUMER,
}


def _attributes(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: convert_to_otel_type(v) for k, v in values.items() if v is not None}


def _otel_context(context: SpanContext, span_id: int) -> OTelSpanContext:
    return OTelSpanContext(
        trace_id=(context.trace_id_high << 64) | context.trace_id_low,
        span_id=span_id,
        is_remote=False,
        trace_flags=TraceFlags(context.flags & SAMPLED_FLAG),
    )


def to_readable_span(span: Span) -> ReadableSpan:
    """Convert a finished span to an OpenTelemetry ``ReadableSpan``."""
    context = span.context
    span_tags = span.tags
    parent = _otel_context(context, context.parent_id) if context.parent_id else None

    status = Status(StatusCode.UNSET)
    if span_tags.get(tags_module.ERROR.key) is True:
        status = Status(StatusCode.ERROR)

    events = [
        Event(
            name=str(log.fields.get("event", "log")),
            attributes=_attributes(dict(log.fields)),
            timestamp=log.timestamp_ns,
        )
        for log in span.logs
    ]
    links = [
        Link(_otel_context(ref.context, ref.context.span_id))
        for ref in span.references
        if ref.type == ReferenceType.FOLLOWS_FROM
    ]

    resource_attributes = {"service.name": span.tracer.service_name}
    resource_attributes.update(_attributes(span.tracer.tags))

    return ReadableSpan(
        name=span.operation_name,
        context=_otel_context(context, context.span_id),
        parent=parent,
        resource=Resource.create(resource_attributes),
        attributes=_attributes(span_tags),
        events=events,
        links=links,
        kind=_SPAN_KINDS.get(span_tags.get(tags_module.SPAN_KIND.key), SpanKind.INTERNAL),
        status=status,
        start_time=span.start_time_ns,
        end_time=span.end_time_ns,
    )


class OTLPExporter:
    """
    Ships finished spans to an OTLP/HTTP collector.

    Plugs into :class:`spanwright.reporters.RemoteReporter`, which calls
    ``export()`` off the application threads.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        headers: Optional[dict] = None,
    ) -> None:
        export_headers = dict(headers) if headers else {}
        if api_key:
            export_headers["Authorization"] = f"Bearer {api_key}"

        self._otel_exporter = OTelOTLPSpanExporter(
            endpoint=endpoint,
            timeout=timeout,
            headers=export_headers if export_headers else None,
        )
        self.endpoint = endpoint
        self.timeout = timeout

    def export(self, spans: Iterable[Span]) -> bool:
        readable_spans: List[ReadableSpan] = [to_readable_span(span) for span in spans]
        if not readable_spans:
            return True
        result = self._otel_exporter.export(readable_spans)
        return result == SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        self._otel_exporter.shutdown()
