"""Tracer components for Spanwright."""

from spanwright.tracer.span_context import DEBUG_FLAG, FIREHOSE_FLAG, SAMPLED_FLAG, SpanContext
from spanwright.tracer.span import LogData, Span
from spanwright.tracer.span_builder import Reference, ReferenceType, SpanBuilder
from spanwright.tracer.tracer import Tracer, TracerBuilder

__all__ = [
    "SpanContext",
    "SAMPLED_FLAG",
    "DEBUG_FLAG",
    "FIREHOSE_FLAG",
    "Span",
    "LogData",
    "Reference",
    "ReferenceType",
    "SpanBuilder",
    "Tracer",
    "TracerBuilder",
]
