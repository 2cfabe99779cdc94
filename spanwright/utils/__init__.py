"""Utility functions for Spanwright."""

from spanwright.utils.helpers import (
    convert_to_otel_type,
    format_span_id,
    format_trace_id,
    generate_span_id,
    generate_trace_id_high,
    parse_flags,
    parse_span_id,
    parse_trace_id,
)

__all__ = [
    "generate_span_id",
    "generate_trace_id_high",
    "format_trace_id",
    "convert_to_otel_type",
    "format_span_id",
    "parse_trace_id",
    "parse_span_id",
    "parse_flags",
]
