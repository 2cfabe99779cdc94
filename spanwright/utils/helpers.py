"""Identifier generation and hex formatting helpers."""

from __future__ import annotations

import json
import re
from typing import Any, Tuple

from opentelemetry.sdk.trace.id_generator import RandomIdGenerator

_MAX_ID = (1 << 64) - 1

_TRACE_ID_RE = re.compile(r"[0-9a-fA-F]{1,32}")
_SPAN_ID_RE = re.compile(r"[0-9a-fA-F]{1,16}")
_FLAGS_RE = re.compile(r"[0-9a-fA-F]{1,2}")

# Process-wide random source for trace and span ids
_id_generator = RandomIdGenerator()


def generate_span_id() -> int:
    """Return a random, non-zero 64-bit id."""
    return _id_generator.generate_span_id()


def generate_trace_id_high() -> int:
    """Return a random, non-zero 64-bit value for the high half of a 128-bit trace id."""
    return _id_generator.generate_trace_id() >> 64 or generate_span_id()


def format_trace_id(trace_id_high: int, trace_id_low: int) -> str:
    """
    Format a trace id as hex.

    Returns 16 characters for 64-bit ids, 32 characters when the high half is set.
    """
    if trace_id_high:
        return format(trace_id_high, "016x") + format(trace_id_low, "016x")
    return format(trace_id_low, "016x")


def format_span_id(span_id: int) -> str:
    """Format a 64-bit span id as a 16-character hex string."""
    return format(span_id, "016x")


def parse_trace_id(hex_string: str) -> Tuple[int, int]:
    """
    Parse a hex trace id into ``(trace_id_high, trace_id_low)``.

    Raises:
        ValueError: unless the string is 1 to 32 plain hex digits (no sign or ``0x`` prefix)
    """
    if not _TRACE_ID_RE.fullmatch(hex_string or ""):
        raise ValueError(f"invalid trace id: {hex_string!r}")
    value = int(hex_string, 16)
    return value >> 64, value & _MAX_ID


def parse_span_id(hex_string: str) -> int:
    """
    Parse a hex span id.

    Raises:
        ValueError: unless the string is 1 to 16 plain hex digits (no sign or ``0x`` prefix)
    """
    if not _SPAN_ID_RE.fullmatch(hex_string or ""):
        raise ValueError(f"invalid span id: {hex_string!r}")
    return int(hex_string, 16)


def parse_flags(hex_string: str) -> int:
    """Parse one byte of hex flags, e.g. ``"1"`` or ``"0b"``."""
    if not _FLAGS_RE.fullmatch(hex_string or ""):
        raise ValueError(f"invalid flags: {hex_string!r}")
    return int(hex_string, 16)


def convert_to_otel_type(value: Any) -> Any:
    """
    Convert a tag value to an OpenTelemetry-compatible attribute value.

    OTel attributes must be: bool, str, bytes, int, float, or sequences of those.
    """
    if isinstance(value, (bool, str, bytes, int, float)):
        return value
    if isinstance(value, (list, tuple)):
        return [
            item if isinstance(item, (bool, str, int, float)) else str(item)[:1000]
            for item in value
        ][:100]
    if isinstance(value, dict):
        return json.dumps(value, default=str)[:1000]
    return str(value)[:1000]
