"""Immutable trace identity and baggage."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional

from spanwright.utils.helpers import format_span_id, format_trace_id

SAMPLED_FLAG = 0x01
DEBUG_FLAG = 0x02
FIREHOSE_FLAG = 0x08

_EMPTY_BAGGAGE: Mapping[str, str] = MappingProxyType({})


def freeze_baggage(baggage: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    """Return a read-only copy of ``baggage``."""
    if not baggage:
        return _EMPTY_BAGGAGE
    return MappingProxyType(dict(baggage))


@dataclass(frozen=True)
class SpanContext:
    """
    Identity of a span plus the baggage that travels with it.

    A context whose trace id is zero does not denote a span; it only carries
    a sampling decision (and optionally baggage or a debug id) into the next
    trace that gets started.
    """

    trace_id_low: int = 0
    trace_id_high: int = 0
    span_id: int = 0
    parent_id: int = 0
    flags: int = 0
    baggage: Mapping[str, str] = field(default_factory=lambda: _EMPTY_BAGGAGE, hash=False)
    debug_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.baggage, MappingProxyType):
            object.__setattr__(self, "baggage", freeze_baggage(self.baggage))

    @classmethod
    def sampling_only(
        cls,
        flags: int = SAMPLED_FLAG,
        baggage: Optional[Mapping[str, str]] = None,
        debug_id: Optional[str] = None,
    ) -> "SpanContext":
        return cls(flags=flags, baggage=freeze_baggage(baggage), debug_id=debug_id)

    @property
    def trace_id(self) -> str:
        return format_trace_id(self.trace_id_high, self.trace_id_low)

    def has_trace(self) -> bool:
        return self.trace_id_low != 0 or self.trace_id_high != 0

    def is_sampled(self) -> bool:
        return bool(self.flags & SAMPLED_FLAG)

    def is_debug(self) -> bool:
        return bool(self.flags & DEBUG_FLAG)

    def get_baggage_item(self, key: str) -> Optional[str]:
        return self.baggage.get(key)

    def with_flags(self, flags: int) -> "SpanContext":
        """Return a copy with ``flags`` replacing the current flags."""
        return replace(self, flags=flags)

    def with_baggage_item(self, key: str, value: Optional[str]) -> "SpanContext":
        """Return a copy whose baggage has ``key`` set to ``value``; a None value removes ``key``."""
        baggage = dict(self.baggage)
        if value is None:
            baggage.pop(key, None)
        else:
            baggage[key] = value
        return replace(self, baggage=MappingProxyType(baggage))

    def with_baggage(self, baggage: Optional[Mapping[str, str]]) -> "SpanContext":
        return replace(self, baggage=freeze_baggage(baggage))

    def __str__(self) -> str:
        return (
            f"{self.trace_id}:{format_span_id(self.span_id)}:"
            f"{format_span_id(self.parent_id)}:{self.flags:x}"
        )
