"""Accumulates references, tags and timestamps for one span, then starts it."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING, Union

from spanwright import tags as tags_module
from spanwright.tags import tag_key
from spanwright.tracer.span_context import SpanContext

if TYPE_CHECKING:
    from spanwright.context.context import Scope
    from spanwright.tracer.span import Span
    from spanwright.tracer.tracer import Tracer


class ReferenceType(str, Enum):
    CHILD_OF = "child_of"
    FOLLOWS_FROM = "follows_from"


@dataclass(frozen=True)
class Reference:
    type: ReferenceType
    context: SpanContext


def _as_context(parent: Union["Span", SpanContext]) -> SpanContext:
    if isinstance(parent, SpanContext):
        return parent
    return parent.context


class SpanBuilder:
    """Obtained from :meth:`Tracer.build_span`; not safe to share between threads."""

    def __init__(self, tracer: "Tracer", operation_name: str) -> None:
        self.tracer = tracer
        self.operation_name = operation_name
        self.references: List[Reference] = []
        self.tags: Dict[str, Any] = {}
        self.start_time_ns: Optional[int] = None
        self.ignore_active = False

    def as_child_of(self, parent: Union["Span", SpanContext, None]) -> "SpanBuilder":
        if parent is None:
            return self
        return self.add_reference(ReferenceType.CHILD_OF, _as_context(parent))

    def follows_from(self, parent: Union["Span", SpanContext, None]) -> "SpanBuilder":
        if parent is None:
            return self
        return self.add_reference(ReferenceType.FOLLOWS_FROM, _as_context(parent))

    def add_reference(self, reference_type, context: Optional[SpanContext]) -> "SpanBuilder":
        if context is None:
            return self
        self.references.append(Reference(ReferenceType(reference_type), context))
        return self

    def ignore_active_span(self) -> "SpanBuilder":
        self.ignore_active = True
        return self

    def with_tag(self, key, value: Any) -> "SpanBuilder":
        """Add a tag; ``key`` may be a string or a :class:`spanwright.tags.Tag`."""
        self.tags[tag_key(key)] = value
        return self

    def with_start_timestamp(self, start_time_ns: int) -> "SpanBuilder":
        self.start_time_ns = start_time_ns
        return self

    def is_rpc_server(self) -> bool:
        return self.tags.get(tags_module.SPAN_KIND.key) == tags_module.SPAN_KIND_SERVER

    def start(self) -> "Span":
        return self.tracer._start_span(self)

    def start_active(self, finish_on_close: bool = True) -> "Scope":
        """Start the span and make it the active span of the current context."""
        return self.tracer.activate_span(self.start(), finish_on_close=finish_on_close)
