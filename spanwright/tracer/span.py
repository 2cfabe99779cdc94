"""Span: one timed unit of work, owned by its creator until finished."""

from __future__ import annotations

import logging
import threading
import time
import traceback
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, TYPE_CHECKING

from spanwright import tags as tags_module
from spanwright.tags import tag_key
from spanwright.tracer.span_context import SpanContext

if TYPE_CHECKING:
    from spanwright.tracer.span_builder import Reference
    from spanwright.tracer.tracer import Tracer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogData:
    timestamp_ns: int
    fields: Mapping[str, Any]


class Span:
    """
    A span started by :meth:`SpanBuilder.start`.

    Mutators are ignored once the span is finished; ``finish()`` hands the span
    to the tracer's reporter exactly once.
    """

    def __init__(
        self,
        tracer: "Tracer",
        operation_name: str,
        context: SpanContext,
        start_time_ns: int,
        start_perf_ns: Optional[int],
        tags: Dict[str, Any],
        references: List["Reference"],
    ) -> None:
        self.tracer = tracer
        self._operation_name = operation_name
        self._context = context
        self.start_time_ns = start_time_ns
        # monotonic start, only when the start time came from the tracer's clock
        self._start_perf_ns = start_perf_ns
        self.duration_ns: Optional[int] = None
        self._tags = dict(tags)
        self._logs: List[LogData] = []
        self.references = list(references)
        self._lock = threading.Lock()
        self._finished = False

    @property
    def context(self) -> SpanContext:
        with self._lock:
            return self._context

    @property
    def operation_name(self) -> str:
        with self._lock:
            return self._operation_name

    @property
    def tags(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._tags)

    @property
    def logs(self) -> List[LogData]:
        with self._lock:
            return list(self._logs)

    @property
    def is_finished(self) -> bool:
        with self._lock:
            return self._finished

    @property
    def end_time_ns(self) -> Optional[int]:
        if self.duration_ns is None:
            return None
        return self.start_time_ns + self.duration_ns

    def set_operation_name(self, operation_name: str) -> "Span":
        with self._lock:
            if not self._finished:
                self._operation_name = operation_name
        return self

    def set_tag(self, key, value: Any) -> "Span":
        """Set a tag; ``key`` may be a string or a :class:`spanwright.tags.Tag`."""
        with self._lock:
            if self._finished:
                logger.debug("Ignoring tag %r on finished span %s", tag_key(key), self._context)
                return self
            self._tags[tag_key(key)] = value
        return self

    def log_kv(self, fields: Mapping[str, Any], timestamp_ns: Optional[int] = None) -> "Span":
        with self._lock:
            if self._finished:
                return self
            self._logs.append(LogData(timestamp_ns or time.time_ns(), dict(fields)))
        return self

    def log_event(self, event: str, timestamp_ns: Optional[int] = None) -> "Span":
        return self.log_kv({"event": event}, timestamp_ns)

    def set_baggage_item(self, key: str, value: Optional[str]) -> "Span":
        self.tracer.set_baggage(self, key, value)
        return self

    def get_baggage_item(self, key: str) -> Optional[str]:
        return self.context.get_baggage_item(key)

    def _replace_context(self, context: SpanContext) -> None:
        with self._lock:
            self._context = context

    def finish(self, finish_time_ns: Optional[int] = None) -> None:
        with self._lock:
            if self._finished:
                logger.debug("Span %s already finished", self._context)
                return
            if finish_time_ns is None and self._start_perf_ns is not None:
                self.duration_ns = time.perf_counter_ns() - self._start_perf_ns
            else:
                end = finish_time_ns if finish_time_ns is not None else time.time_ns()
                self.duration_ns = end - self.start_time_ns
            self._finished = True
        self.tracer._report_span(self)

    def __enter__(self) -> "Span":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is not None:
            self.set_tag(tags_module.ERROR, True)
            self.log_kv({
                "event": "error",
                "error.kind": exc_type.__name__,
                "message": str(exc),
                "stack": "".join(traceback.format_tb(tb)),
            })
        self.finish()
        return False

    def __repr__(self) -> str:
        return f"Span({self.operation_name!r}, {self.context})"
