"""Reporter interface and the simple in-process reporters."""

from __future__ import annotations

import logging
import threading
from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from spanwright.tracer.span import Span

logger = logging.getLogger(__name__)


class Reporter:
    """
    Receives finished spans.

    ``report`` must not block for long; any buffering or I/O belongs to the
    reporter. ``close`` flushes pending spans and is called once by the tracer.
    """

    def report(self, span: "Span") -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class NoopReporter(Reporter):
    def report(self, span: "Span") -> None:
        return None


class InMemoryReporter(Reporter):
    """Keeps every reported span; meant for tests."""

    def __init__(self) -> None:
        self._spans: List["Span"] = []
        self._lock = threading.Lock()

    def report(self, span: "Span") -> None:
        with self._lock:
            self._spans.append(span)

    def get_spans(self) -> List["Span"]:
        with self._lock:
            return list(self._spans)

    def clear(self) -> None:
        with self._lock:
            self._spans.clear()


class CompositeReporter(Reporter):
    """Fans spans out to several reporters."""

    def __init__(self, *reporters: Reporter) -> None:
        self.reporters = list(reporters)

    def report(self, span: "Span") -> None:
        for reporter in self.reporters:
            try:
                reporter.report(span)
            except Exception:
                logger.exception("Reporter %r failed to report span", reporter)

    def close(self) -> None:
        for reporter in self.reporters:
            try:
                reporter.close()
            except Exception:
                logger.exception("Reporter %r failed to close", reporter)
