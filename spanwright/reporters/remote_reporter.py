"""Batching reporter with bounded queue and background flush."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Deque, List, Optional, TYPE_CHECKING

from spanwright.errors import ExportError
from spanwright.metrics import Metrics
from spanwright.reporters.drop_policy import DEFAULT_DROP_POLICY, DropPolicy
from spanwright.reporters.reporter import Reporter

if TYPE_CHECKING:
    from spanwright.tracer.span import Span

logger = logging.getLogger(__name__)


class RemoteReporter(Reporter):
    """
    Queues finished spans and hands them to an exporter in batches.

    The exporter's ``export(spans) -> bool`` runs on a daemon worker thread,
    never on the thread that finished the span. ``close()`` stops the worker,
    flushes what is left synchronously and shuts the exporter down.
    """

    def __init__(
        self,
        exporter,
        *,
        max_queue_size: int = 5000,
        max_export_batch_size: int = 512,
        flush_interval_ms: int = 1000,
        drop_policy: Optional[DropPolicy] = None,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self.exporter = exporter
        self.max_queue_size = max_queue_size
        self.max_export_batch_size = max_export_batch_size
        self.flush_interval = flush_interval_ms / 1000.0
        self.drop_policy = drop_policy or DEFAULT_DROP_POLICY
        self.metrics = metrics or Metrics.noop()

        self._queue: Deque["Span"] = deque()
        self._lock = threading.Lock()
        # serializes exports between the worker and close()
        self._export_lock = threading.Lock()
        self._event = threading.Event()
        self._closed = False
        self._worker = threading.Thread(
            target=self._worker_loop, name="spanwright-reporter", daemon=True
        )
        self._worker.start()

    def report(self, span: "Span") -> None:
        if self._closed:
            self.metrics.reporter_dropped.inc(1)
            return

        with self._lock:
            dropped = self.drop_policy.handle(self._queue, span, self.max_queue_size)
            queue_length = len(self._queue)
            if queue_length >= self.max_export_batch_size:
                self._event.set()
        if dropped:
            self.metrics.reporter_dropped.inc(dropped)
            logger.debug("Span queue full, dropped %d span(s)", dropped)
        self.metrics.reporter_queue_length.update(queue_length)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Export everything queued so far, batch by batch."""
        deadline = time.monotonic() + timeout if timeout else None
        while self._flush_once():
            if deadline and time.monotonic() >= deadline:
                return

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._event.set()
        self._worker.join(timeout=self.flush_interval * 2 + 1.0)
        self.flush()
        shutdown = getattr(self.exporter, "shutdown", None)
        if shutdown is not None:
            shutdown()

    # Internal
    def _worker_loop(self) -> None:
        while not self._closed:
            self._event.wait(timeout=self.flush_interval)
            self._event.clear()
            self.flush()

    def _flush_once(self) -> bool:
        with self._export_lock:
            spans = self._drain_queue(self.max_export_batch_size)
            if not spans:
                return False
            self._export(spans)
            return True

    def _drain_queue(self, limit: int) -> List["Span"]:
        items: List["Span"] = []
        with self._lock:
            while self._queue and len(items) < limit:
                items.append(self._queue.popleft())
            queue_length = len(self._queue)
        self.metrics.reporter_queue_length.update(queue_length)
        return items

    def _export(self, spans: List["Span"]) -> None:
        try:
            if not self.exporter.export(spans):
                raise ExportError("Exporter rejected batch", {"spans": len(spans)})
        except Exception:
            # transport failures stay inside the reporter
            self.metrics.reporter_failure.inc(len(spans))
            logger.warning("Failed to export %d span(s)", len(spans), exc_info=True)
            return
        self.metrics.reporter_success.inc(len(spans))
