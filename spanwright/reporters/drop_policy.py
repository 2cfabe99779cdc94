"""Queue overflow handling strategies for span buffering."""

from __future__ import annotations

from typing import Deque, TYPE_CHECKING

if TYPE_CHECKING:
    from spanwright.tracer.span import Span


class DropPolicy:
    """Base policy deciding how to handle span queue overflow."""

    def handle(self, queue: Deque[Span], span: Span, max_size: int) -> int:
        """
        Apply the drop policy.

        Returns the number of spans dropped (the incoming one or queued ones).
        """
        raise NotImplementedError


class DropOldestPolicy(DropPolicy):
    """Drop the oldest span to make room for a new one."""

    def handle(self, queue: Deque[Span], span: Span, max_size: int) -> int:
        if max_size <= 0:
            return 1
        dropped = 0
        while len(queue) >= max_size:
            queue.popleft()
            dropped += 1
        queue.append(span)
        return dropped


class DropNewestPolicy(DropPolicy):
    """Drop the incoming span if the queue is full."""

    def handle(self, queue: Deque[Span], span: Span, max_size: int) -> int:
        if len(queue) < max_size:
            queue.append(span)
            return 0
        return 1


DEFAULT_DROP_POLICY = DropOldestPolicy()
