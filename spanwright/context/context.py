"""Active span scopes, kept in the OpenTelemetry context (per thread and per asyncio task)."""

from __future__ import annotations

import logging
from typing import Optional, TYPE_CHECKING

from opentelemetry import context as context_api

if TYPE_CHECKING:
    from spanwright.tracer.span import Span

logger = logging.getLogger(__name__)

_ACTIVE_SPAN_KEY = context_api.create_key("spanwright-active-span")


class Scope:
    """
    Handle returned by :meth:`ScopeManager.activate`.

    Closing restores whatever span was active before this scope was opened.
    """

    def __init__(self, span: "Span", token: object, finish_on_close: bool = False) -> None:
        self.span = span
        self._token = token
        self._finish_on_close = finish_on_close
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            context_api.detach(self._token)
        finally:
            if self._finish_on_close:
                self.span.finish()

    def __enter__(self) -> "Scope":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


class ScopeManager:
    def activate(self, span: "Span", finish_on_close: bool = False) -> Scope:
        raise NotImplementedError

    @property
    def active_span(self) -> Optional["Span"]:
        raise NotImplementedError


class ContextVarsScopeManager(ScopeManager):
    """Scope manager on top of OpenTelemetry's contextvars-backed context."""

    def activate(self, span: "Span", finish_on_close: bool = False) -> Scope:
        ctx = context_api.set_value(_ACTIVE_SPAN_KEY, span)
        token = context_api.attach(ctx)
        return Scope(span, token, finish_on_close)

    @property
    def active_span(self) -> Optional["Span"]:
        return context_api.get_value(_ACTIVE_SPAN_KEY)


def get_current_span() -> Optional["Span"]:
    """Return the span active in the current execution context, if any."""
    return context_api.get_value(_ACTIVE_SPAN_KEY)
