"""Propagation formats and the per-tracer registry of injectors and extractors."""

from __future__ import annotations

import threading
from enum import Enum
from types import MappingProxyType
from typing import Any, Hashable, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from spanwright.tracer.span_context import SpanContext


class Format(str, Enum):
    """Built-in format tokens. Any hashable value may be registered as a format."""

    TEXT_MAP = "text_map"
    HTTP_HEADERS = "http_headers"
    BINARY = "binary"
    W3C = "w3c"


class Injector:
    """Writes a span context into a carrier of one format."""

    def inject(self, span_context: SpanContext, carrier: Any) -> None:
        """
        Write ``span_context`` into ``carrier``.

        Args:
            span_context: The context to propagate, baggage included
            carrier: Format-specific container (a mutable mapping, a bytearray, ...)
        """
        raise NotImplementedError


class Extractor:
    """Reads a span context back out of a carrier of one format."""

    def extract(self, carrier: Any) -> Optional[SpanContext]:
        """
        Read a span context from ``carrier``.

        Returns:
            The decoded context, or None when the carrier holds no tracing state

        Raises:
            PropagationError: if the carrier holds tracing state that cannot be decoded
        """
        raise NotImplementedError


class PropagationRegistry:
    """
    Maps format tokens to injectors and extractors.

    Registering a format again replaces the earlier entry. Writers copy the
    table under a lock; lookups read the current table without locking.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._injectors: Mapping[Hashable, Injector] = MappingProxyType({})
        self._extractors: Mapping[Hashable, Extractor] = MappingProxyType({})

    def register_injector(self, fmt: Hashable, injector: Injector) -> None:
        """
        Register ``injector`` for ``fmt``, replacing any earlier one.

        Args:
            fmt: A :class:`Format` member or any hashable token
            injector: Object implementing :class:`Injector`
        """
        with self._lock:
            table = dict(self._injectors)
            table[fmt] = injector
            self._injectors = MappingProxyType(table)

    def register_extractor(self, fmt: Hashable, extractor: Extractor) -> None:
        """Register ``extractor`` for ``fmt``, replacing any earlier one."""
        with self._lock:
            table = dict(self._extractors)
            table[fmt] = extractor
            self._extractors = MappingProxyType(table)

    def register_codec(self, fmt: Hashable, codec: Any) -> None:
        """Register one object as both injector and extractor for ``fmt``."""
        self.register_injector(fmt, codec)
        self.register_extractor(fmt, codec)

    def get_injector(self, fmt: Hashable) -> Optional[Injector]:
        """Return the injector for ``fmt``, or None if none is registered."""
        return self._injectors.get(fmt)

    def get_extractor(self, fmt: Hashable) -> Optional[Extractor]:
        """Return the extractor for ``fmt``, or None if none is registered."""
        return self._extractors.get(fmt)

    def formats(self) -> frozenset:
        """Every format with an injector or an extractor."""
        return frozenset(self._injectors) | frozenset(self._extractors)
