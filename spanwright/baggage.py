"""Baggage restriction policies and the setter that enforces them."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, TYPE_CHECKING

from spanwright.metrics import Metrics

if TYPE_CHECKING:
    from spanwright.tracer.span import Span

logger = logging.getLogger(__name__)

DEFAULT_MAX_VALUE_LENGTH = 2048


@dataclass(frozen=True)
class Restriction:
    key_allowed: bool
    max_value_length: int = DEFAULT_MAX_VALUE_LENGTH


class BaggageRestrictionManager:
    """Decides whether a service may set a baggage key, and how long its value may be."""

    def get_restriction(self, service: str, key: str) -> Restriction:
        raise NotImplementedError


class DefaultBaggageRestrictionManager(BaggageRestrictionManager):
    """Permits every key, capping values at ``max_value_length``."""

    def __init__(self, max_value_length: int = DEFAULT_MAX_VALUE_LENGTH) -> None:
        self._restriction = Restriction(True, max_value_length)

    def get_restriction(self, service: str, key: str) -> Restriction:
        return self._restriction


class StaticBaggageRestrictionManager(BaggageRestrictionManager):
    """
    Allow-list of baggage keys mapped to their maximum value length.

    ``update()`` swaps in a whole new table; readers never take the lock.
    """

    def __init__(
        self,
        restrictions: Optional[Mapping[str, int]] = None,
        deny_unknown: bool = True,
        default_max_value_length: int = DEFAULT_MAX_VALUE_LENGTH,
    ) -> None:
        self.deny_unknown = deny_unknown
        self._default = Restriction(not deny_unknown, default_max_value_length)
        self._lock = threading.Lock()
        self._restrictions: Mapping[str, Restriction] = MappingProxyType({})
        self.update(restrictions or {})

    def update(self, restrictions: Mapping[str, int]) -> None:
        table = {key: Restriction(True, length) for key, length in restrictions.items()}
        with self._lock:
            self._restrictions = MappingProxyType(table)

    def get_restriction(self, service: str, key: str) -> Restriction:
        return self._restrictions.get(key, self._default)


class BaggageSetter:
    """Applies a restriction manager's verdict to baggage writes on live spans."""

    def __init__(self, restriction_manager: BaggageRestrictionManager, metrics: Metrics) -> None:
        self.restriction_manager = restriction_manager
        self.metrics = metrics

    def set_baggage(self, span: "Span", key: str, value: Optional[str]) -> None:
        restriction = self.restriction_manager.get_restriction(span.tracer.service_name, key)
        if not restriction.key_allowed:
            self.metrics.baggage_update_denied.inc(1)
            logger.debug("Baggage key %r denied for service %r", key, span.tracer.service_name)
            self._log_fields(span, key, value, truncated=False, invalid=True)
            return

        truncated = False
        if value is not None and len(value) > restriction.max_value_length:
            value = value[: restriction.max_value_length]
            truncated = True
            self.metrics.baggage_truncations.inc(1)

        span._replace_context(span.context.with_baggage_item(key, value))
        self.metrics.baggage_update_success.inc(1)
        self._log_fields(span, key, value, truncated=truncated, invalid=False)

    @staticmethod
    def _log_fields(span: "Span", key: str, value: Optional[str], truncated: bool, invalid: bool) -> None:
        if not span.context.is_sampled():
            return
        fields: Dict[str, object] = {"event": "baggage", "key": key, "value": value}
        if truncated:
            fields["truncated"] = True
        if invalid:
            fields["invalid"] = True
        span.log_kv(fields)
