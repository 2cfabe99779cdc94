"""Tracer: decides trace identity, parentage, sampling and baggage for every new span."""

from __future__ import annotations

import logging
import socket
import threading
import time
from typing import Any, Dict, Hashable, List, Optional, Tuple

from spanwright import tags as tags_module
from spanwright.baggage import BaggageRestrictionManager, BaggageSetter, DefaultBaggageRestrictionManager
from spanwright.context.context import ContextVarsScopeManager, Scope, ScopeManager
from spanwright.context.registry import Extractor, Injector, PropagationRegistry
from spanwright.errors import ConfigError, PropagationError
from spanwright.metrics import Metrics, MetricsFactory
from spanwright.reporters.logging_reporter import LoggingReporter
from spanwright.reporters.reporter import Reporter
from spanwright.samplers.sampler import ConstSampler, Sampler
from spanwright.tracer.span import Span
from spanwright.tracer.span_builder import Reference, ReferenceType, SpanBuilder
from spanwright.tracer.span_context import DEBUG_FLAG, SAMPLED_FLAG, SpanContext
from spanwright.utils.helpers import generate_span_id, generate_trace_id_high

logger = logging.getLogger(__name__)

VERSION_TAG = "spanwright.version"
HOSTNAME_TAG = "hostname"


def _validate_service_name(service_name: Optional[str]) -> str:
    if service_name is None or not str(service_name).strip():
        raise ConfigError("Service name must not be null or empty", {"service_name": service_name})
    return str(service_name).strip()


def _default_tracer_tags() -> Dict[str, Any]:
    from spanwright import __version__

    tracer_tags: Dict[str, Any] = {VERSION_TAG: __version__}
    try:
        tracer_tags[HOSTNAME_TAG] = socket.gethostname()
    except OSError:
        logger.debug("Cannot determine hostname", exc_info=True)
    return tracer_tags


class Tracer:
    """
    Creates spans and carries their contexts across process boundaries.

    Build one with :class:`TracerBuilder`; share it freely between threads and
    tasks; close it once at shutdown.
    """

    def __init__(
        self,
        service_name: str,
        reporter: Reporter,
        sampler: Sampler,
        metrics: Metrics,
        baggage_restriction_manager: BaggageRestrictionManager,
        registry: PropagationRegistry,
        scope_manager: ScopeManager,
        tracer_tags: Optional[Dict[str, Any]] = None,
        use_trace_id_128bit: bool = False,
    ) -> None:
        self.service_name = _validate_service_name(service_name)
        self.reporter = reporter
        self.sampler = sampler
        self.metrics = metrics
        self.baggage_restriction_manager = baggage_restriction_manager
        self.registry = registry
        self.scope_manager = scope_manager
        self.use_trace_id_128bit = use_trace_id_128bit
        self.tags: Dict[str, Any] = dict(tracer_tags or {})
        self._baggage_setter = BaggageSetter(baggage_restriction_manager, metrics)
        self._close_lock = threading.Lock()
        self._closed = False

    # Span creation

    def build_span(self, operation_name: str) -> SpanBuilder:
        """
        Start describing a new span.

        Args:
            operation_name: Name of the operation the span measures

        Returns:
            A :class:`SpanBuilder`; call ``start()`` or ``start_active()`` on it
        """
        return SpanBuilder(self, operation_name)

    def start_span(
        self,
        operation_name: str,
        child_of: Any = None,
        references: Optional[List[Reference]] = None,
        tags: Optional[Dict[str, Any]] = None,
        start_time_ns: Optional[int] = None,
        ignore_active_span: bool = False,
    ) -> Span:
        """Keyword form of ``build_span(...)...start()``."""
        builder = self.build_span(operation_name).as_child_of(child_of)
        for reference in references or []:
            builder.add_reference(reference.type, reference.context)
        for key, value in (tags or {}).items():
            builder.with_tag(key, value)
        if start_time_ns is not None:
            builder.with_start_timestamp(start_time_ns)
        if ignore_active_span:
            builder.ignore_active_span()
        return builder.start()

    def _start_span(self, builder: SpanBuilder) -> Span:
        references = list(builder.references)
        span_tags = dict(builder.tags)

        # An active span is an implicit parent unless an explicit reference carries a trace
        if not builder.ignore_active and not any(ref.context.has_trace() for ref in references):
            active = self.scope_manager.active_span
            if active is not None:
                references.insert(0, Reference(ReferenceType.CHILD_OF, active.context))

        identity = next((ref.context for ref in references if ref.context.has_trace()), None)

        baggage: Dict[str, str] = {}
        for ref in references:
            baggage.update(ref.context.baggage)

        if identity is not None:
            context = SpanContext(
                trace_id_low=identity.trace_id_low,
                trace_id_high=identity.trace_id_high,
                span_id=generate_span_id(),
                parent_id=identity.span_id,
                flags=identity.flags,
                baggage=baggage,
            )
        else:
            context = self._new_trace_context(builder.operation_name, references, baggage, span_tags)

        sampled = context.is_sampled()
        if sampled:
            self.metrics.spans_started_sampled.inc(1)
        else:
            self.metrics.spans_started_not_sampled.inc(1)
        if identity is None:
            if sampled:
                self.metrics.traces_started_sampled.inc(1)
            else:
                self.metrics.traces_started_not_sampled.inc(1)

        if builder.start_time_ns is None:
            start_time_ns, start_perf_ns = time.time_ns(), time.perf_counter_ns()
        else:
            start_time_ns, start_perf_ns = builder.start_time_ns, None

        return Span(
            tracer=self,
            operation_name=builder.operation_name,
            context=context,
            start_time_ns=start_time_ns,
            start_perf_ns=start_perf_ns,
            tags=span_tags,
            references=[ref for ref in references if ref.context.has_trace()],
        )

    def _new_trace_context(
        self,
        operation_name: str,
        references: List[Reference],
        baggage: Dict[str, str],
        span_tags: Dict[str, Any],
    ) -> SpanContext:
        trace_id_low = generate_span_id()
        trace_id_high = generate_trace_id_high() if self.use_trace_id_128bit else 0
        span_id = generate_span_id()

        debug_id = next((ref.context.debug_id for ref in references if ref.context.debug_id), None)
        forced = self._forced_decision(references)
        if debug_id is not None:
            flags = SAMPLED_FLAG | DEBUG_FLAG
            span_tags[tags_module.DEBUG_ID] = debug_id
        elif forced is not None:
            flags = forced
        else:
            result = self.sampler.should_sample(trace_id_low, operation_name)
            flags = SAMPLED_FLAG if result.sampled else 0
            if result.tags:
                span_tags.update(result.tags)

        return SpanContext(
            trace_id_low=trace_id_low,
            trace_id_high=trace_id_high,
            span_id=span_id,
            parent_id=0,
            flags=flags,
            baggage=baggage,
            debug_id=debug_id,
        )

    @staticmethod
    def _forced_decision(references: List[Reference]) -> Optional[int]:
        """
        Flags forced by sampling-only references, or None to consult the sampler.

        A sampled reference wins; otherwise the first reference with any
        flags set forces its (unsampled) flags.
        """
        for ref in references:
            if ref.context.is_sampled():
                return ref.context.flags
        for ref in references:
            if ref.context.flags:
                return ref.context.flags
        return None

    # Finished spans

    def _report_span(self, span: Span) -> None:
        self.metrics.spans_finished.inc(1)
        if self._closed:
            logger.debug("Tracer closed, not reporting span %s", span.context)
            return
        if span.context.is_sampled():
            self.reporter.report(span)

    # Baggage

    def set_baggage(self, span: Span, key: str, value: Optional[str]) -> None:
        """
        Set a baggage item on ``span`` subject to the baggage restrictions.

        Denied keys leave the span untouched. A None value removes the key.
        """
        self._baggage_setter.set_baggage(span, key, value)

    # Scopes

    def activate_span(self, span: Span, finish_on_close: bool = False) -> Scope:
        """
        Make ``span`` the active span for the current thread or task.

        Args:
            span: The span to activate
            finish_on_close: Finish ``span`` when the scope closes

        Returns:
            A :class:`Scope` whose ``close()`` restores the previous active span
        """
        return self.scope_manager.activate(span, finish_on_close)

    @property
    def active_span(self) -> Optional[Span]:
        """The innermost active span, or None."""
        return self.scope_manager.active_span

    # Propagation

    def inject(self, span_context: SpanContext, fmt: Hashable, carrier: Any) -> None:
        """
        Write ``span_context`` into ``carrier`` using the codec registered for ``fmt``.

        An unregistered format is a no-op.

        Args:
            span_context: Context to propagate
            fmt: A :class:`Format` member or any registered token
            carrier: Format-specific container to write into
        """
        injector = self.registry.get_injector(fmt)
        if injector is None:
            logger.debug("No injector registered for format %r", fmt)
            return
        injector.inject(span_context, carrier)

    def extract(self, fmt: Hashable, carrier: Any) -> Optional[SpanContext]:
        """
        Read a span context from ``carrier`` using the codec registered for ``fmt``.

        Never raises for bad input: malformed carriers are counted as decoding
        errors, logged at WARNING and yield None.

        Returns:
            The extracted context (possibly sampling-only), or None
        """
        extractor = self.registry.get_extractor(fmt)
        if extractor is None:
            logger.debug("No extractor registered for format %r", fmt)
            return None
        try:
            return extractor.extract(carrier)
        except PropagationError as e:
            self.metrics.decoding_errors.inc(1)
            logger.warning("Cannot extract span context from %r carrier: %s", fmt, e)
            return None

    # Lifecycle

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close the reporter, then the sampler. Safe to call more than once."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        try:
            self.reporter.close()
        except Exception:
            logger.exception("Failed to close reporter %r", self.reporter)
        try:
            self.sampler.close()
        except Exception:
            logger.exception("Failed to close sampler %r", self.sampler)

    def __enter__(self) -> "Tracer":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    def __repr__(self) -> str:
        return (
            f"Tracer(service_name={self.service_name!r}, reporter={self.reporter!r}, "
            f"sampler={self.sampler!r}, use_trace_id_128bit={self.use_trace_id_128bit})"
        )


class TracerBuilder:
    """
    Composes a :class:`Tracer`.

    Raises:
        ConfigError: on construction, if the service name is None or blank
    """

    def __init__(self, service_name: str) -> None:
        self.service_name = _validate_service_name(service_name)
        self._reporter: Optional[Reporter] = None
        self._sampler: Optional[Sampler] = None
        self._metrics: Optional[Metrics] = None
        self._baggage_restriction_manager: Optional[BaggageRestrictionManager] = None
        self._scope_manager: Optional[ScopeManager] = None
        self._use_trace_id_128bit = False
        self._tags: Dict[str, Any] = {}
        self._injectors: List[Tuple[Hashable, Injector]] = []
        self._extractors: List[Tuple[Hashable, Extractor]] = []

    def with_reporter(self, reporter: Reporter) -> "TracerBuilder":
        self._reporter = reporter
        return self

    def with_sampler(self, sampler: Sampler) -> "TracerBuilder":
        self._sampler = sampler
        return self

    def with_metrics(self, metrics: Metrics) -> "TracerBuilder":
        self._metrics = metrics
        return self

    def with_metrics_factory(self, factory: MetricsFactory) -> "TracerBuilder":
        self._metrics = Metrics(factory)
        return self

    def with_baggage_restriction_manager(self, manager: BaggageRestrictionManager) -> "TracerBuilder":
        self._baggage_restriction_manager = manager
        return self

    def with_scope_manager(self, scope_manager: ScopeManager) -> "TracerBuilder":
        self._scope_manager = scope_manager
        return self

    def with_trace_id_128bit(self, enabled: bool = True) -> "TracerBuilder":
        self._use_trace_id_128bit = enabled
        return self

    def with_tag(self, key: str, value: Any) -> "TracerBuilder":
        self._tags[key] = value
        return self

    def register_injector(self, fmt: Hashable, injector: Injector) -> "TracerBuilder":
        self._injectors.append((fmt, injector))
        return self

    def register_extractor(self, fmt: Hashable, extractor: Extractor) -> "TracerBuilder":
        self._extractors.append((fmt, extractor))
        return self

    def build(self) -> Tracer:
        from spanwright.context.propagators import register_default_codecs

        registry = PropagationRegistry()
        register_default_codecs(registry)
        for fmt, injector in self._injectors:
            registry.register_injector(fmt, injector)
        for fmt, extractor in self._extractors:
            registry.register_extractor(fmt, extractor)

        tracer_tags = _default_tracer_tags()
        tracer_tags.update(self._tags)

        return Tracer(
            service_name=self.service_name,
            reporter=self._reporter or LoggingReporter(),
            sampler=self._sampler or ConstSampler(True),
            metrics=self._metrics or Metrics.noop(),
            baggage_restriction_manager=self._baggage_restriction_manager or DefaultBaggageRestrictionManager(),
            registry=registry,
            scope_manager=self._scope_manager or ContextVarsScopeManager(),
            tracer_tags=tracer_tags,
            use_trace_id_128bit=self._use_trace_id_128bit,
        )
