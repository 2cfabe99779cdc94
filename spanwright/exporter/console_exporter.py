"""Console exporter for developer visibility."""

from __future__ import annotations

import sys
from typing import Iterable, TextIO

from spanwright.tracer.span import Span


def format_span(span: Span) -> str:
    """One line per span: service, operation, ``trace:span:parent:flags``, duration and references."""
    parts = [
        f"[span] service={span.tracer.service_name}",
        f"operation={span.operation_name}",
        f"trace_id={span.context.trace_id}",
        f"context={span.context}",
        f"duration_ns={span.duration_ns}",
    ]
    for ref in span.references:
        parts.append(f"{ref.type.value}={ref.context}")
    if span.tags:
        parts.append(f"tags={dict(sorted(span.tags.items()))}")
    if span.context.baggage:
        parts.append(f"baggage={dict(sorted(span.context.baggage.items()))}")
    return " ".join(parts)


class ConsoleExporter:
    """Prints finished spans to stdout, or to the given stream."""

    def __init__(self, stream: TextIO = None) -> None:
        self.stream = stream or sys.stdout

    def export(self, spans: Iterable[Span]) -> bool:
        for span in spans:
            print(format_span(span), file=self.stream)
        self.stream.flush()
        return True

    def shutdown(self) -> None:
        self.stream.flush()
