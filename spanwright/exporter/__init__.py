"""Exporters used by RemoteReporter to deliver spans to backends."""

from spanwright.exporter.console_exporter import ConsoleExporter
from spanwright.exporter.otlp_exporter import OTLPExporter, to_readable_span

__all__ = ["ConsoleExporter", "OTLPExporter", "to_readable_span"]
