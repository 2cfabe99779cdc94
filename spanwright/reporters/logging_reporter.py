"""Reporter that logs spans when they finish."""

from __future__ import annotations

import logging
from typing import Optional

from spanwright.reporters.reporter import Reporter


class LoggingReporter(Reporter):
    """Logs span summary on finish using the standard logging module."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("spanwright.traces")

    def report(self, span) -> None:
        self.logger.info(
            "[span] service=%s operation=%s context=%s duration_ns=%s tags=%s",
            span.tracer.service_name,
            span.operation_name,
            span.context,
            span.duration_ns,
            span.tags,
        )
