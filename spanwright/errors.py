"""Spanwright error hierarchy and exceptions."""

from __future__ import annotations


class SpanwrightError(Exception):
    """Base exception for all Spanwright errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(SpanwrightError):
    """Raised when configuration is invalid or conflicting."""
    pass


class PropagationError(SpanwrightError):
    """Raised by codecs when a carrier cannot be decoded."""
    pass


class ExportError(SpanwrightError):
    """Raised when span export fails."""
    pass
