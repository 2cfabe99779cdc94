"""Function instrumentation helpers."""

from spanwright.instrumentation.decorator import traced

__all__ = ["traced"]
