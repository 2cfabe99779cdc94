"""@traced decorator for instrumenting functions."""

from __future__ import annotations

import functools
import inspect
from typing import Any, Callable, Dict, Iterable, Optional, TYPE_CHECKING

from spanwright.utils.helpers import convert_to_otel_type

if TYPE_CHECKING:
    from spanwright.tracer.tracer import Tracer


def _capture_args(func: Callable, args, kwargs, skip: Iterable[str]) -> Dict[str, Any]:
    """Capture call arguments as ``arg.<name>`` tags."""
    try:
        bound = inspect.signature(func).bind_partial(*args, **kwargs)
    except TypeError:
        return {}
    captured = {}
    for name, value in bound.arguments.items():
        if name in skip or name in ("self", "cls"):
            continue
        captured[f"arg.{name}"] = convert_to_otel_type(value)
    return captured


def traced(
    tracer: "Tracer",
    operation_name: Optional[str] = None,
    tags: Optional[Dict[str, Any]] = None,
    capture_args: bool = False,
    skip_args: Iterable[str] = (),
) -> Callable:
    """
    Run the decorated function inside an active span.

    The span is a child of whatever span is active when the function is
    called. Exceptions are tagged on the span and re-raised.
    """
    skip = set(skip_args)

    def decorator(func: Callable) -> Callable:
        name = operation_name or func.__qualname__

        def _start(args, kwargs):
            builder = tracer.build_span(name)
            for key, value in (tags or {}).items():
                builder.with_tag(key, value)
            if capture_args:
                for key, value in _capture_args(func, args, kwargs, skip).items():
                    builder.with_tag(key, value)
            return builder.start()

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                with _start(args, kwargs) as span, tracer.activate_span(span):
                    return await func(*args, **kwargs)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with _start(args, kwargs) as span, tracer.activate_span(span):
                return func(*args, **kwargs)

        return wrapper

    return decorator
