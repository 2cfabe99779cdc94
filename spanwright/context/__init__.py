"""Active span scopes and cross-process propagation."""

from spanwright.context.context import ContextVarsScopeManager, Scope, ScopeManager, get_current_span
from spanwright.context.registry import Extractor, Format, Injector, PropagationRegistry
from spanwright.context.propagators import (
    BinaryCodec,
    TextMapCodec,
    W3CCodec,
    context_as_string,
    context_from_string,
    parse_baggage_header,
    register_default_codecs,
)

__all__ = [
    "Scope",
    "ScopeManager",
    "ContextVarsScopeManager",
    "get_current_span",
    "Format",
    "Injector",
    "Extractor",
    "PropagationRegistry",
    "TextMapCodec",
    "BinaryCodec",
    "W3CCodec",
    "context_as_string",
    "context_from_string",
    "parse_baggage_header",
    "register_default_codecs",
]
