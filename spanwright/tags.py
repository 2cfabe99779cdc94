"""Well-known tag keys and typed tag setters."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from spanwright.tracer.span import Span

SPAN_KIND_SERVER = "server"
SPAN_KIND_CLIENT = "client"
SPAN_KIND_PRODUCER = "producer"
SPAN_KIND_CONSUMER = "consumer"

SAMPLER_TYPE = "sampler.type"
SAMPLER_PARAM = "sampler.param"
DEBUG_ID = "debug_id"


class Tag:
    """A tag key that knows how to set itself on a span."""

    value_type: Any = object

    def __init__(self, key: str) -> None:
        self.key = key

    def set(self, span: "Span", value: Any) -> None:
        span.set_tag(self.key, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key!r})"


class StringTag(Tag):
    value_type = str


class IntTag(Tag):
    value_type = int


class BooleanTag(Tag):
    value_type = bool


SPAN_KIND = StringTag("span.kind")
COMPONENT = StringTag("component")
ERROR = BooleanTag("error")
HTTP_METHOD = StringTag("http.method")
HTTP_URL = StringTag("http.url")
HTTP_STATUS_CODE = IntTag("http.status_code")
PEER_SERVICE = StringTag("peer.service")
SAMPLING_PRIORITY = IntTag("sampling.priority")


def tag_key(key) -> str:
    """Return the string key for either a plain key or a :class:`Tag`."""
    if isinstance(key, Tag):
        return key.key
    return key
