"""Reporters receiving finished spans."""

from spanwright.reporters.drop_policy import (
    DEFAULT_DROP_POLICY,
    DropNewestPolicy,
    DropOldestPolicy,
    DropPolicy,
)
from spanwright.reporters.logging_reporter import LoggingReporter
from spanwright.reporters.remote_reporter import RemoteReporter
from spanwright.reporters.reporter import (
    CompositeReporter,
    InMemoryReporter,
    NoopReporter,
    Reporter,
)

__all__ = [
    "Reporter",
    "NoopReporter",
    "InMemoryReporter",
    "CompositeReporter",
    "LoggingReporter",
    "RemoteReporter",
    "DropPolicy",
    "DropOldestPolicy",
    "DropNewestPolicy",
    "DEFAULT_DROP_POLICY",
]
