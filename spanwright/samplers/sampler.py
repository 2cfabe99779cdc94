"""Sampling decisions for new traces."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from spanwright import tags

SAMPLER_TYPE_CONST = "const"
SAMPLER_TYPE_PROBABILISTIC = "probabilistic"
SAMPLER_TYPE_RATE_LIMITING = "ratelimiting"

_MAX_RANDOM_NUMBER = (1 << 63) - 1


@dataclass
class SamplingResult:
    sampled: bool
    tags: Dict[str, Any] = field(default_factory=dict)


class Sampler:
    """
    Decides whether a new trace is sampled.

    Called once per trace, for its root span only. Implementations must be
    safe to call from many threads at once.
    """

    def should_sample(self, trace_id: int, operation_name: str) -> SamplingResult:
        raise NotImplementedError

    def close(self) -> None:
        """Release any resources held by the sampler."""
        pass


class ConstSampler(Sampler):
    """Samples all traces or none."""

    def __init__(self, decision: bool = True) -> None:
        self.decision = bool(decision)
        self._tags = {
            tags.SAMPLER_TYPE: SAMPLER_TYPE_CONST,
            tags.SAMPLER_PARAM: self.decision,
        }

    def should_sample(self, trace_id: int, operation_name: str) -> SamplingResult:
        return SamplingResult(sampled=self.decision, tags=dict(self._tags))

    def __repr__(self) -> str:
        return f"ConstSampler(decision={self.decision})"


class ProbabilisticSampler(Sampler):
    """
    Head-based sampler using a fixed probability.

    The decision is derived from the trace id, so every process seeing the
    same trace id with the same rate reaches the same decision.
    """

    def __init__(self, sample_rate: float = 1.0) -> None:
        if not 0.0 <= sample_rate <= 1.0:
            raise ValueError("sample_rate must be between 0.0 and 1.0")
        self.sample_rate = sample_rate
        self._boundary = int(sample_rate * (1 << 63))
        self._tags = {
            tags.SAMPLER_TYPE: SAMPLER_TYPE_PROBABILISTIC,
            tags.SAMPLER_PARAM: sample_rate,
        }

    def should_sample(self, trace_id: int, operation_name: str) -> SamplingResult:
        sampled = (trace_id & _MAX_RANDOM_NUMBER) < self._boundary
        return SamplingResult(sampled=sampled, tags=dict(self._tags))

    def __repr__(self) -> str:
        return f"ProbabilisticSampler(sample_rate={self.sample_rate})"
