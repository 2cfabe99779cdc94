"""Samplers deciding whether new traces are recorded."""

from spanwright.samplers.rate_limiter import RateLimiter, RateLimitingSampler
from spanwright.samplers.sampler import (
    SAMPLER_TYPE_CONST,
    SAMPLER_TYPE_PROBABILISTIC,
    SAMPLER_TYPE_RATE_LIMITING,
    ConstSampler,
    ProbabilisticSampler,
    Sampler,
    SamplingResult,
)

__all__ = [
    "Sampler",
    "SamplingResult",
    "ConstSampler",
    "ProbabilisticSampler",
    "RateLimiter",
    "RateLimitingSampler",
    "SAMPLER_TYPE_CONST",
    "SAMPLER_TYPE_PROBABILISTIC",
    "SAMPLER_TYPE_RATE_LIMITING",
]
