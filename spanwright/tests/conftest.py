"""Shared fixtures: a tracer wired to in-memory reporter and metrics."""

import pytest

from spanwright import ConstSampler, InMemoryMetricsFactory, InMemoryReporter, Metrics, TracerBuilder


@pytest.fixture
def metrics_factory():
    return InMemoryMetricsFactory()


@pytest.fixture
def reporter():
    return InMemoryReporter()


@pytest.fixture
def tracer(metrics_factory, reporter):
    tracer = (
        TracerBuilder("TracerTestService")
        .with_reporter(reporter)
        .with_sampler(ConstSampler(True))
        .with_metrics(Metrics(metrics_factory))
        .build()
    )
    yield tracer
    tracer.close()
