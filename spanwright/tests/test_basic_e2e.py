"""Basic smoke tests for Spanwright.

Quick sanity checks that core functionality works end to end, from one
service to another through a propagation carrier.
"""

import pytest

import spanwright
from spanwright import ConstSampler, Format, InMemoryMetricsFactory, InMemoryReporter, Metrics, TracerBuilder
from spanwright import tags


def test_version_exposed():
    """Smoke test: version is accessible."""
    assert isinstance(spanwright.__version__, str)
    assert len(spanwright.__version__) > 0


@pytest.mark.parametrize("fmt", [Format.TEXT_MAP, Format.HTTP_HEADERS, Format.W3C])
def test_request_across_services(fmt):
    client_reporter, server_reporter = InMemoryReporter(), InMemoryReporter()
    server_metrics = InMemoryMetricsFactory()
    client = TracerBuilder("frontend").with_reporter(client_reporter).with_sampler(ConstSampler(True)).build()
    server = (
        TracerBuilder("backend")
        .with_reporter(server_reporter)
        .with_sampler(ConstSampler(False))
        .with_metrics(Metrics(server_metrics))
        .build()
    )

    with client.build_span("checkout").start_active() as scope:
        scope.span.set_baggage_item("customer", "c-42")
        outbound = client.build_span("POST /pay").with_tag(tags.SPAN_KIND, tags.SPAN_KIND_CLIENT).start()
        headers = {}
        client.inject(outbound.context, fmt, headers)

        incoming = server.extract(fmt, headers)
        handler = server.build_span("pay").as_child_of(incoming).with_tag(tags.SPAN_KIND, "server").start()
        handler.finish()
        outbound.finish()

    # the server inherits the client's sampling decision instead of its own sampler
    assert handler.context.is_sampled()
    assert handler.context.trace_id_low == outbound.context.trace_id_low
    assert handler.context.parent_id == outbound.context.span_id
    assert handler.get_baggage_item("customer") == "c-42"
    assert server_reporter.get_spans() == [handler]
    assert len(client_reporter.get_spans()) == 2
    assert server_metrics.get_counter("spanwright_tracer_traces", "sampled=y,state=started") == 0
    assert server_metrics.get_counter("spanwright_tracer_started_spans", "sampled=y") == 1

    client.close()
    server.close()


def test_binary_propagation():
    tracer = TracerBuilder("svc").with_reporter(InMemoryReporter()).build()
    span = tracer.build_span("op").start()
    carrier = bytearray()
    tracer.inject(span.context, Format.BINARY, carrier)
    assert tracer.extract(Format.BINARY, carrier) == span.context


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
