import logging
from unittest.mock import MagicMock

import pytest

from endpoint_resolver.errors import ProtocolError, TransportError
from endpoint_resolver.prober import DomainSpeedProber, ThrottledDomainSelector, sort_probe_results
from endpoint_resolver.transports.abstract_transport import AbstractProbeTransport
from endpoint_resolver.types import DomainCandidate, ProbeResult

A = DomainCandidate(domain="a.com", cert_type="self", label="L1")
B = DomainCandidate(domain="b.com", cert_type="authority", label="L2")
C = DomainCandidate(domain="c.com", cert_type="authority", label="L1")


# ========== DomainSpeedProber ==========


def test_single_candidate_skips_probing(probe_transport_factory, executor):
    transport = probe_transport_factory({})
    prober = DomainSpeedProber(transport, executor)

    result = prober.test_domain_speed([A])

    assert result == [ProbeResult(domain="a.com", cert_type="self", label="L1", ms=1)]
    transport.probe.assert_not_called()


def test_probes_sorted_fastest_first(probe_transport_factory, executor):
    transport = probe_transport_factory({"a.com": 80, "b.com": 12, "c.com": 40})
    prober = DomainSpeedProber(transport, executor)

    result = prober.test_domain_speed([A, B, C])

    assert [r.domain for r in result] == ["b.com", "c.com", "a.com"]
    assert [r.ms for r in result] == [12, 40, 80]
    assert result[0].label == "L2"
    assert transport.probe.call_count == 3


def test_failed_probe_is_excluded_not_marked(probe_transport_factory, executor, unreachable):
    transport = probe_transport_factory({"a.com": 30, "b.com": unreachable, "c.com": 10})
    prober = DomainSpeedProber(transport, executor)

    result = prober.test_domain_speed([A, B, C])

    assert [r.domain for r in result] == ["c.com", "a.com"]
    assert all(r.ms != -1 for r in result)


def test_probe_passes_cert_type(probe_transport_factory, executor):
    transport = probe_transport_factory({"a.com": 5, "b.com": 6})
    DomainSpeedProber(transport, executor).test_domain_speed([A, B])

    calls = {c.args for c in transport.probe.call_args_list}
    assert calls == {("a.com", "self"), ("b.com", "authority")}


def test_empty_candidates_return_empty(probe_transport_factory, executor):
    transport = probe_transport_factory({})
    assert DomainSpeedProber(transport, executor).test_domain_speed([]) == []


def test_probe_pass_logs_summary(probe_transport_factory, executor, unreachable, caplog):
    caplog.set_level(logging.INFO, logger="endpoint_resolver.prober")
    transport = probe_transport_factory({"a.com": 20, "b.com": unreachable})

    DomainSpeedProber(transport, executor).test_domain_speed([A, B])

    records = [r for r in caplog.records if r.message == "resolver_probe_pass"]
    assert records
    payload = records[0].resolver
    assert payload["candidates"] == 2
    assert payload["reachable"] == [("a.com", 20)]
    assert payload["dropped"] == ["b.com"]


def test_sort_puts_unusable_last_and_keeps_tie_order():
    results = [
        ProbeResult(domain="x", ms=-1),
        ProbeResult(domain="y", ms=30),
        ProbeResult(domain="z", ms=-1),
        ProbeResult(domain="p", ms=10),
        ProbeResult(domain="q", ms=30),
    ]

    ordered = sort_probe_results(results)

    assert [r.domain for r in ordered[:3]] == ["p", "y", "q"]
    assert {r.domain for r in ordered[3:]} == {"x", "z"}
    assert all(r.ms == -1 for r in ordered[3:])


# ========== AbstractProbeTransport.probe ==========


class RaisingTransport(AbstractProbeTransport):
    def __init__(self, error=None):
        self.error = error
        self.urls = []

    def ping_url(self, url, allow_self_signed):
        self.urls.append((url, allow_self_signed))
        if self.error is not None:
            raise self.error


def test_probe_times_successful_ping():
    transport = RaisingTransport()

    ms = transport.probe("a.com", "self")

    assert ms >= 0
    url, allow_self_signed = transport.urls[0]
    assert url.startswith("https://a.com?t=")
    assert allow_self_signed is True


@pytest.mark.parametrize("code", [100, 302, 404, 499])
def test_probe_times_reachable_error_status(code):
    transport = RaisingTransport(ProtocolError("status", code=code))

    assert transport.probe("a.com", "authority") >= 0
    assert transport.urls[0][1] is False


@pytest.mark.parametrize("code", [500, 503, None])
def test_probe_raises_for_unreachable(code):
    error = ProtocolError("status", code=code) if code else TransportError("refused")
    transport = RaisingTransport(error)

    with pytest.raises(TransportError):
        transport.probe("a.com", "authority")


def test_probe_wraps_foreign_errors():
    transport = RaisingTransport(OSError("network down"))

    with pytest.raises(TransportError, match="network down"):
        transport.probe("a.com", "authority")


# ========== ThrottledDomainSelector ==========


def test_selector_reuses_result_within_threshold(clock):
    prober = MagicMock()
    prober.test_domain_speed.return_value = [ProbeResult(domain="a.com", ms=5)]
    selector = ThrottledDomainSelector(prober, threshold=60, clock=clock)

    first = selector.select([A, B])
    clock.advance(59)
    second = selector.select([C])  # different list, same window

    assert second is first
    prober.test_domain_speed.assert_called_once()


def test_selector_probes_again_after_threshold(clock):
    prober = MagicMock()
    prober.test_domain_speed.side_effect = [
        [ProbeResult(domain="a.com", ms=5)],
        [ProbeResult(domain="b.com", ms=7)],
    ]
    selector = ThrottledDomainSelector(prober, threshold=60, clock=clock)

    selector.select([A, B])
    clock.advance(60)
    result = selector.select([A, B])

    assert prober.test_domain_speed.call_count == 2
    assert result[0].domain == "b.com"
    assert selector.last_result is result


def test_selector_failure_does_not_hold_window(clock):
    prober = MagicMock()
    prober.test_domain_speed.side_effect = [RuntimeError("pool shut down"), [ProbeResult(domain="a.com", ms=5)]]
    selector = ThrottledDomainSelector(prober, threshold=60, clock=clock)

    with pytest.raises(RuntimeError):
        selector.select([A, B])
    clock.advance(1)
    result = selector.select([A, B])

    assert prober.test_domain_speed.call_count == 2
    assert result[0].domain == "a.com"


def test_selector_failure_keeps_previous_window(clock):
    first_result = [ProbeResult(domain="a.com", ms=5)]
    prober = MagicMock()
    prober.test_domain_speed.side_effect = [first_result, RuntimeError("pool shut down"), []]
    selector = ThrottledDomainSelector(prober, threshold=60, clock=clock)

    selector.select([A, B])
    clock.advance(60)
    with pytest.raises(RuntimeError):
        selector.select([A, B])

    # the failed pass does not count as a fresh selection
    assert selector.last_result is first_result
    clock.advance(1)
    assert selector.select([A, B]) == []
    assert prober.test_domain_speed.call_count == 3
