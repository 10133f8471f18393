"""End-to-end detection tests against a fake resolver panel."""
import asyncio

from conftest import FakeTransport
from cdnWatch.detector import (
    CDNDetector,
    DetectorConfig,
    OutcomeKind,
    UDPTransport,
    UNRESOLVABLE_SENTINEL,
    detect_domain_cdn,
)

ENDPOINTS = ["10.0.0.1:53", "10.0.0.2:53", "10.0.0.3:53", "10.0.0.4:53"]


def _detector(transport: FakeTransport) -> CDNDetector:
    return CDNDetector(
        DetectorConfig(),
        transport=transport,
        endpoints=ENDPOINTS,
        select_endpoint=lambda: ENDPOINTS[0],
    )


def test_multiple_ips_without_signature_is_cdn():
    transport = FakeTransport(
        a_records={
            ENDPOINTS[0]: [("shop.example.", "A", "192.0.2.1")],
            ENDPOINTS[1]: [("shop.example.", "A", "192.0.2.2")],
        },
        default=[("shop.example.", "A", "192.0.2.1")],
    )

    outcome = asyncio.run(_detector(transport).detect("shop.example"))

    assert outcome.kind is OutcomeKind.RESOLVED_CDN
    assert outcome.is_cdn is True
    assert outcome.verdict.ip_count == 2
    assert "2 different IP addresses" in outcome.verdict.reason
    assert outcome.as_legacy() == (True, "192.0.2.1")


def test_signature_in_chain_marks_cdn_with_single_ip():
    transport = FakeTransport(
        default=[("static.example.", "A", "192.0.2.50")],
        cname_chain={"static.example.": "d1234.cloudfront.net."},
    )

    outcome = asyncio.run(_detector(transport).detect("static.example"))

    assert outcome.kind is OutcomeKind.RESOLVED_CDN
    assert outcome.verdict.matched_signature == ".cloudfront.net."
    assert outcome.aggregated.cname_source == "chain"
    assert outcome.verdict.ip_count == 1


def test_single_ip_without_signature_is_not_cdn():
    transport = FakeTransport(default=[("origin.example.", "A", "203.0.113.5")])

    outcome = asyncio.run(_detector(transport).detect("origin.example"))

    assert outcome.kind is OutcomeKind.RESOLVED_NO_CDN
    assert outcome.is_cdn is False
    assert outcome.representative_ip == "203.0.113.5"
    assert outcome.as_legacy() == (False, "203.0.113.5")


def test_unresolvable_domain_reports_sentinel():
    transport = FakeTransport(default=[])

    outcome = asyncio.run(_detector(transport).detect("missing.example"))

    assert outcome.kind is OutcomeKind.UNRESOLVABLE
    assert outcome.unresolvable is True
    assert outcome.representative_ip is None
    assert outcome.as_legacy() == (True, UNRESOLVABLE_SENTINEL)


def test_all_resolvers_failing_is_unresolvable_not_an_error():
    transport = FakeTransport(default=[], a_records={ep: OSError("refused") for ep in ENDPOINTS})

    outcome = asyncio.run(_detector(transport).detect("down.example"))

    assert outcome.as_legacy() == (True, "xx")
    assert outcome.failed == len(ENDPOINTS)
    assert outcome.answered == 0


def test_chain_loop_falls_back_to_panel_evidence():
    transport = FakeTransport(
        default=[
            ("loop.example.", "CNAME", "edge.fastly.net."),
            ("edge.fastly.net.", "A", "192.0.2.9"),
        ],
        cname_chain={"loop.example.": "other.example.", "other.example.": "loop.example."},
    )

    outcome = asyncio.run(_detector(transport).detect("loop.example"))

    assert outcome.chain_loop is True
    assert outcome.aggregated.cname_source == "fanout"
    assert outcome.verdict.matched_signature == ".fastly.net."
    assert outcome.representative_ip == "192.0.2.9"


def test_chain_walk_overrides_panel_cnames():
    transport = FakeTransport(
        default=[
            ("www.example.", "CNAME", "www.example.akamaized.net."),
            ("www.example.akamaized.net.", "A", "192.0.2.77"),
        ],
        cname_chain={"www.example.": "origin.example.org."},
    )

    outcome = asyncio.run(_detector(transport).detect("www.example"))

    assert outcome.aggregated.cnames == ("origin.example.org.",)
    assert outcome.kind is OutcomeKind.RESOLVED_NO_CDN


def test_repeated_detection_is_stable():
    transport = FakeTransport(
        a_records={
            ENDPOINTS[0]: [("multi.example.", "A", "192.0.2.1")],
            ENDPOINTS[1]: [("multi.example.", "A", "192.0.2.2")],
        },
    )
    detector = _detector(transport)

    first = asyncio.run(detector.detect("multi.example"))
    second = asyncio.run(detector.detect("multi.example"))

    assert first.as_legacy() == second.as_legacy()
    assert first.verdict == second.verdict
    assert first is not second


def test_detect_domain_cdn_returns_legacy_pair():
    transport = FakeTransport(default=[("origin.example.", "A", "203.0.113.5")])

    result = asyncio.run(detect_domain_cdn("origin.example", detector=_detector(transport)))

    assert result == (False, "203.0.113.5")


def test_fanout_respects_configured_cap():
    transport = FakeTransport(default=[("origin.example.", "A", "203.0.113.5")], delay=0.01)
    cfg = DetectorConfig(query={"max_in_flight": 2})
    detector = CDNDetector(cfg, transport=transport, endpoints=ENDPOINTS, select_endpoint=lambda: ENDPOINTS[0])

    asyncio.run(detector.detect("origin.example"))

    # Two panel queries plus the concurrent chain-walk hop.
    assert transport.peak_in_flight <= 3


def test_unencodable_domain_is_unresolvable_not_raised():
    transport = FakeTransport(default=[("origin.example.", "A", "203.0.113.5")])
    detector = _detector(transport)
    bad = "x" * 70 + ".example"

    assert asyncio.run(detect_domain_cdn(bad, detector=detector)) == (True, UNRESOLVABLE_SENTINEL)
    outcome = asyncio.run(detector.detect(bad))
    assert outcome.kind is OutcomeKind.UNRESOLVABLE
    assert outcome.failed == len(ENDPOINTS)
    assert transport.calls == []


def test_udp_transport_is_built_from_config(tmp_path):
    path = tmp_path / "detector.yaml"
    path.write_text("query:\n  transport_timeout_seconds: 2.5\n  port: 5353\n")

    detector = CDNDetector(DetectorConfig.load(str(path)))

    assert isinstance(detector.transport, UDPTransport)
    assert detector.transport.timeout == 2.5
    assert detector.transport.default_port == 5353
