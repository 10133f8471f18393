"""Evidence aggregation and the two-stage CDN heuristic."""
from __future__ import annotations

from typing import Sequence

from cdnWatch.detector.models import AggregatedResult, ClassificationVerdict, FanoutResult
from cdnWatch.detector.panel import CDN_IP_THRESHOLD, CDN_SIGNATURES


def aggregate(fanout: FanoutResult, chain_names: Sequence[str]) -> AggregatedResult:
    """
    Merge fan-out answers with the chain walk.

    A non-empty chain walk replaces the fan-out's CNAMEs outright: the
    dedicated walk is preferred evidence. IPs always come from the fan-out.
    """
    if chain_names:
        cnames = tuple(dict.fromkeys(chain_names))
        return AggregatedResult(ips=fanout.ips, cnames=cnames, cname_source="chain")
    return AggregatedResult(ips=fanout.ips, cnames=fanout.cnames, cname_source="fanout")


def classify(
    result: AggregatedResult,
    signatures: Sequence[str] = CDN_SIGNATURES,
) -> ClassificationVerdict:
    ip_count = len(result.ips)

    for cname in result.cnames:
        folded = cname.lower()
        for signature in signatures:
            if signature in folded:
                return ClassificationVerdict(
                    is_cdn=True,
                    reason=f"A match of CNAME[{signature}] is detected, proving the presence of a CDN",
                    matched_signature=signature,
                    ip_count=ip_count,
                )

    if ip_count >= CDN_IP_THRESHOLD:
        return ClassificationVerdict(
            is_cdn=True,
            reason=f"{ip_count} different IP addresses were detected, proving the presence of a CDN",
            ip_count=ip_count,
        )
    return ClassificationVerdict(
        is_cdn=False,
        reason=f"{ip_count} IP address(es) and no known CDN CNAME were detected",
        ip_count=ip_count,
    )
