"""Per-domain CDN detection: fan-out and chain walk in parallel, then classify."""
from __future__ import annotations

import asyncio
import time
from typing import Optional, Sequence, Tuple

from cdnWatch.detector.chain import EndpointSelector, build_selector, walk_cname_chain
from cdnWatch.detector.classifier import aggregate, classify
from cdnWatch.detector.config import DetectorConfig
from cdnWatch.detector.errors import CNAMELoopError
from cdnWatch.detector.fanout import resolve_across_panel
from cdnWatch.detector.models import ChainWalkResult, DomainQueryOutcome, OutcomeKind
from cdnWatch.detector.panel import RESOLVER_PANEL
from cdnWatch.detector.transport import DNSTransport, QueryContext, UDPTransport
from cdnWatch.logging_config import get_logger, reset_domain, set_domain

logger = get_logger("detector")


class CDNDetector:
    """Decides whether a domain is fronted by a CDN from the resolver panel's answers."""

    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        *,
        transport: Optional[DNSTransport] = None,
        endpoints: Sequence[str] = RESOLVER_PANEL,
        select_endpoint: Optional[EndpointSelector] = None,
    ):
        self.config = config or DetectorConfig()
        self.endpoints = tuple(endpoints)
        self.transport = transport or UDPTransport(
            timeout=self.config.query.transport_timeout_seconds,
            default_port=self.config.query.port,
        )
        self.select_endpoint = select_endpoint or build_selector(
            self.config.chain.endpoint_selection, self.endpoints, self.config.chain.seed
        )

    async def _walk_chain(self, domain: str) -> ChainWalkResult:
        try:
            names = await walk_cname_chain(
                self.transport,
                domain,
                self.select_endpoint,
                max_depth=self.config.chain.max_depth,
            )
        except CNAMELoopError as exc:
            # A looped chain falls back to the panel's own CNAME observations.
            logger.debug(
                str(exc),
                extra={"action": "chain_walk", "outcome": "loop", "hops": len(exc.names)},
            )
            return ChainWalkResult(names=(), loop_detected=True)
        return ChainWalkResult(names=tuple(names))

    async def detect(self, domain: str, ctx: Optional[QueryContext] = None) -> DomainQueryOutcome:
        """
        Inspect one domain.

        The panel fan-out and the CNAME chain walk run concurrently and are
        both awaited before classifying. Nothing is raised for resolver
        failures, chain loops or names DNS cannot encode; a domain with no
        A record at all comes back as ``OutcomeKind.UNRESOLVABLE``.
        """
        ctx = ctx or QueryContext()
        token = set_domain(domain)
        started = time.perf_counter()
        try:
            fanout, chain = await asyncio.gather(
                resolve_across_panel(
                    self.transport,
                    domain,
                    ctx,
                    endpoints=self.endpoints,
                    max_in_flight=self.config.query.max_in_flight,
                    per_query_timeout=self.config.query.per_query_timeout_seconds,
                ),
                self._walk_chain(domain),
            )

            aggregated = aggregate(fanout, chain.names)
            verdict = classify(aggregated)

            if not aggregated.ips:
                kind = OutcomeKind.UNRESOLVABLE
            elif verdict.is_cdn:
                kind = OutcomeKind.RESOLVED_CDN
            else:
                kind = OutcomeKind.RESOLVED_NO_CDN

            outcome = DomainQueryOutcome(
                domain=domain,
                kind=kind,
                representative_ip=aggregated.ips[0] if aggregated.ips else None,
                verdict=verdict,
                aggregated=aggregated,
                answered=fanout.answered,
                failed=fanout.failed,
                chain_loop=chain.loop_detected,
            )
            logger.info(
                f"{domain}: {kind.value}",
                extra={
                    "action": "detect",
                    "kind": kind.value,
                    "is_cdn": outcome.is_cdn,
                    "ip_count": verdict.ip_count,
                    "cname_source": aggregated.cname_source,
                    "matched_signature": verdict.matched_signature,
                    "answered": fanout.answered,
                    "failed": fanout.failed,
                    "duration": round(time.perf_counter() - started, 3),
                },
            )
            return outcome
        finally:
            reset_domain(token)


async def detect_domain_cdn(
    domain: str,
    ctx: Optional[QueryContext] = None,
    *,
    detector: Optional[CDNDetector] = None,
) -> Tuple[bool, str]:
    """
    Return ``(is_cdn, representative_ip)`` for ``domain``.

    An unresolvable domain reports ``(True, "xx")``; compare against
    ``UNRESOLVABLE_SENTINEL`` to tell it apart from a CDN verdict.
    """
    detector = detector or CDNDetector()
    outcome = await detector.detect(domain, ctx)
    return outcome.as_legacy()
