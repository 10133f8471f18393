"""Concurrent A-record queries across the resolver panel."""
from __future__ import annotations

import asyncio
import ipaddress
from typing import List, Optional, Sequence

import dns.exception
import dns.message
import dns.name
import dns.rdatatype

from cdnWatch.detector.errors import ResolverQueryError
from cdnWatch.detector.models import FanoutResult
from cdnWatch.detector.panel import RESOLVER_PANEL
from cdnWatch.detector.transport import DNSTransport, QueryContext
from cdnWatch.logging_config import get_logger

logger = get_logger("fanout")

DEFAULT_MAX_IN_FLIGHT = 10
DEFAULT_PER_QUERY_TIMEOUT_SECONDS = 3.0


def to_fqdn(domain: str) -> str:
    """Absolute (trailing-dot) form of ``domain``."""
    return dns.name.from_text(domain.strip()).to_text()


class _Collector:
    """Ordered, deduplicated IP and CNAME lists shared by the fan-out tasks."""

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.ips: List[ipaddress.IPv4Address] = []
        self.cnames: List[str] = []
        self.answered = 0
        self.failed = 0

    async def merge(self, response: dns.message.Message) -> None:
        async with self.lock:
            usable = False
            for rrset in response.answer:
                if rrset.rdtype == dns.rdatatype.A:
                    usable = True
                    for rdata in rrset:
                        ip = ipaddress.IPv4Address(rdata.address)
                        if ip not in self.ips:
                            self.ips.append(ip)
                elif rrset.rdtype == dns.rdatatype.CNAME:
                    usable = True
                    for rdata in rrset:
                        target = rdata.target.to_text()
                        if target not in self.cnames:
                            self.cnames.append(target)
            if usable:
                self.answered += 1
            else:
                self.failed += 1

    async def drop(self) -> None:
        async with self.lock:
            self.failed += 1


async def query_endpoint(
    transport: DNSTransport,
    endpoint: str,
    qname: str,
    ctx: QueryContext,
    per_query_timeout: float,
) -> dns.message.Message:
    """Ask one resolver for ``qname``'s A record; every failure becomes ResolverQueryError."""
    request = dns.message.make_query(qname, dns.rdatatype.A)
    try:
        return await ctx.run(transport.exchange(request, endpoint), per_query_timeout)
    except Exception as exc:
        raise ResolverQueryError(endpoint, qname, exc) from exc


async def resolve_across_panel(
    transport: DNSTransport,
    domain: str,
    ctx: Optional[QueryContext] = None,
    *,
    endpoints: Sequence[str] = RESOLVER_PANEL,
    max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
    per_query_timeout: float = DEFAULT_PER_QUERY_TIMEOUT_SECONDS,
) -> FanoutResult:
    """
    Query every endpoint for ``domain``'s A record and merge the answers.

    At most ``max_in_flight`` queries are outstanding at once. A query that
    fails in any way, or whose reply holds no A or CNAME record, contributes
    nothing and is counted in ``failed``; the call returns only after every
    endpoint has answered or given up. A name DNS cannot encode counts as a
    failure on every endpoint.
    """
    try:
        qname = to_fqdn(domain)
    except dns.exception.DNSException as exc:
        logger.debug(
            f"Unencodable domain name: {exc}",
            extra={"action": "fanout", "outcome": "dropped", "error_type": type(exc).__name__},
        )
        return FanoutResult(launched=len(endpoints), failed=len(endpoints))

    ctx = ctx or QueryContext()
    sem = asyncio.Semaphore(max_in_flight)
    collected = _Collector()

    async def _query_one(endpoint: str) -> None:
        async with sem:
            try:
                response = await query_endpoint(transport, endpoint, qname, ctx, per_query_timeout)
            except ResolverQueryError as exc:
                get_logger("fanout", context={"endpoint": endpoint}).debug(
                    f"Dropped answer: {exc}",
                    extra={"outcome": "dropped", "error_type": type(exc.cause).__name__},
                )
                await collected.drop()
                return
            await collected.merge(response)

    await asyncio.gather(*(_query_one(endpoint) for endpoint in endpoints))

    result = FanoutResult(
        ips=tuple(str(ip) for ip in collected.ips),
        cnames=tuple(collected.cnames),
        launched=len(endpoints),
        answered=collected.answered,
        failed=collected.failed,
    )
    logger.debug(
        "Panel fan-out completed",
        extra={
            "action": "fanout",
            "ip_count": len(result.ips),
            "cname_count": len(result.cnames),
            "answered": result.answered,
            "failed": result.failed,
        },
    )
    return result
