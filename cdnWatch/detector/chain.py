"""Sequential CNAME chain walking."""
from __future__ import annotations

import itertools
import random
from typing import Callable, List, Optional, Sequence, Set

import dns.exception
import dns.message
import dns.name
import dns.rdatatype

from cdnWatch.detector.errors import CNAMELoopError
from cdnWatch.detector.panel import RESOLVER_PANEL
from cdnWatch.detector.transport import DNSTransport
from cdnWatch.logging_config import get_logger

logger = get_logger("chain")

DEFAULT_MAX_DEPTH = 10

EndpointSelector = Callable[[], str]


def random_selector(endpoints: Sequence[str] = RESOLVER_PANEL, seed: Optional[int] = None) -> EndpointSelector:
    """Pick an endpoint uniformly at random for each hop."""
    rng = random.Random(seed)
    pool = tuple(endpoints)

    def _select() -> str:
        return rng.choice(pool)

    return _select


def round_robin_selector(endpoints: Sequence[str] = RESOLVER_PANEL) -> EndpointSelector:
    """Cycle through the endpoints in declaration order."""
    cycle = itertools.cycle(tuple(endpoints))

    def _select() -> str:
        return next(cycle)

    return _select


def build_selector(strategy: str, endpoints: Sequence[str] = RESOLVER_PANEL, seed: Optional[int] = None) -> EndpointSelector:
    if strategy == "round_robin":
        return round_robin_selector(endpoints)
    if strategy == "random":
        return random_selector(endpoints, seed)
    raise ValueError(f"Unknown endpoint selection strategy: {strategy}")


async def walk_cname_chain(
    transport: DNSTransport,
    domain: str,
    select_endpoint: EndpointSelector,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[str]:
    """
    Follow ``domain``'s CNAME chain one hop at a time, up to ``max_depth`` hops.

    Each hop asks a single endpoint. A failed query or an answer without a
    CNAME ends the chain normally. Revisiting a name raises CNAMELoopError
    carrying the names collected before the loop was found. A name DNS
    cannot encode has no chain.
    """
    try:
        current = dns.name.from_text(domain.strip())
    except dns.exception.DNSException as exc:
        logger.debug(
            f"Unencodable domain name: {exc}",
            extra={"action": "chain_walk", "hops": 0, "error_type": type(exc).__name__},
        )
        return []
    names: List[str] = []
    visited: Set[dns.name.Name] = set()

    for _ in range(max_depth):
        if current in visited:
            raise CNAMELoopError(current.to_text(), names)
        visited.add(current)

        endpoint = select_endpoint()
        request = dns.message.make_query(current, dns.rdatatype.CNAME)
        try:
            response = await transport.exchange(request, endpoint)
        except Exception as exc:
            logger.debug(
                f"CNAME hop ended on resolver error: {exc}",
                extra={"endpoint": endpoint, "hops": len(names), "error_type": type(exc).__name__},
            )
            break

        target = None
        for rrset in response.answer:
            if rrset.rdtype == dns.rdatatype.CNAME:
                target = rrset[0].target
                break
        if target is None:
            break

        current = target
        names.append(current.to_text())

    return names
