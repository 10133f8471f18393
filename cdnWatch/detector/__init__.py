"""
CDN detection engine.

Resolves a domain against a fixed panel of public resolvers and decides
whether a CDN fronts it, from CNAME signatures and the number of distinct
A records observed.
"""
from cdnWatch.detector.config import DetectorConfig
from cdnWatch.detector.engine import CDNDetector, detect_domain_cdn
from cdnWatch.detector.errors import (
    CDNWatchError,
    CNAMELoopError,
    ContextCancelledError,
    InvalidEndpointError,
    ResolverQueryError,
)
from cdnWatch.detector.models import (
    AggregatedResult,
    ClassificationVerdict,
    DomainQueryOutcome,
    FanoutResult,
    OutcomeKind,
)
from cdnWatch.detector.panel import (
    CDN_IP_THRESHOLD,
    CDN_SIGNATURES,
    RESOLVER_PANEL,
    UNRESOLVABLE_SENTINEL,
)
from cdnWatch.detector.transport import QueryContext, UDPTransport

__all__ = [
    "AggregatedResult",
    "CDNDetector",
    "CDNWatchError",
    "CDN_IP_THRESHOLD",
    "CDN_SIGNATURES",
    "CNAMELoopError",
    "ClassificationVerdict",
    "ContextCancelledError",
    "DetectorConfig",
    "DomainQueryOutcome",
    "FanoutResult",
    "InvalidEndpointError",
    "OutcomeKind",
    "QueryContext",
    "RESOLVER_PANEL",
    "ResolverQueryError",
    "UDPTransport",
    "UNRESOLVABLE_SENTINEL",
    "detect_domain_cdn",
]
