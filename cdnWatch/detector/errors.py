"""Exception types raised by the detection engine."""
from __future__ import annotations

from typing import List, Sequence


class CDNWatchError(Exception):
    """Base class for cdnWatch errors."""


class InvalidEndpointError(CDNWatchError, ValueError):
    """A resolver endpoint is not a usable ``host:port`` pair."""

    def __init__(self, endpoint: str, detail: str):
        super().__init__(f"Invalid resolver endpoint {endpoint!r}: {detail}")
        self.endpoint = endpoint


class ResolverQueryError(CDNWatchError):
    """One resolver failed to answer one query."""

    def __init__(self, endpoint: str, qname: str, cause: BaseException):
        super().__init__(f"{endpoint} failed for {qname}: {type(cause).__name__}: {cause}")
        self.endpoint = endpoint
        self.qname = qname
        self.cause = cause


class CNAMELoopError(CDNWatchError):
    """The CNAME chain revisited a name it had already followed."""

    def __init__(self, domain: str, names: Sequence[str]):
        super().__init__(f"cname loop detected at {domain}")
        self.domain = domain
        self.names: List[str] = list(names)


class ContextCancelledError(CDNWatchError):
    """The query context was cancelled or ran past its deadline."""
