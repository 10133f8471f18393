"""UDP DNS transport and the caller-supplied query context."""
from __future__ import annotations

import asyncio
import ipaddress
import time
from typing import Awaitable, Optional, Protocol, Tuple, TypeVar

import dns.asyncquery
import dns.message

from cdnWatch.detector.errors import ContextCancelledError, InvalidEndpointError

T = TypeVar("T")


def parse_endpoint(endpoint: str, default_port: int = 53) -> Tuple[str, int]:
    """Split ``host:port`` into an IP literal and a port number."""
    host, sep, port_text = endpoint.rpartition(":")
    if not sep:
        host, port_text = endpoint, str(default_port)
    try:
        addr = ipaddress.ip_address(host.strip("[]"))
    except ValueError as exc:
        raise InvalidEndpointError(endpoint, "host is not an IP address") from exc
    try:
        port = int(port_text)
    except ValueError as exc:
        raise InvalidEndpointError(endpoint, "port is not a number") from exc
    if not 0 < port < 65536:
        raise InvalidEndpointError(endpoint, "port out of range")
    return str(addr), port


class DNSTransport(Protocol):
    async def exchange(self, request: dns.message.Message, endpoint: str) -> dns.message.Message:
        ...


class UDPTransport:
    """Sends one query to one endpoint over UDP. Truncated replies are returned as-is."""

    def __init__(self, timeout: float = 5.0, default_port: int = 53):
        self.timeout = timeout
        self.default_port = default_port

    async def exchange(self, request: dns.message.Message, endpoint: str) -> dns.message.Message:
        host, port = parse_endpoint(endpoint, self.default_port)
        return await dns.asyncquery.udp(request, host, timeout=self.timeout, port=port)


class QueryContext:
    """
    Deadline and cancellation shared by every query issued for one detection.

    Each query derives its own timeout from the context: the per-attempt
    budget, clipped to whatever is left before the deadline. Cancelling the
    context aborts queries still in flight; answers already merged stay.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self._cancelled = asyncio.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return self._deadline - time.monotonic()

    def attempt_timeout(self, per_attempt: float) -> float:
        remaining = self.remaining()
        if remaining is None:
            return per_attempt
        return min(per_attempt, remaining)

    async def run(self, aw: Awaitable[T], per_attempt: float) -> T:
        """Await ``aw`` within the derived timeout, aborting early on cancel."""
        timeout = self.attempt_timeout(per_attempt)
        task = asyncio.ensure_future(aw)
        if self.cancelled or timeout <= 0:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise ContextCancelledError("query context cancelled or expired")

        waiter = asyncio.ensure_future(self._cancelled.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        if task in done:
            return task.result()
        if self.cancelled:
            raise ContextCancelledError("query context cancelled")
        raise asyncio.TimeoutError(f"no answer within {timeout:.2f}s")
