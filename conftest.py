"""Shared fixtures: a fake DNS transport answering from canned records."""
import asyncio
import os
import tempfile
from typing import Dict, Iterable, List, Optional, Tuple

os.environ.setdefault("CDNWATCH_LOG_FILE", os.path.join(tempfile.gettempdir(), "cdnwatch-tests.jsonl"))

import dns.message
import dns.rdatatype
import dns.rrset

Record = Tuple[str, str, str]


def make_response(request: dns.message.Message, records: Iterable[Record]) -> dns.message.Message:
    response = dns.message.make_response(request)
    for owner, rtype, value in records:
        response.answer.append(dns.rrset.from_text(owner, 300, "IN", rtype, value))
    return response


class FakeTransport:
    """
    Answers A queries per endpoint and CNAME queries from a name -> target map.

    ``a_records`` values are record lists or an exception instance to raise.
    Endpoints missing from ``a_records`` answer with ``default``.
    """

    def __init__(
        self,
        a_records: Optional[Dict[str, object]] = None,
        default: Iterable[Record] = (),
        cname_chain: Optional[Dict[str, str]] = None,
        delays: Optional[Dict[str, float]] = None,
        delay: float = 0.0,
    ):
        self.a_records = a_records or {}
        self.default = list(default)
        self.cname_chain = {k.lower(): v for k, v in (cname_chain or {}).items()}
        self.delays = delays or {}
        self.delay = delay
        self.calls: List[Tuple[str, str, str]] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def exchange(self, request: dns.message.Message, endpoint: str) -> dns.message.Message:
        question = request.question[0]
        qname = question.name.to_text()
        self.calls.append((endpoint, qname, dns.rdatatype.to_text(question.rdtype)))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(endpoint, self.delay))
            if question.rdtype == dns.rdatatype.A:
                records = self.a_records.get(endpoint, self.default)
                if isinstance(records, BaseException):
                    raise records
                return make_response(request, records)
            target = self.cname_chain.get(qname.lower())
            if target is None:
                return make_response(request, [])
            return make_response(request, [(qname, "CNAME", target)])
        finally:
            self.in_flight -= 1
