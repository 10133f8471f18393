"""Result models for CDN detection."""
from __future__ import annotations

from enum import Enum
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from cdnWatch.detector.panel import UNRESOLVABLE_SENTINEL


class FanoutResult(BaseModel):
    """What the resolver panel said about a domain's A record."""
    ips: Tuple[str, ...] = ()
    cnames: Tuple[str, ...] = ()
    launched: int = Field(default=0, ge=0)
    answered: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class ChainWalkResult(BaseModel):
    """Canonical names followed from the domain, oldest hop first."""
    names: Tuple[str, ...] = ()
    loop_detected: bool = False

    model_config = ConfigDict(frozen=True)


class AggregatedResult(BaseModel):
    ips: Tuple[str, ...] = ()
    cnames: Tuple[str, ...] = ()
    cname_source: Literal["chain", "fanout"] = "fanout"

    model_config = ConfigDict(frozen=True)


class ClassificationVerdict(BaseModel):
    is_cdn: bool
    reason: str = ""
    matched_signature: Optional[str] = None
    ip_count: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)


class OutcomeKind(str, Enum):
    RESOLVED_NO_CDN = "resolved_no_cdn"
    RESOLVED_CDN = "resolved_cdn"
    UNRESOLVABLE = "unresolvable"


class DomainQueryOutcome(BaseModel):
    """Outcome of one detection call. Built fresh per call and never cached."""
    domain: str
    kind: OutcomeKind
    representative_ip: Optional[str] = None
    verdict: ClassificationVerdict
    aggregated: AggregatedResult
    answered: int = 0
    failed: int = 0
    chain_loop: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def is_cdn(self) -> bool:
        """Boolean verdict as historically reported; unresolvable counts as CDN."""
        return self.kind is not OutcomeKind.RESOLVED_NO_CDN

    @property
    def unresolvable(self) -> bool:
        return self.kind is OutcomeKind.UNRESOLVABLE

    def as_legacy(self) -> Tuple[bool, str]:
        """Collapse to ``(is_cdn, ip_or_sentinel)``; ``"xx"`` marks an unresolvable domain."""
        if self.kind is OutcomeKind.UNRESOLVABLE:
            return True, UNRESOLVABLE_SENTINEL
        return self.is_cdn, self.representative_ip or ""
