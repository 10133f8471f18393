"""Configuration loader for the CDN detector."""
from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError


class QueryConfig(BaseModel):
    per_query_timeout_seconds: float = Field(default=3.0, gt=0)
    transport_timeout_seconds: float = Field(default=5.0, gt=0)
    max_in_flight: int = Field(default=10, ge=1)
    port: int = Field(default=53, ge=1, le=65535)


class ChainConfig(BaseModel):
    max_depth: int = Field(default=10, ge=1)
    endpoint_selection: Literal["random", "round_robin"] = Field(default="random")
    seed: Optional[int] = Field(default=None, description="Seed for random endpoint selection")


class RunnerConfig(BaseModel):
    concurrency: int = Field(default=30, ge=1)


class DetectorConfig(BaseModel):
    query: QueryConfig = Field(default_factory=QueryConfig)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)

    @classmethod
    def load(cls, path: str) -> "DetectorConfig":
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(f"Detector config not found: {cfg_path}")
        try:
            raw = yaml.safe_load(cfg_path.read_text()) or {}
            return cls(**raw)
        except ValidationError as exc:
            raise ValueError(f"Invalid detector config: {exc}") from exc
