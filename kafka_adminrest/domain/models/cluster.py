"""Cluster- and broker-level DTOs for REST payloads."""
from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field


class Broker(BaseModel):
    """A single broker as reported by the cluster metadata."""

    brokerId: int = Field(..., ge=0, description="Numeric broker ID")
    host: str
    port: int
    rack: str | None = None


class Brokers(BaseModel):
    brokers: List[Broker]


class BrokerConfig(BaseModel):
    """Effective configuration of one broker."""

    brokerId: int
    config: Dict[str, str]
