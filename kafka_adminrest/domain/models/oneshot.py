"""Batch ("oneshot") provisioning and stream-app request models."""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from kafka_adminrest.domain.models.group import Role


class RoleMember(BaseModel):
    member: str = Field(..., min_length=1)
    role: Role


class TopicCreation(BaseModel):
    topicName: str = Field(..., examples=["tpc-01"])
    numPartitions: int = Field(default=1, ge=1)
    configEntries: Optional[Dict[str, str]] = None
    members: List[RoleMember] = Field(default_factory=list)

    @field_validator("configEntries")
    @classmethod
    def lowercase_values(cls, v: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        """Config values are applied lower-cased."""
        if not v:
            return v
        return {k: str(val).lower() for k, val in v.items()}


class OneshotCreationRequest(BaseModel):
    topics: List[TopicCreation] = Field(..., min_length=1)


class OneshotStatus(str, Enum):
    ERROR = "ERROR"
    OK = "OK"


class OneshotResult(BaseModel):
    creationId: str


class OneshotResponse(BaseModel):
    status: OneshotStatus
    message: str
    data: Optional[OneshotResult] = None
    requestId: str


class StreamAppRequest(BaseModel):
    """Body of `POST /streams`."""

    applicationName: str = Field(..., min_length=1, examples=["my-streams-app"])
    user: str = Field(..., min_length=1, examples=["srvmystreamsapp"])


class StreamAppResponse(BaseModel):
    status: OneshotStatus
    message: str
