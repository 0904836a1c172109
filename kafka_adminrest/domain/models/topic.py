"""Topic request/response models used by the REST routes."""
from __future__ import annotations

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field

from kafka_adminrest.domain.models.group import GroupOperationResult


class AllowedConfigEntry(str, Enum):
    """Topic configuration entries that managers may change."""

    RETENTION_MS = "retention.ms"
    RETENTION_BYTES = "retention.bytes"
    CLEANUP_POLICY = "cleanup.policy"
    DELETE_RETENTION_MS = "delete.retention.ms"
    MIN_COMPACTION_LAG_MS = "min.compaction.lag.ms"

    @classmethod
    def names(cls) -> set[str]:
        return {e.value for e in cls}


class TopicNames(BaseModel):
    topics: List[str]


class NewTopicRequest(BaseModel):
    """Body of `POST /topics`.

    The name is validated by the provisioner so the response can explain
    the group-name length limit.
    """

    name: str = Field(..., examples=["tpc-01"])
    numPartitions: int = Field(default=1, ge=1)


class PartitionInfo(BaseModel):
    id: int
    leader: int | None
    replicas: list[int]
    isr: list[int]


class TopicDetail(BaseModel):
    name: str
    config: Dict[str, str]
    partitions: List[PartitionInfo]


class ConfigEntryUpdate(BaseModel):
    configentry: str = Field(..., examples=["retention.ms"])
    value: str


class TopicConfigUpdate(BaseModel):
    """Body of `PUT /topics/{name}`."""

    entries: List[ConfigEntryUpdate] = Field(..., min_length=1)


class TopicConfigUpdateResult(BaseModel):
    name: str
    configentry: List[str]
    status: str


class StepResult(BaseModel):
    ok: bool
    message: str


class TopicProvisionResult(BaseModel):
    """Composite outcome of a topic create/delete.

    Each component carries its own status; a failed step never hides the
    outcome of the others.
    """

    name: str
    topicStatus: StepResult
    groupsStatus: List[GroupOperationResult]
    aclStatus: StepResult

    @property
    def ok(self) -> bool:
        return (
            self.topicStatus.ok
            and self.aclStatus.ok
            and all(g.result.ok for g in self.groupsStatus)
        )

