"""Offsets and consumer-group views of a topic."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel, Field


class PartitionOffsets(BaseModel):
    earliest: int
    latest: int


class TopicOffsets(BaseModel):
    topicName: str
    partitions: Dict[int, PartitionOffsets]


class CommittedOffset(BaseModel):
    topicName: str
    partition: int
    offset: int
    metadata: str = ""


class ConsumerGroupOffsets(BaseModel):
    groupId: str
    offsets: List[CommittedOffset]


class TopicConsumerGroups(BaseModel):
    topicName: str
    groups: List[ConsumerGroupOffsets]


class MemberAssignment(BaseModel):
    topicName: str
    partitions: List[int]


class ConsumerGroupMember(BaseModel):
    memberId: str
    clientId: str
    host: str
    assignment: List[MemberAssignment] = Field(default_factory=list)


class ConsumerGroupDescription(BaseModel):
    """Group state as reported by its coordinator; `Dead` for unknown groups."""

    groupId: str
    state: str = "Unknown"
    protocolType: str = ""
    partitionAssignor: str = ""
    isSimpleConsumerGroup: bool = True
    members: List[ConsumerGroupMember] = Field(default_factory=list)


class ConsumerGroupDetail(BaseModel):
    name: str
    description: ConsumerGroupDescription
    offsets: List[CommittedOffset]


class OffsetResetRequest(BaseModel):
    """Body of `PUT /topics/{name}/consumergroups/{groupId}/offsets`.

    `dateTime` without an offset is read in the server's local time zone.
    """

    dateTime: datetime = Field(..., examples=["2024-01-31T08:00:00"])
    dryrun: bool = False

    def timestamp_ms(self) -> int:
        return int(self.dateTime.timestamp() * 1000)


class OffsetResetResult(BaseModel):
    input: OffsetResetRequest
    groupId: str
    offsets: List[CommittedOffset]
