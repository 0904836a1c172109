"""Consumer-group endpoints – description and committed offsets of a group."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Path

from kafka_adminrest.api.dependencies import get_broker
from kafka_adminrest.domain.models.consumer_group import ConsumerGroupDetail
from kafka_adminrest.infra.kafka.admin import KafkaAdminFacade

router = APIRouter()


@router.get("", response_model=List[str])
def list_consumer_groups(admin: KafkaAdminFacade = Depends(get_broker)) -> List[str]:
    return admin.list_consumer_groups()


@router.get("/{group_id}/offsets", response_model=ConsumerGroupDetail)
def consumer_group_offsets(
    group_id: str = Path(..., description="Consumer group ID"),
    admin: KafkaAdminFacade = Depends(get_broker),
) -> ConsumerGroupDetail:
    """Return the group's description with its committed offsets on every topic."""
    return ConsumerGroupDetail(
        name=group_id,
        description=admin.describe_consumer_group(group_id),
        offsets=admin.consumer_group_offsets(group_id),
    )
