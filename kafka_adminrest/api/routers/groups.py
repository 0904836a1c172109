"""Read-only views of the Kafka role groups in the directory."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from kafka_adminrest.api.dependencies import get_directory, get_groups
from kafka_adminrest.core.exceptions import NotFoundError
from kafka_adminrest.domain.models.group import GroupMembers, KafkaGroupNames
from kafka_adminrest.domain.services.kafka_groups import KafkaGroups
from kafka_adminrest.infra.ldap.directory import Directory

router = APIRouter()


@router.get("", response_model=KafkaGroupNames)
def list_groups(
    directory: Directory = Depends(get_directory),
    groups: KafkaGroups = Depends(get_groups),
) -> KafkaGroupNames:
    with directory.connect() as conn:
        return KafkaGroupNames(groups=groups.group_names(conn))


@router.get("/{group_name}", response_model=GroupMembers)
def group_members(
    group_name: str = Path(..., description="Directory group name, e.g. KP-tpc-01"),
    directory: Directory = Depends(get_directory),
    groups: KafkaGroups = Depends(get_groups),
) -> GroupMembers:
    with directory.connect() as conn:
        if group_name.lower() not in {n.lower() for n in groups.group_names(conn)}:
            raise NotFoundError(f"Cannot find group {group_name}")
        return GroupMembers(name=group_name, members=groups.members(conn, group_name))
