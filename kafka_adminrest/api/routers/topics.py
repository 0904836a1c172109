"""Topic lifecycle, configuration, ACL and role-group endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Response, status

from kafka_adminrest.api.dependencies import get_topic_provisioner, require_user
from kafka_adminrest.domain.models.acl import TopicAcls
from kafka_adminrest.domain.models.consumer_group import (
    OffsetResetRequest,
    OffsetResetResult,
    TopicConsumerGroups,
    TopicOffsets,
)
from kafka_adminrest.domain.models.group import GroupMembershipResult, GroupMembershipUpdate, TopicGroups
from kafka_adminrest.domain.models.topic import (
    NewTopicRequest,
    TopicConfigUpdate,
    TopicConfigUpdateResult,
    TopicDetail,
    TopicNames,
    TopicProvisionResult,
)
from kafka_adminrest.domain.services.topic_service import TopicProvisioner

router = APIRouter()

TopicName = Path(..., description="Kafka topic name")


@router.get("", response_model=TopicNames)
def list_topics(svc: TopicProvisioner = Depends(get_topic_provisioner)) -> TopicNames:
    return TopicNames(topics=svc.list_topics())


@router.post(
    "",
    response_model=TopicProvisionResult,
    status_code=status.HTTP_201_CREATED,
    responses={503: {"model": TopicProvisionResult, "description": "Topic could not be created"}},
)
def create_topic(
    body: NewTopicRequest,
    response: Response,
    user: str = Depends(require_user),
    svc: TopicProvisioner = Depends(get_topic_provisioner),
) -> TopicProvisionResult:
    """Create a topic with its producer, consumer and manager groups and their ACLs.

    The requester becomes the only member of the manager group.
    """
    result = svc.create_topic(user, body)
    if not result.topicStatus.ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return result


@router.get("/{topic_name}", response_model=TopicDetail)
def topic_detail(
    topic_name: str = TopicName,
    svc: TopicProvisioner = Depends(get_topic_provisioner),
) -> TopicDetail:
    return svc.topic_detail(topic_name)


@router.put("/{topic_name}", response_model=TopicConfigUpdateResult)
def update_topic_config(
    body: TopicConfigUpdate,
    topic_name: str = TopicName,
    user: str = Depends(require_user),
    svc: TopicProvisioner = Depends(get_topic_provisioner),
) -> TopicConfigUpdateResult:
    """Change allowed configuration entries. Only members of KM-{topic_name} are authorized."""
    return svc.update_config(user, topic_name, body)


@router.delete(
    "/{topic_name}",
    response_model=TopicProvisionResult,
    responses={503: {"model": TopicProvisionResult, "description": "Topic could not be deleted"}},
)
def delete_topic(
    response: Response,
    topic_name: str = TopicName,
    user: str = Depends(require_user),
    svc: TopicProvisioner = Depends(get_topic_provisioner),
) -> TopicProvisionResult:
    """Delete ACLs, role groups and the topic. Only members of KM-{topic_name} are authorized."""
    result = svc.delete_topic(user, topic_name)
    if not result.topicStatus.ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return result


@router.get("/{topic_name}/acls", response_model=TopicAcls)
def topic_acls(
    topic_name: str = TopicName,
    svc: TopicProvisioner = Depends(get_topic_provisioner),
) -> TopicAcls:
    return svc.topic_acls(topic_name)


@router.get("/{topic_name}/groups", response_model=TopicGroups)
def topic_groups(
    topic_name: str = TopicName,
    svc: TopicProvisioner = Depends(get_topic_provisioner),
) -> TopicGroups:
    return TopicGroups(name=topic_name, groups=svc.topic_groups(topic_name))


@router.put("/{topic_name}/groups", response_model=GroupMembershipResult)
def update_topic_group(
    body: GroupMembershipUpdate,
    topic_name: str = TopicName,
    user: str = Depends(require_user),
    svc: TopicProvisioner = Depends(get_topic_provisioner),
) -> GroupMembershipResult:
    """Add or remove one member of a role group. Only members of KM-{topic_name} are authorized."""
    return svc.update_membership(user, topic_name, body)


@router.get("/{topic_name}/offsets", response_model=TopicOffsets)
def topic_offsets(
    topic_name: str = TopicName,
    svc: TopicProvisioner = Depends(get_topic_provisioner),
) -> TopicOffsets:
    """Earliest and latest offset of every partition."""
    return svc.topic_offsets(topic_name)


@router.get("/{topic_name}/consumergroups", response_model=TopicConsumerGroups)
def topic_consumer_groups(
    topic_name: str = TopicName,
    svc: TopicProvisioner = Depends(get_topic_provisioner),
) -> TopicConsumerGroups:
    """Consumer groups with committed offsets on the topic.

    Every group in the cluster is inspected; look a group up by ID when it is known.
    """
    return svc.topic_consumer_groups(topic_name)


@router.put("/{topic_name}/consumergroups/{group_id}/offsets", response_model=OffsetResetResult)
def reset_consumer_group_offsets(
    body: OffsetResetRequest,
    topic_name: str = TopicName,
    group_id: str = Path(..., description="Consumer group ID"),
    user: str = Depends(require_user),
    svc: TopicProvisioner = Depends(get_topic_provisioner),
) -> OffsetResetResult:
    """Set the group's offset on every partition to the first record at or after `dateTime`.

    Every consumer in the group must be stopped. With `dryrun` the offsets are
    only computed. Only members of KM-{topic_name} are authorized.
    """
    return svc.reset_offsets(user, topic_name, group_id, body)
