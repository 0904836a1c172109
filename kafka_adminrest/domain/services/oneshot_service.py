"""Batch provisioning of topics, role groups, members and ACLs in one request."""
from __future__ import annotations

import logging
from typing import Dict, List

from kafka_adminrest.core.config import Settings
from kafka_adminrest.core.exceptions import (
    AccessDeniedError,
    DirectoryUnavailableError,
    NotAuthorizedError,
    ValidationFailedError,
)
from kafka_adminrest.core.metrics import record
from kafka_adminrest.domain.models.acl import role_acls
from kafka_adminrest.domain.models.group import (
    AccessDecision,
    GroupMembershipUpdate,
    MembershipOperation,
    Role,
)
from kafka_adminrest.domain.models.oneshot import (
    OneshotCreationRequest,
    OneshotResponse,
    OneshotResult,
    OneshotStatus,
    TopicCreation,
)
from kafka_adminrest.domain.models.topic import AllowedConfigEntry
from kafka_adminrest.domain.services.access_control import AccessControl
from kafka_adminrest.domain.services.kafka_groups import KafkaGroups
from kafka_adminrest.domain.services.reconciler import GroupReconciler
from kafka_adminrest.domain.services.topic_service import invalid_topic_name
from kafka_adminrest.infra.kafka.admin import KafkaAdminFacade
from kafka_adminrest.infra.ldap.directory import Directory, DirectoryConnection, rdn_value

logger = logging.getLogger(__name__)


class OneshotProvisioner:
    """
    Declarative variant of topic provisioning.

    The request states the complete membership of every role group of every
    topic; existing topics get their configuration and membership
    reconciled, missing ones are created. The requester is always kept as
    manager. All validation happens before the first write.
    """

    def __init__(
        self,
        settings: Settings,
        directory: Directory,
        broker: KafkaAdminFacade,
        groups: KafkaGroups,
        access: AccessControl,
        reconciler: GroupReconciler,
    ) -> None:
        self._settings = settings
        self._directory = directory
        self._broker = broker
        self._groups = groups
        self._access = access
        self._reconciler = reconciler

    def provision(self, user: str, request: OneshotCreationRequest, request_id: str) -> OneshotResponse:
        topic_names = [t.topicName for t in request.topics]
        logger.info("Oneshot request %s by %s for %s", request_id, user, topic_names)
        self._validate_request(request)

        with self._directory.connect() as conn:
            if not self._access.user_exists(conn, user):
                raise NotAuthorizedError(
                    f"Authenticated user {user} doesn't exist as user or service account "
                    "in the directory, cannot be manager of topic"
                )
            existing = set(self._broker.list_topics())

            denied = [
                name
                for name in topic_names
                if name in existing and not self._access.is_manager(conn, name, user)
            ]
            if denied:
                raise NotAuthorizedError(f"The user {user} does not have access to modify topic {denied[0]}")

            self._validate_members(conn, request)
            for topic in request.topics:
                self._reconcile_groups(conn, user, topic)

        self._apply_topics(request.topics, existing)

        acls = [
            acl
            for name in topic_names
            for role in (Role.PRODUCER, Role.CONSUMER)
            for acl in role_acls(role, name)
        ]
        self._broker.create_acls(acls)
        logger.info("Oneshot request %s created ACLs for %s", request_id, topic_names)
        record("oneshot", True)
        return OneshotResponse(
            status=OneshotStatus.OK,
            message="Successfully created topic",
            data=OneshotResult(creationId=request_id),
            requestId=request_id,
        )

    # ---------- validation ----------

    def _validate_request(self, request: OneshotCreationRequest) -> None:
        """Checks that need no directory or broker round trip."""
        names = self._groups.names
        allowed = AllowedConfigEntry.names()
        for topic in request.topics:
            if not names.is_valid_topic_name(topic.topicName):
                raise invalid_topic_name(topic.topicName, names.max_topic_name_length())
            for key in (topic.configEntries or {}):
                if key not in allowed:
                    raise ValidationFailedError(f"configEntry {key} is not allowed to update automatically")

    def _validate_members(self, conn: DirectoryConnection, request: OneshotCreationRequest) -> None:
        for topic in request.topics:
            for rm in topic.members:
                update = GroupMembershipUpdate(role=rm.role, operation=MembershipOperation.ADD, member=rm.member)
                decision = self._access.authorize(conn, update, topic.topicName, check_manager_count=False)
                if decision is AccessDecision.USER_NOT_FOUND:
                    logger.info("Tried to add %s who doesn't exist in the directory", rm.member)
                    raise ValidationFailedError(f"The user {rm.member} does not exist")
                if decision is not AccessDecision.OK:
                    raise AccessDeniedError(
                        f"{rm.member} cannot be {rm.role.value} of {topic.topicName} - {decision.value}",
                        code=decision.value,
                    )

    # ---------- reconciliation ----------

    @staticmethod
    def desired_members(user: str, topic: TopicCreation) -> Dict[Role, List[str]]:
        """Requested members per role, with the requester always the manager."""
        desired: Dict[Role, List[str]] = {role: [] for role in Role}
        for rm in topic.members:
            if rm.role is Role.MANAGER and rm.member.lower() == user.lower():
                continue
            desired[rm.role].append(rm.member)
        desired[Role.MANAGER].append(user)
        return desired

    def _reconcile_groups(self, conn: DirectoryConnection, user: str, topic: TopicCreation) -> None:
        existing = {n.lower() for n in self._groups.group_names(conn)}
        for role, wanted in self.desired_members(user, topic).items():
            group_name = self._groups.names.group_name(role, topic.topicName)
            if group_name.lower() not in existing:
                logger.info("Creating %s", group_name)
                self._check(self._groups.create_group(conn, group_name), group_name)

            current_dns = self._groups.members(conn, group_name)
            by_name = {rdn_value(dn).lower(): dn for dn in current_dns}
            diff = self._reconciler.diff(wanted, [rdn_value(dn) for dn in current_dns])

            if diff.to_add:
                logger.info("Adding %s to %s", diff.to_add, group_name)
            for member in diff.to_add:
                member_dn = self._access.resolve_member_dn(conn, member)
                self._check(
                    self._groups.modify_member(conn, group_name, MembershipOperation.ADD, member_dn),
                    group_name,
                )
            if diff.to_remove:
                logger.info("Removing %s from %s", diff.to_remove, group_name)
            for member in diff.to_remove:
                self._check(
                    self._groups.modify_member(
                        conn, group_name, MembershipOperation.REMOVE, by_name[member.lower()]
                    ),
                    group_name,
                )

    @staticmethod
    def _check(result, group_name: str) -> None:
        if not result.ok:
            raise DirectoryUnavailableError(
                f"Failed to update group {group_name} - {result.description} {result.message}".strip()
            )

    def _apply_topics(self, topics: List[TopicCreation], existing: set) -> None:
        for topic in topics:
            if topic.topicName in existing and topic.configEntries:
                self._broker.alter_topic_config(topic.topicName, topic.configEntries)

        missing = [t for t in topics if t.topicName not in existing]
        if not missing:
            return
        replication_factor = self._broker.default_replication_factor()
        for topic in missing:
            self._broker.create_topic(
                topic.topicName, topic.numPartitions, replication_factor, topic.configEntries
            )
            logger.info("Topic created - %s", topic.topicName)
