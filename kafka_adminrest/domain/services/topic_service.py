"""Use-case coordination for topic lifecycle, configuration and role groups."""
from __future__ import annotations

import logging
from typing import List

from kafka_adminrest.core.config import Settings
from kafka_adminrest.core.exceptions import (
    AccessDeniedError,
    BrokerUnavailableError,
    DirectoryUnavailableError,
    NotAuthorizedError,
    NotFoundError,
    ValidationFailedError,
)
from kafka_adminrest.core.metrics import record
from kafka_adminrest.domain.models.acl import AclBinding, TopicAcls, role_acls
from kafka_adminrest.domain.models.consumer_group import (
    ConsumerGroupOffsets,
    OffsetResetRequest,
    OffsetResetResult,
    TopicConsumerGroups,
    TopicOffsets,
)
from kafka_adminrest.domain.models.group import (
    AccessDecision,
    GroupMembershipResult,
    GroupMembershipUpdate,
    GroupOperationResult,
    ManagerStatus,
    Role,
)
from kafka_adminrest.domain.models.topic import (
    AllowedConfigEntry,
    NewTopicRequest,
    StepResult,
    TopicConfigUpdate,
    TopicConfigUpdateResult,
    TopicDetail,
    TopicProvisionResult,
)
from kafka_adminrest.domain.services.access_control import AccessControl
from kafka_adminrest.domain.services.kafka_groups import KafkaGroups
from kafka_adminrest.domain.services.reconciler import GroupReconciler
from kafka_adminrest.infra.kafka.admin import KafkaAdminFacade
from kafka_adminrest.infra.ldap.directory import Directory, DirectoryConnection

logger = logging.getLogger(__name__)


def invalid_topic_name(name: str, max_length: int) -> ValidationFailedError:
    return ValidationFailedError(
        f"Invalid topic name - {name}. Must contain [a..z]||[A..Z]||[0..9]||'-' only "
        f"&& length ≤ {max_length}"
    )


class TopicProvisioner:
    """Keeps a broker topic, its role groups and its ACLs in step.

    Create and delete run every step and report each one; nothing is
    rolled back.
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

    # ------------------------------------------------------------------ #
    # Queries                                                             #
    # ------------------------------------------------------------------ #
    def list_topics(self) -> List[str]:
        return self._broker.list_topics()

    def require_topic(self, name: str) -> None:
        if name not in self._broker.list_topics():
            raise NotFoundError(f"Cannot find topic {name}")

    def topic_detail(self, name: str) -> TopicDetail:
        self.require_topic(name)
        return TopicDetail(
            name=name,
            config=self._broker.topic_config(name),
            partitions=self._broker.describe_topic(name),
        )

    def topic_acls(self, name: str) -> TopicAcls:
        return TopicAcls(name=name, acls=self._broker.describe_acls(name))

    def topic_groups(self, name: str) -> List[GroupOperationResult]:
        with self._directory.connect() as conn:
            return self._groups.topic_groups(conn, name)

    def topic_offsets(self, name: str) -> TopicOffsets:
        self.require_topic(name)
        return TopicOffsets(topicName=name, partitions=self._broker.topic_offsets(name))

    def topic_consumer_groups(self, name: str) -> TopicConsumerGroups:
        self.require_topic(name)
        return TopicConsumerGroups(
            topicName=name,
            groups=[
                ConsumerGroupOffsets(groupId=group_id, offsets=offsets)
                for group_id, offsets in self._broker.topic_consumer_groups(name).items()
            ],
        )

    # ------------------------------------------------------------------ #
    # Commands                                                            #
    # ------------------------------------------------------------------ #
    def create_topic(self, user: str, request: NewTopicRequest) -> TopicProvisionResult:
        name = request.name
        logger.info("Topic creation request by %s - %s", user, name)
        if not self._settings.topic_creation_enabled:
            raise AccessDeniedError("Topic creation is disabled")
        names = self._groups.names
        if not names.is_valid_topic_name(name):
            raise invalid_topic_name(name, names.max_topic_name_length())

        with self._directory.connect() as conn:
            creator_dn = self._access.resolve_member_dn(conn, user)
            if not creator_dn:
                raise NotAuthorizedError(
                    f"Authenticated user {user} doesn't exist as user or service account "
                    "in the directory, cannot be manager of topic"
                )

            topic_status = self._create_broker_topic(name, request.numPartitions)
            try:
                groups_status = self._groups.create_topic_groups(conn, name, creator_dn)
            except DirectoryUnavailableError as exc:
                groups_status = self._groups.unavailable(name, exc.detail or str(exc))

        acl_status = self._create_role_acls(name, groups_status)
        result = TopicProvisionResult(
            name=name, topicStatus=topic_status, groupsStatus=groups_status, aclStatus=acl_status
        )
        record("create_topic", result.ok)
        return result

    def delete_topic(self, user: str, name: str) -> TopicProvisionResult:
        logger.info("Topic deletion request by %s - %s", user, name)
        with self._directory.connect() as conn:
            status = self.require_manager(conn, user, name)
        orphan = status is ManagerStatus.NO_GROUPS_FOUND
        if orphan:
            logger.warning("No groups found - assuming orphaned topic %s and allowing delete", name)
        self.require_topic(name)

        if orphan:
            acl_status = StepResult(ok=True, message="no acls to delete")
            groups_status: List[GroupOperationResult] = []
        else:
            acl_status = self._delete_topic_acls(name)
            groups_status = self._delete_groups(name)

        try:
            self._broker.delete_topic(name)
            logger.info("Topic deleted - %s", name)
            topic_status = StepResult(ok=True, message=f"deleted topic {name}")
        except BrokerUnavailableError as exc:
            topic_status = StepResult(ok=False, message=f"failure for topic {name} deletion, {exc.detail}")

        result = TopicProvisionResult(
            name=name, topicStatus=topic_status, groupsStatus=groups_status, aclStatus=acl_status
        )
        record("delete_topic", result.ok)
        return result

    def update_config(self, user: str, name: str, update: TopicConfigUpdate) -> TopicConfigUpdateResult:
        logger.info("Topic config update request by %s - %s", user, name)
        allowed = AllowedConfigEntry.names()
        for e in update.entries:
            if e.configentry not in allowed:
                raise ValidationFailedError(
                    f"configEntry {e.configentry} is not allowed, use one of {sorted(allowed)}"
                )
        with self._directory.connect() as conn:
            status = self.require_manager(conn, user, name)
        if status is ManagerStatus.NO_GROUPS_FOUND:
            raise NotAuthorizedError(
                f"No groups found for {name}, delete the topic and recreate it", code=status.value
            )
        self.require_topic(name)
        entries = {e.configentry: e.value.lower() for e in update.entries}
        self._broker.alter_topic_config(name, entries)
        logger.info("Config for %s updated - %s", name, entries)
        record("update_config", True)
        return TopicConfigUpdateResult(
            name=name,
            configentry=[e.configentry for e in update.entries],
            status="updated",
        )

    def update_membership(
        self, user: str, name: str, update: GroupMembershipUpdate
    ) -> GroupMembershipResult:
        logger.info("Group membership update by %s for %s - %s", user, name, update)
        with self._directory.connect() as conn:
            status = self.require_manager(conn, user, name)
            if status is ManagerStatus.NO_GROUPS_FOUND:
                raise NotAuthorizedError(
                    f"No groups found for {name}, delete the topic and recreate it", code=status.value
                )
            decision = self._access.authorize(conn, update, name)
            if decision is not AccessDecision.OK:
                logger.warning("Membership update of %s denied - %s", name, decision.value)
                raise AccessDeniedError(
                    f"{update.member} cannot be {update.operation.value} as {update.role.value} "
                    f"of {name} - {decision.value}",
                    code=decision.value,
                )
            member_dn = self._access.resolve_member_dn(conn, update.member)
            result = self._reconciler.apply(conn, name, update, member_dn)

        record("update_membership", result.ok)
        return GroupMembershipResult(
            name=self._groups.names.group_name(update.role, name),
            updateRequest=update,
            status=result,
        )

    def reset_offsets(
        self, user: str, name: str, group_id: str, request: OffsetResetRequest
    ) -> OffsetResetResult:
        """Point *group_id* at the first records of *name* written at or after `request.dateTime`."""
        logger.info("Offset reset request by %s - topic %s, group %s, %s", user, name, group_id, request)
        with self._directory.connect() as conn:
            status = self.require_manager(conn, user, name)
        if status is ManagerStatus.NO_GROUPS_FOUND:
            raise NotAuthorizedError(
                f"No groups found for topic {name} - delete the topic and recreate it", code=status.value
            )
        self.require_topic(name)
        offsets = self._broker.reset_consumer_group_offsets(
            group_id, name, request.timestamp_ms(), dry_run=request.dryrun
        )
        record("reset_offsets", True)
        return OffsetResetResult(input=request, groupId=group_id, offsets=offsets)

    # ------------------------------------------------------------------ #
    # Helpers                                                             #
    # ------------------------------------------------------------------ #
    def require_manager(self, conn: DirectoryConnection, user: str, name: str) -> ManagerStatus:
        """Manager status of *user*; raises unless managing or orphaned."""
        status = self._access.manager_status(conn, user, name)
        if status is ManagerStatus.PROTECTED_TOPIC:
            raise NotAuthorizedError("Cannot change internal topic", code=status.value)
        if status is ManagerStatus.IS_NOT_MANAGER:
            raise NotAuthorizedError(f"{user} is NOT manager of {name}", code=status.value)
        return status

    def _create_broker_topic(self, name: str, partitions: int) -> StepResult:
        try:
            replication_factor = self._broker.default_replication_factor()
            self._broker.create_topic(name, partitions, replication_factor)
        except BrokerUnavailableError as exc:
            return StepResult(ok=False, message=f"failure for topic {name} creation, {exc.detail}")
        logger.info("Topic created - %s (%d partitions, rf %d)", name, partitions, replication_factor)
        return StepResult(
            ok=True,
            message=f"created topic {name} with {partitions} partitions, replication factor {replication_factor}",
        )

    def _create_role_acls(self, name: str, groups_status: List[GroupOperationResult]) -> StepResult:
        bindings: List[AclBinding] = [
            acl
            for g in groups_status
            if g.role is not Role.MANAGER and g.result.ok
            for acl in role_acls(g.role, name)
        ]
        if not bindings:
            return StepResult(ok=False, message=f"no role groups created for {name}, no ACLs to create")
        logger.info("ACLs create request: %s", bindings)
        try:
            self._broker.create_acls(bindings)
        except BrokerUnavailableError as exc:
            return StepResult(ok=False, message=f"failure for ACLs creation, {exc.detail}")
        return StepResult(ok=True, message=f"created {len(bindings)} ACLs for {name}")

    def _delete_topic_acls(self, name: str) -> StepResult:
        try:
            deleted = self._broker.delete_topic_acls(name)
        except BrokerUnavailableError as exc:
            return StepResult(ok=False, message=f"failure for ACLs deletion, {exc.detail}")
        logger.info("ACLs deleted for %s - %s", name, deleted)
        return StepResult(ok=True, message=f"deleted {len(deleted)} ACLs for {name}")

    def _delete_groups(self, name: str) -> List[GroupOperationResult]:
        try:
            with self._directory.connect() as conn:
                return self._groups.delete_topic_groups(conn, name)
        except DirectoryUnavailableError as exc:
            return self._groups.unavailable(name, exc.detail or str(exc))
