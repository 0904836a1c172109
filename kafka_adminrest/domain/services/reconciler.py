"""Reconcile requested group membership with the directory."""
from __future__ import annotations

import logging
from typing import Iterable, List, NamedTuple

from kafka_adminrest.core.config import Settings
from kafka_adminrest.domain.models.group import DirectoryResult, GroupMembershipUpdate, MembershipOperation
from kafka_adminrest.domain.services.access_control import AccessControl
from kafka_adminrest.domain.services.kafka_groups import KafkaGroups
from kafka_adminrest.infra.ldap.directory import DirectoryConnection

logger = logging.getLogger(__name__)


class MembershipDiff(NamedTuple):
    to_add: List[str]
    to_remove: List[str]


def _unique(names: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for name in names:
        key = name.lower()
        if key not in seen:
            seen.add(key)
            out.append(name)
    return out


class GroupReconciler:
    """Applies single membership mutations and computes bulk diffs.

    A mutation that would not change the directory is answered with a
    synthetic success and never reaches the server, so repeating a request
    is harmless.
    """

    def __init__(self, settings: Settings, groups: KafkaGroups, access: AccessControl) -> None:
        self._settings = settings
        self._groups = groups
        self._access = access

    def is_redundant(
        self,
        conn: DirectoryConnection,
        operation: MembershipOperation,
        member_dn: str,
        group_name: str,
    ) -> bool:
        # an empty group carries no member attribute to compare against
        is_member = self._access.is_member(conn, group_name, member_dn)
        if operation is MembershipOperation.ADD:
            return is_member
        return not is_member

    def apply(
        self,
        conn: DirectoryConnection,
        topic_name: str,
        update: GroupMembershipUpdate,
        member_dn: str,
    ) -> DirectoryResult:
        group_name = self._groups.names.group_name(update.role, topic_name)
        if self.is_redundant(conn, update.operation, member_dn, group_name):
            logger.info("%s of %s in %s is redundant, skipped", update.operation.value, member_dn, group_name)
            return DirectoryResult.success("no change required")
        return self._groups.modify_member(conn, group_name, update.operation, member_dn)

    @staticmethod
    def diff(desired: Iterable[str], current: Iterable[str]) -> MembershipDiff:
        """Case-insensitive difference by name; order of first appearance is kept."""
        desired_u = _unique(desired)
        current_u = _unique(current)
        desired_keys = {d.lower() for d in desired_u}
        current_keys = {c.lower() for c in current_u}
        return MembershipDiff(
            to_add=[d for d in desired_u if d.lower() not in current_keys],
            to_remove=[c for c in current_u if c.lower() not in desired_keys],
        )
