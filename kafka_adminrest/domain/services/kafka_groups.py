"""Directory operations on the role groups of Kafka topics."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from ldap3.utils.conv import escape_filter_chars

from kafka_adminrest.core.config import Settings
from kafka_adminrest.core.exceptions import DirectoryUnavailableError
from kafka_adminrest.domain.models.group import (
    DirectoryResult,
    GroupOperationResult,
    MembershipOperation,
    Role,
)
from kafka_adminrest.domain.services.group_names import GroupNameResolver
from kafka_adminrest.infra.ldap.directory import LEVEL, DirectoryConnection

logger = logging.getLogger(__name__)

GROUP_DESCRIPTION = "Generated by kafka-adminrest"


class KafkaGroups:
    """Group-level reads and writes under the Kafka group base.

    Every method takes an open `DirectoryConnection`; opening and releasing
    sessions is left to the caller.
    """

    def __init__(self, settings: Settings, names: GroupNameResolver) -> None:
        self._settings = settings
        self._names = names

    @property
    def names(self) -> GroupNameResolver:
        return self._names

    # ---------- queries ----------

    def group_names(self, conn: DirectoryConnection) -> List[str]:
        s = self._settings
        entries = conn.search(
            s.ldap_group_base, LEVEL, "(objectClass=group)", [s.ldap_group_attr_name]
        )
        names: List[str] = []
        for entry in entries:
            names.extend(entry.values(s.ldap_group_attr_name))
        return names

    def members(self, conn: DirectoryConnection, group_name: str) -> List[str]:
        """Member DNs of *group_name*; [] when the group is missing or empty."""
        s = self._settings
        entries = conn.search(
            s.ldap_group_base,
            LEVEL,
            f"({s.ldap_group_attr_name}={escape_filter_chars(group_name)})",
            [s.ldap_grp_member_attr_name],
        )
        members: List[str] = []
        for entry in entries:
            members.extend(entry.values(s.ldap_grp_member_attr_name))
        return members

    def is_empty(self, conn: DirectoryConnection, group_name: str) -> bool:
        return not self.members(conn, group_name)

    def topic_groups(self, conn: DirectoryConnection, topic_name: str) -> List[GroupOperationResult]:
        """Every role group of *topic_name* with its members, or NO_SUCH_OBJECT."""
        existing = self.group_names(conn)

        def read(exists: bool, group_name: str) -> DirectoryResult:
            return DirectoryResult.success() if exists else DirectoryResult.no_such_object()

        return self._per_role(existing, topic_name, read, with_members=conn)

    # ---------- commands ----------

    def create_group(
        self, conn: DirectoryConnection, group_name: str, initial_member_dn: Optional[str] = None
    ) -> DirectoryResult:
        s = self._settings
        attributes = {
            "objectClass": ["top", "group"],
            "description": GROUP_DESCRIPTION,
            s.ldap_group_attr_name: group_name,
            "sAMAccountName": group_name,
        }
        if initial_member_dn:
            attributes[s.ldap_grp_member_attr_name] = [initial_member_dn]
        logger.info("Create group request: %s", self._names.distinguished_name(group_name))
        return conn.add(self._names.distinguished_name(group_name), attributes)

    def delete_group(self, conn: DirectoryConnection, group_name: str) -> DirectoryResult:
        logger.info("Delete group request: %s", self._names.distinguished_name(group_name))
        return conn.delete(self._names.distinguished_name(group_name))

    def modify_member(
        self,
        conn: DirectoryConnection,
        group_name: str,
        operation: MembershipOperation,
        member_dn: str,
    ) -> DirectoryResult:
        group_dn = self._names.distinguished_name(group_name)
        logger.info("Update group membership request: %s %s in %s", operation.value, member_dn, group_dn)
        return conn.modify(group_dn, self._settings.ldap_grp_member_attr_name, operation, member_dn)

    def create_topic_groups(
        self, conn: DirectoryConnection, topic_name: str, creator_dn: str
    ) -> List[GroupOperationResult]:
        """Create the three role groups; the creator becomes the first manager."""
        existing = self.group_names(conn)

        def create(exists: bool, group_name: str) -> DirectoryResult:
            if exists:
                return DirectoryResult.already_exists(f"{group_name} already exists")
            initial = creator_dn if group_name.startswith(Role.MANAGER.prefix) else None
            return self.create_group(conn, group_name, initial)

        return self._per_role(existing, topic_name, create)

    def delete_topic_groups(self, conn: DirectoryConnection, topic_name: str) -> List[GroupOperationResult]:
        existing = self.group_names(conn)

        def delete(exists: bool, group_name: str) -> DirectoryResult:
            if not exists:
                return DirectoryResult.no_such_object(f"{group_name} does not exist")
            return self.delete_group(conn, group_name)

        return self._per_role(existing, topic_name, delete)

    def unavailable(self, topic_name: str, message: str) -> List[GroupOperationResult]:
        """Role results for a directory that could not be reached at all."""
        return [
            GroupOperationResult(
                role=role,
                name=self._names.group_name(role, topic_name),
                result=DirectoryResult.unavailable(message),
            )
            for role in Role
        ]

    # ---------- helpers ----------

    def _per_role(
        self,
        existing: List[str],
        topic_name: str,
        operation: Callable[[bool, str], DirectoryResult],
        with_members: Optional[DirectoryConnection] = None,
    ) -> List[GroupOperationResult]:
        # a failure for one role must not hide the outcome of the others
        existing_lower = {n.lower() for n in existing}
        results: List[GroupOperationResult] = []
        for role in Role:
            group_name = self._names.group_name(role, topic_name)
            exists = group_name.lower() in existing_lower
            try:
                members = self.members(with_members, group_name) if with_members and exists else []
                result = operation(exists, group_name)
            except DirectoryUnavailableError as exc:
                logger.error("Group operation on %s failed - %s", group_name, exc)
                members, result = [], DirectoryResult.unavailable(exc.detail or str(exc))
            results.append(
                GroupOperationResult(role=role, name=group_name, members=members, result=result)
            )
        return results
