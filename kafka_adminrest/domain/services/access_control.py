"""Who may be a member of which role group, and who manages a topic."""
from __future__ import annotations

import logging
import re

from ldap3.core.results import RESULT_NO_SUCH_OBJECT as NO_SUCH_OBJECT
from ldap3.utils.conv import escape_filter_chars

from kafka_adminrest.core.config import Settings
from kafka_adminrest.core.exceptions import DirectoryUnavailableError
from kafka_adminrest.domain.models.group import (
    AccessDecision,
    GroupMembershipUpdate,
    IdentityKind,
    ManagerStatus,
    MembershipOperation,
    Role,
)
from kafka_adminrest.domain.services.kafka_groups import KafkaGroups
from kafka_adminrest.infra.ldap.directory import NO_ATTRIBUTES, SUBTREE, DirectoryConnection

logger = logging.getLogger(__name__)

# orphaned topics containing any of these may only be deleted by superusers
PROTECTED_TOPIC_TERMS = (
    "__consumer_offsets",
    "__transaction_state",
    "_schemas",
    "-repartition",
    "-changelog",
    "-topic",
    "KTABLE-",
    "KSTREAM-",
)


def is_protected_topic(topic_name: str) -> bool:
    lowered = topic_name.lower()
    return any(term.lower() in lowered for term in PROTECTED_TOPIC_TERMS)


class AccessControl:
    """
    Authorization rules over directory identities.

    Identities are classified by shape, in this order:
      1. GROUP: matches `group_identity_pattern`, looked up under the
         group-in-group base
      2. HUMAN: matches `human_identity_pattern`, looked up under the user base
      3. SERVICE_ACCOUNT: anything else, looked up under the service-account base
    """

    def __init__(self, settings: Settings, groups: KafkaGroups) -> None:
        self._settings = settings
        self._groups = groups
        self._group_identity = re.compile(settings.group_identity_pattern)
        self._human_identity = re.compile(settings.human_identity_pattern)

    def classify(self, identity: str) -> IdentityKind:
        if self._group_identity.match(identity):
            return IdentityKind.GROUP
        if self._human_identity.match(identity):
            return IdentityKind.HUMAN
        return IdentityKind.SERVICE_ACCOUNT

    def _search_base(self, kind: IdentityKind) -> tuple[str, str]:
        s = self._settings
        if kind is IdentityKind.GROUP:
            return s.group_in_group_base, s.ldap_group_attr_name
        if kind is IdentityKind.HUMAN:
            return s.ldap_auth_user_base, s.ldap_user_attr_name
        return s.ldap_srv_user_base, s.ldap_user_attr_name

    def resolve_member_dn(self, conn: DirectoryConnection, identity: str) -> str:
        """DN of *identity*, or "" unless exactly one entry matches."""
        base, attr = self._search_base(self.classify(identity))
        entries = conn.search(
            base, SUBTREE, f"({attr}={escape_filter_chars(identity)})", NO_ATTRIBUTES
        )
        if len(entries) != 1:
            if entries:
                logger.warning("%s is ambiguous, %d entries under %s", identity, len(entries), base)
            return ""
        return entries[0].dn

    def user_exists(self, conn: DirectoryConnection, identity: str) -> bool:
        exists = self.resolve_member_dn(conn, identity) != ""
        if not exists:
            logger.error("%s doesn't exist as user, service account or group in the directory", identity)
        return exists

    def authorize(
        self,
        conn: DirectoryConnection,
        update: GroupMembershipUpdate,
        topic_name: str,
        check_manager_count: bool = True,
    ) -> AccessDecision:
        member_dn = self.resolve_member_dn(conn, update.member)
        if not member_dn:
            return AccessDecision.USER_NOT_FOUND
        kind = self.classify(update.member)
        if update.role is not Role.MANAGER:
            if kind is IdentityKind.HUMAN:
                return AccessDecision.NAV_USER_NOT_ALLOWED
            if kind is IdentityKind.GROUP:
                return AccessDecision.MANAGER_GROUP_NOT_ALLOWED
            return AccessDecision.OK
        if check_manager_count and update.operation is MembershipOperation.ADD:
            manager_group = self._groups.names.group_name(Role.MANAGER, topic_name)
            others = [
                m for m in self._groups.members(conn, manager_group) if m.lower() != member_dn.lower()
            ]
            if others:
                return AccessDecision.TOO_MANY_MANAGERS
        return AccessDecision.OK

    def is_member(self, conn: DirectoryConnection, group_name: str, member_dn: str) -> bool:
        """Compare-based membership test, skipped for empty groups."""
        if not member_dn or self._groups.is_empty(conn, group_name):
            return False
        return conn.compare(
            self._groups.names.distinguished_name(group_name),
            self._settings.ldap_grp_member_attr_name,
            member_dn,
        )

    def is_manager(self, conn: DirectoryConnection, topic_name: str, user: str) -> bool:
        manager_group = self._groups.names.group_name(Role.MANAGER, topic_name)
        existing = {n.lower() for n in self._groups.group_names(conn)}
        if manager_group.lower() not in existing:
            return False
        return self.is_member(conn, manager_group, self.resolve_member_dn(conn, user))

    def is_superuser(self, user: str) -> bool:
        return user.lower() in self._settings.superusers

    def manager_status(self, conn: DirectoryConnection, user: str, topic_name: str) -> ManagerStatus:
        groups = self._groups.topic_groups(conn, topic_name)
        failed = [g for g in groups if not g.result.ok and g.result.resultCode != NO_SUCH_OBJECT]
        if failed:
            raise DirectoryUnavailableError(
                f"Cannot read groups of {topic_name} - {failed[0].result.message}"
            )
        if any(not g.result.ok for g in groups):
            logger.warning("Groups not found for topic %s - probably orphaned", topic_name)
            if is_protected_topic(topic_name) and not self.is_superuser(user):
                logger.warning("%s attempted to change internal protected topic %s", user, topic_name)
                return ManagerStatus.PROTECTED_TOPIC
            return ManagerStatus.NO_GROUPS_FOUND
        if not self.is_manager(conn, topic_name, user):
            logger.warning("%s is NOT manager of %s", user, topic_name)
            return ManagerStatus.IS_NOT_MANAGER
        logger.info("%s is manager of %s", user, topic_name)
        return ManagerStatus.IS_MANAGER
