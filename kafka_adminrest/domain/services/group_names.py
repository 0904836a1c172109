"""Naming rules tying a topic to its role groups in the directory."""
from __future__ import annotations

import re

from kafka_adminrest.core.config import Settings
from kafka_adminrest.domain.models.group import MAX_GROUPNAME_LENGTH, ROLE_PREFIXES, Role

_TOPIC_NAME = re.compile(r"[A-Za-z0-9-]+")


class GroupNameResolver:
    """Pure functions of (role, topic) and the configured group base."""

    def __init__(self, settings: Settings) -> None:
        self._group_attr = settings.ldap_group_attr_name
        self._group_base = settings.ldap_group_base

    @staticmethod
    def group_name(role: Role, topic_name: str) -> str:
        return f"{role.prefix}{topic_name}"

    def distinguished_name(self, group_name: str) -> str:
        return f"{self._group_attr}={group_name},{self._group_base}"

    @staticmethod
    def max_topic_name_length() -> int:
        return MAX_GROUPNAME_LENGTH - max(len(p) for p in ROLE_PREFIXES.values())

    @classmethod
    def is_valid_topic_name(cls, topic_name: str) -> bool:
        """Letters, digits and '-' only, short enough for every role group name."""
        return bool(_TOPIC_NAME.fullmatch(topic_name)) and len(topic_name) <= cls.max_topic_name_length()
