"""HTTP Basic authentication backed by directory binds.

The password is never checked locally: the user's DN is bound against the
authentication endpoint and a successful bind is the only proof accepted.
"""
from __future__ import annotations

import logging

from kafka_adminrest.core.config import Settings
from kafka_adminrest.domain.models.group import IdentityKind
from kafka_adminrest.domain.services.access_control import AccessControl
from kafka_adminrest.infra.ldap.directory import Directory

logger = logging.getLogger(__name__)


class BasicAuthenticator:
    def __init__(self, settings: Settings, directory: Directory, access: AccessControl) -> None:
        self._settings = settings
        self._directory = directory
        self._access = access

    def bind_dn(self, username: str) -> str:
        """DN to bind for *username*; service accounts are looked up, "" if unknown."""
        if self._access.classify(username) is IdentityKind.HUMAN:
            return self._settings.user_dn(username)
        with self._directory.connect() as conn:
            return self._access.resolve_member_dn(conn, username)

    def authenticate(self, username: str, password: str) -> bool:
        """
        Raises
        ------
        DirectoryUnavailableError
            If the directory cannot be reached to verify the credentials.
        """
        if not username or not password:
            return False
        dn = self.bind_dn(username)
        if not dn:
            logger.warning("Authentication failed, %s not found in the directory", username)
            return False
        ok = self._directory.authenticate(dn, password)
        if not ok:
            logger.warning("Authentication failed for %s", username)
        return ok
