"""LDAP façade built on ldap3.

`Directory` is an ABC so tests can inject an in-memory directory without a
real LDAP server. `LdapDirectory` uses ldap3:
  1. `connect()` binds the configured service account and yields a
     `DirectoryConnection`; the connection is unbound on every exit path
  2. `authenticate()` binds a user DN with the given password, against the
     authentication endpoint
"""
from __future__ import annotations

import functools
import logging
import ssl
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, List, NamedTuple, Sequence

from ldap3 import (
    BASE,
    LEVEL,
    MODIFY_ADD,
    MODIFY_DELETE,
    NO_ATTRIBUTES,
    SUBTREE,
    SYNC,
    Connection,
    Server,
    Tls,
)
from ldap3.core import results as ldap_results
from ldap3.core.exceptions import LDAPException
from ldap3.utils.dn import parse_dn

from kafka_adminrest.core.config import Settings
from kafka_adminrest.core.exceptions import DirectoryUnavailableError
from kafka_adminrest.domain.models.group import DirectoryResult, MembershipOperation

logger = logging.getLogger(__name__)

__all__ = [
    "BASE",
    "LEVEL",
    "SUBTREE",
    "NO_ATTRIBUTES",
    "Directory",
    "DirectoryConnection",
    "DirectoryEntry",
    "LdapDirectory",
    "rdn_value",
]

PAGED_RESULTS_OID = "1.2.840.113556.1.4.319"

_MODIFICATION = {
    MembershipOperation.ADD: MODIFY_ADD,
    MembershipOperation.REMOVE: MODIFY_DELETE,
}


class DirectoryEntry(NamedTuple):
    dn: str
    attributes: Dict[str, List[str]]

    def values(self, name: str) -> List[str]:
        """Attribute values, matching the name case-insensitively."""
        for key, vals in self.attributes.items():
            if key.lower() == name.lower():
                return vals
        return []


def rdn_value(dn: str) -> str:
    """Value of the first RDN, e.g. ``cn=KP-tpc-01,ou=kafka`` → ``KP-tpc-01``."""
    return parse_dn(dn)[0][1]


class DirectoryConnection(ABC):
    """A bound directory session exposing the primitives the core needs."""

    @abstractmethod
    def search(
        self,
        base: str,
        scope: str,
        search_filter: str,
        attributes: Sequence[str] | str = NO_ATTRIBUTES,
    ) -> List[DirectoryEntry]:
        """Return every entry matching *search_filter*; an absent base yields []."""

    @abstractmethod
    def compare(self, dn: str, attribute: str, value: str) -> bool:
        """True only when the directory answers compareTrue."""

    @abstractmethod
    def add(self, dn: str, attributes: Dict[str, object]) -> DirectoryResult:
        ...

    @abstractmethod
    def delete(self, dn: str) -> DirectoryResult:
        ...

    @abstractmethod
    def modify(
        self, dn: str, attribute: str, operation: MembershipOperation, value: str
    ) -> DirectoryResult:
        ...


class Directory(ABC):
    @abstractmethod
    def connect(self):
        """Context manager yielding a service-account bound `DirectoryConnection`.

        Raises DirectoryUnavailableError if the directory cannot be reached
        or the service account cannot bind.
        """

    @abstractmethod
    def authenticate(self, dn: str, password: str) -> bool:
        """Verify *password* by binding as *dn*."""


def _translate_errors(fn):
    """Turn ldap3 transport/protocol exceptions into DirectoryUnavailableError."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except LDAPException as exc:
            logger.error("LDAP %s failed - %s", fn.__name__, exc)
            raise DirectoryUnavailableError(f"LDAP {fn.__name__} failed - {exc}") from exc

    return wrapper


def _as_list(value) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        value = [value]
    return [v.decode("utf-8") if isinstance(v, bytes) else str(v) for v in value]


class LdapConnection(DirectoryConnection):
    """ldap3 `Connection` adapter. Operations never raise on LDAP result codes."""

    def __init__(self, conn: Connection, page_size: int = 1000) -> None:
        self._conn = conn
        self._page_size = page_size

    def _result(self) -> DirectoryResult:
        res = self._conn.result or {}
        return DirectoryResult.of(
            int(res.get("result", ldap_results.RESULT_OTHER)),
            res.get("message") or "",
        )

    @_translate_errors
    def search(self, base, scope, search_filter, attributes=NO_ATTRIBUTES):
        entries: List[DirectoryEntry] = []
        cookie = None
        while True:
            self._conn.search(
                base,
                search_filter,
                search_scope=scope,
                attributes=attributes,
                paged_size=self._page_size,
                paged_cookie=cookie,
            )
            code = int((self._conn.result or {}).get("result", ldap_results.RESULT_SUCCESS))
            if code == ldap_results.RESULT_NO_SUCH_OBJECT:
                return entries
            if code not in (ldap_results.RESULT_SUCCESS, ldap_results.RESULT_SIZE_LIMIT_EXCEEDED):
                raise DirectoryUnavailableError(
                    f"LDAP search in {base} failed - {self._result().description}"
                )
            for resp in self._conn.response or []:
                if resp.get("type") != "searchResEntry":
                    continue
                attrs = resp.get("attributes") or {}
                entries.append(
                    DirectoryEntry(resp["dn"], {k: _as_list(v) for k, v in attrs.items()})
                )
            controls = (self._conn.result or {}).get("controls") or {}
            cookie = controls.get(PAGED_RESULTS_OID, {}).get("value", {}).get("cookie")
            if not cookie:
                return entries

    @_translate_errors
    def compare(self, dn, attribute, value):
        # noSuchAttribute/noSuchObject answer "no" rather than raising
        return bool(self._conn.compare(dn, attribute, value))

    @_translate_errors
    def add(self, dn, attributes):
        self._conn.add(dn, attributes=attributes)
        return self._result()

    @_translate_errors
    def delete(self, dn):
        self._conn.delete(dn)
        return self._result()

    @_translate_errors
    def modify(self, dn, attribute, operation, value):
        self._conn.modify(dn, {attribute: [(_MODIFICATION[operation], [value])]})
        return self._result()


class LdapDirectory(Directory):
    """Directory backed by ldap3; one short-lived connection per `connect()`."""

    def __init__(
        self,
        settings: Settings,
        server: Server | None = None,
        auth_server: Server | None = None,
        client_strategy=SYNC,
    ) -> None:
        self._settings = settings
        self._server = server or self._make_server(settings.ldap_host, settings.ldap_port)
        self._auth_server = auth_server or (
            self._server
            if server is not None
            else self._make_server(settings.auth_host, settings.auth_port)
        )
        self._strategy = client_strategy

    def _make_server(self, host: str, port: int) -> Server:
        s = self._settings
        tls = None
        if s.ldap_use_ssl:
            tls = Tls(validate=ssl.CERT_REQUIRED if s.ldap_tls_validate else ssl.CERT_NONE)
        return Server(
            host,
            port=port,
            use_ssl=s.ldap_use_ssl,
            tls=tls,
            connect_timeout=s.ldap_conn_timeout,
        )

    def _bind(self, server: Server, dn: str, password: str) -> Connection | None:
        """Bound connection for *dn*, or None when the directory rejects the credentials.

        ldap3 mock strategies ignore `auto_bind`; the bind is always explicit.
        """
        conn = Connection(
            server,
            user=dn,
            password=password,
            client_strategy=self._strategy,
            receive_timeout=self._settings.ldap_conn_timeout,
            raise_exceptions=False,
        )
        if conn.bind():
            return conn
        logger.warning("Bind failed for %s - %s", dn, conn.result)
        _release(conn)
        return None

    @contextmanager
    def connect(self) -> Iterator[LdapConnection]:
        srv_dn = self._settings.srv_user_dn()
        try:
            conn = self._bind(self._server, srv_dn, self._settings.ldap_password)
        except LDAPException as exc:
            logger.error("LDAP operations against %s will fail - %s", self._server, exc)
            raise DirectoryUnavailableError(f"LDAP unreachable - {exc}") from exc
        if conn is None:
            logger.error("Bind failure for %s to %s", srv_dn, self._server)
            raise DirectoryUnavailableError(f"LDAP bind failure for {srv_dn}")
        logger.debug("Successful bind of %s to %s", srv_dn, self._server)
        try:
            yield LdapConnection(conn, self._settings.ldap_page_size)
        finally:
            logger.debug("Closing ldap connection %s", self._server)
            _release(conn)

    def authenticate(self, dn: str, password: str) -> bool:
        if not password:
            return False
        try:
            conn = self._bind(self._auth_server, dn, password)
        except LDAPException as exc:
            logger.error("LDAP authentication endpoint %s unreachable - %s", self._auth_server, exc)
            raise DirectoryUnavailableError("LDAP unreachable, cannot authenticate") from exc
        if conn is None:
            return False
        _release(conn)
        return True


def _release(conn: Connection) -> None:
    """Unbind; a broken socket must not mask the outcome of the session."""
    try:
        conn.unbind()
    except LDAPException as exc:
        logger.warning("Unbind failed, dropping connection - %s", exc)
