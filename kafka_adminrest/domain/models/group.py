"""Directory-group DTOs: roles, membership updates and operation results."""
from __future__ import annotations

from enum import Enum
from typing import List

from ldap3.core import results as ldap_results
from pydantic import BaseModel, ConfigDict, Field

# Longest common name (CN) accepted by Active Directory
MAX_GROUPNAME_LENGTH = 64


class Role(str, Enum):
    """Topic-scoped role, each backed by one directory group."""

    PRODUCER = "PRODUCER"
    CONSUMER = "CONSUMER"
    MANAGER = "MANAGER"

    @property
    def prefix(self) -> str:
        return ROLE_PREFIXES[self]


ROLE_PREFIXES = {
    Role.PRODUCER: "KP-",
    Role.CONSUMER: "KC-",
    Role.MANAGER: "KM-",
}


class MembershipOperation(str, Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"


class IdentityKind(str, Enum):
    GROUP = "GROUP"
    HUMAN = "HUMAN"
    SERVICE_ACCOUNT = "SERVICE_ACCOUNT"


class AccessDecision(str, Enum):
    USER_NOT_FOUND = "USER_NOT_FOUND"
    NAV_USER_NOT_ALLOWED = "NAV_USER_NOT_ALLOWED"
    MANAGER_GROUP_NOT_ALLOWED = "MANAGER_GROUP_NOT_ALLOWED"
    TOO_MANY_MANAGERS = "TOO_MANY_MANAGERS"
    OK = "OK"


class ManagerStatus(str, Enum):
    IS_MANAGER = "IS_MANAGER"
    IS_NOT_MANAGER = "IS_NOT_MANAGER"
    NO_GROUPS_FOUND = "NO_GROUPS_FOUND"
    PROTECTED_TOPIC = "PROTECTED_TOPIC"


class GroupMembershipUpdate(BaseModel):
    """Body of `PUT /topics/{name}/groups`."""

    role: Role
    operation: MembershipOperation
    member: str = Field(..., min_length=1, examples=["srvkafkaclient"])


class DirectoryResult(BaseModel):
    """Outcome of a single directory operation, using LDAP result codes."""

    model_config = ConfigDict(frozen=True)

    resultCode: int
    description: str
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.resultCode == ldap_results.RESULT_SUCCESS

    @classmethod
    def of(cls, code: int, message: str = "") -> "DirectoryResult":
        return cls(
            resultCode=code,
            description=ldap_results.RESULT_CODES.get(code, "other"),
            message=message,
        )

    @classmethod
    def success(cls, message: str = "") -> "DirectoryResult":
        return cls.of(ldap_results.RESULT_SUCCESS, message)

    @classmethod
    def no_such_object(cls, message: str = "") -> "DirectoryResult":
        return cls.of(ldap_results.RESULT_NO_SUCH_OBJECT, message)

    @classmethod
    def already_exists(cls, message: str = "") -> "DirectoryResult":
        return cls.of(ldap_results.RESULT_ENTRY_ALREADY_EXISTS, message)

    @classmethod
    def unavailable(cls, message: str = "") -> "DirectoryResult":
        return cls.of(ldap_results.RESULT_UNAVAILABLE, message)


class GroupOperationResult(BaseModel):
    """One role group of a topic after a create/delete/read."""

    model_config = ConfigDict(frozen=True)

    role: Role
    name: str
    members: List[str] = Field(default_factory=list)
    result: DirectoryResult


class GroupMembers(BaseModel):
    name: str
    members: List[str]


class TopicGroups(BaseModel):
    name: str
    groups: List[GroupOperationResult]


class GroupMembershipResult(BaseModel):
    name: str
    updateRequest: GroupMembershipUpdate
    status: DirectoryResult


class KafkaGroupNames(BaseModel):
    groups: List[str]
