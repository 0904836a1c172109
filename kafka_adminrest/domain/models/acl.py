"""ACL bindings and the role → operation table."""
from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict

from kafka_adminrest.domain.models.group import Role


class ResourceType(str, Enum):
    TOPIC = "TOPIC"
    GROUP = "GROUP"
    CLUSTER = "CLUSTER"
    TRANSACTIONAL_ID = "TRANSACTIONAL_ID"
    DELEGATION_TOKEN = "DELEGATION_TOKEN"
    ANY = "ANY"
    UNKNOWN = "UNKNOWN"


class PatternType(str, Enum):
    LITERAL = "LITERAL"
    PREFIXED = "PREFIXED"
    ANY = "ANY"
    MATCH = "MATCH"
    UNKNOWN = "UNKNOWN"


class AclOperation(str, Enum):
    ALL = "ALL"
    READ = "READ"
    WRITE = "WRITE"
    CREATE = "CREATE"
    DELETE = "DELETE"
    ALTER = "ALTER"
    DESCRIBE = "DESCRIBE"
    DESCRIBE_CONFIGS = "DESCRIBE_CONFIGS"
    ALTER_CONFIGS = "ALTER_CONFIGS"
    IDEMPOTENT_WRITE = "IDEMPOTENT_WRITE"
    CLUSTER_ACTION = "CLUSTER_ACTION"
    ANY = "ANY"
    UNKNOWN = "UNKNOWN"


class PermissionType(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"
    ANY = "ANY"
    UNKNOWN = "UNKNOWN"


class AclBinding(BaseModel):
    """Broker ACL, independent of the client library."""

    model_config = ConfigDict(frozen=True)

    resourceType: ResourceType
    resourceName: str
    patternType: PatternType = PatternType.LITERAL
    principal: str
    host: str = "*"
    operation: AclOperation
    permissionType: PermissionType = PermissionType.ALLOW


# MANAGER grants authority over the topic's lifecycle, not broker access
ROLE_ACL_OPERATIONS = {
    Role.PRODUCER: (AclOperation.WRITE, AclOperation.DESCRIBE),
    Role.CONSUMER: (AclOperation.READ, AclOperation.DESCRIBE),
    Role.MANAGER: (),
}


def role_acls(role: Role, topic_name: str) -> List[AclBinding]:
    """ACLs granting the role group of *topic_name* access to the topic."""
    principal = f"Group:{role.prefix}{topic_name}"
    return [
        AclBinding(
            resourceType=ResourceType.TOPIC,
            resourceName=topic_name,
            principal=principal,
            operation=op,
        )
        for op in ROLE_ACL_OPERATIONS[role]
    ]


def stream_acls(application_name: str, user: str) -> List[AclBinding]:
    """Full access for *user* to every topic and consumer group prefixed by the app name."""
    return [
        AclBinding(
            resourceType=resource_type,
            resourceName=application_name,
            patternType=PatternType.PREFIXED,
            principal=f"User:{user}",
            operation=AclOperation.ALL,
        )
        for resource_type in (ResourceType.TOPIC, ResourceType.GROUP)
    ]


class TopicAcls(BaseModel):
    name: str
    acls: List[AclBinding]


class Acls(BaseModel):
    acls: List[AclBinding]
