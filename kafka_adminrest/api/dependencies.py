"""Global reusable FastAPI dependencies (settings, adapters, services, Basic auth)."""
from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from kafka_adminrest.core.config import Settings
from kafka_adminrest.core.exceptions import NotAuthorizedError
from kafka_adminrest.core.security import BasicAuthenticator
from kafka_adminrest.domain.services.access_control import AccessControl
from kafka_adminrest.domain.services.group_names import GroupNameResolver
from kafka_adminrest.domain.services.kafka_groups import KafkaGroups
from kafka_adminrest.domain.services.oneshot_service import OneshotProvisioner
from kafka_adminrest.domain.services.reconciler import GroupReconciler
from kafka_adminrest.domain.services.stream_service import StreamAclService
from kafka_adminrest.domain.services.topic_service import TopicProvisioner
from kafka_adminrest.infra.kafka.admin import KafkaAdminFacade
from kafka_adminrest.infra.ldap.directory import Directory

basic = HTTPBasic(auto_error=False)


# ---------- adapters held by the application ----------
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_directory(request: Request) -> Directory:
    return request.app.state.directory


def get_broker(request: Request) -> KafkaAdminFacade:
    return request.app.state.broker


# ---------- per-request services ----------
def get_groups(settings: Settings = Depends(get_settings)) -> KafkaGroups:
    return KafkaGroups(settings, GroupNameResolver(settings))


def get_access(
    settings: Settings = Depends(get_settings),
    groups: KafkaGroups = Depends(get_groups),
) -> AccessControl:
    return AccessControl(settings, groups)


def get_reconciler(
    settings: Settings = Depends(get_settings),
    groups: KafkaGroups = Depends(get_groups),
    access: AccessControl = Depends(get_access),
) -> GroupReconciler:
    return GroupReconciler(settings, groups, access)


def get_topic_provisioner(
    settings: Settings = Depends(get_settings),
    directory: Directory = Depends(get_directory),
    broker: KafkaAdminFacade = Depends(get_broker),
    groups: KafkaGroups = Depends(get_groups),
    access: AccessControl = Depends(get_access),
    reconciler: GroupReconciler = Depends(get_reconciler),
) -> TopicProvisioner:
    return TopicProvisioner(settings, directory, broker, groups, access, reconciler)


def get_oneshot_provisioner(
    settings: Settings = Depends(get_settings),
    directory: Directory = Depends(get_directory),
    broker: KafkaAdminFacade = Depends(get_broker),
    groups: KafkaGroups = Depends(get_groups),
    access: AccessControl = Depends(get_access),
    reconciler: GroupReconciler = Depends(get_reconciler),
) -> OneshotProvisioner:
    return OneshotProvisioner(settings, directory, broker, groups, access, reconciler)


def get_stream_service(
    directory: Directory = Depends(get_directory),
    broker: KafkaAdminFacade = Depends(get_broker),
    access: AccessControl = Depends(get_access),
) -> StreamAclService:
    return StreamAclService(directory, broker, access)


# ---------- authentication ----------
def require_user(
    credentials: HTTPBasicCredentials | None = Depends(basic),
    settings: Settings = Depends(get_settings),
    directory: Directory = Depends(get_directory),
    access: AccessControl = Depends(get_access),
) -> str:
    """Validate Basic credentials by binding to the directory; return the user name."""
    if credentials is None:
        raise NotAuthorizedError("Missing Basic credentials")
    authenticator = BasicAuthenticator(settings, directory, access)
    if not authenticator.authenticate(credentials.username, credentials.password):
        raise NotAuthorizedError("Invalid credentials")
    return credentials.username
