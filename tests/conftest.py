"""Test configuration and fixtures."""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from fakes import (
    CONSUMER_SRV,
    GROUP_BASE,
    GROUP_IN_GROUP_BASE,
    MANAGER,
    MANAGER_PASSWORD,
    OTHER_HUMAN,
    PRODUCER_SRV,
    SRV_BASE,
    TEAM_GROUP,
    USER_BASE,
    FakeDirectory,
    srv_dn,
    user_dn,
)
from kafka_adminrest.core.config import Settings
from kafka_adminrest.domain.services.access_control import AccessControl
from kafka_adminrest.domain.services.group_names import GroupNameResolver
from kafka_adminrest.domain.services.kafka_groups import KafkaGroups
from kafka_adminrest.domain.services.reconciler import GroupReconciler
from kafka_adminrest.infra.kafka.admin import KafkaAdminFacade
from server import create_app


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        kafka_bootstrap="localhost:9092",
        ldap_host="ldap.test.local",
        ldap_port=636,
        ldap_user_attr_name="cn",
        ldap_auth_user_base=USER_BASE,
        ldap_srv_user_base=SRV_BASE,
        ldap_group_base=GROUP_BASE,
        ldap_group_in_group_base=GROUP_IN_GROUP_BASE,
        ldap_group_attr_name="cn",
        ldap_grp_member_attr_name="member",
        ldap_user="igroup",
        ldap_password="itest",
        superusers="srvadmin",
    )


@pytest.fixture
def directory() -> FakeDirectory:
    d = FakeDirectory()
    for name, password in ((MANAGER, MANAGER_PASSWORD), (OTHER_HUMAN, "itest2")):
        d.add_entry(user_dn(name), {"cn": name, "objectClass": "user"}, password=password)
    for name in ("igroup", PRODUCER_SRV, CONSUMER_SRV, "srvadmin"):
        d.add_entry(srv_dn(name), {"cn": name, "objectClass": "user"}, password=f"{name}-pw")
    d.add_entry(
        f"cn={TEAM_GROUP},{GROUP_IN_GROUP_BASE}", {"cn": TEAM_GROUP, "objectClass": "group"}
    )
    return d


@pytest.fixture
def broker() -> MagicMock:
    b = MagicMock(spec=KafkaAdminFacade)
    b.list_topics.return_value = []
    b.default_replication_factor.return_value = 3
    b.delete_topic_acls.return_value = []
    b.describe_acls.return_value = []
    b.topic_config.return_value = {}
    b.describe_topic.return_value = []
    b.describe_cluster.return_value = []
    return b


@pytest.fixture
def names(settings) -> GroupNameResolver:
    return GroupNameResolver(settings)


@pytest.fixture
def groups(settings, names) -> KafkaGroups:
    return KafkaGroups(settings, names)


@pytest.fixture
def access(settings, groups) -> AccessControl:
    return AccessControl(settings, groups)


@pytest.fixture
def reconciler(settings, groups, access) -> GroupReconciler:
    return GroupReconciler(settings, groups, access)


@pytest.fixture
def app(settings, directory, broker):
    return create_app(settings=settings, directory=directory, broker=broker)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth():
    return (MANAGER, MANAGER_PASSWORD)
