from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from kafka.admin import ACL, ACLOperation, ACLPermissionType, ACLResourcePatternType, ResourcePattern
from kafka import TopicPartition
from kafka.admin import ResourceType as KafkaResourceType
from kafka.errors import CommitFailedError, KafkaTimeoutError, NoError

from kafka_adminrest.core.exceptions import BrokerUnavailableError
from kafka_adminrest.domain.models.acl import AclOperation, PatternType, ResourceType, stream_acls
from kafka_adminrest.infra.kafka.admin import KafkaAdminFacade


@pytest.fixture
def client_mock():
    with patch("kafka_adminrest.infra.kafka.admin.KafkaAdminClient") as cls:
        yield cls.return_value


@pytest.fixture
def facade(settings, client_mock):
    return KafkaAdminFacade(settings.model_copy(update={"admin_connect_backoff_sec": 0}))


def _describe_configs_response(*entries):
    """One DescribeConfigs response with a single resource: (name, value, read_only, source, sensitive)."""
    response = MagicMock()
    response.resources = [(0, None, 2, "tpc-01", list(entries))]
    return [response]


def test_list_topics_sorted(facade, client_mock):
    client_mock.list_topics.return_value = ["b", "a"]
    assert facade.list_topics() == ["a", "b"]


def test_describe_acls_converts_bindings(facade, client_mock):
    acl = ACL(
        principal="Group:KP-tpc-01",
        host="*",
        operation=ACLOperation.WRITE,
        permission_type=ACLPermissionType.ALLOW,
        resource_pattern=ResourcePattern(
            KafkaResourceType.TOPIC, "tpc-01", ACLResourcePatternType.LITERAL
        ),
    )
    client_mock.describe_acls.return_value = ([acl], NoError)

    (binding,) = facade.describe_acls("tpc-01")

    assert binding.resourceType is ResourceType.TOPIC
    assert binding.resourceName == "tpc-01"
    assert binding.patternType is PatternType.LITERAL
    assert binding.operation is AclOperation.WRITE
    assert binding.principal == "Group:KP-tpc-01"


def test_create_acls_converts_bindings(facade, client_mock):
    client_mock.create_acls.return_value = {"succeeded": [], "failed": []}

    facade.create_acls(stream_acls("my-app", "srvmyapp"))

    (acls,), _ = client_mock.create_acls.call_args
    assert {a.resource_pattern.resource_type for a in acls} == {
        KafkaResourceType.TOPIC,
        KafkaResourceType.GROUP,
    }
    assert all(a.resource_pattern.pattern_type is ACLResourcePatternType.PREFIXED for a in acls)
    assert all(a.operation is ACLOperation.ALL for a in acls)


def test_create_acls_failure(facade, client_mock):
    client_mock.create_acls.return_value = {"succeeded": [], "failed": [("acl", "denied")]}
    with pytest.raises(BrokerUnavailableError):
        facade.create_acls(stream_acls("my-app", "srvmyapp"))


def test_create_no_acls_skips_call(facade, client_mock):
    facade.create_acls([])
    client_mock.create_acls.assert_not_called()


def test_alter_topic_config_keeps_other_overrides(facade, client_mock):
    client_mock.describe_configs.return_value = _describe_configs_response(
        ("retention.ms", "1000", False, 1, False),
        ("segment.bytes", "1073741824", False, 5, False),
        ("cleanup.policy", "delete", False, 1, False),
    )
    altered = MagicMock()
    altered.resources = [(0, None, 2, "tpc-01")]
    client_mock.alter_configs.return_value = altered

    facade.alter_topic_config("tpc-01", {"retention.ms": "86400000"})

    (resources,), _ = client_mock.alter_configs.call_args
    assert resources[0].configs == {"retention.ms": "86400000", "cleanup.policy": "delete"}


def test_default_replication_factor(facade, client_mock):
    client_mock.describe_cluster.return_value = {
        "brokers": [{"node_id": 1, "host": "b1", "port": 9092, "rack": None}]
    }
    client_mock.describe_configs.return_value = _describe_configs_response(
        ("default.replication.factor", "3", False, 5, False),
    )
    assert facade.default_replication_factor() == 3


def test_default_replication_factor_missing(facade, client_mock):
    client_mock.describe_cluster.return_value = {"brokers": []}
    with pytest.raises(BrokerUnavailableError):
        facade.default_replication_factor()


def test_client_errors_become_unavailable(facade, client_mock):
    client_mock.list_topics.side_effect = KafkaTimeoutError("slow")
    with pytest.raises(BrokerUnavailableError):
        facade.list_topics()


def test_connect_retries_then_gives_up(settings):
    quick = settings.model_copy(update={"admin_connect_backoff_sec": 0, "admin_connect_max_tries": 2})
    with patch(
        "kafka_adminrest.infra.kafka.admin.KafkaAdminClient",
        side_effect=KafkaTimeoutError("down"),
    ) as cls:
        with pytest.raises(BrokerUnavailableError):
            KafkaAdminFacade(quick).list_topics()
    assert cls.call_count == 2


# ---------- offsets / consumer groups ----------

TP0, TP1 = TopicPartition("tpc-01", 0), TopicPartition("tpc-01", 1)


@pytest.fixture
def consumer_mock():
    with patch("kafka_adminrest.infra.kafka.admin.KafkaConsumer") as cls:
        yield cls.return_value


@pytest.fixture
def two_partitions(client_mock):
    client_mock.describe_topics.return_value = [
        {"topic": "tpc-01", "partitions": [{"partition": 1}, {"partition": 0}]}
    ]


def _committed(offset, metadata=""):
    return SimpleNamespace(offset=offset, metadata=metadata)


def test_topic_offsets(facade, consumer_mock, two_partitions):
    consumer_mock.beginning_offsets.return_value = {TP0: 0, TP1: 3}
    consumer_mock.end_offsets.return_value = {TP0: 10, TP1: 3}

    offsets = facade.topic_offsets("tpc-01")

    assert {p: (o.earliest, o.latest) for p, o in offsets.items()} == {0: (0, 10), 1: (3, 3)}
    assert consumer_mock.close.call_count == 2


def test_consumer_group_offsets(facade, client_mock):
    client_mock.list_consumer_group_offsets.return_value = {
        TP1: _committed(7),
        TopicPartition("tpc-02", 0): _committed(1, "m"),
        TP0: _committed(5),
    }

    offsets = facade.consumer_group_offsets("grp-01")

    assert [(o.topicName, o.partition, o.offset) for o in offsets] == [
        ("tpc-01", 0, 5),
        ("tpc-01", 1, 7),
        ("tpc-02", 0, 1),
    ]
    assert offsets[2].metadata == "m"


def test_topic_consumer_groups_skips_groups_on_other_topics(facade, client_mock):
    client_mock.list_consumer_groups.return_value = [("grp-b", "consumer"), ("grp-a", "consumer")]
    client_mock.list_consumer_group_offsets.side_effect = lambda group_id: {
        "grp-a": {TP0: _committed(5), TopicPartition("tpc-02", 0): _committed(1)},
        "grp-b": {TopicPartition("tpc-02", 0): _committed(2)},
    }[group_id]

    found = facade.topic_consumer_groups("tpc-01")

    assert list(found) == ["grp-a"]
    assert [o.offset for o in found["grp-a"]] == [5]


def test_describe_consumer_group(facade, client_mock):
    member = SimpleNamespace(
        member_id="m-1",
        client_id="app",
        client_host="/10.0.0.1",
        member_metadata=None,
        member_assignment=SimpleNamespace(assignment=[("tpc-01", [1, 0])]),
    )
    client_mock.describe_consumer_groups.return_value = [
        SimpleNamespace(
            error_code=0,
            group="grp-01",
            state="Stable",
            protocol_type="consumer",
            protocol="range",
            members=[member],
            authorized_operations=None,
        )
    ]

    description = facade.describe_consumer_group("grp-01")

    assert description.state == "Stable"
    assert description.isSimpleConsumerGroup is False
    assert description.members[0].assignment[0].partitions == [0, 1]


def test_reset_offsets_dry_run_commits_nothing(facade, consumer_mock, two_partitions):
    consumer_mock.offsets_for_times.return_value = {TP0: SimpleNamespace(offset=4), TP1: None}

    offsets = facade.reset_consumer_group_offsets("grp-01", "tpc-01", 1_700_000_000_000, dry_run=True)

    assert [(o.partition, o.offset) for o in offsets] == [(0, 4)]
    consumer_mock.offsets_for_times.assert_called_once_with(
        {TP0: 1_700_000_000_000, TP1: 1_700_000_000_000}
    )
    consumer_mock.commit.assert_not_called()


def test_reset_offsets_seeks_and_commits(facade, client_mock, consumer_mock, two_partitions):
    consumer_mock.offsets_for_times.return_value = {
        TP0: SimpleNamespace(offset=4),
        TP1: SimpleNamespace(offset=9),
    }
    client_mock.list_consumer_group_offsets.return_value = {
        TP0: _committed(4),
        TP1: _committed(9),
        TopicPartition("tpc-02", 0): _committed(1),
    }

    offsets = facade.reset_consumer_group_offsets("grp-01", "tpc-01", 1_700_000_000_000)

    consumer_mock.assign.assert_called_once_with([TP0, TP1])
    assert {c.args for c in consumer_mock.seek.call_args_list} == {(TP0, 4), (TP1, 9)}
    consumer_mock.commit.assert_called_once_with()
    assert [(o.partition, o.offset) for o in offsets] == [(0, 4), (1, 9)]


def test_reset_offsets_rejected_by_active_group(facade, consumer_mock, two_partitions):
    consumer_mock.offsets_for_times.return_value = {TP0: SimpleNamespace(offset=4), TP1: None}
    consumer_mock.commit.side_effect = CommitFailedError("group is rebalancing")

    with pytest.raises(BrokerUnavailableError):
        facade.reset_consumer_group_offsets("grp-01", "tpc-01", 1_700_000_000_000)
    consumer_mock.close.assert_called()
