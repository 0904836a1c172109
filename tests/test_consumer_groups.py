from datetime import datetime

from fakes import MANAGER, OTHER_HUMAN, add_topic_groups, user_dn
from kafka_adminrest.core.exceptions import BrokerUnavailableError
from kafka_adminrest.domain.models.consumer_group import (
    CommittedOffset,
    ConsumerGroupDescription,
    ConsumerGroupMember,
    MemberAssignment,
    PartitionOffsets,
)

TOPICS = "/api/v1/topics"
GROUPS = "/api/v1/consumergroups"
RESET = f"{TOPICS}/tpc-01/consumergroups/grp-01/offsets"


def _offset(partition, offset, topic="tpc-01"):
    return CommittedOffset(topicName=topic, partition=partition, offset=offset)


# ---------- topic views ----------

def test_topic_offsets(client, broker):
    broker.list_topics.return_value = ["tpc-01"]
    broker.topic_offsets.return_value = {
        0: PartitionOffsets(earliest=0, latest=42),
        1: PartitionOffsets(earliest=5, latest=7),
    }

    resp = client.get(f"{TOPICS}/tpc-01/offsets")

    assert resp.status_code == 200
    assert resp.json() == {
        "topicName": "tpc-01",
        "partitions": {"0": {"earliest": 0, "latest": 42}, "1": {"earliest": 5, "latest": 7}},
    }


def test_topic_offsets_unknown_topic(client, broker):
    resp = client.get(f"{TOPICS}/tpc-01/offsets")
    assert resp.status_code == 404
    broker.topic_offsets.assert_not_called()


def test_topic_consumer_groups(client, broker):
    broker.list_topics.return_value = ["tpc-01"]
    broker.topic_consumer_groups.return_value = {"grp-01": [_offset(0, 10), _offset(1, 3)]}

    resp = client.get(f"{TOPICS}/tpc-01/consumergroups")

    assert resp.status_code == 200
    data = resp.json()
    assert data["topicName"] == "tpc-01"
    assert [g["groupId"] for g in data["groups"]] == ["grp-01"]
    assert [o["offset"] for o in data["groups"][0]["offsets"]] == [10, 3]


def test_topic_consumer_groups_broker_down(client, broker):
    broker.list_topics.return_value = ["tpc-01"]
    broker.topic_consumer_groups.side_effect = BrokerUnavailableError("timeout")
    resp = client.get(f"{TOPICS}/tpc-01/consumergroups")
    assert resp.status_code == 503


# ---------- offset reset ----------

def test_reset_offsets(client, broker, directory, auth):
    add_topic_groups(directory, "tpc-01", KM=[user_dn(MANAGER)])
    broker.list_topics.return_value = ["tpc-01"]
    broker.reset_consumer_group_offsets.return_value = [_offset(0, 12)]

    resp = client.put(RESET, json={"dateTime": "2024-01-31T08:00:00"}, auth=auth)

    assert resp.status_code == 200
    data = resp.json()
    assert data["groupId"] == "grp-01"
    assert data["input"]["dryrun"] is False
    assert data["offsets"] == [{"topicName": "tpc-01", "partition": 0, "offset": 12, "metadata": ""}]
    expected_ms = int(datetime(2024, 1, 31, 8, 0).timestamp() * 1000)
    broker.reset_consumer_group_offsets.assert_called_once_with(
        "grp-01", "tpc-01", expected_ms, dry_run=False
    )


def test_reset_offsets_dry_run(client, broker, directory, auth):
    add_topic_groups(directory, "tpc-01", KM=[user_dn(MANAGER)])
    broker.list_topics.return_value = ["tpc-01"]
    broker.reset_consumer_group_offsets.return_value = []

    resp = client.put(RESET, json={"dateTime": "2024-01-31T08:00:00", "dryrun": True}, auth=auth)

    assert resp.status_code == 200
    _, kwargs = broker.reset_consumer_group_offsets.call_args
    assert kwargs == {"dry_run": True}


def test_reset_offsets_by_non_manager(client, broker, directory):
    add_topic_groups(directory, "tpc-01", KM=[user_dn(MANAGER)])
    broker.list_topics.return_value = ["tpc-01"]

    resp = client.put(RESET, json={"dateTime": "2024-01-31T08:00:00"}, auth=(OTHER_HUMAN, "itest2"))

    assert resp.status_code == 401
    assert resp.json()["code"] == "IS_NOT_MANAGER"
    broker.reset_consumer_group_offsets.assert_not_called()


def test_reset_offsets_without_groups(client, broker, auth):
    broker.list_topics.return_value = ["tpc-01"]

    resp = client.put(RESET, json={"dateTime": "2024-01-31T08:00:00"}, auth=auth)

    assert resp.status_code == 401
    assert resp.json()["code"] == "NO_GROUPS_FOUND"
    assert "recreate" in resp.json()["detail"]


def test_reset_offsets_unknown_topic(client, broker, directory, auth):
    add_topic_groups(directory, "tpc-01", KM=[user_dn(MANAGER)])
    resp = client.put(RESET, json={"dateTime": "2024-01-31T08:00:00"}, auth=auth)
    assert resp.status_code == 404
    broker.reset_consumer_group_offsets.assert_not_called()


def test_reset_offsets_with_active_consumers(client, broker, directory, auth):
    add_topic_groups(directory, "tpc-01", KM=[user_dn(MANAGER)])
    broker.list_topics.return_value = ["tpc-01"]
    broker.reset_consumer_group_offsets.side_effect = BrokerUnavailableError(
        "Kafka reset_consumer_group_offsets failed - [Error 25] UnknownMemberIdError"
    )

    resp = client.put(RESET, json={"dateTime": "2024-01-31T08:00:00"}, auth=auth)

    assert resp.status_code == 503


def test_reset_offsets_requires_credentials(client, broker):
    resp = client.put(RESET, json={"dateTime": "2024-01-31T08:00:00"})
    assert resp.status_code == 401
    broker.reset_consumer_group_offsets.assert_not_called()


def test_reset_offsets_rejects_bad_date(client, auth):
    resp = client.put(RESET, json={"dateTime": "yesterday"}, auth=auth)
    assert resp.status_code == 422


# ---------- consumer groups ----------

def test_list_consumer_groups(client, broker):
    broker.list_consumer_groups.return_value = ["grp-01", "grp-02"]
    resp = client.get(GROUPS)
    assert resp.status_code == 200
    assert resp.json() == ["grp-01", "grp-02"]


def test_consumer_group_offsets(client, broker):
    broker.describe_consumer_group.return_value = ConsumerGroupDescription(
        groupId="grp-01",
        state="Stable",
        protocolType="consumer",
        partitionAssignor="range",
        isSimpleConsumerGroup=False,
        members=[
            ConsumerGroupMember(
                memberId="m-1",
                clientId="app",
                host="/10.0.0.1",
                assignment=[MemberAssignment(topicName="tpc-01", partitions=[0, 1])],
            )
        ],
    )
    broker.consumer_group_offsets.return_value = [_offset(0, 10), _offset(0, 4, topic="tpc-02")]

    resp = client.get(f"{GROUPS}/grp-01/offsets")

    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "grp-01"
    assert data["description"]["state"] == "Stable"
    assert data["description"]["members"][0]["assignment"] == [{"topicName": "tpc-01", "partitions": [0, 1]}]
    assert {o["topicName"] for o in data["offsets"]} == {"tpc-01", "tpc-02"}


def test_consumer_group_offsets_broker_down(client, broker):
    broker.describe_consumer_group.side_effect = BrokerUnavailableError("timeout")
    resp = client.get(f"{GROUPS}/grp-01/offsets")
    assert resp.status_code == 503
