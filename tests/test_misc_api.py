from fakes import MANAGER, add_topic_groups, user_dn
from kafka_adminrest.core.exceptions import BrokerUnavailableError
from kafka_adminrest.domain.models.acl import role_acls
from kafka_adminrest.domain.models.cluster import Broker
from kafka_adminrest.domain.models.group import Role


def test_list_brokers(client, broker):
    broker.describe_cluster.return_value = [Broker(brokerId=1, host="b1", port=9092)]
    resp = client.get("/api/v1/brokers")
    assert resp.status_code == 200
    assert resp.json()["brokers"] == [{"brokerId": 1, "host": "b1", "port": 9092, "rack": None}]


def test_broker_config(client, broker):
    broker.describe_cluster.return_value = [Broker(brokerId=1, host="b1", port=9092)]
    broker.broker_config.return_value = {"default.replication.factor": "3"}
    resp = client.get("/api/v1/brokers/1")
    assert resp.status_code == 200
    assert resp.json()["config"]["default.replication.factor"] == "3"
    broker.broker_config.assert_called_once_with(1)


def test_unknown_broker(client, broker):
    broker.describe_cluster.return_value = [Broker(brokerId=1, host="b1", port=9092)]
    assert client.get("/api/v1/brokers/7").status_code == 404


def test_brokers_unavailable(client, broker):
    broker.describe_cluster.side_effect = BrokerUnavailableError("no brokers")
    resp = client.get("/api/v1/brokers")
    assert resp.status_code == 503
    assert resp.headers["content-type"].startswith("application/problem+json")


def test_list_groups(client, directory):
    add_topic_groups(directory, "tpc-01", KM=[user_dn(MANAGER)])
    resp = client.get("/api/v1/groups")
    assert resp.status_code == 200
    assert sorted(resp.json()["groups"]) == ["KC-tpc-01", "KM-tpc-01", "KP-tpc-01"]


def test_group_members(client, directory):
    add_topic_groups(directory, "tpc-01", KM=[user_dn(MANAGER)])
    resp = client.get("/api/v1/groups/KM-tpc-01")
    assert resp.status_code == 200
    assert resp.json()["members"] == [user_dn(MANAGER)]
    assert client.get("/api/v1/groups/KM-nothing").status_code == 404


def test_groups_directory_down(client, directory):
    directory.down = True
    assert client.get("/api/v1/groups").status_code == 503


def test_list_acls(client, broker):
    broker.describe_acls.return_value = role_acls(Role.PRODUCER, "tpc-01")
    resp = client.get("/api/v1/acls")
    assert resp.status_code == 200
    assert {a["operation"] for a in resp.json()["acls"]} == {"WRITE", "DESCRIBE"}


def test_is_alive(client):
    resp = client.get("/isalive")
    assert resp.status_code == 200
    assert resp.text == "is alive"


def test_is_ready(client):
    assert client.get("/isready").status_code == 200


def test_not_ready_with_incomplete_ldap_settings(client, settings):
    settings.ldap_group_base = ""
    assert client.get("/isready").status_code == 503


def test_not_ready_with_incomplete_sasl_settings(client, settings):
    settings.security_protocol = "SASL_SSL"
    assert client.get("/isready").status_code == 503


def test_metrics_expose_operation_counter(client, auth):
    client.post("/api/v1/topics", json={"name": "tpc-99"}, auth=auth)
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "kafka_adminrest_operations_total" in resp.text


def test_openapi_under_api_prefix(client):
    assert client.get("/api/v1/openapi.json").status_code == 200
