import pytest

from kafka_adminrest.core.config import Settings


@pytest.mark.parametrize(
    "raw",
    ['["A123456", "srvadmin"]', "A123456, srvadmin", "A123456,,srvadmin,"],
)
def test_superusers_from_environment(monkeypatch, raw):
    monkeypatch.setenv("SUPERUSERS", raw)
    assert Settings(_env_file=None).superusers == ["a123456", "srvadmin"]


def test_superusers_default_empty(monkeypatch):
    monkeypatch.delenv("SUPERUSERS", raising=False)
    assert Settings(_env_file=None).superusers == []


def test_derived_dns(settings):
    assert settings.srv_user_dn() == "cn=igroup,ou=serviceaccounts,dc=test,dc=local"
    assert settings.user_dn("n145821") == "cn=n145821,ou=users,dc=test,dc=local"


def test_auth_endpoint_falls_back_to_group_endpoint(settings):
    assert (settings.auth_host, settings.auth_port) == ("ldap.test.local", 636)
    other = settings.model_copy(update={"ldap_auth_host": "auth.test.local", "ldap_auth_port": 3269})
    assert (other.auth_host, other.auth_port) == ("auth.test.local", 3269)


def test_group_in_group_base_falls_back_to_group_base(settings):
    assert settings.group_in_group_base == "ou=accountgroups,dc=test,dc=local"
    other = settings.model_copy(update={"ldap_group_in_group_base": None})
    assert other.group_in_group_base == settings.ldap_group_base


def test_ldap_info_complete(settings):
    assert settings.ldap_info_complete()
    assert not settings.model_copy(update={"ldap_password": ""}).ldap_info_complete()


def test_kafka_security_complete(settings):
    assert settings.kafka_security_complete()
    sasl = settings.model_copy(update={"security_protocol": "SASL_SSL", "sasl_mechanism": "PLAIN"})
    assert not sasl.kafka_security_complete()
    full = sasl.model_copy(update={"sasl_plain_username": "u", "sasl_plain_password": "p"})
    assert full.kafka_security_complete()
