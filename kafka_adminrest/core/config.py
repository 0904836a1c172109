# kafka_adminrest/core/config.py
import json
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central application settings loaded from environment variables (and .env).

    Notes
    -----
    - One instance is built by `create_app()` and handed to every component;
      nothing reads the environment after start-up.
    - `superusers` accepts a JSON array or a comma-separated string:
        SUPERUSERS='["a123456","srvadmin"]'
      or:
        SUPERUSERS='a123456,srvadmin'
    - All LDAP bases are full distinguished names, e.g.
        LDAP_GROUP_BASE='OU=kafka,OU=Groups,DC=test,DC=local'
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ---------- Kafka client/admin ----------
    kafka_bootstrap: str = Field("localhost:9092")
    kafka_client_id: str = "kafka-adminrest"
    kafka_api_version: str | None = None

    # Per-call timeout used for every admin request (ms)
    kafka_timeout_ms: int = 10_000
    metadata_max_age_ms: int = 30_000
    api_version_auto_timeout_ms: int = 10_000

    # Admin connection retry
    admin_connect_max_tries: int = 3
    admin_connect_backoff_sec: float = 1.0

    # ---------- Kafka security (set when using SASL/SSL) ----------
    security_protocol: str = "PLAINTEXT"   # e.g. "SASL_SSL", "SSL"
    sasl_mechanism: str | None = None
    sasl_plain_username: str | None = None
    sasl_plain_password: str | None = None
    ssl_cafile: str | None = None

    # ---------- LDAP connection ----------
    ldap_host: str = "localhost"
    ldap_port: int = 636
    ldap_use_ssl: bool = True
    ldap_conn_timeout: float = Field(default=2.0, gt=0, description="Seconds.")
    ldap_page_size: int = Field(default=1000, ge=1)
    # Validate the server certificate on LDAPS connections
    ldap_tls_validate: bool = True

    # Endpoint used for Basic-auth binds; defaults to the group endpoint
    ldap_auth_host: str | None = None
    ldap_auth_port: int | None = None

    # ---------- LDAP tree layout ----------
    ldap_user_attr_name: str = "cn"
    ldap_auth_user_base: str = ""
    ldap_srv_user_base: str = ""
    ldap_group_base: str = ""
    ldap_group_in_group_base: str | None = None
    ldap_group_attr_name: str = "cn"
    ldap_grp_member_attr_name: str = "member"

    # Shape of directory-group identities accepted as (manager) members
    group_identity_pattern: str = r"^\d{4}-GA-[A-Za-z0-9_-]+$"
    # Shape of personal (human) identities, one letter and six digits
    human_identity_pattern: str = r"^[A-Za-z]\d{6}$"

    # Service account used for every group operation
    ldap_user: str = ""
    ldap_password: str = ""

    # ---------- Flags ----------
    topic_creation_enabled: bool = True

    # Identities allowed to delete protected, orphaned internal topics
    superusers: Annotated[List[str], NoDecode] = Field(default_factory=list)

    # ---------- Logging ----------
    log_level: str = "INFO"

    @field_validator("superusers", mode="before")
    def _parse_superusers(cls, v):
        """Accept JSON array or comma-separated string; normalise to lower case."""
        if v is None:
            return []
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(s).strip().lower() for s in parsed if str(s).strip()]
            except ValueError:
                pass
            return [s.strip().lower() for s in v.split(",") if s.strip()]
        return [str(s).strip().lower() for s in v if str(s).strip()]

    # ---------- derived values ----------

    @property
    def auth_host(self) -> str:
        return self.ldap_auth_host or self.ldap_host

    @property
    def auth_port(self) -> int:
        return self.ldap_auth_port or self.ldap_port

    @property
    def group_in_group_base(self) -> str:
        return self.ldap_group_in_group_base or self.ldap_group_base

    def srv_user_dn(self) -> str:
        """DN of the service account binding for group operations."""
        return f"{self.ldap_user_attr_name}={self.ldap_user},{self.ldap_srv_user_base}"

    def user_dn(self, user: str) -> str:
        return f"{self.ldap_user_attr_name}={user},{self.ldap_auth_user_base}"

    def ldap_info_complete(self) -> bool:
        return all(
            (
                self.ldap_host,
                self.ldap_port,
                self.ldap_user_attr_name,
                self.ldap_auth_user_base,
                self.ldap_srv_user_base,
                self.ldap_group_base,
                self.ldap_group_attr_name,
                self.ldap_grp_member_attr_name,
                self.ldap_user,
                self.ldap_password,
            )
        )

    def kafka_security_complete(self) -> bool:
        if self.security_protocol.startswith("SASL"):
            return bool(self.sasl_mechanism and self.sasl_plain_username and self.sasl_plain_password)
        return True
