"""Kafka Admin façade built on kafka-python."""
from __future__ import annotations

import functools
import logging
import time
from typing import Dict, Iterable, List, Optional

from kafka import KafkaAdminClient, KafkaConsumer, TopicPartition  # kafka-python
from kafka.admin import (
    ACL,
    ACLFilter,
    ACLOperation,
    ACLPermissionType,
    ACLResourcePatternType,
    ConfigResource,
    ConfigResourceType,
    NewTopic,
    ResourcePattern,
    ResourcePatternFilter,
)
from kafka.admin import ResourceType as KafkaResourceType
from kafka.errors import KafkaError, KafkaTimeoutError, NoBrokersAvailable, NodeNotReadyError

from kafka_adminrest.core.config import Settings
from kafka_adminrest.core.exceptions import BrokerUnavailableError
from kafka_adminrest.domain.models.acl import (
    AclBinding,
    AclOperation,
    PatternType,
    PermissionType,
    ResourceType,
)
from kafka_adminrest.domain.models.cluster import Broker
from kafka_adminrest.domain.models.consumer_group import (
    CommittedOffset,
    ConsumerGroupDescription,
    ConsumerGroupMember,
    MemberAssignment,
    PartitionOffsets,
)
from kafka_adminrest.domain.models.topic import PartitionInfo

logger = logging.getLogger(__name__)

_RETRYABLE = (KafkaTimeoutError, NoBrokersAvailable, NodeNotReadyError)

# DescribeConfigs v1+ config_source value for per-topic overrides
_DYNAMIC_TOPIC_CONFIG = 1


def _translate_errors(fn):
    """Surface every client failure as BrokerUnavailableError."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except KafkaError as exc:
            logger.error("Kafka %s failed - %s", fn.__name__, exc)
            raise BrokerUnavailableError(f"Kafka {fn.__name__} failed - {exc}") from exc

    return wrapper


def _enum_by_name(enum_cls, name: str, default):
    try:
        return enum_cls[name]
    except KeyError:
        return default


def _to_kafka_acl(b: AclBinding) -> ACL:
    return ACL(
        principal=b.principal,
        host=b.host,
        operation=ACLOperation[b.operation.value],
        permission_type=ACLPermissionType[b.permissionType.value],
        resource_pattern=ResourcePattern(
            KafkaResourceType[b.resourceType.value],
            b.resourceName,
            ACLResourcePatternType[b.patternType.value],
        ),
    )


def _from_kafka_acl(acl: ACL) -> AclBinding:
    pattern = acl.resource_pattern
    return AclBinding(
        resourceType=_enum_by_name(ResourceType, pattern.resource_type.name, ResourceType.UNKNOWN),
        resourceName=pattern.resource_name,
        patternType=_enum_by_name(PatternType, pattern.pattern_type.name, PatternType.UNKNOWN),
        principal=acl.principal,
        host=acl.host,
        operation=_enum_by_name(AclOperation, acl.operation.name, AclOperation.UNKNOWN),
        permissionType=_enum_by_name(
            PermissionType, acl.permission_type.name, PermissionType.UNKNOWN
        ),
    )


def _topic_acl_filter(topic_name: Optional[str]) -> ACLFilter:
    if topic_name is None:
        pattern = ResourcePatternFilter(KafkaResourceType.ANY, None, ACLResourcePatternType.ANY)
    else:
        pattern = ResourcePatternFilter(
            KafkaResourceType.TOPIC, topic_name, ACLResourcePatternType.LITERAL
        )
    return ACLFilter(
        principal=None,
        host=None,
        operation=ACLOperation.ANY,
        permission_type=ACLPermissionType.ANY,
        resource_pattern=pattern,
    )


def _config_entries(responses, dynamic_only: bool = False) -> Dict[str, str]:
    """Flatten DescribeConfigs responses into ``{name: value}``."""
    out: Dict[str, str] = {}
    for response in responses:
        for resource in response.resources:
            error_code, error_message = resource[0], resource[1]
            if error_code:
                raise BrokerUnavailableError(f"describe configs failed - {error_message}")
            for entry in resource[4]:
                name, value, source = entry[0], entry[1], entry[3]
                if dynamic_only:
                    # v0 carries is_default, v1+ carries config_source
                    dynamic = (not source) if isinstance(source, bool) else source == _DYNAMIC_TOPIC_CONFIG
                    if not dynamic:
                        continue
                if value is not None:
                    out[name] = value
    return out


class KafkaAdminFacade:
    """
    Lazy, retrying adapter around the kafka-python admin API.
    Avoids network work at construction time; every call is bounded by
    `kafka_timeout_ms`.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._client: KafkaAdminClient | None = None

    # ---------- bootstrap common kwargs ----------
    def _common_kwargs(self) -> dict:
        s = self._settings
        kw = dict(
            bootstrap_servers=s.kafka_bootstrap,
            client_id=s.kafka_client_id,
            request_timeout_ms=s.kafka_timeout_ms,
            metadata_max_age_ms=s.metadata_max_age_ms,
            api_version_auto_timeout_ms=s.api_version_auto_timeout_ms,
            security_protocol=s.security_protocol,
        )
        if s.kafka_api_version:
            kw["api_version"] = tuple(int(p) for p in s.kafka_api_version.split("."))
        if s.security_protocol.startswith("SASL"):
            kw.update(
                sasl_mechanism=s.sasl_mechanism,
                sasl_plain_username=s.sasl_plain_username,
                sasl_plain_password=s.sasl_plain_password,
            )
        if s.security_protocol.endswith("SSL"):
            kw.update(ssl_cafile=s.ssl_cafile)
        return kw

    def _ensure_admin(self) -> KafkaAdminClient:
        if self._client is not None:
            return self._client

        last_exc: Exception | None = None
        for attempt in range(1, self._settings.admin_connect_max_tries + 1):
            try:
                self._client = KafkaAdminClient(**self._common_kwargs())
                logger.info("Kafka admin client connected to %s", self._settings.kafka_bootstrap)
                return self._client
            except _RETRYABLE as exc:
                last_exc = exc
                logger.warning("Kafka admin connect attempt %d failed - %s", attempt, exc)
                time.sleep(self._settings.admin_connect_backoff_sec * attempt)
        # give up
        raise BrokerUnavailableError(f"Failed to create Kafka admin client - {last_exc}")

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # ---------- Cluster / Brokers ----------

    @_translate_errors
    def describe_cluster(self) -> List[Broker]:
        meta = self._ensure_admin().describe_cluster()
        return [
            Broker(brokerId=b["node_id"], host=b["host"], port=b["port"], rack=b.get("rack"))
            for b in meta.get("brokers", [])
        ]

    @_translate_errors
    def broker_config(self, broker_id: int) -> Dict[str, str]:
        responses = self._ensure_admin().describe_configs(
            config_resources=[ConfigResource(ConfigResourceType.BROKER, str(broker_id))]
        )
        return _config_entries(responses)

    def default_replication_factor(self) -> int:
        """`default.replication.factor` of the first broker.

        Broker configuration is uniform within a cluster, so this keeps new
        topics consistent with the environment without hard-coding a value.
        """
        brokers = self.describe_cluster()
        if not brokers:
            raise BrokerUnavailableError("No brokers available in cluster")
        config = self.broker_config(brokers[0].brokerId)
        try:
            return int(config["default.replication.factor"])
        except (KeyError, ValueError) as exc:
            raise BrokerUnavailableError(
                "Could not get default.replication.factor from Kafka"
            ) from exc

    # ---------- Topics ----------

    @_translate_errors
    def list_topics(self) -> List[str]:
        return sorted(self._ensure_admin().list_topics())

    @_translate_errors
    def describe_topic(self, name: str) -> List[PartitionInfo]:
        described = self._ensure_admin().describe_topics([name])
        partitions = described[0].get("partitions", []) if described else []
        return [
            PartitionInfo(
                id=p["partition"],
                leader=p.get("leader"),
                replicas=list(p.get("replicas", [])),
                isr=list(p.get("isr", [])),
            )
            for p in sorted(partitions, key=lambda p: p["partition"])
        ]

    @_translate_errors
    def topic_config(self, name: str) -> Dict[str, str]:
        responses = self._ensure_admin().describe_configs(
            config_resources=[ConfigResource(ConfigResourceType.TOPIC, name)]
        )
        return _config_entries(responses)

    @_translate_errors
    def create_topic(
        self,
        name: str,
        partitions: int,
        replication_factor: int,
        configs: Optional[Dict[str, str]] = None,
    ) -> None:
        new_topic = NewTopic(
            name=name,
            num_partitions=partitions,
            replication_factor=replication_factor,
            topic_configs=configs or {},
        )
        self._ensure_admin().create_topics(
            [new_topic], timeout_ms=self._settings.kafka_timeout_ms
        )

    @_translate_errors
    def delete_topic(self, name: str) -> None:
        self._ensure_admin().delete_topics([name], timeout_ms=self._settings.kafka_timeout_ms)

    @_translate_errors
    def alter_topic_config(self, name: str, entries: Dict[str, str]) -> None:
        """Set *entries* while keeping the topic's other overrides.

        AlterConfigs replaces the whole dynamic configuration of a resource,
        so the current overrides are read first and merged.
        """
        admin = self._ensure_admin()
        current = _config_entries(
            admin.describe_configs(config_resources=[ConfigResource(ConfigResourceType.TOPIC, name)]),
            dynamic_only=True,
        )
        merged = {**current, **entries}
        response = admin.alter_configs(
            [ConfigResource(ConfigResourceType.TOPIC, name, configs=merged)]
        )
        for resource in response.resources:
            if resource[0]:
                raise BrokerUnavailableError(f"alter configs for {name} failed - {resource[1]}")

    # ---------- ACLs ----------

    @_translate_errors
    def describe_acls(self, topic_name: Optional[str] = None) -> List[AclBinding]:
        acls, _ = self._ensure_admin().describe_acls(_topic_acl_filter(topic_name))
        return [_from_kafka_acl(a) for a in acls]

    @_translate_errors
    def create_acls(self, bindings: List[AclBinding]) -> None:
        if not bindings:
            return
        result = self._ensure_admin().create_acls([_to_kafka_acl(b) for b in bindings])
        failed = result.get("failed", [])
        if failed:
            raise BrokerUnavailableError(
                "ACL creation failed - " + ", ".join(f"{acl}: {err}" for acl, err in failed)
            )

    @_translate_errors
    def delete_topic_acls(self, topic_name: str) -> List[AclBinding]:
        """Delete every ACL bound to the literal topic resource; return what was deleted."""
        deleted: List[AclBinding] = []
        for _, matching, filter_error in self._ensure_admin().delete_acls(
            [_topic_acl_filter(topic_name)]
        ):
            if getattr(filter_error, "errno", 0):
                raise BrokerUnavailableError(f"ACL deletion failed - {filter_error}")
            deleted.extend(_from_kafka_acl(acl) for acl, _err in matching)
        return deleted

    # ---------- Offsets / Consumer groups ----------

    def _consumer(self, **kw) -> KafkaConsumer:
        return KafkaConsumer(**{**self._common_kwargs(), **kw})

    def _partitions(self, topic: str) -> List[TopicPartition]:
        described = self._ensure_admin().describe_topics([topic])
        partitions = described[0].get("partitions", []) if described else []
        return sorted(TopicPartition(topic, p["partition"]) for p in partitions)

    def _beginning_offsets(self, tps: Iterable[TopicPartition]) -> Dict[TopicPartition, int]:
        c = self._consumer()
        try:
            return c.beginning_offsets(list(tps))
        finally:
            c.close()

    def _end_offsets(self, tps: Iterable[TopicPartition]) -> Dict[TopicPartition, int]:
        c = self._consumer()
        try:
            return c.end_offsets(list(tps))
        finally:
            c.close()

    def _offsets_for_times(self, ts_map: Dict[TopicPartition, int]) -> Dict[TopicPartition, Optional[int]]:
        c = self._consumer()
        try:
            res = c.offsets_for_times(ts_map)
            return {tp: (res[tp].offset if res and res.get(tp) is not None else None) for tp in ts_map}
        finally:
            c.close()

    @_translate_errors
    def topic_offsets(self, topic: str) -> Dict[int, PartitionOffsets]:
        tps = self._partitions(topic)
        if not tps:
            return {}
        start = self._beginning_offsets(tps)
        end = self._end_offsets(tps)
        return {tp.partition: PartitionOffsets(earliest=start[tp], latest=end[tp]) for tp in tps}

    @_translate_errors
    def list_consumer_groups(self) -> List[str]:
        return sorted(group_id for group_id, _protocol_type in self._ensure_admin().list_consumer_groups())

    @_translate_errors
    def consumer_group_offsets(self, group_id: str) -> List[CommittedOffset]:
        offsets = self._ensure_admin().list_consumer_group_offsets(group_id)
        return [
            CommittedOffset(
                topicName=tp.topic, partition=tp.partition, offset=meta.offset, metadata=meta.metadata or ""
            )
            for tp, meta in sorted(offsets.items())
        ]

    @_translate_errors
    def describe_consumer_group(self, group_id: str) -> ConsumerGroupDescription:
        described = self._ensure_admin().describe_consumer_groups([group_id])
        if not described:
            return ConsumerGroupDescription(groupId=group_id)
        info = described[0]
        return ConsumerGroupDescription(
            groupId=info.group,
            state=info.state,
            protocolType=info.protocol_type,
            partitionAssignor=info.protocol,
            isSimpleConsumerGroup=not info.protocol_type,
            members=[
                ConsumerGroupMember(
                    memberId=m.member_id,
                    clientId=m.client_id,
                    host=m.client_host,
                    # decoded only for the "consumer" protocol type
                    assignment=[
                        MemberAssignment(topicName=topic, partitions=sorted(partitions))
                        for topic, partitions in getattr(m.member_assignment, "assignment", None) or []
                    ],
                )
                for m in info.members
            ],
        )

    def topic_consumer_groups(self, topic: str) -> Dict[str, List[CommittedOffset]]:
        """Committed offsets on *topic*, per group; groups without any are left out.

        One offset fetch per group in the cluster, so this is slow on busy clusters.
        """
        found: Dict[str, List[CommittedOffset]] = {}
        for group_id in self.list_consumer_groups():
            offsets = [o for o in self.consumer_group_offsets(group_id) if o.topicName == topic]
            if offsets:
                found[group_id] = offsets
        return found

    @_translate_errors
    def reset_consumer_group_offsets(
        self, group_id: str, topic: str, timestamp_ms: int, dry_run: bool = False
    ) -> List[CommittedOffset]:
        """Move *group_id* on every partition of *topic* to the first offset at or after *timestamp_ms*.

        Partitions without a record that late are left as they are. The group
        must have no active members for the commit to be accepted.
        """
        tps = self._partitions(topic)
        target = self._offsets_for_times({tp: timestamp_ms for tp in tps})
        desired = {tp: off for tp, off in target.items() if off is not None and off > -1}
        if dry_run or not desired:
            return [
                CommittedOffset(topicName=tp.topic, partition=tp.partition, offset=off)
                for tp, off in sorted(desired.items())
            ]

        c = self._consumer(group_id=group_id, enable_auto_commit=False, consumer_timeout_ms=1000)
        try:
            c.assign(list(desired))
            c.poll(timeout_ms=0)  # coordinator handshake before commit
            for tp, off in desired.items():
                c.seek(tp, off)
            c.commit()
        finally:
            c.close()
        logger.info("Offsets of %s on %s reset to %s", group_id, topic, desired)
        return [o for o in self.consumer_group_offsets(group_id) if o.topicName == topic]
