"""Broker snapshot endpoints – list brokers and per-broker configuration."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from kafka_adminrest.api.dependencies import get_broker
from kafka_adminrest.core.exceptions import NotFoundError
from kafka_adminrest.domain.models.cluster import BrokerConfig, Brokers
from kafka_adminrest.infra.kafka.admin import KafkaAdminFacade

router = APIRouter()


@router.get("", response_model=Brokers)
def list_brokers(admin: KafkaAdminFacade = Depends(get_broker)) -> Brokers:
    """Return the brokers currently in the cluster."""
    return Brokers(brokers=admin.describe_cluster())


@router.get("/{broker_id}", response_model=BrokerConfig)
def broker_config(
    broker_id: int = Path(..., description="Broker ID"),
    admin: KafkaAdminFacade = Depends(get_broker),
) -> BrokerConfig:
    """Return the configuration of broker *broker_id*."""
    if broker_id not in {b.brokerId for b in admin.describe_cluster()}:
        raise NotFoundError(f"Broker {broker_id} not found")
    return BrokerConfig(brokerId=broker_id, config=admin.broker_config(broker_id))
