from __future__ import annotations

from fastapi import APIRouter, Depends

from kafka_adminrest.api.dependencies import get_broker
from kafka_adminrest.domain.models.acl import Acls
from kafka_adminrest.infra.kafka.admin import KafkaAdminFacade

router = APIRouter()


@router.get("", response_model=Acls)
def list_acls(admin: KafkaAdminFacade = Depends(get_broker)) -> Acls:
    """Every ACL known to the cluster."""
    return Acls(acls=admin.describe_acls())
