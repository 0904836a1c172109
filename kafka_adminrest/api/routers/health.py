"""Liveness, readiness and Prometheus scrape endpoints (outside /api/v1)."""
from fastapi import APIRouter, Depends, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from kafka_adminrest.api.dependencies import get_settings
from kafka_adminrest.core.config import Settings

router = APIRouter()


@router.get("/isalive", include_in_schema=False)
def is_alive() -> Response:
    return Response("is alive", media_type="text/plain")


@router.get("/isready", include_in_schema=False)
def is_ready(settings: Settings = Depends(get_settings)) -> Response:
    if settings.ldap_info_complete() and settings.kafka_security_complete():
        return Response("is ready", media_type="text/plain")
    return Response(
        "incomplete configuration",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        media_type="text/plain",
    )


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
