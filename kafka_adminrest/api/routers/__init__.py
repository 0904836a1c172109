"""Aggregate all REST sub-routers into `api_router` for fast import."""

from fastapi import APIRouter

from .acls import router as acls_router
from .brokers import router as brokers_router
from .consumer_groups import router as consumer_groups_router
from .groups import router as groups_router
from .health import router as health_router
from .oneshot import router as oneshot_router
from .streams import router as streams_router
from .topics import router as topics_router

api_router = APIRouter()
api_router.include_router(topics_router, prefix="/topics", tags=["topics"])
api_router.include_router(oneshot_router, prefix="/oneshot", tags=["oneshot"])
api_router.include_router(streams_router, prefix="/streams", tags=["streams"])
api_router.include_router(acls_router, prefix="/acls", tags=["acls"])
api_router.include_router(brokers_router, prefix="/brokers", tags=["brokers"])
api_router.include_router(consumer_groups_router, prefix="/consumergroups", tags=["consumergroups"])
api_router.include_router(groups_router, prefix="/groups", tags=["groups"])

__all__ = ["api_router", "health_router"]
