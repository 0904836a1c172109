# server.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from kafka_adminrest.api.routers import api_router, health_router
from kafka_adminrest.core.config import Settings
from kafka_adminrest.core.errors import install_exception_handlers
from kafka_adminrest.core.log import setup_logging
from kafka_adminrest.infra.kafka.admin import KafkaAdminFacade
from kafka_adminrest.infra.ldap.directory import Directory, LdapDirectory

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    directory: Optional[Directory] = None,
    broker: Optional[KafkaAdminFacade] = None,
) -> FastAPI:
    """Build the application; adapters can be injected (tests use fakes)."""
    settings = settings or Settings()
    setup_logging(settings.log_level)

    # Lifespan handler replaces @app.on_event("startup"/"shutdown")
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "kafka-adminrest starting, kafka %s, ldap %s:%s",
            settings.kafka_bootstrap,
            settings.ldap_host,
            settings.ldap_port,
        )
        if not settings.ldap_info_complete():
            logger.warning("Incomplete LDAP configuration, group operations will fail")
        try:
            yield
        finally:
            app.state.broker.close()

    app = FastAPI(
        title="Kafka Admin REST",
        version="1.0.0",
        lifespan=lifespan,
        # Put OpenAPI/docs under /api/v1 for consistency with the REST prefix
        openapi_url="/api/v1/openapi.json",
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
    )
    app.state.settings = settings
    app.state.directory = directory or LdapDirectory(settings)
    app.state.broker = broker or KafkaAdminFacade(settings)

    install_exception_handlers(app)

    app.include_router(api_router, prefix="/api/v1")
    # health checks and metrics live at the root (platform convention)
    app.include_router(health_router, prefix="")
    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:create_app", factory=True, host="0.0.0.0", port=8080)
