"""Prefix ACLs for Kafka Streams applications."""
from __future__ import annotations

import logging

from kafka_adminrest.core.exceptions import NotAuthorizedError, ValidationFailedError
from kafka_adminrest.core.metrics import record
from kafka_adminrest.domain.models.acl import stream_acls
from kafka_adminrest.domain.models.oneshot import OneshotStatus, StreamAppRequest, StreamAppResponse
from kafka_adminrest.domain.services.access_control import AccessControl
from kafka_adminrest.infra.kafka.admin import KafkaAdminFacade
from kafka_adminrest.infra.ldap.directory import Directory

logger = logging.getLogger(__name__)


class StreamAclService:
    """Grants a user ALL on every topic and consumer group named by an app prefix."""

    def __init__(self, directory: Directory, broker: KafkaAdminFacade, access: AccessControl) -> None:
        self._directory = directory
        self._broker = broker
        self._access = access

    def grant(self, requester: str, request: StreamAppRequest) -> StreamAppResponse:
        app, user = request.applicationName, request.user
        logger.info("Stream app request by %s - %s for %s", requester, app, user)

        with self._directory.connect() as conn:
            if not self._access.user_exists(conn, requester):
                raise NotAuthorizedError(
                    f"Authenticated user {requester} doesn't exist in the directory"
                )

        # a prefix matching existing topics would widen access to them
        colliding = [t for t in self._broker.list_topics() if t.startswith(app)]
        if colliding:
            raise ValidationFailedError(
                f"Application name {app} is a prefix of existing topics {colliding}"
            )

        self._broker.create_acls(stream_acls(app, user))
        logger.info("Prefix ACLs created for %s on %s", user, app)
        record("stream_acls", True)
        return StreamAppResponse(
            status=OneshotStatus.OK,
            message=f"Created prefixed ACLs for {user} on topics and groups starting with {app}",
        )
