from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from kafka_adminrest.api.dependencies import get_stream_service, require_user
from kafka_adminrest.core.exceptions import ProblemDetailException
from kafka_adminrest.domain.models.oneshot import OneshotStatus, StreamAppRequest, StreamAppResponse
from kafka_adminrest.domain.services.stream_service import StreamAclService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=StreamAppResponse,
    responses={
        400: {"model": StreamAppResponse},
        401: {"model": StreamAppResponse},
        503: {"model": StreamAppResponse},
    },
)
def create_stream_acls(
    body: StreamAppRequest,
    user: str = Depends(require_user),
    svc: StreamAclService = Depends(get_stream_service),
):
    """Grant `user` ALL on topics and consumer groups prefixed by `applicationName`.

    Missing credentials are refused before this handler runs and keep the
    problem+json shape; everything else is answered with `status: ERROR`.
    """
    try:
        return svc.grant(user, body)
    except ProblemDetailException as exc:
        logger.error("Stream app request for %s failed - %s", body.applicationName, exc)
        err = StreamAppResponse(status=OneshotStatus.ERROR, message=str(exc))
        return JSONResponse(status_code=exc.status_code, content=err.model_dump(mode="json"))
