"""Batch topic provisioning."""
from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from kafka_adminrest.api.dependencies import get_oneshot_provisioner, require_user
from kafka_adminrest.core.exceptions import ProblemDetailException
from kafka_adminrest.domain.models.oneshot import OneshotCreationRequest, OneshotResponse, OneshotStatus
from kafka_adminrest.domain.services.oneshot_service import OneshotProvisioner

logger = logging.getLogger(__name__)

router = APIRouter()


@router.put(
    "",
    response_model=OneshotResponse,
    responses={
        400: {"model": OneshotResponse},
        401: {"model": OneshotResponse},
        403: {"model": OneshotResponse},
        503: {"model": OneshotResponse},
    },
)
def oneshot(
    body: OneshotCreationRequest,
    user: str = Depends(require_user),
    svc: OneshotProvisioner = Depends(get_oneshot_provisioner),
):
    """Create or reconcile topics with their complete role group membership.

    The requester is always added as manager of every topic in the request.
    Errors are answered with the same envelope, carrying `status: ERROR`.
    """
    request_id = str(uuid4())
    try:
        return svc.provision(user, body, request_id)
    except ProblemDetailException as exc:
        logger.error("Oneshot request %s failed - %s", request_id, exc)
        err = OneshotResponse(status=OneshotStatus.ERROR, message=str(exc), requestId=request_id)
        return JSONResponse(status_code=exc.status_code, content=err.model_dump(mode="json"))
