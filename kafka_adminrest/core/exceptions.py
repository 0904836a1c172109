"""RFC 7807 *Problem Details* support and the service error taxonomy."""
from __future__ import annotations

from typing import Optional
from uuid import uuid4

from fastapi import status
from pydantic import BaseModel, ConfigDict, Field


class ProblemDetail(BaseModel):
    """Data model that serialises to RFC 7807 JSON.

    Attributes
    ----------
    type : str
        A URI reference that identifies the problem type.
    title : str
        A short human-readable summary of the problem type.
    status : int
        The HTTP status code.
    detail : str | None
        A human-readable explanation specific to this occurrence.
    code : str | None
        Machine-readable reason, e.g. an access decision.
    instance : str
        A URI reference that identifies the specific occurrence.
    """

    model_config = ConfigDict(json_schema_extra={"required": ["type", "title", "status"]})

    type: str = Field(..., examples=["/validation-error"])
    title: str
    status: int = Field(..., ge=400, le=599)
    detail: Optional[str] = None
    code: Optional[str] = None
    instance: str = Field(default_factory=lambda: f"urn:uuid:{uuid4()}")


class ProblemDetailException(Exception):
    """Raise inside services/routers to trigger a 7807 response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    title: str = "Internal Server Error"
    type_: str = "about:blank"

    def __init__(self, detail: Optional[str] = None, *, code: Optional[str] = None) -> None:
        super().__init__(detail or self.title)
        self.detail = detail
        self.code = code

    @property
    def problem(self) -> ProblemDetail:
        return ProblemDetail(
            status=self.status_code,
            title=self.title,
            type=self.type_,
            detail=self.detail,
            code=self.code,
        )


class ValidationFailedError(ProblemDetailException):
    """Request rejected before any external call."""

    status_code = status.HTTP_400_BAD_REQUEST
    title = "Bad Request"
    type_ = "/validation-error"


class NotAuthorizedError(ProblemDetailException):
    status_code = status.HTTP_401_UNAUTHORIZED
    title = "Unauthorized"
    type_ = "/not-authorized"


class AccessDeniedError(ProblemDetailException):
    status_code = status.HTTP_403_FORBIDDEN
    title = "Forbidden"
    type_ = "/access-denied"


class NotFoundError(ProblemDetailException):
    status_code = status.HTTP_404_NOT_FOUND
    title = "Not Found"
    type_ = "/not-found"


class DependencyUnavailableError(ProblemDetailException):
    """Directory or broker unreachable or timed out; callers may retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    title = "Service Unavailable"
    type_ = "/dependency-unavailable"


class DirectoryUnavailableError(DependencyUnavailableError):
    type_ = "/ldap-unavailable"


class BrokerUnavailableError(DependencyUnavailableError):
    type_ = "/kafka-unavailable"
