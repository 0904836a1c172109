import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kafka_adminrest.core.exceptions import ProblemDetail, ProblemDetailException

logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"


def _problem(status: int, title: str, detail: str) -> dict:
    return ProblemDetail(status=status, title=title, detail=detail).model_dump(mode="json")


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ProblemDetailException)
    async def problem_handler(_: Request, exc: ProblemDetailException):
        headers = {"WWW-Authenticate": "Basic"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.problem.model_dump(mode="json"),
            media_type=PROBLEM_JSON,
            headers=headers,
        )

    # Catch-all
    @app.exception_handler(Exception)
    async def unhandled(_: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=_problem(500, "Internal Server Error", str(exc)),
            media_type=PROBLEM_JSON,
        )
