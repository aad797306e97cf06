"""Mapping of :class:`Failure` kinds to HTTP responses."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from team_presence.domain.errors import ErrorKind, Failure, FieldError, Ok, Result

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_TRANSITION: 400,
    ErrorKind.EMPTY_UPDATE: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.UNAVAILABLE: 503,
    ErrorKind.INTERNAL: 500,
}


class ApiError(Exception):
    """Raised by handlers to short-circuit with a failure response."""

    def __init__(self, failure: Failure) -> None:
        super().__init__(failure.message)
        self.failure = failure


def unwrap(result: Result[T]) -> T:
    if isinstance(result, Ok):
        return result.value
    raise ApiError(result)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _expose_details(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return settings is not None and not settings.is_production


def failure_response(failure: Failure, request: Request) -> JSONResponse:
    status = STATUS_CODES[failure.kind]
    body: dict[str, Any] = {"error": failure.message, "kind": failure.kind.value}
    if failure.details:
        body["details"] = [{"field": d.field, "message": d.message} for d in failure.details]
    if failure.kind in (ErrorKind.INTERNAL, ErrorKind.UNAVAILABLE):
        body["requestId"] = _request_id(request)
        logger.error(
            "Request failed",
            extra={"kind": failure.kind.value, "status": status, "cause": failure.cause},
        )
        if failure.cause and _expose_details(request):
            body["cause"] = failure.cause
    headers = {"WWW-Authenticate": "Bearer"} if status == 401 else None
    return JSONResponse(status_code=status, content=body, headers=headers)


def _field_path(loc: tuple[Any, ...]) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def validation_failure(exc: RequestValidationError) -> Failure:
    details = tuple(
        FieldError(_field_path(tuple(e.get("loc", ()))), e.get("msg", "invalid"))
        for e in exc.errors()
    )
    return Failure(ErrorKind.VALIDATION, "validation failed", details)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError) -> JSONResponse:
        return failure_response(exc.failure, request)

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return failure_response(validation_failure(exc), request)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        failure = Failure(ErrorKind.INTERNAL, "internal error", cause=str(exc))
        return failure_response(failure, request)
