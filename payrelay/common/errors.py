"""Relay error taxonomy and the shared JSON error envelope.

Every failure leaving the app is rendered as `{"error": <message>, "kind": <kind>}`
with the status code carried by the error class.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from payrelay.common.logging import logger, request_id_ctx

HTTP_ERROR_KINDS = {404: "not_found", 405: "method_not_allowed"}


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    error: str
    kind: str


class RelayError(Exception):
    """Base class for failures the relay reports to its callers."""

    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=self.message, kind=self.kind)


class UpstreamError(RelayError):
    """The processor answered with a non-success status."""

    kind = "upstream_error"

    def __init__(self, message: str, upstream_status: int, upstream_body: str = "") -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body


class TransportError(RelayError):
    """The processor could not be reached."""

    kind = "transport_error"


class NotFoundError(RelayError):
    kind = "not_found"
    status_code = 404


def _envelope(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    if isinstance(exc, UpstreamError):
        logger.error(
            "%s %s failed kind=%s upstream_status=%s message=%s body=%s",
            request.method,
            request.url.path,
            exc.kind,
            exc.upstream_status,
            exc.message,
            exc.upstream_body,
        )
    else:
        logger.error("%s %s failed kind=%s message=%s", request.method, request.url.path, exc.kind, exc.message)
    return _envelope(exc.status_code, exc.to_response())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(part) for part in err["loc"][1:]) for err in exc.errors()})
    message = f"invalid request body: {', '.join(fields) or 'malformed'}"
    logger.warning("%s %s rejected: %s", request.method, request.url.path, message)
    return _envelope(422, ErrorResponse(error=message, kind="validation_error"))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = HTTP_ERROR_KINDS.get(exc.status_code, "http_error")
    logger.warning("%s %s rejected status=%s", request.method, request.url.path, exc.status_code)
    response = _envelope(exc.status_code, ErrorResponse(error=str(exc.detail), kind=kind))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s crashed: %s", request.method, request.url.path, exc)
    response = _envelope(500, ErrorResponse(error="internal server error", kind="internal_error"))
    # Runs outside the request middleware, so the request id header is added here.
    response.headers["x-request-id"] = request_id_ctx.get() or request.headers.get("x-correlation-id", "")
    return response


def install_error_handlers(app: FastAPI) -> None:
    """Map every failure to the shared envelope."""

    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
