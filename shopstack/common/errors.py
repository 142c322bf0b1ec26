"""
Service errors and their HTTP rendering.

Handlers raise ServiceError subclasses; one set of exception handlers turns
them into `{"error": message}` responses, marks the active span as failed
and logs the failure with its trace ids.
"""
import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

logger = structlog.get_logger(__name__)


class ServiceError(Exception):
    """Base exception for errors a handler reports to its caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(ServiceError):
    """Raised when a request is well-formed but can't be honoured."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(ServiceError):
    """Raised when a bearer token is missing, malformed or invalid."""

    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(ServiceError):
    """Raised when a keyed lookup finds nothing."""

    status_code = status.HTTP_404_NOT_FOUND


class UpstreamServiceError(ServiceError):
    """Raised when a sibling service is unreachable or answers with an error."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, service: str, upstream_status: int | None = None):
        super().__init__(message)
        self.service = service
        self.upstream_status = upstream_status


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    span = trace.get_current_span()
    span.record_exception(exc)
    if exc.status_code >= 500:
        span.set_status(Status(StatusCode.ERROR, exc.message))
        logger.error("service_error", error=exc.message, error_type=type(exc).__name__)
    else:
        logger.warning("request_rejected", error=exc.message, status_code=exc.status_code)

    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.
    """
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
