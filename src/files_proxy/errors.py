"""Exception hierarchy and the FastAPI handlers that turn it into responses."""

import logging
from typing import Optional

import pydantic
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR_MESSAGE = "Internal server error"


class FileProxyError(Exception):
    """Base exception for all files-proxy errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidUploadError(FileProxyError):
    """Raised when an upload request carries no usable file part."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidIdentifierError(FileProxyError):
    """Raised when an identifier cannot name a single file in the storage directory."""

    status_code = status.HTTP_400_BAD_REQUEST


class ObjectNotFoundError(FileProxyError):
    """Raised when an identifier is unknown to both the local and the remote tier."""

    status_code = status.HTTP_404_NOT_FOUND


class RemoteStorageError(FileProxyError):
    """Raised when the object store is unreachable, unauthorized, or misbehaves."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


async def handle_file_proxy_errors(request: Request, exc: FileProxyError) -> JSONResponse:
    """Map files-proxy exceptions to JSON error responses.

    Client errors echo their message. Server errors only expose a generic
    message; the underlying cause goes to the log.
    """
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        cause = getattr(exc, "cause", None)
        logger.error(
            f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}"
            + (f" (cause: {cause!r})" if cause else "")
        )
        detail = GENERIC_SERVER_ERROR_MESSAGE
    else:
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        detail = exc.message

    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Validation errors that escape request parsing are bugs on our side."""
    logger.error(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": GENERIC_SERVER_ERROR_MESSAGE},
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Catch any unhandled exception and report a generic 500."""
    try:
        return await call_next(request)
    except Exception:  # pylint: disable=broad-except
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": GENERIC_SERVER_ERROR_MESSAGE},
        )
