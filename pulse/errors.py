from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PulseError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PulseError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid input"


class AuthorizationError(PulseError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not allowed"


class NotFoundError(PulseError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Record not found"


class ConflictError(PulseError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Record already exists"


class BackendError(PulseError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Failed to save or load records"


class PartialFailure(PulseError):
    """A follow-up write failed after the primary write succeeded.

    Logged by the caller and never surfaced as an HTTP error.
    """

    default_message = "Follow-up write failed"


async def _pulse_error_handler(request: Request, exc: PulseError) -> JSONResponse:
    if isinstance(exc, BackendError):
        logger.error("backend error on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PulseError, _pulse_error_handler)
