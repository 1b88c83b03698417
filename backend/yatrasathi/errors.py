"""Error types raised by the console and their JSON error envelope.

Errors fall in two groups: failures of the request itself (bad input,
unknown module, rejected credentials) and failures talking to the
YatraSathi backend (ApiError, ConnectivityError). Both carry a stable
``code`` that the frontend switches on.
"""
from typing import Any

from fastapi import status


class AppError(Exception):
    code: str = "APP_ERROR"
    message: str = "Application error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    details: Any | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ):
        self.message = message if message is not None else type(self).message
        self.code = code or type(self).code
        self.status_code = status_code or type(self).status_code
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    message = "Validation error"


class NotFoundError(AppError):
    code = "NOT_FOUND"
    message = "Resource not found"
    status_code = status.HTTP_404_NOT_FOUND


class AuthError(AppError):
    code = "AUTH_ERROR"
    message = "Authentication failed"
    status_code = status.HTTP_401_UNAUTHORIZED


class AccessDeniedError(AppError):
    code = "ACCESS_DENIED"
    message = "You do not have permission to perform this action"
    status_code = status.HTTP_403_FORBIDDEN


class InternalError(AppError):
    code = "INTERNAL_ERROR"
    message = "Internal server error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ApiError(AppError):
    """The backend answered, but with a failure status or a failed envelope."""

    code = "BACKEND_ERROR"
    message = "Backend request failed"
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        message: str | None = None,
        *,
        upstream_status: int | None = None,
        payload: Any | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.upstream_status = upstream_status
        self.payload = payload

    @property
    def is_auth_failure(self) -> bool:
        """401/403 from the backend: the token is no longer accepted."""
        return self.upstream_status in (
            status.HTTP_401_UNAUTHORIZED,
            status.HTTP_403_FORBIDDEN,
        )


class ConnectivityError(AppError):
    """The request never reached the backend or did not complete in time."""

    code = "CONNECTION_ERROR"
    message = "Unable to connect to the server"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str | None = None, *, timeout: bool = False, **kwargs: Any):
        if timeout and message is None:
            message = "The request took too long to complete"
        super().__init__(message, **kwargs)
        self.timeout = timeout


_KNOWN_ERRORS: tuple[type[AppError], ...] = (
    ValidationError,
    AuthError,
    AccessDeniedError,
    NotFoundError,
    ApiError,
    ConnectivityError,
)

# Framework-raised HTTP errors reuse the code and wording of our own
ERROR_BY_STATUS: dict[int, type[AppError]] = {error.status_code: error for error in _KNOWN_ERRORS}
ERROR_BY_STATUS[status.HTTP_422_UNPROCESSABLE_ENTITY] = ValidationError


def error_payload(
    code: str,
    message: str,
    details: Any | None = None,
) -> dict[str, Any]:
    return {"error": {"code": code, "message": message, "details": details}}


def error_for_status(status_code: int) -> tuple[str, str]:
    """(code, safe message) for an HTTP status raised outside AppError."""
    error = ERROR_BY_STATUS.get(status_code)
    if error is not None:
        return error.code, error.message
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return InternalError.code, InternalError.message
    return "REQUEST_FAILED", "Request failed"
