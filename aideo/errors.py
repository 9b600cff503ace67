from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any

import httpx
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError

DEFAULT_INTERNAL_MESSAGE = "Internal server error"


class AideoError(Exception):
    """Base of every error that aborts a chat invocation or a command.

    Carries a machine-readable ``code`` and a human ``message``; the HTTP
    layer renders both through :func:`error_from_exception`.
    """

    code = "E_INTERNAL"
    status_code = 500
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.cause = cause


class MissingApiKeyError(AideoError):
    code = "E_MISSING_API_KEY"
    status_code = 400

    def __init__(self) -> None:
        super().__init__("API key is not configured.", cause="missing_api_key")


class MissingBaseUrlError(AideoError):
    code = "E_MISSING_BASE_URL"
    status_code = 400

    def __init__(self) -> None:
        super().__init__("API base URL is not configured.", cause="missing_base_url")


class TransportError(AideoError):
    code = "E_TRANSPORT"
    status_code = 503
    retryable = True


class BackendError(AideoError):
    code = "E_BACKEND"
    status_code = 502


class ProtocolViolationError(AideoError):
    code = "E_PROTOCOL"
    status_code = 502


class UnknownFunctionError(AideoError):
    code = "E_UNKNOWN_FUNCTION"
    status_code = 422

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown function: {name}", details={"function_name": name})
        self.name = name


class InvalidArgumentError(AideoError):
    code = "E_INVALID_ARGUMENT"
    status_code = 422


class TodoNotFoundError(AideoError):
    code = "E_TODO_NOT_FOUND"
    status_code = 404

    def __init__(self, key: str) -> None:
        super().__init__(f"Todo not found: {key}", details={"key": key})
        self.key = key


class TooManyFunctionCallsError(AideoError):
    code = "E_TOO_MANY_FUNCTION_CALLS"
    status_code = 500

    def __init__(self, max_iterations: int) -> None:
        super().__init__(
            f"Too many function calls: no final answer after {max_iterations} requests.",
            details={"max_iterations": max_iterations},
        )


def build_aideo_error(
    *,
    code: str,
    message: str,
    trace_id: str,
    retryable: bool,
    details: dict[str, Any] | None = None,
    cause: str | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "code": code,
        "message": message,
        "trace_id": trace_id,
        "retryable": retryable,
        "ts": datetime.now(tz=timezone.utc).isoformat(),
    }
    if details:
        payload["details"] = details
    if cause:
        payload["cause"] = cause
    return payload


def error_response(
    *,
    code: str,
    message: str,
    trace_id: str,
    retryable: bool,
    details: dict[str, Any] | None = None,
    cause: str | None = None,
) -> dict[str, Any]:
    return {
        "error": build_aideo_error(
            code=code,
            message=message,
            trace_id=trace_id,
            retryable=retryable,
            details=details,
            cause=cause,
        )
    }


def error_from_exception(exc: Exception, trace_id: str) -> tuple[int, dict[str, Any]]:
    if isinstance(exc, AideoError):
        return (
            exc.status_code,
            error_response(
                code=exc.code,
                message=exc.message,
                trace_id=trace_id,
                retryable=exc.retryable,
                details=exc.details,
                cause=exc.cause,
            ),
        )

    if isinstance(exc, RequestValidationError):
        return (
            422,
            error_response(
                code="E_SCHEMA_INVALID",
                message="Request validation failed.",
                trace_id=trace_id,
                retryable=False,
                details={"errors": exc.errors()},
                cause="request_validation_error",
            ),
        )

    if isinstance(exc, HTTPException):
        retryable = exc.status_code >= 500
        return (
            exc.status_code,
            error_response(
                code="E_INTERNAL" if retryable else "E_SCHEMA_INVALID",
                message=str(exc.detail),
                trace_id=trace_id,
                retryable=retryable,
                cause="http_exception",
            ),
        )

    if isinstance(exc, httpx.TimeoutException):
        return (
            503,
            error_response(
                code="E_TRANSPORT",
                message="Backend request timed out.",
                trace_id=trace_id,
                retryable=True,
                cause="network_timeout",
            ),
        )

    if isinstance(exc, httpx.HTTPError):
        return (
            503,
            error_response(
                code="E_TRANSPORT",
                message="Backend request failed.",
                trace_id=trace_id,
                retryable=True,
                cause=exc.__class__.__name__,
            ),
        )

    if isinstance(exc, sqlite3.Error):
        return (
            500,
            error_response(
                code="E_DATABASE",
                message="Database operation failed.",
                trace_id=trace_id,
                retryable=False,
                cause=exc.__class__.__name__,
            ),
        )

    if isinstance(exc, (KeyError, ValueError, TypeError)):
        return (
            400,
            error_response(
                code="E_SCHEMA_INVALID",
                message="Invalid request or payload shape.",
                trace_id=trace_id,
                retryable=False,
                cause=exc.__class__.__name__,
            ),
        )

    return (
        500,
        error_response(
            code="E_INTERNAL",
            message=DEFAULT_INTERNAL_MESSAGE,
            trace_id=trace_id,
            retryable=False,
            cause=exc.__class__.__name__,
        ),
    )
