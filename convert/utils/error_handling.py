"""
Centralized error handling for the jfif2jpg proxy.

Every failure the proxy reports goes through create_error_response so the
browser always receives the same JSON shape:

    {"error": <message>, "code": <ErrorCode>, "status_code": ..., "timestamp": ...,
     "severity": ..., "details": ...}
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

MAX_DETAILS_LENGTH = 1000


class ErrorCode(str, Enum):
    """Error kinds surfaced by the proxy."""

    # Request errors
    MISSING_FILE = "MISSING_FILE"
    INVALID_FILE = "INVALID_FILE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"

    # Upstream errors
    FORBIDDEN = "FORBIDDEN"
    INVALID_UPSTREAM_RESPONSE = "INVALID_UPSTREAM_RESPONSE"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorSeverity(str, Enum):
    """Error severity levels for logging and response handling."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


ERROR_STATUS_MAP: Dict[ErrorCode, int] = {
    ErrorCode.MISSING_FILE: 400,
    ErrorCode.INVALID_FILE: 400,
    ErrorCode.FILE_TOO_LARGE: 413,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.INVALID_UPSTREAM_RESPONSE: 502,
    ErrorCode.UPSTREAM_ERROR: 502,
    ErrorCode.INTERNAL_ERROR: 500,
}

ERROR_MESSAGE_MAP: Dict[ErrorCode, str] = {
    ErrorCode.MISSING_FILE: "No file provided",
    ErrorCode.INVALID_FILE: "Invalid file",
    ErrorCode.FILE_TOO_LARGE: "File too large",
    ErrorCode.FORBIDDEN: "Access denied",
    ErrorCode.INVALID_UPSTREAM_RESPONSE: "Invalid response format",
    ErrorCode.UPSTREAM_ERROR: "Conversion failed",
    ErrorCode.INTERNAL_ERROR: "Internal server error",
}

ERROR_SEVERITY_MAP: Dict[ErrorCode, ErrorSeverity] = {
    ErrorCode.MISSING_FILE: ErrorSeverity.LOW,
    ErrorCode.INVALID_FILE: ErrorSeverity.LOW,
    ErrorCode.FILE_TOO_LARGE: ErrorSeverity.LOW,
    ErrorCode.FORBIDDEN: ErrorSeverity.HIGH,
    ErrorCode.INVALID_UPSTREAM_RESPONSE: ErrorSeverity.HIGH,
    ErrorCode.UPSTREAM_ERROR: ErrorSeverity.MEDIUM,
    ErrorCode.INTERNAL_ERROR: ErrorSeverity.CRITICAL,
}


def _log_error(severity: ErrorSeverity, message: str) -> None:
    if severity == ErrorSeverity.CRITICAL:
        logger.critical(message)
    elif severity == ErrorSeverity.HIGH:
        logger.error(message)
    elif severity == ErrorSeverity.MEDIUM:
        logger.warning(message)
    else:
        logger.info(message)


def create_error_response(
    error_code: ErrorCode,
    details: Optional[Any] = None,
    status_code: Optional[int] = None,
    message: Optional[str] = None,
    **kwargs
) -> JSONResponse:
    """
    Create a consistent JSON error response.

    Args:
        error_code: Error code from the ErrorCode enum
        details: Additional error details. Strings are truncated to 1000 chars,
            structured upstream bodies are passed through unchanged.
        status_code: Override the default HTTP status code
        message: Override the default human-readable message
        **kwargs: Additional fields to include in the error response

    Returns:
        JSONResponse with standardized error format
    """
    if status_code is None:
        status_code = ERROR_STATUS_MAP.get(error_code, 500)
    severity = ERROR_SEVERITY_MAP.get(error_code, ErrorSeverity.MEDIUM)

    error_data: Dict[str, Any] = {
        "error": message or ERROR_MESSAGE_MAP.get(error_code, "Conversion failed"),
        "code": error_code.value,
        "timestamp": datetime.now().isoformat() + "Z",
        "status_code": status_code,
        "severity": severity.value
    }

    if details is not None:
        if isinstance(details, (dict, list)):
            error_data["details"] = details
        else:
            error_data["details"] = str(details)[:MAX_DETAILS_LENGTH]

    error_data.update(kwargs)

    _log_error(severity, f"Error response: {error_data}")

    return JSONResponse(status_code=status_code, content=error_data)


def extract_upstream_error(data: Any) -> Optional[str]:
    """Pull a human-readable message out of an upstream error body."""
    if not isinstance(data, dict):
        return None

    for key in ("detail", "error", "message"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
        # FastAPI validation errors: {"detail": [{"msg": ...}, ...]}
        if isinstance(value, list) and value:
            first = value[0]
            if isinstance(first, dict) and first.get("msg"):
                return str(first["msg"])
    return None


def handle_upstream_failure(status_code: int, data: Any) -> JSONResponse:
    """Relay a non-success upstream status with whatever detail it carried."""
    return create_error_response(
        ErrorCode.UPSTREAM_ERROR,
        details=data,
        status_code=status_code,
        message=extract_upstream_error(data),
        status=status_code
    )


def handle_unexpected_error(error: Union[Exception, str]) -> JSONResponse:
    """Map an exception raised while proxying to a 500 response."""
    return create_error_response(
        ErrorCode.INTERNAL_ERROR,
        details=str(error) or type(error).__name__
    )
