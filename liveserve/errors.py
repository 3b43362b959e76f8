"""Module errors: structured error taxonomy for liveserve."""
#
# PURPOSE:
# Gives every failure in the server a code, a message and an HTTP status so
# the request handler, the WebSocket listener and the startup path can all
# react to the same error types.
#
# ERROR CODE FORMAT:
# - CONFIG_XXX: Invalid roots, ports, TLS material (fatal at startup)
# - PROTOCOL_XXX: WebSocket handshake/frame violations (close one connection)
# - FILE_XXX: Lookup and read failures for a single request
# - SERVER_XXX: Listener lifecycle and unexpected internal failures
#
# USAGE:
#   from liveserve.errors import NotFoundError
#
#   raise NotFoundError("/missing.html", details={"roots": 2})
#
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    # Config Errors
    CONFIG_INVALID = "CONFIG_001"
    CONFIG_NO_VALID_ROOTS = "CONFIG_002"
    CONFIG_TLS_UNREADABLE = "CONFIG_003"
    CONFIG_PORT_UNAVAILABLE = "CONFIG_004"

    # Protocol Errors
    PROTOCOL_MISSING_KEY = "PROTOCOL_001"
    PROTOCOL_TRUNCATED_FRAME = "PROTOCOL_002"
    PROTOCOL_UNMASKED_FRAME = "PROTOCOL_003"
    PROTOCOL_BAD_REQUEST = "PROTOCOL_004"

    # File Errors
    FILE_NOT_FOUND = "FILE_001"
    FILE_LISTING_DISABLED = "FILE_002"
    FILE_READ_FAILED = "FILE_003"

    # Server Errors
    SERVER_INTERNAL_ERROR = "SERVER_001"
    SERVER_START_FAILED = "SERVER_002"
    SERVER_WATCH_FAILED = "SERVER_003"


class LiveServeError(Exception):
    """
    Base exception class for liveserve with structured error information.

    Attributes:
        code: ErrorCode enum value (e.g., "FILE_001")
        message: Human-readable error message
        details: Optional dictionary with additional context
        http_status: Suggested HTTP status code for responses
    """

    HTTP_STATUS_MAP: Dict[ErrorCode, int] = {
        ErrorCode.CONFIG_INVALID: 500,
        ErrorCode.CONFIG_NO_VALID_ROOTS: 500,
        ErrorCode.CONFIG_TLS_UNREADABLE: 500,
        ErrorCode.CONFIG_PORT_UNAVAILABLE: 500,

        ErrorCode.PROTOCOL_MISSING_KEY: 400,
        ErrorCode.PROTOCOL_TRUNCATED_FRAME: 400,
        ErrorCode.PROTOCOL_UNMASKED_FRAME: 400,
        ErrorCode.PROTOCOL_BAD_REQUEST: 400,

        ErrorCode.FILE_NOT_FOUND: 404,          # Not Found
        ErrorCode.FILE_LISTING_DISABLED: 403,   # Forbidden
        ErrorCode.FILE_READ_FAILED: 500,

        ErrorCode.SERVER_INTERNAL_ERROR: 500,
        ErrorCode.SERVER_START_FAILED: 500,
        ErrorCode.SERVER_WATCH_FAILED: 500,
    }

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        http_status: Optional[int] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.http_status = http_status or self.HTTP_STATUS_MAP.get(code, 500)

        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging and JSON output."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "http_status": self.http_status
        }


class ConfigError(LiveServeError):
    """Invalid or missing startup configuration. Fatal before serving starts."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.CONFIG_INVALID,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, details)


class ProtocolError(LiveServeError):
    """A WebSocket peer broke the protocol. Only that connection is terminated."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.PROTOCOL_BAD_REQUEST,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, details)


class NotFoundError(LiveServeError):
    """No root contains the requested path."""

    def __init__(self, path: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.FILE_NOT_FOUND, f"File not found in any root: {path}", details)


class AccessDeniedError(LiveServeError):
    """Directory hit without index.html while listings are disabled."""

    def __init__(self, path: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.FILE_LISTING_DISABLED, f"Directory listing disabled: {path}", details)


class FileReadError(LiveServeError):
    """Reading a resolved file or directory failed."""

    def __init__(self, path: str, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorCode.FILE_READ_FAILED, f"Failed to read {path}: {reason}", details)


def handle_error(error: Exception, context: Optional[str] = None) -> LiveServeError:
    """
    Convert a generic exception to a LiveServeError.

    Args:
        error: The original exception
        context: Optional context string (e.g., "while serving /index.html")

    Returns:
        LiveServeError with SERVER_INTERNAL_ERROR unless already structured
    """
    if isinstance(error, LiveServeError):
        return error

    message = str(error)
    if context:
        message = f"{context}: {message}"

    return LiveServeError(
        code=ErrorCode.SERVER_INTERNAL_ERROR,
        message=message,
        details={
            "original_type": type(error).__name__,
            "original_message": str(error)
        }
    )


__all__ = [
    "ErrorCode",
    "LiveServeError",
    "ConfigError",
    "ProtocolError",
    "NotFoundError",
    "AccessDeniedError",
    "FileReadError",
    "handle_error",
]
