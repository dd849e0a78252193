"""Exception handling for the Radicale MCP adapter."""

import inspect
import logging
import traceback
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from enum import Enum
from functools import wraps


class ErrorCode(Enum):
    """Standard error codes for the application."""

    # Configuration errors
    CONFIG_INVALID = "CONFIG_INVALID"
    CONFIG_MISSING = "CONFIG_MISSING"

    # Authentication errors
    AUTH_FAILED = "AUTH_FAILED"

    # DAV object errors
    NOT_FOUND = "NOT_FOUND"
    MALFORMED_RECORD = "MALFORMED_RECORD"
    CONFLICT = "CONFLICT"

    # DAV server errors
    REMOTE_ERROR = "REMOTE_ERROR"

    # Internal errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class RadicaleMCPError(Exception):
    """Base exception for the Radicale MCP adapter."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            'error_code': self.error_code.value,
            'message': self.message,
            'details': self.details,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause else None,
            'traceback': traceback.format_exc() if self.cause else None
        }


class ConfigurationError(RadicaleMCPError):
    """Configuration related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.CONFIG_INVALID, details)


class AuthError(RadicaleMCPError):
    """DAV session could not be established with the configured credentials."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.AUTH_FAILED, details)


class NotFoundError(RadicaleMCPError):
    """A fetch by object URL returned nothing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.NOT_FOUND, details)


class MalformedRecordError(RadicaleMCPError):
    """Object was fetched but holds no component of the expected kind."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, ErrorCode.MALFORMED_RECORD, details, cause)


class ConflictError(RadicaleMCPError):
    """The server rejected a write because the etag no longer matches."""

    def __init__(self, url: str, etag: Optional[str] = None, body: str = ""):
        super().__init__(
            f"Write conflict on {url}: object changed since etag {etag}",
            ErrorCode.CONFLICT,
            {'url': url, 'etag': etag, 'body': body}
        )
        self.url = url
        self.etag = etag


class RemoteError(RadicaleMCPError):
    """Any other non-success response from the DAV server."""

    def __init__(self, message: str, status: int, body: str = "", url: Optional[str] = None):
        super().__init__(
            f"{message}: {status} {body}",
            ErrorCode.REMOTE_ERROR,
            {'status': status, 'body': body, 'url': url}
        )
        self.status = status
        self.body = body
        self.url = url


class ErrorHandler:
    """Centralized error handling and logging."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._error_counts = {}

    def handle_error(
        self,
        error: Exception,
        context: str = "unknown",
        extra_details: Optional[Dict[str, Any]] = None
    ) -> RadicaleMCPError:
        """Log an error, converting it to RadicaleMCPError if needed."""

        if isinstance(error, RadicaleMCPError):
            mcp_error = error
        else:
            mcp_error = RadicaleMCPError(
                message=str(error),
                error_code=ErrorCode.INTERNAL_ERROR,
                details=extra_details or {},
                cause=error
            )

        mcp_error.details['context'] = context
        if extra_details:
            mcp_error.details.update(extra_details)

        error_key = f"{context}:{mcp_error.error_code.value}"
        self._error_counts[error_key] = self._error_counts.get(error_key, 0) + 1

        if mcp_error.error_code == ErrorCode.INTERNAL_ERROR:
            self.logger.error(
                f"[{context}] {mcp_error.message}",
                extra={
                    'error': mcp_error.to_dict(),
                    'error_count': self._error_counts[error_key]
                },
                exc_info=mcp_error.cause
            )
        else:
            self.logger.warning(
                f"[{context}] {mcp_error.message}",
                extra={
                    'error': mcp_error.to_dict(),
                    'error_count': self._error_counts[error_key]
                }
            )

        return mcp_error


# Global error handler instance
error_handler = ErrorHandler()


def handle_exceptions(context: str = "unknown"):
    """Decorator that reports exceptions to ``error_handler`` and re-raises them unchanged."""

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                error_handler.handle_error(e, context)
                raise

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                error_handler.handle_error(e, context)
                raise

        return async_wrapper if inspect.iscoroutinefunction(func) else wrapper

    return decorator
