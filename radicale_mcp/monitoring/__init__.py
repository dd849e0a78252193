"""Error handling for the Radicale MCP adapter."""

from .exceptions import (
    ErrorCode, RadicaleMCPError, ConfigurationError, AuthError,
    NotFoundError, MalformedRecordError, ConflictError, RemoteError,
    ErrorHandler, error_handler, handle_exceptions
)

__all__ = [
    'ErrorCode', 'RadicaleMCPError', 'ConfigurationError', 'AuthError',
    'NotFoundError', 'MalformedRecordError', 'ConflictError', 'RemoteError',
    'ErrorHandler', 'error_handler', 'handle_exceptions'
]
