"""Infrastructure implementations for the Radicale MCP adapter."""

from .dav_client import DavClient, DavSessionManager

__all__ = [
    'DavClient', 'DavSessionManager'
]
