"""Presentation layer: the MCP tool surface."""

from .server import build_services, create_server, serve
from .tools import TOOLS, Services, dispatch

__all__ = [
    'build_services', 'create_server', 'serve',
    'TOOLS', 'Services', 'dispatch'
]
