"""MCP server wiring for the Radicale adapter."""

import logging
from typing import Any, Dict, List, Optional

import mcp.types as types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from ..application import CalendarService, ContactsService
from ..config import Config
from ..infrastructure import DavClient, DavSessionManager
from .tools import TOOLS, Services, dispatch


def build_services(config: Config) -> Services:
    """Wire the DAV client and services; no network traffic happens here."""
    sessions = DavSessionManager(config.radicale)
    client = DavClient(config.radicale, sessions)
    return Services(
        calendar=CalendarService(client),
        contacts=ContactsService(client)
    )


def create_server(config: Config, services: Optional[Services] = None) -> Server:
    """Create the MCP server with dependency injection."""
    logger = logging.getLogger(__name__)
    services = services or build_services(config)
    server = Server(config.server.name, version=config.server.version)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [
            types.Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema)
            for tool in TOOLS
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
        text = await dispatch(services, name, arguments)
        return [types.TextContent(type="text", text=text)]

    logger.info(f"Registered {len(TOOLS)} tools for {config.radicale.principal_url}")
    return server


async def serve(config: Config) -> None:
    """Run the server over stdio until the client disconnects."""
    server = create_server(config)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
