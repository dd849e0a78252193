"""
Radicale MCP

Exposes the calendars, todos and address books of a Radicale (CalDAV/CardDAV)
server as Model Context Protocol tools.

Architecture:
- Domain Layer: records, patches and the repository interface
- Application Layer: read-modify-write services
- Infrastructure Layer: DAV client, iCalendar and vCard codecs
- Presentation Layer: MCP tool schemas and server
"""

__version__ = "1.0.0"
__description__ = "MCP server for Radicale calendars, todos and contacts"

from .domain import Event, Todo, Contact, Collection
from .application import CalendarService, ContactsService
from .infrastructure import DavClient, DavSessionManager
from .presentation import create_server

__all__ = [
    'Event', 'Todo', 'Contact', 'Collection',
    'CalendarService', 'ContactsService',
    'DavClient', 'DavSessionManager',
    'create_server'
]
