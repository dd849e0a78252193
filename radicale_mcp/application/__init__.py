"""Application services for the Radicale MCP adapter."""

from .services import CalendarService, ContactsService

__all__ = [
    'CalendarService', 'ContactsService'
]
