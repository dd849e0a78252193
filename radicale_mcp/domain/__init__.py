"""Domain layer for the Radicale MCP adapter."""

from .entities import (
    Collection, CollectionKind, ComponentKind, Contact, DavObject, Event,
    Todo, TodoStatus, WriteResult
)
from .patches import UNSET, ContactPatch, EventPatch, TodoPatch
from .interfaces import DavRepository

__all__ = [
    'Collection', 'CollectionKind', 'ComponentKind', 'Contact', 'DavObject',
    'Event', 'Todo', 'TodoStatus', 'WriteResult',
    'UNSET', 'ContactPatch', 'EventPatch', 'TodoPatch',
    'DavRepository'
]
