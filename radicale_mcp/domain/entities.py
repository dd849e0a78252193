"""Domain entities for the Radicale MCP adapter."""

from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any
from enum import Enum


class CollectionKind(Enum):
    """DAV protocol a collection or session belongs to."""
    CALENDAR = "caldav"
    ADDRESS_BOOK = "carddav"

    @property
    def object_extension(self) -> str:
        return ".ics" if self is CollectionKind.CALENDAR else ".vcf"

    @property
    def content_type(self) -> str:
        if self is CollectionKind.CALENDAR:
            return "text/calendar; charset=utf-8"
        return "text/vcard; charset=utf-8"


class ComponentKind(Enum):
    """iCalendar component types handled by the codec."""
    VEVENT = "VEVENT"
    VTODO = "VTODO"


class TodoStatus(Enum):
    """VTODO status values."""
    NEEDS_ACTION = "NEEDS-ACTION"
    IN_PROCESS = "IN-PROCESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


@dataclass
class Collection:
    """A calendar or address book on the DAV server."""

    url: str
    display_name: Optional[str] = None
    description: str = ""
    ctag: Optional[str] = None
    sync_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'displayName': self.display_name,
            'description': self.description or "",
            'ctag': self.ctag,
            'syncToken': self.sync_token
        }


@dataclass
class DavObject:
    """A stored calendar object or vCard with its version token."""

    url: str
    etag: Optional[str]
    data: str


@dataclass
class WriteResult:
    """Outcome of a PUT against the DAV server."""

    url: str
    status: int
    etag: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'url': self.url, 'status': self.status, 'etag': self.etag}


@dataclass
class Event:
    """A VEVENT reduced to the fields the tools work with.

    ``start`` and ``end`` are ISO strings. When ``all_day`` is set they are
    plain dates (``YYYY-MM-DD``) and are written back in DATE form.
    """

    uid: str
    start: Optional[str] = None
    end: Optional[str] = None
    summary: str = ""
    description: str = ""
    location: str = ""
    all_day: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Todo:
    """A VTODO reduced to the fields the tools work with."""

    uid: str
    summary: str = ""
    description: str = ""
    due: Optional[str] = None
    priority: Optional[int] = None
    status: str = ""
    completed: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status.upper() == TodoStatus.COMPLETED.value

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Contact:
    """A vCard reduced to the fields the tools work with."""

    uid: str = ""
    full_name: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    org: str = ""
    title: str = ""
    note: str = ""

    @property
    def display_name(self) -> str:
        """FN value, never empty."""
        joined = " ".join(part for part in (self.first_name, self.last_name) if part)
        return self.full_name or joined or "Unknown"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
