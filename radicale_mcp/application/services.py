"""Application services for the Radicale MCP adapter.

Every update is a read-modify-write: fetch the stored object together with
its etag, decode it, overlay the requested fields, encode it again and PUT
it back conditioned on the etag. A concurrent write in between makes the
server reject the PUT and the ``ConflictError`` reaches the caller as is.
Nothing is retried.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from ..domain import (
    CollectionKind, ComponentKind, Contact, ContactPatch, DavObject,
    DavRepository, Event, EventPatch, Todo, TodoPatch, TodoStatus
)
from ..infrastructure import icalendar_codec, vcard_codec
from ..infrastructure.dav_client import collection_url_of
from ..monitoring import MalformedRecordError, NotFoundError
from .merge import apply_patch, normalize_completed


class _DavService:
    """Shared fetch/decode plumbing."""

    def __init__(self, repository: DavRepository):
        self.repository = repository
        self.logger = logging.getLogger(__name__)

    async def _fetch_one(self, kind: CollectionKind, url: str, label: str) -> DavObject:
        objects = await self.repository.fetch_objects(
            kind, collection_url_of(url), object_urls=[url]
        )
        if not objects:
            raise NotFoundError(f"{label} not found", details={'url': url})
        return objects[0]

    @staticmethod
    def _new_uid() -> str:
        return str(uuid.uuid4())


class CalendarService(_DavService):
    """Calendars, events and todos."""

    kind = CollectionKind.CALENDAR

    async def list_calendars(self) -> List[Dict[str, Any]]:
        calendars = await self.repository.list_collections(self.kind)
        return [calendar.to_dict() for calendar in calendars]

    async def create_calendar(
        self, name: str, description: Optional[str] = None, color: Optional[str] = None
    ) -> Dict[str, Any]:
        calendar = await self.repository.create_collection(self.kind, name, description, color)
        return {
            'success': True,
            'url': calendar.url,
            'name': name,
            'description': description,
            'color': color
        }

    async def delete_calendar(self, calendar_url: str) -> Dict[str, Any]:
        await self.repository.delete_collection(self.kind, calendar_url)
        return {'success': True, 'deleted': calendar_url}

    def _decode_first(self, obj: DavObject, component: ComponentKind):
        records = icalendar_codec.decode(obj.data, component)
        if not records:
            raise MalformedRecordError(
                f"No {component.value} found in object", details={'url': obj.url}
            )
        return records[0]

    async def _list_components(
        self, calendar_url: str, component: ComponentKind, time_range=None
    ) -> List[Dict[str, Any]]:
        objects = await self.repository.fetch_objects(
            self.kind, calendar_url, time_range=time_range
        )
        results = []
        for obj in objects:
            for record in icalendar_codec.decode(obj.data, component):
                if record.uid:
                    results.append({**record.to_dict(), 'url': obj.url, 'etag': obj.etag})
        return results

    # Events

    async def list_events(
        self, calendar_url: str, start: Optional[str] = None, end: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """List events, restricted to ``start``..``end`` when both are given."""
        time_range = (start, end) if start and end else None
        return await self._list_components(calendar_url, ComponentKind.VEVENT, time_range)

    async def get_event(self, event_url: str) -> Dict[str, Any]:
        obj = await self._fetch_one(self.kind, event_url, "Event")
        event = self._decode_first(obj, ComponentKind.VEVENT)
        return {**event.to_dict(), 'url': obj.url, 'etag': obj.etag, 'raw': obj.data}

    async def create_event(
        self,
        calendar_url: str,
        summary: str,
        start: str,
        end: Optional[str] = None,
        description: Optional[str] = None,
        location: Optional[str] = None,
        all_day: bool = False
    ) -> Dict[str, Any]:
        event = Event(
            uid=self._new_uid(),
            summary=summary,
            start=start,
            end=end,
            description=description or "",
            location=location or "",
            all_day=bool(all_day)
        )
        result = await self.repository.create_object(
            self.kind, calendar_url, f"{event.uid}.ics", icalendar_codec.encode_event(event)
        )
        return {
            'success': True,
            'url': result.url,
            'uid': event.uid,
            'summary': summary,
            'start': start,
            'end': end,
            'etag': result.etag
        }

    async def update_event(self, event_url: str, patch: EventPatch) -> Dict[str, Any]:
        obj = await self._fetch_one(self.kind, event_url, "Event")
        existing = self._decode_first(obj, ComponentKind.VEVENT)
        merged = apply_patch(existing, patch)
        result = await self.repository.update_object(
            self.kind, event_url, icalendar_codec.encode_event(merged), obj.etag
        )
        self.logger.info(f"Updated event {merged.uid} fields {sorted(patch.provided())}")
        return {'success': True, 'url': event_url, **merged.to_dict(), 'etag': result.etag}

    async def delete_event(self, event_url: str) -> Dict[str, Any]:
        await self.repository.delete_object(self.kind, event_url)
        return {'success': True, 'deleted': event_url}

    # Todos

    async def list_todos(
        self, calendar_url: str, show_completed: bool = False
    ) -> List[Dict[str, Any]]:
        todos = await self._list_components(calendar_url, ComponentKind.VTODO)
        if show_completed:
            return todos
        return [todo for todo in todos if todo['status'].upper() != TodoStatus.COMPLETED.value]

    async def create_todo(
        self,
        calendar_url: str,
        summary: str,
        description: Optional[str] = None,
        due: Optional[str] = None,
        priority: Optional[int] = None
    ) -> Dict[str, Any]:
        todo = Todo(
            uid=self._new_uid(),
            summary=summary,
            description=description or "",
            due=due,
            priority=priority,
            status='NEEDS-ACTION'
        )
        result = await self.repository.create_object(
            self.kind, calendar_url, f"{todo.uid}.ics", icalendar_codec.encode_todo(todo)
        )
        return {
            'success': True,
            'url': result.url,
            'uid': todo.uid,
            'summary': summary,
            'due': due,
            'priority': priority,
            'etag': result.etag
        }

    async def update_todo(self, todo_url: str, patch: TodoPatch) -> Dict[str, Any]:
        obj = await self._fetch_one(self.kind, todo_url, "Todo")
        existing = self._decode_first(obj, ComponentKind.VTODO)
        merged = normalize_completed(existing, apply_patch(existing, patch), patch)
        result = await self.repository.update_object(
            self.kind, todo_url, icalendar_codec.encode_todo(merged), obj.etag
        )
        self.logger.info(f"Updated todo {merged.uid} fields {sorted(patch.provided())}")
        return {'success': True, 'url': todo_url, **merged.to_dict(), 'etag': result.etag}

    async def delete_todo(self, todo_url: str) -> Dict[str, Any]:
        await self.repository.delete_object(self.kind, todo_url)
        return {'success': True, 'deleted': todo_url}


class ContactsService(_DavService):
    """Address books and contacts."""

    kind = CollectionKind.ADDRESS_BOOK

    async def list_address_books(self) -> List[Dict[str, Any]]:
        books = await self.repository.list_collections(self.kind)
        return [book.to_dict() for book in books]

    async def create_address_book(
        self, name: str, description: Optional[str] = None
    ) -> Dict[str, Any]:
        book = await self.repository.create_collection(self.kind, name, description)
        return {'success': True, 'url': book.url, 'name': name, 'description': description}

    async def delete_address_book(self, address_book_url: str) -> Dict[str, Any]:
        await self.repository.delete_collection(self.kind, address_book_url)
        return {'success': True, 'deleted': address_book_url}

    def _decode(self, obj: DavObject) -> Contact:
        if not vcard_codec.has_vcard(obj.data):
            raise MalformedRecordError("No VCARD found in object", details={'url': obj.url})
        return vcard_codec.decode_contact(obj.data)

    async def list_contacts(self, address_book_url: str) -> List[Dict[str, Any]]:
        objects = await self.repository.fetch_objects(self.kind, address_book_url)
        return [
            {'url': obj.url, 'etag': obj.etag, **vcard_codec.decode_contact(obj.data).to_dict()}
            for obj in objects
        ]

    async def get_contact(self, contact_url: str) -> Dict[str, Any]:
        obj = await self._fetch_one(self.kind, contact_url, "Contact")
        contact = self._decode(obj)
        return {'url': obj.url, 'etag': obj.etag, **contact.to_dict(), 'raw': obj.data}

    async def create_contact(self, address_book_url: str, **fields: Optional[str]) -> Dict[str, Any]:
        contact = Contact(
            uid=self._new_uid(),
            **{name: value or "" for name, value in fields.items()}
        )
        result = await self.repository.create_object(
            self.kind, address_book_url, f"{contact.uid}.vcf", vcard_codec.encode_contact(contact)
        )
        return {
            'success': True,
            'url': result.url,
            'uid': contact.uid,
            'full_name': fields.get('full_name'),
            'first_name': fields.get('first_name'),
            'last_name': fields.get('last_name'),
            'email': fields.get('email'),
            'etag': result.etag
        }

    async def update_contact(self, contact_url: str, patch: ContactPatch) -> Dict[str, Any]:
        obj = await self._fetch_one(self.kind, contact_url, "Contact")
        existing = self._decode(obj)
        merged = apply_patch(existing, patch)
        result = await self.repository.update_object(
            self.kind, contact_url, vcard_codec.encode_contact(merged), obj.etag
        )
        self.logger.info(f"Updated contact {merged.uid} fields {sorted(patch.provided())}")
        return {'success': True, 'url': contact_url, **merged.to_dict(), 'etag': result.etag}

    async def delete_contact(self, contact_url: str) -> Dict[str, Any]:
        await self.repository.delete_object(self.kind, contact_url)
        return {'success': True, 'deleted': contact_url}
