"""Tool definitions: argument schemas and dispatch to the services."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ..application import CalendarService, ContactsService
from ..domain import ContactPatch, EventPatch, TodoPatch
from ..monitoring import handle_exceptions

logger = logging.getLogger(__name__)

TodoStatusName = Literal["NEEDS-ACTION", "IN-PROCESS", "COMPLETED", "CANCELLED"]


class ToolArguments(BaseModel):
    """Base for tool argument models."""

    model_config = ConfigDict(extra='ignore')

    def provided(self, *exclude: str) -> Dict[str, Any]:
        """Arguments the caller actually sent, explicit nulls included."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name not in exclude
        }


def _reject_null(value: Any, info: ValidationInfo) -> Any:
    if value is None:
        raise ValueError(f"{info.field_name} cannot be cleared")
    return value


class NoArguments(ToolArguments):
    pass


class CreateCalendarArguments(ToolArguments):
    name: str = Field(min_length=1, description="Calendar display name")
    description: Optional[str] = Field(None, description="Calendar description")
    color: Optional[str] = Field(None, description="Calendar color (hex, e.g. #ff0000)")


class CalendarUrlArguments(ToolArguments):
    calendar_url: str = Field(description="Full URL of the calendar")


class ListEventsArguments(CalendarUrlArguments):
    start: Optional[str] = Field(
        None, description="Start of date range (ISO 8601, e.g. 2026-01-01T00:00:00Z)"
    )
    end: Optional[str] = Field(
        None, description="End of date range (ISO 8601, e.g. 2026-12-31T23:59:59Z)"
    )


class EventUrlArguments(ToolArguments):
    event_url: str = Field(description="Full URL of the event object (.ics)")


class CreateEventArguments(CalendarUrlArguments):
    summary: str = Field(min_length=1, description="Event title/summary")
    start: str = Field(description="Start date-time (ISO 8601)")
    end: Optional[str] = Field(None, description="End date-time (ISO 8601)")
    description: Optional[str] = Field(None, description="Event description")
    location: Optional[str] = Field(None, description="Event location")
    all_day: Optional[bool] = Field(None, description="Whether this is an all-day event")


class UpdateEventArguments(EventUrlArguments):
    summary: Optional[str] = Field(None, description="New event title")
    start: Optional[str] = Field(None, description="New start date-time (ISO 8601)")
    end: Optional[str] = Field(None, description="New end date-time (ISO 8601), null to remove")
    description: Optional[str] = Field(None, description="New description")
    location: Optional[str] = Field(None, description="New location")
    all_day: Optional[bool] = Field(None, description="Whether this is an all-day event")

    @field_validator('start', 'all_day')
    @classmethod
    def check_not_null(cls, value: Any, info: ValidationInfo) -> Any:
        return _reject_null(value, info)


class ListTodosArguments(CalendarUrlArguments):
    show_completed: bool = Field(False, description="Include completed todos (default: false)")


class TodoUrlArguments(ToolArguments):
    todo_url: str = Field(description="Full URL of the todo object (.ics)")


class CreateTodoArguments(CalendarUrlArguments):
    summary: str = Field(min_length=1, description="Todo title/summary")
    description: Optional[str] = Field(None, description="Todo description")
    due: Optional[str] = Field(None, description="Due date-time (ISO 8601)")
    priority: Optional[int] = Field(
        None, ge=0, le=9, description="Priority (1=highest, 9=lowest, 0=undefined)"
    )


class UpdateTodoArguments(TodoUrlArguments):
    summary: Optional[str] = Field(None, description="New title")
    description: Optional[str] = Field(None, description="New description")
    due: Optional[str] = Field(None, description="New due date-time (ISO 8601), null to remove")
    status: Optional[TodoStatusName] = Field(None, description="New status")
    priority: Optional[int] = Field(
        None, ge=0, le=9, description="New priority (1=highest, 9=lowest, 0=undefined)"
    )

    @field_validator('status')
    @classmethod
    def check_not_null(cls, value: Any, info: ValidationInfo) -> Any:
        return _reject_null(value, info)


class CreateAddressBookArguments(ToolArguments):
    name: str = Field(min_length=1, description="Address book display name")
    description: Optional[str] = Field(None, description="Address book description")


class AddressBookUrlArguments(ToolArguments):
    address_book_url: str = Field(description="Full URL of the address book")


class ContactUrlArguments(ToolArguments):
    contact_url: str = Field(description="Full URL of the contact object (.vcf)")


class ContactFields(BaseModel):
    full_name: Optional[str] = Field(None, description="Full display name")
    first_name: Optional[str] = Field(None, description="First/given name")
    last_name: Optional[str] = Field(None, description="Last/family name")
    email: Optional[str] = Field(None, description="Email address")
    phone: Optional[str] = Field(None, description="Phone number")
    org: Optional[str] = Field(None, description="Organisation")
    title: Optional[str] = Field(None, description="Job title")
    note: Optional[str] = Field(None, description="Notes")


class CreateContactArguments(AddressBookUrlArguments, ContactFields):
    pass


class UpdateContactArguments(ContactUrlArguments, ContactFields):
    pass


@dataclass
class Services:
    calendar: CalendarService
    contacts: ContactsService


Handler = Callable[[Services, Any], Awaitable[Any]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    arguments: Type[ToolArguments]
    handler: Handler

    @property
    def input_schema(self) -> Dict[str, Any]:
        return self.arguments.model_json_schema()

    async def run(self, services: Services, arguments: Dict[str, Any]) -> Any:
        args = self.arguments.model_validate(arguments)
        logger.debug(f"Calling {self.name} with {sorted(args.model_fields_set)}")
        return await self.handler(services, args)


TOOLS: List[ToolSpec] = [
    # Calendars
    ToolSpec(
        "radicale_list_calendars",
        "List all calendars on the Radicale server",
        NoArguments,
        lambda s, a: s.calendar.list_calendars()
    ),
    ToolSpec(
        "radicale_create_calendar",
        "Create a new calendar",
        CreateCalendarArguments,
        lambda s, a: s.calendar.create_calendar(a.name, a.description, a.color)
    ),
    ToolSpec(
        "radicale_delete_calendar",
        "Delete a calendar by URL",
        CalendarUrlArguments,
        lambda s, a: s.calendar.delete_calendar(a.calendar_url)
    ),
    # Events
    ToolSpec(
        "radicale_list_events",
        "List events in a calendar, optionally filtered by date range",
        ListEventsArguments,
        lambda s, a: s.calendar.list_events(a.calendar_url, a.start, a.end)
    ),
    ToolSpec(
        "radicale_get_event",
        "Get a single event by its object URL",
        EventUrlArguments,
        lambda s, a: s.calendar.get_event(a.event_url)
    ),
    ToolSpec(
        "radicale_create_event",
        "Create a new event in a calendar",
        CreateEventArguments,
        lambda s, a: s.calendar.create_event(
            a.calendar_url, a.summary, a.start, a.end, a.description, a.location,
            bool(a.all_day)
        )
    ),
    ToolSpec(
        "radicale_update_event",
        "Update an existing event (fetches current, merges changes, PUTs back)",
        UpdateEventArguments,
        lambda s, a: s.calendar.update_event(
            a.event_url, EventPatch.from_mapping(a.provided('event_url'))
        )
    ),
    ToolSpec(
        "radicale_delete_event",
        "Delete an event by its object URL",
        EventUrlArguments,
        lambda s, a: s.calendar.delete_event(a.event_url)
    ),
    # Todos
    ToolSpec(
        "radicale_list_todos",
        "List todos/tasks in a calendar",
        ListTodosArguments,
        lambda s, a: s.calendar.list_todos(a.calendar_url, a.show_completed)
    ),
    ToolSpec(
        "radicale_create_todo",
        "Create a new todo/task in a calendar",
        CreateTodoArguments,
        lambda s, a: s.calendar.create_todo(
            a.calendar_url, a.summary, a.description, a.due, a.priority
        )
    ),
    ToolSpec(
        "radicale_update_todo",
        "Update an existing todo (fetches current, merges changes, PUTs back)",
        UpdateTodoArguments,
        lambda s, a: s.calendar.update_todo(
            a.todo_url, TodoPatch.from_mapping(a.provided('todo_url'))
        )
    ),
    ToolSpec(
        "radicale_delete_todo",
        "Delete a todo by its object URL",
        TodoUrlArguments,
        lambda s, a: s.calendar.delete_todo(a.todo_url)
    ),
    # Address books
    ToolSpec(
        "radicale_list_address_books",
        "List all address books on the Radicale server",
        NoArguments,
        lambda s, a: s.contacts.list_address_books()
    ),
    ToolSpec(
        "radicale_create_address_book",
        "Create a new address book",
        CreateAddressBookArguments,
        lambda s, a: s.contacts.create_address_book(a.name, a.description)
    ),
    ToolSpec(
        "radicale_delete_address_book",
        "Delete an address book by URL",
        AddressBookUrlArguments,
        lambda s, a: s.contacts.delete_address_book(a.address_book_url)
    ),
    # Contacts
    ToolSpec(
        "radicale_list_contacts",
        "List contacts in an address book",
        AddressBookUrlArguments,
        lambda s, a: s.contacts.list_contacts(a.address_book_url)
    ),
    ToolSpec(
        "radicale_get_contact",
        "Get a single contact by its object URL",
        ContactUrlArguments,
        lambda s, a: s.contacts.get_contact(a.contact_url)
    ),
    ToolSpec(
        "radicale_create_contact",
        "Create a new contact in an address book",
        CreateContactArguments,
        lambda s, a: s.contacts.create_contact(
            a.address_book_url, **a.model_dump(exclude={'address_book_url'})
        )
    ),
    ToolSpec(
        "radicale_update_contact",
        "Update an existing contact (fetches current, merges changes, PUTs back)",
        UpdateContactArguments,
        lambda s, a: s.contacts.update_contact(
            a.contact_url, ContactPatch.from_mapping(a.provided('contact_url'))
        )
    ),
    ToolSpec(
        "radicale_delete_contact",
        "Delete a contact by its object URL",
        ContactUrlArguments,
        lambda s, a: s.contacts.delete_contact(a.contact_url)
    ),
]

TOOLS_BY_NAME: Dict[str, ToolSpec] = {tool.name: tool for tool in TOOLS}


async def dispatch(services: Services, name: str, arguments: Optional[Dict[str, Any]]) -> str:
    """Validate ``arguments`` for tool ``name``, run it and return the JSON result.

    Failures are logged and re-raised unchanged for the MCP layer to report.
    """
    tool = TOOLS_BY_NAME.get(name)
    if tool is None:
        raise ValueError(f"Unknown tool: {name}")

    run = handle_exceptions(f"tool:{name}")(tool.run)
    result = await run(services, arguments or {})
    return json.dumps(result, indent=2, ensure_ascii=False)
