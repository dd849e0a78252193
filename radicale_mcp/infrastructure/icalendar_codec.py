"""iCalendar encoding and decoding for events and todos."""

import logging
from datetime import date, datetime, timezone
from typing import Any, List, Optional, Union

from icalendar import Calendar, Event as ICalEvent, Todo as ICalTodo

from ..domain import ComponentKind, Event, Todo
from ..monitoring import MalformedRecordError
from .dates import parse_date, parse_instant, to_iso

PRODID = "-//Radicale MCP//EN"

logger = logging.getLogger(__name__)


def _new_calendar() -> Calendar:
    cal = Calendar()
    cal.add('version', '2.0')
    cal.add('prodid', PRODID)
    return cal


def _dtstamp() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def encode_event(event: Event) -> str:
    """Serialize an event as a VCALENDAR holding a single VEVENT."""
    if not event.start:
        raise ValueError("Event start is required")

    component = ICalEvent()
    component.add('uid', event.uid)
    component.add('dtstamp', _dtstamp())

    if event.all_day:
        component.add('dtstart', parse_date(event.start))
        if event.end:
            component.add('dtend', parse_date(event.end))
    else:
        component.add('dtstart', parse_instant(event.start))
        if event.end:
            component.add('dtend', parse_instant(event.end))

    if event.summary:
        component.add('summary', event.summary)
    if event.description:
        component.add('description', event.description)
    if event.location:
        component.add('location', event.location)

    cal = _new_calendar()
    cal.add_component(component)
    return cal.to_ical().decode('utf-8')


def encode_todo(todo: Todo) -> str:
    """Serialize a todo as a VCALENDAR holding a single VTODO."""
    component = ICalTodo()
    component.add('uid', todo.uid)
    component.add('dtstamp', _dtstamp())

    if todo.summary:
        component.add('summary', todo.summary)
    if todo.description:
        component.add('description', todo.description)
    if todo.due:
        component.add('due', parse_instant(todo.due))
    if todo.priority is not None:
        component.add('priority', int(todo.priority))
    if todo.status:
        component.add('status', todo.status.upper())
    if todo.completed:
        component.add('completed', parse_instant(todo.completed))

    cal = _new_calendar()
    cal.add_component(component)
    return cal.to_ical().decode('utf-8')


def _first(value: Any) -> Any:
    # duplicated properties come back as a list; only the first one is used
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _text(component, name: str) -> str:
    value = _first(component.get(name))
    return str(value) if value is not None else ""


def _temporal(component, name: str) -> Optional[Union[date, datetime]]:
    value = _first(component.get(name))
    return getattr(value, 'dt', None) if value is not None else None


def _priority(component) -> Optional[int]:
    value = _first(component.get('priority'))
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring non-numeric PRIORITY {value!r}")
        return None


def _to_event(component) -> Event:
    start = _temporal(component, 'dtstart')
    return Event(
        uid=_text(component, 'uid'),
        summary=_text(component, 'summary'),
        description=_text(component, 'description'),
        location=_text(component, 'location'),
        start=to_iso(start),
        end=to_iso(_temporal(component, 'dtend')),
        all_day=isinstance(start, date) and not isinstance(start, datetime)
    )


def _to_todo(component) -> Todo:
    return Todo(
        uid=_text(component, 'uid'),
        summary=_text(component, 'summary'),
        description=_text(component, 'description'),
        due=to_iso(_temporal(component, 'due')),
        priority=_priority(component),
        status=_text(component, 'status'),
        completed=to_iso(_temporal(component, 'completed'))
    )


def decode(text: str, kind: ComponentKind) -> List[Union[Event, Todo]]:
    """Return every component of ``kind`` found in ``text``.

    An object holding only other component types yields an empty list.
    """
    try:
        cal = Calendar.from_ical(text)
    except ValueError as e:
        raise MalformedRecordError(
            f"Could not parse iCalendar data: {e}", cause=e
        ) from e

    convert = _to_event if kind is ComponentKind.VEVENT else _to_todo
    return [convert(component) for component in cal.walk(kind.value)]
