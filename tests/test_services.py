import pytest

from radicale_mcp.domain import ContactPatch, Event, EventPatch, TodoPatch
from radicale_mcp.infrastructure import icalendar_codec
from radicale_mcp.monitoring import ConflictError, MalformedRecordError, NotFoundError, RemoteError

from .conftest import BASE_URL

CALENDAR_URL = f"{BASE_URL}/alice/team-sync/"
BOOK_URL = f"{BASE_URL}/alice/people/"


@pytest.mark.asyncio
async def test_create_and_partially_update_event(calendar_service, repository):
    created = await calendar_service.create_calendar("Team Sync")
    assert created['url'] == CALENDAR_URL

    event = await calendar_service.create_event(
        CALENDAR_URL, "Standup", "2026-03-01T09:00:00Z", location="Room 1"
    )
    assert event['url'] == f"{CALENDAR_URL}{event['uid']}.ics"
    stored = repository.data(event['url']).splitlines()
    assert "DTSTART:20260301T090000Z" in stored
    assert not any(line.startswith("DTEND") for line in stored)

    updated = await calendar_service.update_event(event['url'], EventPatch(summary="Retro"))
    assert updated['success'] is True

    fetched = await calendar_service.get_event(event['url'])
    assert fetched['uid'] == event['uid']
    assert fetched['summary'] == "Retro"
    assert fetched['start'] == "2026-03-01T09:00:00Z"
    assert fetched['end'] is None
    assert fetched['location'] == "Room 1"
    assert fetched['etag'] == updated['etag']
    assert "SUMMARY:Retro" in fetched['raw']


@pytest.mark.asyncio
async def test_concurrent_write_is_reported_as_conflict(calendar_service, repository):
    event = await calendar_service.create_event(CALENDAR_URL, "Standup", "2026-03-01T09:00:00Z")
    theirs = icalendar_codec.encode_event(
        Event(uid=event['uid'], summary="Theirs", start="2026-03-01T09:00:00Z")
    )
    repository.before_update = lambda url: repository.put(url, theirs)

    with pytest.raises(ConflictError) as excinfo:
        await calendar_service.update_event(event['url'], EventPatch(summary="Mine"))

    assert excinfo.value.url == event['url']
    assert repository.data(event['url']) == theirs


@pytest.mark.asyncio
async def test_update_uses_the_fetched_etag(calendar_service, repository):
    event = await calendar_service.create_event(CALENDAR_URL, "Standup", "2026-03-01T09:00:00Z")
    repository.put(event['url'], repository.data(event['url']))

    result = await calendar_service.update_event(event['url'], EventPatch(location="Room 2"))

    assert result['location'] == "Room 2"


@pytest.mark.asyncio
async def test_missing_event_is_not_found(calendar_service):
    with pytest.raises(NotFoundError):
        await calendar_service.get_event(f"{CALENDAR_URL}missing.ics")

    with pytest.raises(NotFoundError):
        await calendar_service.update_event(f"{CALENDAR_URL}missing.ics", EventPatch(summary="x"))


@pytest.mark.asyncio
async def test_updating_an_event_object_as_todo_is_malformed(calendar_service, repository):
    event = await calendar_service.create_event(CALENDAR_URL, "Standup", "2026-03-01T09:00:00Z")
    before = repository.data(event['url'])

    with pytest.raises(MalformedRecordError):
        await calendar_service.update_todo(event['url'], TodoPatch(summary="x"))

    assert repository.data(event['url']) == before


@pytest.mark.asyncio
async def test_list_events_time_range_needs_both_bounds(calendar_service, repository):
    await calendar_service.create_event(CALENDAR_URL, "Standup", "2026-03-01T09:00:00Z")
    await calendar_service.create_todo(CALENDAR_URL, "Not an event")

    events = await calendar_service.list_events(CALENDAR_URL, start="2026-01-01T00:00:00Z")
    assert [e['summary'] for e in events] == ["Standup"]
    assert repository.fetch_calls[-1]['time_range'] is None

    await calendar_service.list_events(
        CALENDAR_URL, start="2026-01-01T00:00:00Z", end="2026-12-31T23:59:59Z"
    )
    assert repository.fetch_calls[-1]['time_range'] == (
        "2026-01-01T00:00:00Z", "2026-12-31T23:59:59Z"
    )


@pytest.mark.asyncio
async def test_todo_lifecycle(calendar_service, repository):
    todo = await calendar_service.create_todo(CALENDAR_URL, "File taxes", priority=0)
    assert "STATUS:NEEDS-ACTION" in repository.data(todo['url']).splitlines()

    done = await calendar_service.update_todo(todo['url'], TodoPatch(status="COMPLETED"))
    assert done['status'] == "COMPLETED"
    assert done['completed'] is not None
    assert done['priority'] == 0

    assert await calendar_service.list_todos(CALENDAR_URL) == []
    [listed] = await calendar_service.list_todos(CALENDAR_URL, show_completed=True)
    assert listed['uid'] == todo['uid']
    assert listed['completed'] == done['completed']

    renamed = await calendar_service.update_todo(todo['url'], TodoPatch(summary="File taxes 2026"))
    assert renamed['completed'] == done['completed']

    reopened = await calendar_service.update_todo(todo['url'], TodoPatch(status="IN-PROCESS"))
    assert reopened['completed'] is None
    assert not any(
        line.startswith("COMPLETED") for line in repository.data(todo['url']).splitlines()
    )


@pytest.mark.asyncio
async def test_calendar_collections(calendar_service):
    await calendar_service.create_calendar("Team Sync", description="Weekly")
    assert await calendar_service.list_calendars() == [{
        'url': CALENDAR_URL,
        'displayName': "Team Sync",
        'description': "Weekly",
        'ctag': None,
        'syncToken': None
    }]

    with pytest.raises(RemoteError):
        await calendar_service.create_calendar("team sync")

    assert await calendar_service.delete_calendar(CALENDAR_URL) == {
        'success': True, 'deleted': CALENDAR_URL
    }
    assert await calendar_service.list_calendars() == []


@pytest.mark.asyncio
async def test_contact_without_names_is_unknown(contacts_service, repository):
    await contacts_service.create_address_book("People")

    created = await contacts_service.create_contact(BOOK_URL, email="x@example.com")

    assert created['url'].endswith(".vcf")
    assert "FN:Unknown" in repository.data(created['url']).split("\r\n")


@pytest.mark.asyncio
async def test_contact_partial_update(contacts_service):
    created = await contacts_service.create_contact(
        BOOK_URL, full_name="Ada Lovelace", first_name="Ada", last_name="Lovelace",
        email="ada@example.com", phone="555"
    )

    await contacts_service.update_contact(
        created['url'], ContactPatch(email="ada@engine.org", phone=None)
    )

    contact = await contacts_service.get_contact(created['url'])
    assert contact['uid'] == created['uid']
    assert contact['full_name'] == "Ada Lovelace"
    assert contact['last_name'] == "Lovelace"
    assert contact['email'] == "ada@engine.org"
    assert contact['phone'] == ""

    [listed] = await contacts_service.list_contacts(BOOK_URL)
    assert listed['email'] == "ada@engine.org"


@pytest.mark.asyncio
async def test_calendar_object_read_as_contact_is_malformed(
    calendar_service, contacts_service
):
    event = await calendar_service.create_event(BOOK_URL, "Standup", "2026-03-01T09:00:00Z")

    with pytest.raises(MalformedRecordError):
        await contacts_service.get_contact(event['url'])


@pytest.mark.asyncio
async def test_delete_contact(contacts_service, repository):
    created = await contacts_service.create_contact(BOOK_URL, full_name="Ada")

    result = await contacts_service.delete_contact(created['url'])

    assert result == {'success': True, 'deleted': created['url']}
    assert created['url'] not in repository.objects


@pytest.mark.asyncio
async def test_lowercase_completed_status_is_hidden(calendar_service, repository):
    repository.put(f"{CALENDAR_URL}other.ics", (
        "BEGIN:VCALENDAR\r\n"
        "VERSION:2.0\r\n"
        "PRODID:-//Other client//EN\r\n"
        "BEGIN:VTODO\r\n"
        "UID:x\r\n"
        "SUMMARY:Done elsewhere\r\n"
        "STATUS:completed\r\n"
        "END:VTODO\r\n"
        "END:VCALENDAR\r\n"
    ))

    assert await calendar_service.list_todos(CALENDAR_URL) == []
    [todo] = await calendar_service.list_todos(CALENDAR_URL, show_completed=True)
    assert todo['uid'] == "x"
