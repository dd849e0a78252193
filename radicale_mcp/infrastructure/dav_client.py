"""CalDAV/CardDAV client built on requests and ElementTree."""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlparse
from xml.etree.ElementTree import Element, SubElement, tostring, register_namespace
import xml.etree.ElementTree as ET

import requests

from ..config import RadicaleConfig
from ..domain import Collection, CollectionKind, DavObject, DavRepository, WriteResult
from ..monitoring import AuthError, ConflictError, RemoteError
from .dates import to_ical_datetime


# DAV namespace constants
DAV_NS = 'DAV:'
CALDAV_NS = 'urn:ietf:params:xml:ns:caldav'
CARDDAV_NS = 'urn:ietf:params:xml:ns:carddav'
ICAL_NS = 'http://apple.com/ns/ical/'
CALSERVER_NS = 'http://calendarserver.org/ns/'

register_namespace('D', DAV_NS)
register_namespace('C', CALDAV_NS)
register_namespace('CR', CARDDAV_NS)
register_namespace('ICAL', ICAL_NS)
register_namespace('CS', CALSERVER_NS)

XML_HEADERS = {'Content-Type': 'application/xml; charset=utf-8'}

USER_AGENT = 'radicale-mcp'


def slugify(name: str) -> str:
    """``"Team Sync!"`` -> ``"team-sync"``."""
    return re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-')


def collection_url_of(object_url: str) -> str:
    """Parent collection of an object URL (everything up to the last ``/``).

    Assumes objects sit directly inside their collection.
    """
    return object_url[:object_url.rfind('/') + 1]


def _xml_body(root: Element) -> str:
    xml_str = tostring(root, encoding='unicode')
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{xml_str}'


def _status_code(status_line: Optional[str]) -> int:
    """``HTTP/1.1 404 Not Found`` -> 404."""
    try:
        return int((status_line or '').split()[1])
    except (IndexError, ValueError):
        return 0


@dataclass
class _DavResponse:
    """One ``<D:response>`` of a multistatus body."""
    href: str
    status: int = 200
    props: Dict[str, Element] = field(default_factory=dict)

    def text(self, tag: str) -> Optional[str]:
        element = self.props.get(tag)
        return element.text if element is not None else None


def parse_multistatus(content: bytes) -> List[_DavResponse]:
    """Collect the successful properties of each response in a 207 body."""
    root = ET.fromstring(content)
    responses = []
    for node in root.findall(f'{{{DAV_NS}}}response'):
        href = node.findtext(f'{{{DAV_NS}}}href', default='').strip()
        result = _DavResponse(href=href)

        response_status = node.find(f'{{{DAV_NS}}}status')
        if response_status is not None:
            result.status = _status_code(response_status.text)

        for propstat in node.findall(f'{{{DAV_NS}}}propstat'):
            if _status_code(propstat.findtext(f'{{{DAV_NS}}}status')) != 200:
                continue
            prop = propstat.find(f'{{{DAV_NS}}}prop')
            if prop is None:
                continue
            for element in prop:
                result.props[element.tag] = element

        responses.append(result)
    return responses


@dataclass
class DavSession:
    """Authenticated HTTP session for one protocol."""
    kind: CollectionKind
    http: requests.Session
    home_url: str


class DavSessionManager:
    """Owns the calendar and contacts sessions.

    Each session is created on first use, once, and kept for the lifetime of
    the process. There is no refresh: a session that stops working fails the
    next call.
    """

    HOME_SET_TAGS = {
        CollectionKind.CALENDAR: f'{{{CALDAV_NS}}}calendar-home-set',
        CollectionKind.ADDRESS_BOOK: f'{{{CARDDAV_NS}}}addressbook-home-set',
    }

    def __init__(
        self,
        config: RadicaleConfig,
        session_factory: Callable[[], requests.Session] = requests.Session
    ):
        self.config = config
        self._session_factory = session_factory
        self._sessions: Dict[CollectionKind, DavSession] = {}
        self._locks = {kind: asyncio.Lock() for kind in CollectionKind}
        self.logger = logging.getLogger(__name__)

    def is_established(self, kind: CollectionKind) -> bool:
        return kind in self._sessions

    async def get(self, kind: CollectionKind) -> DavSession:
        """Return the session for ``kind``, logging in on first use."""
        session = self._sessions.get(kind)
        if session is not None:
            return session

        async with self._locks[kind]:
            if kind not in self._sessions:
                self._sessions[kind] = await self._login(kind)
            return self._sessions[kind]

    async def _login(self, kind: CollectionKind) -> DavSession:
        http = self._session_factory()
        http.auth = (self.config.username, self.config.password)
        http.headers.update({'User-Agent': USER_AGENT})

        principal_url = self.config.principal_url
        self.logger.info(f"Establishing {kind.value} session for {principal_url}")

        root = Element(f'{{{DAV_NS}}}propfind')
        prop = SubElement(root, f'{{{DAV_NS}}}prop')
        SubElement(prop, f'{{{DAV_NS}}}current-user-principal')
        SubElement(prop, self.HOME_SET_TAGS[kind])

        response = await asyncio.to_thread(
            http.request, 'PROPFIND', principal_url,
            data=_xml_body(root), headers={**XML_HEADERS, 'Depth': '0'}
        )

        if response.status_code in (401, 403):
            raise AuthError(
                f"{kind.value} login rejected for user {self.config.username}",
                details={'status': response.status_code, 'url': principal_url}
            )
        if not response.ok:
            raise RemoteError(
                f"{kind.value} login failed", response.status_code, response.text, principal_url
            )

        home_url = principal_url
        for item in parse_multistatus(response.content):
            home_set = item.props.get(self.HOME_SET_TAGS[kind])
            if home_set is None:
                continue
            href = home_set.findtext(f'{{{DAV_NS}}}href')
            if href:
                home_url = urljoin(principal_url, href.strip())
                break

        self.logger.info(f"{kind.value} session established, home set {home_url}")
        return DavSession(kind=kind, http=http, home_url=home_url)


class DavClient(DavRepository):
    """DavRepository backed by a Radicale (or any CalDAV/CardDAV) server."""

    RESOURCE_TYPE_TAGS = {
        CollectionKind.CALENDAR: f'{{{CALDAV_NS}}}calendar',
        CollectionKind.ADDRESS_BOOK: f'{{{CARDDAV_NS}}}addressbook',
    }
    DESCRIPTION_TAGS = {
        CollectionKind.CALENDAR: f'{{{CALDAV_NS}}}calendar-description',
        CollectionKind.ADDRESS_BOOK: f'{{{CARDDAV_NS}}}addressbook-description',
    }
    DATA_TAGS = {
        CollectionKind.CALENDAR: f'{{{CALDAV_NS}}}calendar-data',
        CollectionKind.ADDRESS_BOOK: f'{{{CARDDAV_NS}}}address-data',
    }

    def __init__(self, config: RadicaleConfig, sessions: DavSessionManager):
        self.config = config
        self.sessions = sessions
        self.logger = logging.getLogger(__name__)

    async def _request(
        self, kind: CollectionKind, method: str, url: str, **kwargs
    ) -> requests.Response:
        session = await self.sessions.get(kind)
        self.logger.debug(f"{method} {url}")
        return await asyncio.to_thread(session.http.request, method, url, **kwargs)

    async def list_collections(self, kind: CollectionKind) -> List[Collection]:
        session = await self.sessions.get(kind)

        root = Element(f'{{{DAV_NS}}}propfind')
        prop = SubElement(root, f'{{{DAV_NS}}}prop')
        SubElement(prop, f'{{{DAV_NS}}}resourcetype')
        SubElement(prop, f'{{{DAV_NS}}}displayname')
        SubElement(prop, self.DESCRIPTION_TAGS[kind])
        SubElement(prop, f'{{{CALSERVER_NS}}}getctag')
        SubElement(prop, f'{{{DAV_NS}}}sync-token')

        response = await self._request(
            kind, 'PROPFIND', session.home_url,
            data=_xml_body(root), headers={**XML_HEADERS, 'Depth': '1'}
        )
        if not response.ok:
            raise RemoteError(
                f"Failed to list {kind.value} collections",
                response.status_code, response.text, session.home_url
            )

        collections = []
        for item in parse_multistatus(response.content):
            resource_type = item.props.get(f'{{{DAV_NS}}}resourcetype')
            if resource_type is None or resource_type.find(self.RESOURCE_TYPE_TAGS[kind]) is None:
                continue
            collections.append(Collection(
                url=urljoin(session.home_url, item.href),
                display_name=item.text(f'{{{DAV_NS}}}displayname'),
                description=item.text(self.DESCRIPTION_TAGS[kind]) or "",
                ctag=item.text(f'{{{CALSERVER_NS}}}getctag'),
                sync_token=item.text(f'{{{DAV_NS}}}sync-token')
            ))

        self.logger.info(f"Found {len(collections)} {kind.value} collections")
        return collections

    async def create_collection(
        self,
        kind: CollectionKind,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None
    ) -> Collection:
        slug = slugify(name)
        if not slug:
            raise ValueError(f"Collection name {name!r} has no usable characters for a URL")
        url = self.config.collection_url(slug)

        if kind is CollectionKind.CALENDAR:
            method = 'MKCALENDAR'
            root = Element(f'{{{CALDAV_NS}}}mkcalendar')
            prop = SubElement(SubElement(root, f'{{{DAV_NS}}}set'), f'{{{DAV_NS}}}prop')
            SubElement(prop, f'{{{DAV_NS}}}displayname').text = name
            if description:
                SubElement(prop, self.DESCRIPTION_TAGS[kind]).text = description
            if color:
                SubElement(prop, f'{{{ICAL_NS}}}calendar-color').text = color
        else:
            method = 'MKCOL'
            root = Element(f'{{{DAV_NS}}}mkcol')
            prop = SubElement(SubElement(root, f'{{{DAV_NS}}}set'), f'{{{DAV_NS}}}prop')
            resource_type = SubElement(prop, f'{{{DAV_NS}}}resourcetype')
            SubElement(resource_type, f'{{{DAV_NS}}}collection')
            SubElement(resource_type, self.RESOURCE_TYPE_TAGS[kind])
            SubElement(prop, f'{{{DAV_NS}}}displayname').text = name
            if description:
                SubElement(prop, self.DESCRIPTION_TAGS[kind]).text = description

        response = await self._request(
            kind, method, url, data=_xml_body(root).encode('utf-8'), headers=XML_HEADERS
        )
        if not response.ok:
            raise RemoteError(
                f"Failed to create {kind.value} collection", response.status_code, response.text, url
            )

        self.logger.info(f"Created {kind.value} collection {url}")
        return Collection(url=url, display_name=name, description=description or "")

    async def delete_collection(self, kind: CollectionKind, url: str) -> None:
        response = await self._request(kind, 'DELETE', url)
        if not response.ok:
            raise RemoteError(
                f"Failed to delete {kind.value} collection", response.status_code, response.text, url
            )
        self.logger.info(f"Deleted {kind.value} collection {url}")

    def _report_body(
        self,
        kind: CollectionKind,
        time_range: Optional[Tuple[str, str]],
        object_urls: Optional[Sequence[str]]
    ) -> str:
        ns = CALDAV_NS if kind is CollectionKind.CALENDAR else CARDDAV_NS
        if kind is CollectionKind.CALENDAR:
            report = 'calendar-multiget' if object_urls else 'calendar-query'
        else:
            report = 'addressbook-multiget' if object_urls else 'addressbook-query'

        root = Element(f'{{{ns}}}{report}')
        prop = SubElement(root, f'{{{DAV_NS}}}prop')
        SubElement(prop, f'{{{DAV_NS}}}getetag')
        SubElement(prop, self.DATA_TAGS[kind])

        if object_urls:
            for object_url in object_urls:
                SubElement(root, f'{{{DAV_NS}}}href').text = urlparse(object_url).path
        elif kind is CollectionKind.CALENDAR:
            calendar_filter = SubElement(
                SubElement(root, f'{{{ns}}}filter'), f'{{{ns}}}comp-filter', name='VCALENDAR'
            )
            if time_range:
                start, end = time_range
                event_filter = SubElement(calendar_filter, f'{{{ns}}}comp-filter', name='VEVENT')
                SubElement(
                    event_filter, f'{{{ns}}}time-range',
                    start=to_ical_datetime(start), end=to_ical_datetime(end)
                )
        else:
            SubElement(SubElement(root, f'{{{ns}}}filter'), f'{{{ns}}}prop-filter', name='FN')

        return _xml_body(root)

    async def fetch_objects(
        self,
        kind: CollectionKind,
        collection_url: str,
        time_range: Optional[Tuple[str, str]] = None,
        object_urls: Optional[Sequence[str]] = None
    ) -> List[DavObject]:
        body = self._report_body(kind, time_range, object_urls)
        response = await self._request(
            kind, 'REPORT', collection_url,
            data=body.encode('utf-8'), headers={**XML_HEADERS, 'Depth': '1'}
        )
        if not response.ok:
            raise RemoteError(
                f"Failed to fetch {kind.value} objects", response.status_code, response.text,
                collection_url
            )

        objects = []
        for item in parse_multistatus(response.content):
            data = item.text(self.DATA_TAGS[kind])
            if item.status != 200 or data is None:
                # multiget reports missing hrefs as 404 responses
                continue
            objects.append(DavObject(
                url=urljoin(collection_url, item.href),
                etag=item.text(f'{{{DAV_NS}}}getetag'),
                data=data
            ))

        self.logger.debug(f"Fetched {len(objects)} objects from {collection_url}")
        return objects

    async def create_object(
        self, kind: CollectionKind, collection_url: str, filename: str, data: str
    ) -> WriteResult:
        if not collection_url.endswith('/'):
            collection_url += '/'
        url = f"{collection_url}{filename}"
        response = await self._request(
            kind, 'PUT', url, data=data.encode('utf-8'),
            headers={'Content-Type': kind.content_type, 'If-None-Match': '*'}
        )
        if response.status_code == 412:
            raise ConflictError(url, None, response.text)
        if not response.ok:
            raise RemoteError("Failed to create object", response.status_code, response.text, url)

        self.logger.info(f"Created {url}")
        return WriteResult(url=url, status=response.status_code, etag=response.headers.get('ETag'))

    async def update_object(
        self, kind: CollectionKind, url: str, data: str, etag: Optional[str]
    ) -> WriteResult:
        headers = {'Content-Type': kind.content_type}
        if etag:
            headers['If-Match'] = etag
        else:
            self.logger.warning(f"No etag known for {url}, writing without If-Match")
        response = await self._request(kind, 'PUT', url, data=data.encode('utf-8'), headers=headers)
        if response.status_code == 412:
            raise ConflictError(url, etag, response.text)
        if not response.ok:
            raise RemoteError("Failed to update object", response.status_code, response.text, url)

        self.logger.info(f"Updated {url}")
        return WriteResult(url=url, status=response.status_code, etag=response.headers.get('ETag'))

    async def delete_object(
        self, kind: CollectionKind, url: str, etag: Optional[str] = None
    ) -> None:
        headers = {'If-Match': etag} if etag else {}
        response = await self._request(kind, 'DELETE', url, headers=headers)
        if response.status_code == 412:
            raise ConflictError(url, etag, response.text)
        if not response.ok:
            raise RemoteError("Failed to delete object", response.status_code, response.text, url)
        self.logger.info(f"Deleted {url}")
