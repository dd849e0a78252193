"""Shared fixtures: an in-memory DAV repository that enforces etags."""

from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from radicale_mcp.application import CalendarService, ContactsService
from radicale_mcp.config import RadicaleConfig
from radicale_mcp.domain import Collection, CollectionKind, DavObject, DavRepository, WriteResult
from radicale_mcp.infrastructure.dav_client import slugify
from radicale_mcp.monitoring import ConflictError, RemoteError

BASE_URL = "https://dav.example.com"


class InMemoryDavRepository(DavRepository):
    """Keeps objects in a dict and rejects writes carrying a stale etag."""

    def __init__(self):
        self.collections: Dict[str, Tuple[CollectionKind, Collection]] = {}
        self.objects: Dict[str, Tuple[str, str]] = {}
        self.fetch_calls: List[dict] = []
        self.before_update: Optional[Callable[[str], None]] = None
        self._version = 0

    def _next_etag(self) -> str:
        self._version += 1
        return f'"v{self._version}"'

    def put(self, url: str, data: str) -> str:
        """Unconditional write, as another client would do it."""
        etag = self._next_etag()
        self.objects[url] = (etag, data)
        return etag

    def data(self, url: str) -> str:
        return self.objects[url][1]

    async def list_collections(self, kind):
        return [c for k, c in self.collections.values() if k is kind]

    async def create_collection(self, kind, name, description=None, color=None):
        url = f"{BASE_URL}/alice/{slugify(name)}/"
        if url in self.collections:
            raise RemoteError("Failed to create collection", 405, "exists", url)
        collection = Collection(url=url, display_name=name, description=description or "")
        self.collections[url] = (kind, collection)
        return collection

    async def delete_collection(self, kind, url):
        if url not in self.collections:
            raise RemoteError("Failed to delete collection", 404, "not found", url)
        del self.collections[url]

    async def fetch_objects(
        self,
        kind,
        collection_url: str,
        time_range: Optional[Tuple[str, str]] = None,
        object_urls: Optional[Sequence[str]] = None
    ):
        self.fetch_calls.append({
            'collection_url': collection_url,
            'time_range': time_range,
            'object_urls': object_urls
        })
        if object_urls:
            urls = [url for url in object_urls if url in self.objects]
        else:
            urls = [url for url in self.objects if url.startswith(collection_url)]
        return [DavObject(url=url, etag=self.objects[url][0], data=self.objects[url][1]) for url in urls]

    async def create_object(self, kind, collection_url, filename, data):
        url = f"{collection_url}{filename}"
        if url in self.objects:
            raise ConflictError(url)
        return WriteResult(url=url, status=201, etag=self.put(url, data))

    async def update_object(self, kind, url, data, etag):
        if self.before_update:
            self.before_update(url)
        if url not in self.objects:
            raise RemoteError("Failed to update object", 404, "", url)
        if etag is not None and self.objects[url][0] != etag:
            raise ConflictError(url, etag)
        return WriteResult(url=url, status=204, etag=self.put(url, data))

    async def delete_object(self, kind, url, etag=None):
        if url not in self.objects:
            raise RemoteError("Failed to delete object", 404, "", url)
        del self.objects[url]


@pytest.fixture
def repository() -> InMemoryDavRepository:
    return InMemoryDavRepository()


@pytest.fixture
def calendar_service(repository) -> CalendarService:
    return CalendarService(repository)


@pytest.fixture
def contacts_service(repository) -> ContactsService:
    return ContactsService(repository)


@pytest.fixture
def radicale_config() -> RadicaleConfig:
    return RadicaleConfig(base_url=f"{BASE_URL}/", username="alice", password="secret")
