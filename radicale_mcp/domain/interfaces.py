"""Domain interfaces for the Radicale MCP adapter."""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from .entities import Collection, CollectionKind, DavObject, WriteResult


class DavRepository(ABC):
    """Abstract access to DAV collections and the objects stored in them."""

    @abstractmethod
    async def list_collections(self, kind: CollectionKind) -> List[Collection]:
        """List calendars or address books."""
        pass

    @abstractmethod
    async def create_collection(
        self,
        kind: CollectionKind,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None
    ) -> Collection:
        """Create a calendar or address book named ``name``."""
        pass

    @abstractmethod
    async def delete_collection(self, kind: CollectionKind, url: str) -> None:
        """Delete a collection by URL."""
        pass

    @abstractmethod
    async def fetch_objects(
        self,
        kind: CollectionKind,
        collection_url: str,
        time_range: Optional[Tuple[str, str]] = None,
        object_urls: Optional[Sequence[str]] = None
    ) -> List[DavObject]:
        """Fetch objects of a collection, optionally by time range or explicit URLs."""
        pass

    @abstractmethod
    async def create_object(
        self, kind: CollectionKind, collection_url: str, filename: str, data: str
    ) -> WriteResult:
        """Store a new object under ``collection_url``."""
        pass

    @abstractmethod
    async def update_object(
        self, kind: CollectionKind, url: str, data: str, etag: Optional[str]
    ) -> WriteResult:
        """Overwrite an object, only if its etag still matches."""
        pass

    @abstractmethod
    async def delete_object(
        self, kind: CollectionKind, url: str, etag: Optional[str] = None
    ) -> None:
        """Delete an object by URL."""
        pass
