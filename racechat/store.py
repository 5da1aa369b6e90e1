"""Document store interface and its MongoDB implementation.

A connection is opened and closed per logical operation (one upload, one
retrieval pass), so callers work inside ``async with store.open() as conn``.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

from bson.errors import BSONError
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from racechat.config import Settings
from racechat.errors import StoreError, StoreUnavailableError

logger = logging.getLogger(__name__)

SortSpec = Sequence[Tuple[str, int]]

# Values BSON cannot encode (e.g. ints beyond 64 bits) fail before reaching the server
DRIVER_ERRORS = (PyMongoError, BSONError, OverflowError)


class StoreConnection(ABC):
    """Operations available while a store connection is open."""

    @abstractmethod
    async def insert_many(self, collection: str, documents: List[Dict[str, Any]]) -> int:
        """Insert documents and return how many were written."""
        pass

    @abstractmethod
    async def find(
        self,
        collection: str,
        filter: Optional[Dict[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        """Return matching documents; ``limit=0`` means no limit."""
        pass

    @abstractmethod
    async def find_one(self, collection: str, filter: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def count(self, collection: str) -> int:
        pass

    @abstractmethod
    async def list_collections(self) -> List[str]:
        pass

    @abstractmethod
    async def upsert_one(self, collection: str, match: Dict[str, Any], fields: Dict[str, Any]) -> None:
        """Set ``fields`` on the document matching ``match``, inserting it if absent."""
        pass


class DocumentStore(ABC):
    @abstractmethod
    def open(self):
        """Async context manager yielding a connected ``StoreConnection``."""
        pass


class MongoConnection(StoreConnection):
    def __init__(self, database):
        self.db = database

    async def insert_many(self, collection, documents):
        try:
            result = await self.db[collection].insert_many(documents)
        except DRIVER_ERRORS as e:
            raise StoreError(f"insert into {collection} failed: {e}") from e
        return len(result.inserted_ids)

    async def find(self, collection, filter=None, sort=None, limit=0):
        try:
            cursor = self.db[collection].find(filter or {})
            if sort:
                cursor = cursor.sort(list(sort))
            if limit:
                cursor = cursor.limit(limit)
            return await cursor.to_list(length=None)
        except DRIVER_ERRORS as e:
            raise StoreError(f"find on {collection} failed: {e}") from e

    async def find_one(self, collection, filter=None):
        try:
            return await self.db[collection].find_one(filter or {})
        except DRIVER_ERRORS as e:
            raise StoreError(f"find_one on {collection} failed: {e}") from e

    async def count(self, collection):
        try:
            return await self.db[collection].count_documents({})
        except DRIVER_ERRORS as e:
            raise StoreError(f"count on {collection} failed: {e}") from e

    async def list_collections(self):
        try:
            return await self.db.list_collection_names()
        except DRIVER_ERRORS as e:
            raise StoreError(f"listing collections failed: {e}") from e

    async def upsert_one(self, collection, match, fields):
        try:
            await self.db[collection].update_one(match, {"$set": fields}, upsert=True)
        except DRIVER_ERRORS as e:
            raise StoreError(f"upsert into {collection} failed: {e}") from e


class MongoDocumentStore(DocumentStore):
    def __init__(self, uri: str, database: str, timeout_ms: int = 5000):
        self.uri = uri
        self.database = database
        self.timeout_ms = timeout_ms

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoDocumentStore":
        return cls(
            uri=settings.require_mongodb_uri(),
            database=settings.mongodb_database,
            timeout_ms=settings.mongodb_timeout_ms,
        )

    @asynccontextmanager
    async def open(self) -> AsyncIterator[MongoConnection]:
        client = AsyncMongoClient(self.uri, serverSelectionTimeoutMS=self.timeout_ms)
        try:
            try:
                # the client connects lazily; ping so an unreachable server fails here
                await client.admin.command("ping")
            except PyMongoError as e:
                raise StoreUnavailableError(f"MongoDB unreachable: {e}") from e
            yield MongoConnection(client[self.database])
        finally:
            await client.close()
