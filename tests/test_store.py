"""
Tests for racechat/store.py
Driver and encoding failures surface as StoreError.
"""
import pytest
from bson.errors import InvalidDocument

from racechat.errors import StoreError
from racechat.store import MongoConnection


class _Cursor:
    def __init__(self, error):
        self.error = error

    def sort(self, spec):
        return self

    def limit(self, n):
        return self

    async def to_list(self, length=None):
        raise self.error


class _Collection:
    def __init__(self, error):
        self.error = error

    def find(self, filter):
        return _Cursor(self.error)

    async def find_one(self, filter):
        raise self.error


class _Database:
    def __init__(self, error):
        self.error = error

    def __getitem__(self, name):
        return _Collection(self.error)


class TestMongoConnectionErrors:
    @pytest.mark.asyncio
    async def test_unencodable_int_becomes_store_error(self):
        conn = MongoConnection(_Database(OverflowError("MongoDB can only handle up to 8-byte ints")))

        with pytest.raises(StoreError, match="Results_GR_Cup_Race_01"):
            await conn.find("Results_GR_Cup_Race_01", {"POS": 10**20}, [("POS", 1)], 10)

    @pytest.mark.asyncio
    async def test_invalid_document_becomes_store_error(self):
        conn = MongoConnection(_Database(InvalidDocument("cannot encode object")))

        with pytest.raises(StoreError):
            await conn.find_one("_collection_registry", {"collectionName": object()})
