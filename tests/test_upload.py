"""
Tests for racechat/upload.py
Validation, ingestion metadata, and best-effort registry updates.
"""
from datetime import datetime, timezone

import pytest

from racechat.errors import StoreUnavailableError, ValidationError
from racechat.registry import REGISTRY_COLLECTION, CollectionRegistry
from racechat.upload import UploadService, validate_collection_name, validate_data

UPLOADED = datetime(2025, 5, 4, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def uploads(store):
    return UploadService(store, CollectionRegistry(store), clock=lambda: UPLOADED)


class TestValidation:
    def test_name_is_trimmed(self):
        assert validate_collection_name("  race1_results ") == "race1_results"

    @pytest.mark.parametrize("name", ["", "   ", None, "1race", "race-1", "race results"])
    def test_bad_names(self, name):
        with pytest.raises(ValidationError):
            validate_collection_name(name)

    def test_empty_data(self):
        with pytest.raises(ValidationError, match="empty"):
            validate_data([])

    def test_non_list_data(self):
        with pytest.raises(ValidationError):
            validate_data({"POS": 1})


class TestInsertDocuments:
    @pytest.mark.asyncio
    async def test_inserts_with_metadata_and_registers(self, uploads, store):
        result = await uploads.insert_documents([{"NUMBER": 55, "POS": 1}, {"NUMBER": 7, "POS": 2}], "race1_results")

        assert result == {"inserted_count": 2, "collection_name": "race1_results"}
        stored = store.collections["race1_results"]
        assert all(doc["uploadedAt"] == UPLOADED for doc in stored)
        registry = store.collections[REGISTRY_COLLECTION]
        assert registry[0]["collectionName"] == "race1_results"
        assert registry[0]["dataType"] == "results"

    @pytest.mark.asyncio
    async def test_legacy_position_gets_canonical_field(self, uploads, store):
        await uploads.insert_documents([{"NUMBER": 13, "POSITION": 4}], "race2_results")
        assert store.collections["race2_results"][0]["POS"] == 4

    @pytest.mark.asyncio
    async def test_registry_failure_does_not_fail_upload(self, uploads, store):
        store.failing.add(REGISTRY_COLLECTION)
        result = await uploads.insert_documents([{"LAP": 1, "TIME": "1:58.3"}], "race1_laps")

        assert result["inserted_count"] == 1
        assert len(store.collections["race1_laps"]) == 1

    @pytest.mark.asyncio
    async def test_unreachable_store_fails_upload(self, uploads, store):
        store.unavailable = True
        with pytest.raises(StoreUnavailableError):
            await uploads.insert_documents([{"POS": 1}], "race1_results")

    @pytest.mark.asyncio
    async def test_ingest_file(self, uploads, store):
        result = await uploads.ingest_file(b"NUMBER,POS\n55,1\n", "race3.csv", "race3_results")

        assert result["inserted_count"] == 1
        assert store.collections["race3_results"][0]["NUMBER"] == 55
