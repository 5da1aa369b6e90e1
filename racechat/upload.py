"""Uploading parsed race records into a named partition."""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List

from racechat.errors import ValidationError
from racechat.ingest import read_records
from racechat.logging_config import log_latency
from racechat.partitions import POSITION_FIELDS
from racechat.registry import CollectionRegistry
from racechat.store import DocumentStore

logger = logging.getLogger(__name__)

COLLECTION_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
UPLOADED_AT_FIELD = "uploadedAt"


def validate_collection_name(collection_name) -> str:
    if not isinstance(collection_name, str) or not collection_name.strip():
        raise ValidationError("Collection name is required")

    sanitized = collection_name.strip()
    if not COLLECTION_NAME_PATTERN.match(sanitized):
        raise ValidationError(
            "Invalid collection name. Must start with a letter or underscore and contain only "
            "alphanumeric characters and underscores"
        )
    return sanitized


def validate_data(records) -> List[Dict[str, Any]]:
    if not isinstance(records, list):
        raise ValidationError("Invalid data format")
    if not records:
        raise ValidationError("Data array is empty")
    if not all(isinstance(r, dict) for r in records):
        raise ValidationError("Invalid data format")
    return records


def canonical_position(record: Dict[str, Any]) -> Dict[str, Any]:
    canonical, legacy = POSITION_FIELDS
    if canonical not in record and legacy in record:
        record = {**record, canonical: record[legacy]}
    return record


class UploadService:
    def __init__(self, store: DocumentStore, registry: CollectionRegistry, clock=None):
        self.store = store
        self.registry = registry
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def prepare_documents(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        uploaded_at = self.clock()
        return [{**canonical_position(record), UPLOADED_AT_FIELD: uploaded_at} for record in records]

    @log_latency("upload.insert_documents")
    async def insert_documents(self, records, collection_name) -> Dict[str, Any]:
        records = validate_data(records)
        name = validate_collection_name(collection_name)
        documents = self.prepare_documents(records)

        async with self.store.open() as conn:
            inserted = await conn.insert_many(name, documents)
            await self.registry.register(name, records, connection=conn)

        logger.info(f"Uploaded {inserted} documents to collection '{name}'")
        return {"inserted_count": inserted, "collection_name": name}

    async def ingest_file(self, file_bytes: bytes, file_name: str, collection_name: str) -> Dict[str, Any]:
        records = read_records(file_bytes, file_name)
        return await self.insert_documents(records, collection_name)
