"""Collection registry: keyword and data-type metadata for every uploaded partition."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from racechat.errors import StoreError
from racechat.partitions import DataType, DynamicPartition
from racechat.store import DocumentStore, StoreConnection

logger = logging.getLogger(__name__)

REGISTRY_COLLECTION = "_collection_registry"
INTERNAL_ID_FIELD = "_id"

_RESULT_COLUMNS = {"pos", "position", "classified"}
_LAP_COLUMNS = {"lap", "laps"}
_TIME_COLUMNS = {"time", "laptime"}
_WEATHER_COLUMNS = {"weather", "temp", "temperature", "humidity"}
_ANALYSIS_COLUMNS = {"analysis", "section", "endurance"}


def extract_keywords(collection_name: str) -> List[str]:
    words = re.split(r"[_\s-]", collection_name.lower())
    return [word for word in words if len(word) > 2]


def detect_data_type(columns: Iterable[str]) -> DataType:
    column_set = {str(col).lower() for col in columns}

    if column_set & _RESULT_COLUMNS:
        return DataType.RESULTS
    if column_set & _LAP_COLUMNS and column_set & _TIME_COLUMNS:
        return DataType.LAP_TIMES
    if column_set & _WEATHER_COLUMNS:
        return DataType.WEATHER
    if column_set & _ANALYSIS_COLUMNS:
        return DataType.ANALYSIS
    return DataType.GENERAL


@dataclass
class RegistryEntry:
    collection_name: str
    keywords: List[str]
    data_type: DataType
    columns: List[str]
    record_count: int = 0
    uploaded_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    backfilled: bool = False

    def to_document(self) -> Dict[str, Any]:
        document = {
            "collectionName": self.collection_name,
            "keywords": list(self.keywords),
            "dataType": self.data_type.value,
            "columns": list(self.columns),
            "recordCount": self.record_count,
            "uploadedAt": self.uploaded_at,
            "lastUpdated": self.last_updated,
        }
        if self.backfilled:
            document["backfilled"] = True
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "RegistryEntry":
        try:
            data_type = DataType(document.get("dataType", DataType.GENERAL.value))
        except ValueError:
            data_type = DataType.GENERAL
        return cls(
            collection_name=document["collectionName"],
            keywords=[str(k).lower() for k in document.get("keywords") or []],
            data_type=data_type,
            columns=list(document.get("columns") or []),
            record_count=document.get("recordCount", 0),
            uploaded_at=document.get("uploadedAt"),
            last_updated=document.get("lastUpdated"),
            backfilled=bool(document.get("backfilled", False)),
        )

    def to_partition(self) -> DynamicPartition:
        return DynamicPartition(
            name=self.collection_name,
            data_type=self.data_type,
            columns=tuple(self.columns),
        )


@dataclass(frozen=True)
class KnownCollection:
    collection_name: str
    keywords: List[str] = field(default_factory=list)
    data_type: DataType = DataType.GENERAL


# Collections that predate the registry, with hand-picked keywords
KNOWN_COLLECTIONS = [
    KnownCollection("Provisional_Results_Race_1", ["provisional", "results", "race"], DataType.RESULTS),
    KnownCollection("Provisional_Results_Class_Race_01", ["provisional", "results", "class", "race"], DataType.RESULTS),
    KnownCollection("Results_GR_Cup_Race_01", ["results", "gr", "cup", "race"], DataType.RESULTS),
    KnownCollection("Results_By_Class_GR_CUP_Race_01", ["results", "class", "gr", "cup", "race"], DataType.RESULTS),
    KnownCollection("Best_Laps_Race_1", ["best", "laps", "race"], DataType.LAP_TIMES),
    KnownCollection("Best_10_Laps_By_Driver_1", ["best", "laps", "driver"], DataType.LAP_TIMES),
    KnownCollection("Lap_Time_Race_1", ["lap", "time", "race"], DataType.LAP_TIMES),
    KnownCollection("road_america_lap_time_R1", ["road", "america", "lap", "time"], DataType.LAP_TIMES),
    KnownCollection("road_america_lap_start_R1", ["road", "america", "lap", "start"], DataType.LAP_TIMES),
    KnownCollection("road_america_lap_end_R1", ["road", "america", "lap", "end"], DataType.LAP_TIMES),
    KnownCollection("Weather_Race_1", ["weather", "race"], DataType.WEATHER),
    KnownCollection("Analysis_Endurance", ["analysis", "endurance"], DataType.ANALYSIS),
    KnownCollection("Analysis_Endurance_With_Sections", ["analysis", "endurance", "sections"], DataType.ANALYSIS),
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CollectionRegistry:
    def __init__(self, store: DocumentStore, clock=_utcnow):
        self.store = store
        self.clock = clock

    def build_entry(self, collection_name: str, sample_records: List[Dict[str, Any]]) -> RegistryEntry:
        columns = list(sample_records[0].keys()) if sample_records else []
        now = self.clock()
        return RegistryEntry(
            collection_name=collection_name,
            keywords=extract_keywords(collection_name),
            data_type=detect_data_type(columns),
            columns=[col for col in columns if col != INTERNAL_ID_FIELD],
            record_count=len(sample_records),
            uploaded_at=now,
            last_updated=now,
        )

    async def _upsert(self, conn: StoreConnection, entry: RegistryEntry) -> None:
        await conn.upsert_one(
            REGISTRY_COLLECTION,
            {"collectionName": entry.collection_name},
            entry.to_document(),
        )

    async def register(
        self,
        collection_name: str,
        sample_records: List[Dict[str, Any]],
        connection: Optional[StoreConnection] = None,
    ) -> Optional[RegistryEntry]:
        """Upsert registry metadata for a partition.

        Registry bookkeeping is optional, so any failure is logged and ``None``
        is returned instead of raising into the upload that triggered it.
        """
        try:
            entry = self.build_entry(collection_name, sample_records)
            if connection is not None:
                await self._upsert(connection, entry)
            else:
                async with self.store.open() as conn:
                    await self._upsert(conn, entry)
        except Exception as e:
            logger.error(f"Failed to register collection '{collection_name}': {e}")
            return None

        logger.info(
            f"Registered collection '{collection_name}' | data_type={entry.data_type.value} "
            f"| keywords={entry.keywords}"
        )
        return entry

    async def list_all(self) -> List[RegistryEntry]:
        try:
            async with self.store.open() as conn:
                documents = await conn.find(REGISTRY_COLLECTION)
        except StoreError as e:
            logger.warning(f"Collection registry unavailable, no dynamic partitions: {e}")
            return []

        entries = []
        for document in documents:
            if not document.get("collectionName"):
                logger.warning(f"Skipping malformed registry entry: {document}")
                continue
            entries.append(RegistryEntry.from_document(document))
        return entries

    async def backfill(self, known: Optional[List[KnownCollection]] = None) -> Dict[str, int]:
        """Register collections created before the registry existed."""
        known = KNOWN_COLLECTIONS if known is None else known
        registered = 0
        skipped = 0

        async with self.store.open() as conn:
            existing = set(await conn.list_collections())

            for meta in known:
                if meta.collection_name not in existing:
                    logger.info(f"Skipping '{meta.collection_name}' (collection doesn't exist)")
                    skipped += 1
                    continue

                try:
                    record_count = await conn.count(meta.collection_name)
                    sample = await conn.find_one(meta.collection_name)
                    columns = [col for col in (sample or {}) if col != INTERNAL_ID_FIELD]
                    now = self.clock()
                    entry = RegistryEntry(
                        collection_name=meta.collection_name,
                        keywords=list(meta.keywords),
                        data_type=meta.data_type,
                        columns=columns,
                        record_count=record_count,
                        uploaded_at=now,
                        last_updated=now,
                        backfilled=True,
                    )
                    await self._upsert(conn, entry)
                except StoreError as e:
                    logger.error(f"Failed to register '{meta.collection_name}': {e}")
                    continue

                logger.info(f"Registered '{meta.collection_name}' ({record_count} records)")
                registered += 1

        logger.info(f"Backfill complete | registered={registered} | skipped={skipped}")
        return {"registered": registered, "skipped": skipped}
