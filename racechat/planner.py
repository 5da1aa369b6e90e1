"""Runs one filtered, sorted, limited query per candidate partition."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING

from racechat.errors import StoreError
from racechat.intent import AnalysisResult, QueryFilters
from racechat.logging_config import log_latency
from racechat.partitions import (
    DRIVER_INDEXED_KEYS,
    LAP_FIELD,
    LAP_TIME_KEYS,
    NUMBER_FIELD,
    POSITION_FIELDS,
    RESULT_KEYS,
    TIME_FIELD,
    TIMESTAMP_FIELD,
    TIMESTAMPED_KEYS,
    DataType,
    DynamicPartition,
    PartitionKey,
)
from racechat.store import DocumentStore, SortSpec

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10

_POSITION_SORT = [(f, ASCENDING) for f in POSITION_FIELDS]


@dataclass
class PartitionResult:
    collection_name: str
    count: int
    data: List[Dict[str, Any]]


@dataclass
class QueryResult:
    has_data: bool = False
    results: Dict[str, PartitionResult] = field(default_factory=dict)
    analysis: Optional[AnalysisResult] = None
    error: Optional[str] = None

    @property
    def collections_queried(self) -> List[str]:
        return [r.collection_name for r in self.results.values()]


def build_filter(filters: QueryFilters) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if filters.pos is not None:
        query["$or"] = [{f: filters.pos} for f in POSITION_FIELDS]
    if filters.number is not None:
        query[NUMBER_FIELD] = filters.number
    return query


def sort_for(partition: PartitionKey) -> Optional[SortSpec]:
    if isinstance(partition, DynamicPartition):
        if partition.data_type == DataType.RESULTS:
            return _POSITION_SORT
        if partition.data_type == DataType.LAP_TIMES:
            return [(TIME_FIELD, ASCENDING), (LAP_FIELD, ASCENDING)]
        if TIMESTAMP_FIELD in partition.columns:
            return [(TIMESTAMP_FIELD, ASCENDING)]
        return None

    key = partition.key
    if key in RESULT_KEYS:
        return _POSITION_SORT
    if key in DRIVER_INDEXED_KEYS:
        return [(NUMBER_FIELD, ASCENDING)]
    if key in LAP_TIME_KEYS:
        return [(TIME_FIELD, ASCENDING)]
    if key in TIMESTAMPED_KEYS:
        return [(TIMESTAMP_FIELD, ASCENDING)]
    return None


class PartitionQueryPlanner:
    def __init__(self, store: DocumentStore, default_limit: int = DEFAULT_LIMIT):
        self.store = store
        self.default_limit = default_limit

    @log_latency("planner.query")
    async def query(self, analysis: AnalysisResult) -> QueryResult:
        result = QueryResult(analysis=analysis)
        query_filter = build_filter(analysis.filters)
        limit = analysis.filters.limit or self.default_limit

        try:
            async with self.store.open() as conn:
                for partition in analysis.collections_to_query:
                    name = partition.collection_name
                    try:
                        data = await conn.find(name, query_filter, sort_for(partition), limit)
                    except Exception as e:
                        logger.error(f"Error querying collection {name}: {e}")
                        continue

                    if data:
                        result.results[partition.key] = PartitionResult(
                            collection_name=name, count=len(data), data=data
                        )
                        result.has_data = True
        except StoreError as e:
            logger.error(f"Document store unavailable, continuing without data: {e}")
            return QueryResult(analysis=analysis, error=str(e))

        logger.info(
            f"Partitions queried | requested={len(analysis.collections_to_query)} "
            f"| with_data={len(result.results)}"
        )
        return result
