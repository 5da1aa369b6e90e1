"""Question intent analysis and partition routing.

Maps a free-text race question to an intent tag, an ordered list of
partitions worth querying, and any structured filters (position, car
number, result count) that can be read straight out of the text.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Pattern, Sequence, Tuple

from racechat.partitions import DEFAULT_KEYS, DataType, PartitionKey, StaticPartition

logger = logging.getLogger(__name__)


class Intent(str, Enum):
    IDENTIFY_ENTITY = "identify_entity"
    FIND_EXTREME = "find_extreme"
    ENVIRONMENTAL = "environmental"
    ANALYSIS = "analysis"
    GENERAL_QUERY = "general_query"


def _compile(*patterns: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# Evaluated in order; the first family with any match decides the intent
INTENT_PATTERNS: Sequence[Tuple[Intent, Tuple[Pattern, ...]]] = (
    (Intent.IDENTIFY_ENTITY, _compile(r"who (is|was|are)", r"which (driver|vehicle|team)", r"who won", r"winner")),
    (
        Intent.FIND_EXTREME,
        _compile(r"fastest", r"slowest", r"best", r"worst", r"highest", r"lowest", r"maximum", r"minimum"),
    ),
    (Intent.ENVIRONMENTAL, _compile(r"weather", r"temperature", r"rain", r"wind", r"conditions")),
    (Intent.ANALYSIS, _compile(r"analysis", r"endurance", r"performance", r"statistics", r"trends")),
)

# Phrases that name a known collection outright
EXPLICIT_COLLECTION_PHRASES: Dict[str, str] = {
    "results_gr_cup_race_01": "resultsGRCup01",
    "results gr cup": "resultsGRCup01",
    "provisional_results_race_1": "provisionalResults1",
    "provisional results": "provisionalResults1",
    "best_10_laps_by_driver": "best10LapsByDriver1",
    "best 10 laps by driver": "best10LapsByDriver1",
    "results_by_class": "resultsByClassGRCup01",
    "provisional_results_class": "provisionalResultsClass01",
    "weather_race_1": "weather1",
    "analysis_endurance": "analysis",
    "analysis_endurance_with_sections": "analysisWithSections",
    "road_america": "roadAmericaLapTimeR1",
}

# Each family: name, trigger, static keys, and the registry data type it also pulls in
TOPIC_GROUPS: Sequence[Tuple[str, Pattern, Tuple[str, ...], Optional[DataType]]] = (
    (
        "best_laps_by_driver",
        re.compile(r"best\s*(10|ten)?\s*laps?\s*(by\s*driver|driver)", re.IGNORECASE),
        ("best10LapsByDriver1",),
        None,
    ),
    (
        "results",
        re.compile(r"position|standing|result|winner|ranking|place|pos|classified", re.IGNORECASE),
        ("provisionalResults1", "resultsGRCup01"),
        DataType.RESULTS,
    ),
    (
        "class",
        re.compile(r"class|gr\s*cup|division", re.IGNORECASE),
        ("resultsByClassGRCup01", "provisionalResultsClass01"),
        DataType.RESULTS,
    ),
    (
        "lap_times",
        re.compile(r"lap|time|fastest|slowest|best lap|lap time", re.IGNORECASE),
        ("bestLaps1", "lapTime1"),
        DataType.LAP_TIMES,
    ),
    (
        "road_america",
        re.compile(r"road\s*america|lap\s*start|lap\s*end", re.IGNORECASE),
        ("roadAmericaLapTimeR1", "roadAmericaLapStartR1", "roadAmericaLapEndR1"),
        None,
    ),
    (
        "weather",
        re.compile(r"weather|temperature|rain|wind|condition|humidity|pressure", re.IGNORECASE),
        ("weather1",),
        DataType.WEATHER,
    ),
    (
        "analysis",
        re.compile(r"analysis|endurance|performance|section", re.IGNORECASE),
        ("analysis", "analysisWithSections"),
        DataType.ANALYSIS,
    ),
)

POSITION_PATTERN = re.compile(r"position\s+(\d+)", re.IGNORECASE)
NUMBER_PATTERN = re.compile(r"(?:vehicle|car|number)\s+(?:number\s+)?(\d+)", re.IGNORECASE)
LIMIT_PATTERN = re.compile(r"(?:top|best|first)\s+(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class QueryFilters:
    pos: Optional[int] = None
    number: Optional[int] = None
    limit: Optional[int] = None

    def as_dict(self) -> Dict[str, int]:
        values = {"POS": self.pos, "NUMBER": self.number, "limit": self.limit}
        return {k: v for k, v in values.items() if v is not None}


@dataclass
class AnalysisResult:
    intent: Intent
    collections_to_query: List[PartitionKey] = field(default_factory=list)
    filters: QueryFilters = field(default_factory=QueryFilters)

    @property
    def keys(self) -> List[str]:
        return [p.key for p in self.collections_to_query]


class _CandidateList:
    """Append-only partition list, unique by resolved collection name."""

    def __init__(self):
        self.items: List[PartitionKey] = []
        self._seen = set()

    def add(self, partition: PartitionKey) -> bool:
        if partition.collection_name in self._seen:
            return False
        self._seen.add(partition.collection_name)
        self.items.append(partition)
        return True

    def add_static(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.add(StaticPartition(key))

    def __len__(self):
        return len(self.items)


def detect_intent(lower_question: str) -> Intent:
    for intent, patterns in INTENT_PATTERNS:
        if any(p.search(lower_question) for p in patterns):
            return intent
    return Intent.GENERAL_QUERY


def extract_filters(lower_question: str) -> QueryFilters:
    def first_int(pattern: Pattern) -> Optional[int]:
        match = pattern.search(lower_question)
        return int(match.group(1)) if match else None

    return QueryFilters(
        pos=first_int(POSITION_PATTERN),
        number=first_int(NUMBER_PATTERN),
        limit=first_int(LIMIT_PATTERN),
    )


def analyze(question: str, registry_entries: Sequence = ()) -> AnalysisResult:
    """Classify a question and pick the partitions to query.

    ``registry_entries`` are ``RegistryEntry`` objects. A registered partition
    is picked when any of its keywords occurs in the question. It is also
    appended after a topic family's static keys when its data type matches
    that family, so freshly uploaded partitions are reachable by topic alone.
    """
    lower_question = question.lower()
    intent = detect_intent(lower_question)
    candidates = _CandidateList()

    for entry in registry_entries:
        if any(keyword and keyword in lower_question for keyword in entry.keywords):
            if candidates.add(entry.to_partition()):
                logger.debug(f"Registry match: {entry.collection_name}")

    for phrase, key in EXPLICIT_COLLECTION_PHRASES.items():
        if phrase in lower_question and candidates.add(StaticPartition(key)):
            logger.debug(f"Explicit collection mention: {phrase} -> {key}")

    for _, pattern, keys, data_type in TOPIC_GROUPS:
        if not pattern.search(lower_question):
            continue
        candidates.add_static(keys)
        if data_type is not None:
            for entry in registry_entries:
                if entry.data_type == data_type:
                    candidates.add(entry.to_partition())

    if not candidates:
        candidates.add_static(DEFAULT_KEYS)

    filters = extract_filters(lower_question)
    logger.info(
        f"Question analyzed | intent={intent.value} | partitions={[p.key for p in candidates.items]} "
        f"| filters={filters.as_dict()}"
    )
    return AnalysisResult(intent=intent, collections_to_query=candidates.items, filters=filters)
