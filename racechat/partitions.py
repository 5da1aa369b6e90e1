"""Known race-data partitions and the partition key union used for routing."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple, Union


class DataType(str, Enum):
    RESULTS = "results"
    LAP_TIMES = "lap_times"
    WEATHER = "weather"
    ANALYSIS = "analysis"
    GENERAL = "general"


# Static alias key -> MongoDB collection name
COLLECTION_MAP: Dict[str, str] = {
    # Results and standings
    "provisionalResults1": "Provisional_Results_Race_1",
    "provisionalResultsClass01": "Provisional_Results_Class_Race_01",
    "resultsGRCup01": "Results_GR_Cup_Race_01",
    "resultsByClassGRCup01": "Results_By_Class_GR_CUP_Race_01",
    # Lap times and performance
    "bestLaps1": "Best_Laps_Race_1",
    "best10LapsByDriver1": "Best_10_Laps_By_Driver_1",
    "lapTime1": "Lap_Time_Race_1",
    "roadAmericaLapTimeR1": "road_america_lap_time_R1",
    "roadAmericaLapStartR1": "road_america_lap_start_R1",
    "roadAmericaLapEndR1": "road_america_lap_end_R1",
    # Weather
    "weather1": "Weather_Race_1",
    # Analysis
    "analysis": "Analysis_Endurance",
    "analysisWithSections": "Analysis_Endurance_With_Sections",
}

RESULT_KEYS = frozenset(
    ["provisionalResults1", "resultsGRCup01", "provisionalResultsClass01", "resultsByClassGRCup01"]
)
DRIVER_INDEXED_KEYS = frozenset(["best10LapsByDriver1"])
LAP_TIME_KEYS = frozenset(["bestLaps1", "lapTime1", "roadAmericaLapTimeR1"])
TIMESTAMPED_KEYS = frozenset(["roadAmericaLapStartR1", "roadAmericaLapEndR1"])

DEFAULT_KEYS: Tuple[str, ...] = ("provisionalResults1", "resultsGRCup01")

# Legacy uploads spell the position column either way
POSITION_FIELDS: Tuple[str, ...] = ("POS", "POSITION")
NUMBER_FIELD = "NUMBER"
TIME_FIELD = "TIME"
LAP_FIELD = "LAP"
TIMESTAMP_FIELD = "timestamp"


@dataclass(frozen=True)
class StaticPartition:
    """A partition addressed through the fixed alias table."""

    key: str

    def __post_init__(self):
        if self.key not in COLLECTION_MAP:
            raise KeyError(f"Unknown static partition key: {self.key}")

    @property
    def collection_name(self) -> str:
        return COLLECTION_MAP[self.key]


@dataclass(frozen=True)
class DynamicPartition:
    """A partition known only through the collection registry."""

    name: str
    data_type: DataType = DataType.GENERAL
    columns: Tuple[str, ...] = field(default=())

    @property
    def key(self) -> str:
        return self.name

    @property
    def collection_name(self) -> str:
        return self.name


PartitionKey = Union[StaticPartition, DynamicPartition]
