"""Race-data chatbot core: question routing over stored race partitions plus Gemini generation."""

from racechat.chat import RaceChatEngine
from racechat.formatter import format_context
from racechat.intent import AnalysisResult, Intent, QueryFilters, analyze
from racechat.planner import PartitionQueryPlanner, PartitionResult, QueryResult
from racechat.registry import CollectionRegistry, RegistryEntry
from racechat.sessions import SessionConfig, SessionStore, SessionSweeper
from racechat.upload import UploadService

__all__ = [
    "AnalysisResult",
    "CollectionRegistry",
    "Intent",
    "PartitionQueryPlanner",
    "PartitionResult",
    "QueryFilters",
    "QueryResult",
    "RaceChatEngine",
    "RegistryEntry",
    "SessionConfig",
    "SessionStore",
    "SessionSweeper",
    "UploadService",
    "analyze",
    "format_context",
]
