"""Chat engine: retrieval from stored race data, prompt assembly, and generation."""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from racechat.config import Settings
from racechat.errors import GenerationError, ParseError
from racechat.formatter import format_context
from racechat.generation import Dialogue, GeminiGenerationService, GenerationConfig, GenerationService
from racechat.ingest import parse_file
from racechat.intent import AnalysisResult, analyze
from racechat.logging_config import ChatMetrics, log_latency
from racechat.planner import PartitionQueryPlanner, QueryResult
from racechat.prompts import (
    CHAT_MODE,
    EXPLAIN_MODE,
    LLM_ERROR_ANSWER,
    SAMPLE_QUESTIONS,
    default_user_message,
    follow_up_message,
    initial_turns,
)
from racechat.registry import CollectionRegistry, RegistryEntry
from racechat.sessions import Session, SessionConfig, SessionStore, SessionSweeper
from racechat.store import DocumentStore, MongoDocumentStore

logger = logging.getLogger(__name__)


def _error(message: str, details: Optional[str] = None) -> Dict[str, Any]:
    result = {"success": False, "error": message}
    if details:
        result["details"] = details
    return result


class RaceChatEngine:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        store: Optional[DocumentStore] = None,
        generation: Optional[GenerationService] = None,
        generation_config: Optional[GenerationConfig] = None,
        clock=time.time,
        sweep_sleep=asyncio.sleep,
    ):
        self.settings = settings or Settings.from_env()

        if generation is None:
            generation = GeminiGenerationService(
                api_key=self.settings.require_gemini_key(),
                model=self.settings.gemini_model,
            )
        self.generation = generation
        self.generation_config = generation_config or GenerationConfig()

        if store is None and self.settings.mongodb_uri:
            store = MongoDocumentStore.from_settings(self.settings)
        self.store = store
        self.registry = CollectionRegistry(store) if store is not None else None
        self.planner = PartitionQueryPlanner(store) if store is not None else None

        self.sessions = SessionStore(
            generation,
            clock=clock,
            session_timeout=self.settings.session_timeout_seconds,
        )
        self.sweeper = SessionSweeper(
            self.sessions,
            interval=self.settings.session_sweep_interval_seconds,
            sleep=sweep_sleep,
        )
        self.metrics = ChatMetrics()

        logger.info(f"RaceChatEngine initialized | retrieval={'on' if store is not None else 'off'}")

    async def start(self):
        self.sweeper.start()

    async def close(self):
        await self.sweeper.stop()
        logger.info("RaceChatEngine resources closed")

    def analyze_question(self, question: str, registry_entries: Optional[List[RegistryEntry]] = None) -> AnalysisResult:
        return analyze(question, registry_entries or [])

    async def query_partitions(self, analysis: AnalysisResult) -> QueryResult:
        if self.planner is None:
            return QueryResult(analysis=analysis, error="MongoDB URI not configured")
        return await self.planner.query(analysis)

    def format_context(self, query_result: QueryResult) -> str:
        return format_context(query_result)

    async def register_partition(self, name: str, sample_records: List[Dict[str, Any]]) -> Optional[RegistryEntry]:
        if self.registry is None:
            logger.warning(f"No document store configured, not registering '{name}'")
            return None
        return await self.registry.register(name, sample_records)

    def get_or_create_session(self, session_id: str, config: Optional[SessionConfig] = None) -> Session:
        return self.sessions.get_or_create(session_id, config)

    def record_turn(self, session_id: str) -> None:
        self.sessions.increment_message_count(session_id)

    def session_stats(self, session_id: str) -> Optional[dict]:
        return self.sessions.stats(session_id)

    def sample_questions(self) -> List[str]:
        return list(SAMPLE_QUESTIONS)

    async def retrieve_context(self, question: str) -> QueryResult:
        """Registry lookup, analysis and partition queries for one question."""
        entries = await self.registry.list_all() if self.registry is not None else []
        analysis = self.analyze_question(question, entries)
        return await self.query_partitions(analysis)

    async def _send(self, dialogue: Dialogue, message: str) -> str:
        return await asyncio.wait_for(
            dialogue.send(message),
            timeout=self.settings.generation_timeout_seconds,
        )

    @log_latency("chat.ask")
    async def ask(
        self,
        question: str = "",
        *,
        file_bytes: Optional[bytes] = None,
        file_name: Optional[str] = None,
        mode: str = CHAT_MODE,
        session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        start = time.perf_counter()
        question = (question or "").strip()
        has_file = file_bytes is not None

        if not question and not has_file:
            return _error("Question or file is required")
        if mode not in (CHAT_MODE, EXPLAIN_MODE):
            mode = CHAT_MODE

        logger.info(f"Query received | question_length={len(question)} | file={file_name} | mode={mode}")

        file_context = ""
        if has_file:
            try:
                file_context = parse_file(file_bytes, file_name or "")
            except ParseError as e:
                logger.error(f"File parsing error: {e}")
                return _error("Failed to parse the uploaded file", str(e))

        mongo_context = ""
        query_result = None
        if question and self.store is not None:
            try:
                query_result = await self.retrieve_context(question)
                mongo_context = self.format_context(query_result)
            except Exception as e:
                logger.error(f"Race data retrieval failed, continuing with general knowledge: {e}")
                query_result = None

            if mongo_context:
                logger.info(f"Retrieved racing data from {len(query_result.results)} collection(s)")
            else:
                logger.info("No specific racing data found, using general knowledge")

        message = question or default_user_message(mode)
        session = None

        try:
            if session_id:
                is_new = session_id not in self.sessions
                session = self.get_or_create_session(
                    session_id,
                    SessionConfig(
                        mode=mode,
                        mongo_context=mongo_context,
                        file_context=file_context,
                        generation_config=self.generation_config,
                    ),
                )
                if not is_new:
                    message = follow_up_message(message, mongo_context, file_context)
                    self.sessions.update_context(
                        session_id,
                        mongo_context=mongo_context or None,
                        file_context=file_context or None,
                    )
                dialogue = session.dialogue
            else:
                dialogue = self.generation.start_dialogue(
                    initial_turns(mode, mongo_context, file_context),
                    self.generation_config,
                )

            answer = await self._send(dialogue, message)
        except (GenerationError, asyncio.TimeoutError) as e:
            logger.error(f"LLM generation failed: {e!r}")
            if session_id and isinstance(e, asyncio.TimeoutError):
                # the abandoned request still runs in its worker thread and would
                # append its turn to this chat later
                self.sessions.delete(session_id)
            self.metrics.record_request(
                success=False,
                latency_ms=(time.perf_counter() - start) * 1000,
                used_database=bool(mongo_context),
                used_file=has_file,
            )
            return {**_error("Failed to generate response", str(e) or type(e).__name__), "answer": LLM_ERROR_ANSWER}

        if session_id:
            self.record_turn(session_id)

        self.metrics.record_request(
            success=True,
            latency_ms=(time.perf_counter() - start) * 1000,
            used_database=bool(mongo_context),
            used_file=has_file,
        )

        response = {
            "answer": answer,
            "success": True,
            "file_processed": has_file,
            "file_name": file_name if has_file else None,
            "mongo_data_used": bool(mongo_context),
            "collections_queried": query_result.collections_queried if query_result and query_result.has_data else [],
        }
        if session_id:
            response["session_id"] = session_id
            response["message_count"] = session.message_count
        return response
