"""In-memory conversation sessions with inactivity expiry.

Each session owns one generation dialogue. The system/context prompt is sent
once, when the session is created; later turns only append user messages.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from racechat.generation import Dialogue, GenerationConfig, GenerationService
from racechat.prompts import CHAT_MODE, MODES, initial_turns

logger = logging.getLogger(__name__)

SESSION_TIMEOUT_SECONDS = 30 * 60
SWEEP_INTERVAL_SECONDS = 5 * 60


@dataclass
class SessionConfig:
    mode: str = CHAT_MODE
    mongo_context: str = ""
    file_context: str = ""
    generation_config: GenerationConfig = field(default_factory=GenerationConfig)


@dataclass
class Session:
    dialogue: Dialogue
    created_at: float
    last_used_at: float
    mode: str = CHAT_MODE
    mongo_context: str = ""
    file_context: str = ""
    message_count: int = 0


class SessionStore:
    def __init__(
        self,
        generation: GenerationService,
        clock: Callable[[], float] = time.time,
        session_timeout: float = SESSION_TIMEOUT_SECONDS,
    ):
        self.generation = generation
        self.clock = clock
        self.session_timeout = session_timeout
        self._sessions: Dict[str, Session] = {}

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: str, config: Optional[SessionConfig] = None) -> Session:
        """Return the session for ``session_id``, opening its dialogue on first use.

        For an existing session ``config`` is ignored apart from refreshing the
        last-used time. This never suspends, so on one event loop the first
        caller for a new id creates the session and later callers reuse it.
        """
        existing = self._sessions.get(session_id)
        if existing is not None:
            existing.last_used_at = self.clock()
            logger.info(f"Reusing existing session: {session_id}")
            return existing

        config = config or SessionConfig()
        mode = config.mode if config.mode in MODES else CHAT_MODE
        dialogue = self.generation.start_dialogue(
            initial_turns(mode, config.mongo_context, config.file_context),
            config.generation_config,
        )
        now = self.clock()
        session = Session(
            dialogue=dialogue,
            created_at=now,
            last_used_at=now,
            mode=mode,
            mongo_context=config.mongo_context,
            file_context=config.file_context,
        )
        self._sessions[session_id] = session
        logger.info(f"Created new session: {session_id} | mode={mode}")
        return session

    def update_context(
        self, session_id: str, mongo_context: Optional[str] = None, file_context: Optional[str] = None
    ) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            return
        if mongo_context is not None:
            session.mongo_context = mongo_context
        if file_context is not None:
            session.file_context = file_context
        session.last_used_at = self.clock()

    def increment_message_count(self, session_id: str) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            return
        session.message_count += 1
        session.last_used_at = self.clock()

    def delete(self, session_id: str) -> bool:
        deleted = self._sessions.pop(session_id, None) is not None
        if deleted:
            logger.info(f"Deleted session: {session_id}")
        return deleted

    def stats(self, session_id: str) -> Optional[dict]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        return {
            "message_count": session.message_count,
            "created_at": session.created_at,
            "last_used_at": session.last_used_at,
            "mode": session.mode,
            "has_mongo_context": bool(session.mongo_context),
            "has_file_context": bool(session.file_context),
        }

    def sweep(self) -> int:
        cutoff = self.clock() - self.session_timeout
        expired = [sid for sid, s in self._sessions.items() if s.last_used_at < cutoff]
        for session_id in expired:
            del self._sessions[session_id]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired session(s)")
        logger.info(f"Active sessions: {len(self._sessions)}")
        return len(expired)


class SessionSweeper:
    """Calls ``SessionStore.sweep`` on a fixed interval from an asyncio task."""

    def __init__(self, store: SessionStore, interval: float = SWEEP_INTERVAL_SECONDS, sleep=asyncio.sleep):
        self.store = store
        self.interval = interval
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Session cleanup started (every {self.interval:.0f}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await self._sleep(self.interval)
            try:
                self.store.sweep()
            except Exception as e:
                logger.error(f"Session sweep failed: {e}")
