"""Environment-driven settings for the chat engine."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from racechat.errors import ConfigurationError

load_dotenv()

DEFAULT_DATABASE = "excel_converter"
DEFAULT_MODEL = "gemini-2.5-flash"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_MODEL
    mongodb_uri: Optional[str] = None
    mongodb_database: str = DEFAULT_DATABASE
    mongodb_timeout_ms: int = 5000
    session_timeout_seconds: float = 30 * 60
    session_sweep_interval_seconds: float = 5 * 60
    generation_timeout_seconds: float = 60.0

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
            mongodb_uri=os.getenv("MONGODB_URI") or None,
            mongodb_database=os.getenv("MONGODB_DATABASE", DEFAULT_DATABASE),
            mongodb_timeout_ms=int(_env_float("MONGODB_TIMEOUT_MS", 5000)),
            session_timeout_seconds=_env_float("SESSION_TIMEOUT_SECONDS", 30 * 60),
            session_sweep_interval_seconds=_env_float("SESSION_SWEEP_INTERVAL_SECONDS", 5 * 60),
            generation_timeout_seconds=_env_float("GENERATION_TIMEOUT_SECONDS", 60.0),
        )

    def require_gemini_key(self) -> str:
        if not self.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY not found in environment")
        return self.gemini_api_key

    def require_mongodb_uri(self) -> str:
        if not self.mongodb_uri:
            raise ConfigurationError("MONGODB_URI not found in environment")
        return self.mongodb_uri
