"""Generation service interface and the Gemini chat implementation."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence

import google.genai as genai
from google.genai import types

from racechat.errors import GenerationError

logger = logging.getLogger(__name__)

USER_ROLE = "user"
MODEL_ROLE = "model"


@dataclass(frozen=True)
class Turn:
    role: str
    text: str


@dataclass(frozen=True)
class GenerationConfig:
    temperature: float = 1.0
    top_p: float = 0.95
    top_k: int = 40
    max_output_tokens: int = 8192
    response_mime_type: str = "text/plain"


class Dialogue(ABC):
    """One ongoing conversation with the model."""

    @abstractmethod
    async def send(self, text: str) -> str:
        pass


class GenerationService(ABC):
    @abstractmethod
    def start_dialogue(self, initial_turns: Sequence[Turn], config: GenerationConfig) -> Dialogue:
        pass


class GeminiDialogue(Dialogue):
    def __init__(self, chat):
        self._chat = chat

    async def send(self, text: str) -> str:
        try:
            response = await asyncio.to_thread(self._chat.send_message, text)
        except Exception as e:
            raise GenerationError(f"Gemini request failed: {e}") from e

        answer = (response.text or "").strip()
        logger.info(f"LLM response received | answer_length={len(answer)}")
        return answer


class GeminiGenerationService(GenerationService):
    def __init__(self, api_key: str, model: str = "gemini-2.5-flash"):
        self.client = genai.Client(api_key=api_key)
        self.model = model

    def _history(self, turns: Sequence[Turn]) -> List[types.Content]:
        return [types.Content(role=t.role, parts=[types.Part(text=t.text)]) for t in turns]

    def start_dialogue(self, initial_turns, config):
        try:
            chat = self.client.chats.create(
                model=self.model,
                config=types.GenerateContentConfig(
                    temperature=config.temperature,
                    top_p=config.top_p,
                    top_k=config.top_k,
                    max_output_tokens=config.max_output_tokens,
                    response_mime_type=config.response_mime_type,
                ),
                history=self._history(initial_turns),
            )
        except Exception as e:
            raise GenerationError(f"Gemini chat creation failed: {e}") from e
        return GeminiDialogue(chat)
