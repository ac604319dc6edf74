"""
services/llm_service.py
-----------------------
LLM collaborator with MLflow experiment tracking.

Contract: given an ordered list of {role, content} turns, return one text
response or raise LLMServiceError. There is no retry; a timeout, an API
error or an empty completion all fail the current turn.

Any OpenAI-compatible endpoint works. Point OPENAI_BASE_URL at
https://generativelanguage.googleapis.com/v1beta/openai/ to use Gemini.
Without OPENAI_API_KEY the service runs in mock mode.
"""

import asyncio
import time
from typing import Dict, List, Optional

from cost_assistant.core.config import settings
from cost_assistant.core.exceptions import LLMServiceError
from cost_assistant.core.logging import get_logger

logger = get_logger(__name__)

Turn = Dict[str, str]


class LLMService:

    def __init__(self) -> None:
        self._use_mock = not bool(settings.OPENAI_API_KEY)
        if not self._use_mock:
            import openai
            self._client = openai.AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.LLM_TIMEOUT_SECONDS,
                max_retries=0,
            )
        else:
            logger.info("LLMService in MOCK mode — set OPENAI_API_KEY for real LLM")

    @property
    def is_mock(self) -> bool:
        return self._use_mock

    async def complete(
        self,
        messages: List[Turn],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        kind: str = "chat",
        user_id: str = "unknown",
    ) -> str:
        """
        Generate a full response for the given turns.
        Automatically tracks the call in MLflow.
        """
        start = time.monotonic()

        try:
            if self._use_mock:
                response = await self._mock_generate(messages)
            else:
                response = await asyncio.wait_for(
                    self._openai_generate(
                        messages,
                        max_tokens=max_tokens or settings.LLM_MAX_TOKENS,
                        temperature=(
                            settings.LLM_TEMPERATURE if temperature is None else temperature
                        ),
                    ),
                    timeout=settings.LLM_TIMEOUT_SECONDS,
                )
        except asyncio.TimeoutError as exc:
            logger.error("LLM call timed out", kind=kind, timeout=settings.LLM_TIMEOUT_SECONDS)
            raise LLMServiceError(
                f"LLM call timed out after {settings.LLM_TIMEOUT_SECONDS}s"
            ) from exc

        latency_ms = round((time.monotonic() - start) * 1000, 1)
        logger.info(
            "LLM response generated",
            kind=kind,
            latency_ms=latency_ms,
            mock=self._use_mock,
        )

        # Track in MLflow (never raises)
        from cost_assistant.services.mlflow_service import track_llm_call
        track_llm_call(
            kind=kind,
            prompt_chars=sum(len(m["content"]) for m in messages),
            response=response,
            latency_ms=latency_ms,
            user_id=user_id,
            mock=self._use_mock,
        )

        return response

    # ── Mock implementation ───────────────────────────────────────────────────

    async def _mock_generate(self, messages: List[Turn]) -> str:
        prompt = messages[-1]["content"] if messages else ""
        return (
            f"[MOCK LLM RESPONSE]\n\n"
            f"You asked: '{prompt[:100]}{'...' if len(prompt) > 100 else ''}'\n\n"
            "This is a simulated AI response. Set OPENAI_API_KEY in .env to use a real LLM."
        )

    # ── OpenAI implementation ─────────────────────────────────────────────────

    async def _openai_generate(
        self,
        messages: List[Turn],
        max_tokens: int,
        temperature: float,
    ) -> str:
        try:
            completion = await self._client.chat.completions.create(
                model=settings.LLM_MODEL,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except Exception as exc:
            logger.error("OpenAI API error", error=str(exc))
            raise LLMServiceError(f"LLM generation failed: {exc}") from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            logger.error("OpenAI API returned an empty completion")
            raise LLMServiceError("LLM returned an empty response")
        return content


# Singleton — shared across all requests
llm_service = LLMService()


def get_llm_service() -> LLMService:
    """FastAPI dependency; tests override it with a stub collaborator."""
    return llm_service
