"""
LLM Service for an OpenAI-compatible chat completions API.
Forwards a single chat turn and translates provider failures.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, List, Dict, Any

import httpx

from voice_relay.config import Settings
from voice_relay.core.exceptions import (
    LLMAPIException,
    LLMConnectionException,
    LLMTimeoutException
)

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I couldn't process that request."


@dataclass
class LLMResponse:
    """Response from LLM completion."""
    content: str
    finish_reason: Optional[str] = None
    usage: Optional[Dict[str, int]] = None
    processing_time_ms: Optional[float] = None


class LLMService:
    """
    Thin client for the provider's /chat/completions route.

    One request per call. No retries and no streaming; the caller gets either
    the reply text or an LLMException carrying the status to mirror.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._model = settings.LLM_MODEL_ID
        self._is_initialized = False

    async def initialize(self):
        """Create the HTTP client."""
        logger.info("Initializing LLM service...")

        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.LLM_BASE_URL.rstrip("/"),
                timeout=self._settings.LLM_TIMEOUT_SECONDS
            )

        self._is_initialized = True
        logger.info(f"LLM service initialized with model: {self._model}")

    def build_messages(self, message: str, system_prompt: Optional[str] = None) -> List[Dict[str, str]]:
        """Build the system + user message pair for one turn."""
        return [
            {
                "role": "system",
                "content": system_prompt or self._settings.DEFAULT_SYSTEM_PROMPT
            },
            {"role": "user", "content": message}
        ]

    async def complete(
        self,
        message: str,
        system_prompt: Optional[str] = None
    ) -> LLMResponse:
        """
        Generate a complete response for one user message.

        Args:
            message: The user's utterance
            system_prompt: Optional system prompt, the configured default otherwise

        Returns:
            LLMResponse with the reply text
        """
        if not self._is_initialized:
            await self.initialize()

        start_time = time.time()
        payload = {
            "model": self._model,
            "messages": self.build_messages(message, system_prompt),
            "temperature": self._settings.LLM_TEMPERATURE,
            "max_tokens": self._settings.LLM_MAX_TOKENS
        }
        headers = {"Authorization": f"Bearer {self._settings.OPENAI_API_KEY}"}

        try:
            response = await self._client.post(
                "/chat/completions",
                json=payload,
                headers=headers
            )
        except httpx.TimeoutException:
            raise LLMTimeoutException(self._settings.LLM_TIMEOUT_SECONDS)
        except httpx.HTTPError as e:
            logger.error(f"LLM provider unreachable: {e}")
            raise LLMConnectionException(str(e))

        if response.is_error:
            api_error = _error_detail(response)
            logger.error(f"LLM API error ({response.status_code}): {api_error}")
            raise LLMAPIException(api_error, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            raise LLMAPIException("Provider returned a non-JSON body", status_code=502)

        if not isinstance(data, dict):
            raise LLMAPIException("Provider returned an unexpected body", status_code=502)

        choices = data.get("choices") or [{}]
        choice = choices[0] if isinstance(choices, list) else None
        message_body = (choice.get("message") or {}) if isinstance(choice, dict) else None
        if not isinstance(message_body, dict):
            raise LLMAPIException("Provider returned a malformed choice", status_code=502)
        content = message_body.get("content") or FALLBACK_REPLY

        return LLMResponse(
            content=content,
            finish_reason=choice.get("finish_reason"),
            usage=data.get("usage"),
            processing_time_ms=(time.time() - start_time) * 1000
        )

    async def cleanup(self):
        """Cleanup resources."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        self._is_initialized = False
        logger.info("LLM service cleaned up")


def _error_detail(response: httpx.Response) -> str:
    """Pull a readable message out of a provider error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    if error:
        return str(error)
    return str(body)
