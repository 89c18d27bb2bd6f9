"""Services module initialization."""

from voice_relay.services.llm import LLMService, LLMResponse

__all__ = [
    "LLMService",
    "LLMResponse"
]
