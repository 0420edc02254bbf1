"""
LLM Provider implementations.

Every provider exposes stream_completion(system_prompt, user_prompt), an
async iterator of text fragments.
"""

from typing import AsyncIterator, Protocol, runtime_checkable

from .bedrock import BedrockProvider
from .openai_provider import OpenAIProvider


@runtime_checkable
class ModelClient(Protocol):
    """Streams a model response as text fragments."""

    def stream_completion(self, system_prompt: str, user_prompt: str) -> AsyncIterator[str]:
        ...


__all__ = ["BedrockProvider", "ModelClient", "OpenAIProvider"]
