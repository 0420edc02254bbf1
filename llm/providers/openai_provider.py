"""
OpenAI LLM Provider.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Optional

from openai import APIError, AsyncOpenAI

from ..exceptions import ModelTimeout, ModelUnavailable

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """
    OpenAI LLM provider.

    Alternate backend selected with LLM_PROVIDER=openai.
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = 4000,
        temperature: float = 0.7,
        inactivity_timeout: float = 60.0,
        client: Optional[Any] = None
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model_id: Model ID
            max_tokens: Maximum tokens
            temperature: Generation temperature
            inactivity_timeout: Seconds to wait for the next fragment
            client: Pre-built AsyncOpenAI client
        """
        self._client = client or (AsyncOpenAI(api_key=api_key) if api_key else AsyncOpenAI())
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.inactivity_timeout = inactivity_timeout

        logger.info(f"OpenAI provider initialized: {model_id}")

    async def stream_completion(self, system_prompt: str, user_prompt: str) -> AsyncIterator[str]:
        """Stream response fragments using chat completions."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        try:
            stream = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self.model_id,
                    messages=messages,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    stream=True,
                ),
                timeout=self.inactivity_timeout,
            )
            chunks = stream.__aiter__()
            while True:
                try:
                    chunk = await asyncio.wait_for(chunks.__anext__(), timeout=self.inactivity_timeout)
                except StopAsyncIteration:
                    break
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except asyncio.TimeoutError:
            logger.error(f"OpenAI produced nothing for {self.inactivity_timeout}s")
            raise ModelTimeout(f"No response from {self.model_id} within {self.inactivity_timeout}s")
        except APIError as e:
            logger.error(f"OpenAI generation failed: {e}")
            raise ModelUnavailable(str(e)) from e
