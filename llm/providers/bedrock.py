"""
AWS Bedrock LLM Provider.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import ModelTimeout, ModelUnavailable

logger = logging.getLogger(__name__)

_END_OF_STREAM = object()


class BedrockProvider:
    """
    AWS Bedrock LLM provider.

    Streams Claude models via invoke_model_with_response_stream.
    """

    DEFAULT_MODEL = "anthropic.claude-3-sonnet-20240229-v1:0"

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL,
        region: str = "us-east-1",
        max_tokens: int = 4000,
        temperature: float = 0.7,
        inactivity_timeout: float = 60.0,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        client: Optional[Any] = None
    ):
        """
        Initialize Bedrock provider.

        Args:
            model_id: Bedrock model ID
            region: AWS region
            max_tokens: Maximum tokens for response
            temperature: Generation temperature
            inactivity_timeout: Seconds to wait for the next fragment
            aws_access_key_id: Explicit AWS key (default credential chain otherwise)
            aws_secret_access_key: Explicit AWS secret
            client: Pre-built bedrock-runtime client
        """
        self.model_id = model_id
        self.region = region
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.inactivity_timeout = inactivity_timeout

        if client is not None:
            self._client = client
        else:
            self._client = boto3.client(
                "bedrock-runtime",
                region_name=region,
                aws_access_key_id=aws_access_key_id,
                aws_secret_access_key=aws_secret_access_key,
            )
        logger.info(f"Bedrock provider initialized: {model_id} in {region}")

    def _build_body(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        body = {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [
                {
                    "role": "user",
                    "content": [{"type": "text", "text": user_prompt}]
                }
            ]
        }
        if system_prompt:
            body["system"] = system_prompt
        return body

    async def _with_timeout(self, func, *args, **kwargs):
        """Run a blocking boto3 call in a thread, bounded by the inactivity window."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, **kwargs),
                timeout=self.inactivity_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Bedrock produced nothing for {self.inactivity_timeout}s")
            raise ModelTimeout(f"No response from {self.model_id} within {self.inactivity_timeout}s")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Bedrock API error: {e}")
            raise ModelUnavailable(str(e)) from e

    @staticmethod
    def _event_text(event: Dict[str, Any]) -> Optional[str]:
        """Extract the text delta from one response-stream event."""
        if "chunk" not in event:
            # internalServerException, throttlingException, modelStreamErrorException, ...
            kind = next(iter(event), "unknown")
            detail = event.get(kind)
            message = detail.get("message", kind) if isinstance(detail, dict) else kind
            raise ModelUnavailable(f"Bedrock stream error: {message}")

        try:
            payload = json.loads(event["chunk"]["bytes"])
        except (KeyError, TypeError, ValueError) as e:
            raise ModelUnavailable(f"Malformed Bedrock stream event: {e}") from e
        if not isinstance(payload, dict):
            raise ModelUnavailable("Malformed Bedrock stream event")

        if payload.get("type") == "content_block_delta":
            delta = payload.get("delta") or {}
            if delta.get("type", "text_delta") == "text_delta":
                return delta.get("text")
        return None

    async def stream_completion(self, system_prompt: str, user_prompt: str) -> AsyncIterator[str]:
        """
        Stream response fragments for a prompt.

        Args:
            system_prompt: System instructions
            user_prompt: The user's latest message

        Yields:
            Text fragments in generation order
        """
        response = await self._with_timeout(
            self._client.invoke_model_with_response_stream,
            modelId=self.model_id,
            body=json.dumps(self._build_body(system_prompt, user_prompt)),
            contentType="application/json",
            accept="application/json",
        )

        stream = response["body"]
        events = iter(stream)
        try:
            while True:
                event = await self._with_timeout(next, events, _END_OF_STREAM)
                if event is _END_OF_STREAM:
                    break
                text = self._event_text(event)
                if text:
                    yield text
        finally:
            close = getattr(stream, "close", None)
            if close:
                close()
