"""Concrete implementation of the AIModel interface using the OpenAI API.

Hides the specifics of the OpenAI client library and translates requests/
responses between the domain model and the OpenAI API format. The API key is
supplied per call by the resilient executor, so one adapter serves the whole
credential pool.
"""

import logging
import asyncio
import time
from typing import List, Optional, Any

from openai import OpenAI, RateLimitError, APIError, APIStatusError, AuthenticationError

# Domain Layer Imports
from genpool.domain.interfaces.ai_model import AIModel
from genpool.domain.models.ai import ChatMessage, StructuredAIResponse
from genpool.domain.models.common import TokenUsage

logger = logging.getLogger(__name__)

class GptClient(AIModel):
    """OpenAI implementation of the AIModel interface."""

    DEFAULT_MODEL = "gpt-4o-mini" # Or load from config
    provider_name = "openai"

    def __init__(self, model: Optional[str] = None, timeout: Optional[float] = None):
        """Initializes the OpenAI adapter.

        Args:
            model: The default OpenAI model to use.
            timeout: Transport timeout in seconds for each call.
        """
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout
        logger.info(f"GptClient initialized for model: {self.model}")

    def _client_for(self, secret: str) -> OpenAI:
        if self.timeout is not None:
            return OpenAI(api_key=secret, timeout=self.timeout, max_retries=0)
        return OpenAI(api_key=secret, max_retries=0)

    def _parse_openai_response(self, response: Any) -> StructuredAIResponse:
        """Parses the response object from OpenAI API call."""
        choice = response.choices[0]
        content = choice.message.content or ""

        token_usage = None
        if response.usage:
            token_usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens
            )

        return StructuredAIResponse(
            content=content,
            token_usage=token_usage,
            model_name=getattr(response, "model", None), # Actual model used
        )

    async def send_messages(self, secret: str, messages: List[ChatMessage]) -> StructuredAIResponse:
        """Sends messages to the configured OpenAI model asynchronously."""
        logger.debug(f"Sending {len(messages)} messages to OpenAI model: {self.model}")
        start_time = time.perf_counter()
        try:
            client = self._client_for(secret)
            # Use asyncio.to_thread for the synchronous SDK call
            response = await asyncio.to_thread(
                client.chat.completions.create,
                model=self.model,
                messages=messages,
            )
        except AuthenticationError as e:
            logger.error(f"OpenAI Authentication Error: {e}")
            raise # Credential is dead; the pool suspends it
        except RateLimitError as e:
            logger.warning(f"OpenAI Rate Limit Error encountered: {e}")
            raise
        except APIStatusError as e:
            logger.warning(f"OpenAI API Error encountered (Status: {e.status_code}): {e}")
            raise
        except APIError as e:
            logger.warning(f"OpenAI API Error encountered: {e}")
            raise
        latency_ms = (time.perf_counter() - start_time) * 1000

        structured_response = self._parse_openai_response(response)
        structured_response.latency_ms = latency_ms
        logger.debug(f"Received response from OpenAI in {latency_ms:.2f}ms. Usage: {structured_response.token_usage}")
        return structured_response
