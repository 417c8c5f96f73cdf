"""Concrete implementation of the AIModel interface using the Groq API.

Hides the specifics of the Groq client library and translates requests/
responses between the domain model and the Groq API format.
"""

import logging
import asyncio
import time
from typing import List, Optional, Any

from groq import Groq as GroqSDKClient, RateLimitError, APIError, APIStatusError, AuthenticationError

# Domain Layer Imports
from genpool.domain.interfaces.ai_model import AIModel
from genpool.domain.models.ai import ChatMessage, StructuredAIResponse
from genpool.domain.models.common import TokenUsage

logger = logging.getLogger(__name__)

class GroqClient(AIModel):
    """Groq implementation of the AIModel interface."""

    DEFAULT_MODEL = "llama-3.3-70b-versatile" # Or load from config
    provider_name = "groq"

    def __init__(self, model: Optional[str] = None, timeout: Optional[float] = None):
        """Initializes the Groq adapter.

        Args:
            model: The default Groq model to use.
            timeout: Transport timeout in seconds for each call.
        """
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout
        logger.info(f"GroqClient initialized for model: {self.model}")

    def _client_for(self, secret: str) -> GroqSDKClient:
        if self.timeout is not None:
            return GroqSDKClient(api_key=secret, timeout=self.timeout, max_retries=0)
        return GroqSDKClient(api_key=secret, max_retries=0)

    def _parse_groq_response(self, response: Any) -> StructuredAIResponse:
        """Parses the response object from Groq API call."""
        choice = response.choices[0]
        content = choice.message.content or ""

        token_usage = None
        if response.usage:
            # Map Groq's usage structure to our domain model
            token_usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens
            )

        return StructuredAIResponse(
            content=content,
            token_usage=token_usage,
            model_name=getattr(response, "model", None),
        )

    async def send_messages(self, secret: str, messages: List[ChatMessage]) -> StructuredAIResponse:
        """Sends messages to the configured Groq model asynchronously."""
        logger.debug(f"Sending {len(messages)} messages to Groq model: {self.model}")
        start_time = time.perf_counter()
        try:
            client = self._client_for(secret)
            # Use asyncio.to_thread as the official Groq SDK is synchronous
            chat_completion = await asyncio.to_thread(
                client.chat.completions.create,
                messages=messages,
                model=self.model,
            )
        except AuthenticationError as e:
            logger.error(f"Groq Authentication Error: {e}")
            raise
        except RateLimitError as e:
            logger.warning(f"Groq Rate Limit Error encountered: {e}")
            raise
        except APIStatusError as e:
            logger.warning(f"Groq API Error encountered (Status: {e.status_code}): {e}")
            raise
        except APIError as e:
            # Connection problems and timeouts land here
            logger.warning(f"Groq API Error encountered: {e}")
            raise
        latency_ms = (time.perf_counter() - start_time) * 1000

        structured_response = self._parse_groq_response(chat_completion)
        structured_response.latency_ms = latency_ms
        logger.debug(f"Received response from Groq in {latency_ms:.2f}ms. Usage: {structured_response.token_usage}")
        return structured_response
