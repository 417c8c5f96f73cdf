"""Interface for AI Language Models (LLMs).

Defines the contract for sending a payload to a generative provider
(e.g., OpenAI GPT, Groq Llama) with a caller-supplied credential. The
resilient executor only depends on this contract; it never talks to an SDK.
"""

import abc
from typing import List

# Import relevant domain models
from ..models.ai import ChatMessage, StructuredAIResponse
from ..models.common import AIResponse, PromptText


class AIModel(abc.ABC):
    """Abstract Base Class for AI language model interactions."""

    provider_name: str = "unknown"

    @abc.abstractmethod
    async def send_messages(self, secret: str, messages: List[ChatMessage]) -> StructuredAIResponse:
        """Sends a list of messages to the AI model using the given credential.

        Args:
            secret: The API key to authenticate this single call with.
            messages: A list of ChatMessage objects representing the conversation.

        Returns:
            A StructuredAIResponse containing the AI's reply and metadata.

        Raises:
            Exception: The provider SDK's own error types, unmodified, so the
                caller can classify them.
        """
        pass

    async def invoke(self, secret: str, payload: PromptText) -> AIResponse:
        """Performs one call with `secret` and returns the raw response text."""
        messages: List[ChatMessage] = [{'role': 'user', 'content': payload}]
        response = await self.send_messages(secret, messages)
        return AIResponse(response.content)

    async def ping(self, secret: str) -> None:
        """Cheap liveness probe for a credential. Raises on rejection."""
        await self.invoke(secret, PromptText("Test connection - respond with just 'OK'"))
