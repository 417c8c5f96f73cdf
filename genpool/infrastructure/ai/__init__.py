"""AI Model Implementations.

Contains specific adapters for different AI providers (OpenAI, Groq, etc.),
each implementing the `AIModel` interface from the domain layer.
"""

import logging
from typing import Optional

from genpool.domain.interfaces.ai_model import AIModel

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("openai", "groq")


def create_ai_model(provider: str, model: Optional[str] = None, timeout: Optional[float] = None) -> AIModel:
    """Builds the adapter for a provider name ('openai' or 'groq')."""
    name = (provider or "").lower()
    if name == "openai":
        from genpool.infrastructure.ai.openai.gpt_client import GptClient
        return GptClient(model=model, timeout=timeout)
    if name == "groq":
        from genpool.infrastructure.ai.groq.groq_client import GroqClient
        return GroqClient(model=model, timeout=timeout)
    raise ValueError(f"Unsupported provider '{provider}'. Choose one of: {', '.join(SUPPORTED_PROVIDERS)}")
