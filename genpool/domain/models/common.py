"""Defines common Value Objects used across different domain contexts.

These objects represent simple values or concepts like credential ids,
prompts, raw model text, etc., ensuring consistency and type safety.
"""

from typing import NewType, TypedDict

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
PromptText = NewType("PromptText", str)        # Payload sent to the generative service
AIResponse = NewType("AIResponse", str)        # Raw text returned by the service
ProcessedOutput = NewType("ProcessedOutput", str) # Text prepared for display

# === Credential Context ===
CredentialId = NewType("CredentialId", str)    # Public identifier, e.g. key_1718000000000_ab12cd
CredentialLabel = NewType("CredentialLabel", str) # Human-readable nickname

# --- Structured Data ---
class TokenUsage(TypedDict):
    """Represents token usage information from an AI call."""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
