"""Domain models related to AI interactions.

Includes the message structure sent to providers, the structured response
returned by provider adapters, and the closed outcome of a composed
generate-then-recover call.
"""

from typing import Any, Optional, TypedDict
from dataclasses import dataclass

from .common import TokenUsage
from .recovery import RecoveryFailure
from ..errors import TerminalError

# --- AI Interaction Structures ---

class ChatMessage(TypedDict):
    """Represents a message structure expected by chat-completion APIs."""
    role: str
    content: str

@dataclass
class StructuredAIResponse:
    """Structured response from an AI model, including metadata."""
    content: str
    token_usage: Optional[TokenUsage] = None
    model_name: Optional[str] = None # Which model generated the response
    latency_ms: Optional[float] = None # Time taken for the API call

# --- Composed call outcome ---

OUTCOME_SUCCESS = "success"
OUTCOME_TERMINAL_ERROR = "terminal_error"
OUTCOME_RECOVERY_FAILURE = "recovery_failure"

@dataclass
class GenerationOutcome:
    """Result of execute-and-recover: exactly one of value/error/failure is set."""
    kind: str
    value: Any = None
    strategy: Optional[str] = None # Recovery strategy that produced `value`
    raw_text: Optional[str] = None
    error: Optional[TerminalError] = None
    failure: Optional[RecoveryFailure] = None

    @property
    def ok(self) -> bool:
        return self.kind == OUTCOME_SUCCESS

    @property
    def message(self) -> str:
        if self.error is not None:
            return str(self.error)
        if self.failure is not None:
            return self.failure.message
        return "ok"
