"""Domain models produced by the structured-output recovery engine.

Recovery never raises: callers receive either a RecoveredValue or a
RecoveryFailure and branch on `ok`.
"""

from dataclasses import dataclass
from typing import Any, Optional

# Accepted values for the optional expected shape of a recovered record.
SHAPE_OBJECT = "object"
SHAPE_ARRAY = "array"
SHAPES = (SHAPE_OBJECT, SHAPE_ARRAY)


@dataclass(frozen=True)
class RecoveredValue:
    """A structured value recovered from raw text."""
    value: Any
    strategy: str        # Name of the strategy that produced the value
    strategy_index: int  # 1-based position in the cascade

    ok = True


@dataclass(frozen=True)
class RecoveryFailure:
    """Diagnostic for text no strategy could turn into a structured value."""
    original_length: int
    preview: str
    last_strategy: Optional[str]
    last_strategy_index: int
    message: str

    ok = False

    def __str__(self) -> str:
        return self.message
