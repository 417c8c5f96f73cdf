"""Recovery of structured JSON records from best-effort model output.

Model output often wraps the record in prose or code fences, truncates it,
or breaks its syntax. `StructuredOutputRecovery.recover` runs an ordered
cascade of repair strategies and returns on the first one that parses:

     1. normalize           strip fences/whitespace/leading prose
     2. direct_parse        parse as-is
     3. bracket_extraction  first balanced {...} / [...] span
     4. brace_balancing     append missing '}'
     5. bracket_balancing   append missing ']'
     6. trailing_comma      drop commas before a closer
     7. quote_style         single-quoted strings -> double-quoted
     8. unquoted_keys       quote bare identifier keys
     9. truncated_string    close an unterminated string, then re-close
    10. full_balancing      close string and nesting stack in order

Every strategy builds its candidate from the normalized original text, never
from another strategy's output. Recovery never raises: exhaustion returns a
RecoveryFailure.
"""

import json
import logging
import re
from typing import Any, Callable, Optional, Sequence, Tuple, Union

from genpool.domain.models.recovery import (
    SHAPE_ARRAY, SHAPE_OBJECT, SHAPES, RecoveredValue, RecoveryFailure,
)
from genpool.infrastructure.recovery.scanner import (
    OPENERS, find_balanced_span, map_outside_strings, scan, single_to_double_quotes,
)

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_CHARS = 200

_FENCE_OPEN_RE = re.compile(r"```[\w+-]*[ \t]*\n?")
_FENCE_MARKER_RE = re.compile(r"```[\w+-]*")
_TRAILING_COMMA_RE = re.compile(r",(\s*)(?=[}\]])")
_UNQUOTED_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_$][\w$-]*)(\s*):")

# A strategy turns normalized text into a candidate string, or None when it
# has nothing to contribute for this input.
Strategy = Callable[[str], Optional[str]]


def _fenced_body(text: str) -> Optional[str]:
    """Body of a fenced block, from the first opening fence to the last fence.

    String values may themselves contain fences, so the body runs to the
    last one rather than the next one.
    """
    opening = _FENCE_OPEN_RE.search(text)
    if opening is None:
        return None
    closing = text.rfind("```", opening.end())
    return text[opening.end():closing] if closing != -1 else text[opening.end():]


def normalize(raw_text: str) -> str:
    """Strips code fences and whitespace, and drops prose before the first { or [."""
    text = raw_text.strip()
    body = _fenced_body(text)
    if body is not None and any(c in body for c in "{["):
        text = body
    else:
        text = _FENCE_MARKER_RE.sub("", text)
    text = text.strip()
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if starts:
        text = text[min(starts):]
    return text


def _direct(text: str) -> Optional[str]:
    return text


def _extract_span(text: str) -> Optional[str]:
    """First balanced span that parses, else the first balanced span at all."""
    first = None
    for start, char in enumerate(text):
        if char not in OPENERS:
            continue
        span = find_balanced_span(text, start)
        if span is None:
            continue
        candidate = text[span[0]:span[1]]
        if first is None:
            first = candidate
        try:
            json.loads(candidate, strict=False)
        except (ValueError, RecursionError):
            continue
        return candidate
    return first


def _balance_braces(text: str) -> Optional[str]:
    missing = scan(text).missing_braces
    return text + "}" * missing if missing else None


def _balance_brackets(text: str) -> Optional[str]:
    missing = scan(text).missing_brackets
    return text + "]" * missing if missing else None


def _drop_trailing_commas(text: str) -> Optional[str]:
    repaired = map_outside_strings(text, lambda chunk: _TRAILING_COMMA_RE.sub(r"\1", chunk))
    return repaired if repaired != text else None


def _double_quotes(text: str) -> Optional[str]:
    if "'" not in text:
        return None
    repaired = single_to_double_quotes(text)
    return repaired if repaired != text else None


def _quote_keys(text: str) -> Optional[str]:
    repaired = map_outside_strings(text, lambda chunk: _UNQUOTED_KEY_RE.sub(r'\1"\2"\3:', chunk))
    return repaired if repaired != text else None


def _close_truncated_string(text: str) -> Optional[str]:
    state = scan(text)
    if not state.in_string:
        return None
    # Dangling backslash would escape the closing quote.
    if text.endswith("\\") and not text.endswith("\\\\"):
        text = text[:-1]
    return text + '"' + "]" * state.missing_brackets + "}" * state.missing_braces


def _balance_document(text: str) -> Optional[str]:
    state = scan(text)
    if state.in_string:
        if text.endswith("\\") and not text.endswith("\\\\"):
            text = text[:-1]
        text += '"'
    elif not state.stack:
        return None
    text = text.rstrip()
    if text.endswith(","):
        text = text[:-1]
    elif text.endswith(":"):
        text += " null"
    return text + state.closers()


STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("direct_parse", _direct),
    ("bracket_extraction", _extract_span),
    ("brace_balancing", _balance_braces),
    ("bracket_balancing", _balance_brackets),
    ("trailing_comma", _drop_trailing_commas),
    ("quote_style", _double_quotes),
    ("unquoted_keys", _quote_keys),
    ("truncated_string", _close_truncated_string),
    ("full_balancing", _balance_document),
)
# Normalization is strategy 1; parsing strategies are numbered from 2.
_FIRST_PARSE_INDEX = 2


def _shape_matches(value: Any, expected_shape: Optional[str]) -> bool:
    if expected_shape == SHAPE_OBJECT:
        return isinstance(value, dict)
    if expected_shape == SHAPE_ARRAY:
        return isinstance(value, list)
    return isinstance(value, (dict, list))


class StructuredOutputRecovery:
    """Runs the repair cascade over raw model output."""

    def __init__(self, strategies: Sequence[Tuple[str, Strategy]] = STRATEGIES,
                 preview_chars: int = DEFAULT_PREVIEW_CHARS):
        self.strategies = tuple(strategies)
        self.preview_chars = preview_chars

    def _preview(self, raw_text: str) -> str:
        if len(raw_text) <= self.preview_chars:
            return raw_text
        return raw_text[:self.preview_chars] + "..."

    def recover(self, raw_text: Optional[str],
                expected_shape: Optional[str] = None) -> Union[RecoveredValue, RecoveryFailure]:
        """Recovers a structured value from raw text.

        Args:
            raw_text: Text returned by the model.
            expected_shape: Optional 'object' or 'array'; a parse of any other
                shape counts as a failed strategy, and an unknown shape
                yields a RecoveryFailure without running any strategy.

        Returns:
            RecoveredValue on success, RecoveryFailure otherwise.
        """
        raw_text = raw_text if isinstance(raw_text, str) else ("" if raw_text is None else str(raw_text))
        if expected_shape is not None and expected_shape not in SHAPES:
            return RecoveryFailure(
                original_length=len(raw_text),
                preview=self._preview(raw_text),
                last_strategy=None,
                last_strategy_index=0,
                message=f"Unknown expected shape {expected_shape!r}; use one of {', '.join(SHAPES)}",
            )

        if not raw_text.strip():
            return RecoveryFailure(
                original_length=len(raw_text),
                preview="",
                last_strategy="normalize",
                last_strategy_index=1,
                message="Empty response: nothing to recover",
            )

        normalized = normalize(raw_text)
        last_name: Optional[str] = "normalize"
        last_index = 1
        last_error = "no strategy applicable"

        for offset, (name, strategy) in enumerate(self.strategies):
            index = offset + _FIRST_PARSE_INDEX
            try:
                candidate = strategy(normalized)
            except (ValueError, IndexError, RecursionError) as e:
                logger.debug(f"Strategy {index} ({name}) raised while building candidate: {e}")
                continue
            if candidate is None:
                continue
            last_name, last_index = name, index
            try:
                value = json.loads(candidate, strict=False)
            except (ValueError, RecursionError) as e:
                last_error = str(e)
                logger.debug(f"Strategy {index} ({name}) failed: {e}")
                continue
            if not _shape_matches(value, expected_shape):
                last_error = f"parsed a {type(value).__name__}, expected {expected_shape or 'object or array'}"
                logger.debug(f"Strategy {index} ({name}) produced wrong shape: {last_error}")
                continue
            if name != "direct_parse":
                logger.info(f"Recovered structured output using strategy {index} ({name})")
            return RecoveredValue(value=value, strategy=name, strategy_index=index)

        message = (
            f"Could not recover a structured value from {len(raw_text)} characters of output; "
            f"last strategy tried was {last_index} ({last_name}): {last_error}"
        )
        logger.warning(message)
        return RecoveryFailure(
            original_length=len(raw_text),
            preview=self._preview(raw_text),
            last_strategy=last_name,
            last_strategy_index=last_index,
            message=message,
        )
