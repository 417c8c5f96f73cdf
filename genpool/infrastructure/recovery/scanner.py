"""Character-level scanning helpers for JSON-like text.

All helpers track double-quoted string literals (with backslash escapes) so
that braces, brackets, commas and quotes inside strings are never mistaken
for structure.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple

OPENERS = {'{': '}', '[': ']'}
CLOSERS = {'}': '{', ']': '['}


@dataclass
class ScanState:
    """Structural summary of a text after one left-to-right pass."""
    in_string: bool = False
    stack: List[str] = field(default_factory=list)  # Unclosed openers, outermost first
    open_braces: int = 0
    close_braces: int = 0
    open_brackets: int = 0
    close_brackets: int = 0

    @property
    def missing_braces(self) -> int:
        return max(0, self.open_braces - self.close_braces)

    @property
    def missing_brackets(self) -> int:
        return max(0, self.open_brackets - self.close_brackets)

    def closers(self) -> str:
        """Closers for the still-open stack, innermost first."""
        return "".join(OPENERS[opener] for opener in reversed(self.stack))


def scan(text: str) -> ScanState:
    state = ScanState()
    escaped = False
    for char in text:
        if state.in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                state.in_string = False
            continue
        if char == '"':
            state.in_string = True
        elif char == '{':
            state.open_braces += 1
            state.stack.append(char)
        elif char == '[':
            state.open_brackets += 1
            state.stack.append(char)
        elif char in CLOSERS:
            if char == '}':
                state.close_braces += 1
            else:
                state.close_brackets += 1
            if state.stack and state.stack[-1] == CLOSERS[char]:
                state.stack.pop()
    return state


def find_balanced_span(text: str, start: int = 0) -> Optional[Tuple[int, int]]:
    """Returns (start, end) of the first balanced {...} or [...] span.

    Only openers at or after `start` are considered. `end` is exclusive.
    Returns None when no opener exists or the first opened structure never
    closes.
    """
    start = next((i for i in range(start, len(text)) if text[i] in OPENERS), None)
    if start is None:
        return None
    stack: List[str] = []
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in OPENERS:
            stack.append(char)
        elif char in CLOSERS and stack and stack[-1] == CLOSERS[char]:
            stack.pop()
            if not stack:
                return start, index + 1
    return None


def iter_segments(text: str) -> Iterator[Tuple[bool, str]]:
    """Splits text into (is_string_literal, chunk) pieces.

    String literal chunks include their quotes; an unterminated literal at
    the end of the text is yielded as a string chunk as well.
    """
    index = 0
    length = len(text)
    while index < length:
        quote = text.find('"', index)
        if quote == -1:
            yield False, text[index:]
            return
        if quote > index:
            yield False, text[index:quote]
        end = quote + 1
        escaped = False
        while end < length:
            char = text[end]
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                break
            end += 1
        yield True, text[quote:end + 1]
        index = end + 1


def map_outside_strings(text: str, transform: Callable[[str], str]) -> str:
    """Applies `transform` to every chunk of text outside string literals."""
    return "".join(chunk if is_string else transform(chunk) for is_string, chunk in iter_segments(text))


def single_to_double_quotes(text: str) -> str:
    """Rewrites single-quoted string literals as double-quoted ones.

    Double-quoted literals are copied untouched; double quotes inside a
    single-quoted literal are escaped and `\\'` is unescaped.
    """
    out: List[str] = []
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char == '"':
            end = index + 1
            escaped = False
            while end < length:
                if escaped:
                    escaped = False
                elif text[end] == '\\':
                    escaped = True
                elif text[end] == '"':
                    break
                end += 1
            out.append(text[index:end + 1])
            index = end + 1
        elif char == "'":
            out.append('"')
            index += 1
            while index < length and text[index] != "'":
                current = text[index]
                if current == '\\' and index + 1 < length:
                    following = text[index + 1]
                    out.append("'" if following == "'" else current + following)
                    index += 2
                    continue
                out.append('\\"' if current == '"' else current)
                index += 1
            out.append('"')
            index += 1
        else:
            out.append(char)
            index += 1
    return "".join(out)
