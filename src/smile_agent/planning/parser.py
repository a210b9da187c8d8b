"""Extract the structured plan object embedded in free-form backend text.

The grammar is deliberately narrow:

1. The first fenced block (```` ```json ```` or an unlabelled ```` ``` ````)
   whose body decodes to a JSON object wins.
2. Otherwise the first top-level balanced ``{...}`` span outside non-JSON code
   fences that decodes to an object is used.

Each candidate is decoded as-is first. Only when that fails are typographic
quotes normalised and trailing commas stripped. Python literal syntax (single
quotes, ``True``/``None``) is accepted as a last resort. Anything else raises
:class:`PlanParseError`.
"""

from __future__ import annotations

import ast
import json
import re
from typing import Any, Iterator

from ..errors import PlanParseError

__all__ = ["PlanParseError", "extract_plan_payload"]

_FENCE_RE = re.compile(r"```[ \t]*(?P<lang>[A-Za-z0-9_+-]*)[ \t]*\r?\n(?P<body>.*?)```", re.DOTALL)
_FENCE_LANGUAGES = {"", "json", "json5", "javascript", "js"}
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")


def extract_plan_payload(text: str) -> dict[str, Any]:
    """Return the first structured object found in ``text``."""
    if not text or not text.strip():
        raise PlanParseError("Backend returned an empty planning response.")

    for match in _FENCE_RE.finditer(text):
        if match.group("lang").lower() not in _FENCE_LANGUAGES:
            continue
        decoded = _decode_object(match.group("body").strip())
        if decoded is not None:
            return decoded

    # Code fences in other languages never hold the plan.
    remainder = _FENCE_RE.sub(
        lambda match: match.group(0) if match.group("lang").lower() in _FENCE_LANGUAGES else "",
        text,
    )
    for candidate in _balanced_objects(remainder):
        decoded = _decode_object(candidate)
        if decoded is not None:
            return decoded

    snippet = text.strip()[:200]
    raise PlanParseError(
        "Failed to parse the task plan: the response did not contain a valid JSON object.",
        details={"snippet": snippet},
    )


def _normalise_json_string(payload: str) -> str:
    """Normalise common non-JSON characters emitted by models."""
    translation = {
        0x201C: '"',
        0x201D: '"',
        0x2018: "'",
        0x2019: "'",
        0xFF07: "'",
        0x00A0: " ",
        0xFEFF: "",
    }
    return payload.translate(str.maketrans(translation))


def _decode_object(candidate: str) -> dict[str, Any] | None:
    if not candidate:
        return None
    normalised = _normalise_json_string(candidate)
    attempts = (
        candidate,
        _TRAILING_COMMA_RE.sub(r"\1", candidate),
        normalised,
        _TRAILING_COMMA_RE.sub(r"\1", normalised),
    )
    for attempt in attempts:
        try:
            value = json.loads(attempt)
        except json.JSONDecodeError:
            value = _coerce_python_literal(attempt)
        if isinstance(value, dict):
            return value
    return None


def _coerce_python_literal(candidate: str) -> Any | None:
    """Fall back to Python literal parsing when JSON decoding fails."""
    try:
        literal = ast.literal_eval(candidate)
    except (SyntaxError, ValueError, MemoryError, RecursionError):
        return None
    return _normalise_literal(literal)


def _normalise_literal(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key): _normalise_literal(sub) for key, sub in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_normalise_literal(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def _balanced_objects(text: str) -> Iterator[str]:
    """Yield top-level balanced ``{...}`` spans; nested objects are never yielded."""
    start = text.find("{")
    while start != -1:
        end = _matching_brace(text, start)
        if end is None:
            start = text.find("{", start + 1)
            continue
        yield text[start : end + 1]
        start = text.find("{", end + 1)


def _matching_brace(text: str, start: int) -> int | None:
    """Return the index closing the object opened at ``start``, honouring strings."""
    depth = 0
    quote: str | None = None
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if quote is not None:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None
