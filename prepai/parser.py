"""
Response parsing for PrepAI.

Model output is free-form text. Question lists are recovered with an
ordered list of strategies; each returns an empty list when it does not
apply, and the first non-empty result wins. Parsing never raises.
"""

import json
import re
from typing import Callable, Optional


_NUMBERED_LINE = re.compile(r"^\d+\..+$", re.MULTILINE)
_NUMBER_PREFIX = re.compile(r"^\d+\.\s*")
_MARKDOWN_CHARS = re.compile(r"[*_`]")
_WRAPPING_QUOTES = re.compile(r"^[\"']|[\"']$")

_FENCE = "```"
_RULE_MARKERS = ("---", "===")


def _stringify(value) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def from_json(text: str, expected_count: int) -> list[str]:
    """A JSON array, or the values of a JSON object."""
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return []
    if isinstance(parsed, list):
        return [_stringify(item) for item in parsed]
    if isinstance(parsed, dict):
        return [_stringify(item) for item in parsed.values()]
    return []


def from_numbered_list(text: str, expected_count: int) -> list[str]:
    """Lines shaped like ``1. question``."""
    return [
        _NUMBER_PREFIX.sub("", line).strip()
        for line in _NUMBERED_LINE.findall(text)
    ]


def from_lines(text: str, expected_count: int) -> list[str]:
    """
    Every meaningful line, skipping code fences (and their contents),
    horizontal rules and lines mentioning examples.
    """
    lines = []
    in_fence = False
    for raw in text.split("\n"):
        line = raw.strip()
        if line.startswith(_FENCE):
            in_fence = not in_fence
            continue
        if in_fence or not line:
            continue
        if line.startswith(_RULE_MARKERS) or "example" in line.lower():
            continue
        lines.append(line)

    # Only this strategy truncates; JSON and numbered output are kept whole.
    if len(lines) > expected_count:
        lines = lines[:expected_count]
    return lines


STRATEGIES: list[Callable[[str, int], list[str]]] = [
    from_json,
    from_numbered_list,
    from_lines,
]


def clean_question(question: str) -> str:
    """Strip markdown emphasis, backticks and wrapping quotes."""
    question = _MARKDOWN_CHARS.sub("", question).strip()
    return _WRAPPING_QUOTES.sub("", question).strip()


def parse_questions(raw_text: Optional[str], expected_count: int) -> list[str]:
    """
    Extract question strings from model output.

    Args:
        raw_text: Text returned by the model.
        expected_count: Number of questions that were requested.

    Returns:
        Cleaned, non-empty questions in model order; empty when nothing
        usable was found.
    """
    if not raw_text or not isinstance(raw_text, str):
        return []

    questions: list[str] = []
    for strategy in STRATEGIES:
        questions = strategy(raw_text, expected_count)
        if questions:
            break

    cleaned = (clean_question(q) for q in questions)
    return [q for q in cleaned if q]


def parse_explanation(raw_text: Optional[str]) -> str:
    """
    Normalise explanation text.

    A JSON string literal is unwrapped; anything else is returned as-is.
    Returns an empty string when there is no usable text.
    """
    if not raw_text or not isinstance(raw_text, str):
        return ""
    try:
        parsed = json.loads(raw_text)
    except (json.JSONDecodeError, ValueError):
        parsed = None
    text = parsed if isinstance(parsed, str) else raw_text
    return text if text.strip() else ""
