"""
Input validation for PrepAI.

Turns loosely-typed request bodies into validated request objects, so
nothing malformed ever reaches the pipeline.
"""

import math
import re
from typing import Any, Optional

from prepai.errors import ClientInputError
from prepai.schemas import (
    Difficulty,
    ExplanationRequest,
    QuestionRequest,
    MIN_QUESTIONS,
    MAX_QUESTIONS,
)


MAX_FIELD_LENGTH = 2_000
MAX_CONTEXT_LENGTH = 10_000

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    # Numeric zero counts as not provided.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    return False


def _as_text(name: str, value: Any, max_length: int = MAX_FIELD_LENGTH) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ClientInputError(
            f"{name} must be a string, got {type(value).__name__}",
            fields=[name],
        )
    text = str(value).strip()
    if len(text) > max_length:
        raise ClientInputError(
            f"{name} too long: {len(text):,} characters (max: {max_length:,})",
            fields=[name],
        )
    return text


def resolve_question_count(value: Any) -> Optional[int]:
    """
    Resolve a question count the way a lenient integer parse would.

    Integers pass through, floats are truncated and strings contribute
    their leading digits ("5 questions" -> 5). Returns None when nothing
    numeric can be extracted.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return None


def validate_question_request(
    role: Any,
    experience: Any,
    topics: Any,
    count: Any,
) -> QuestionRequest:
    """
    Validate a question-generation request.

    Raises:
        ClientInputError: MISSING_REQUIRED_FIELDS or INVALID_NUM_QUESTIONS
    """
    provided = {
        "role": role,
        "experience": experience,
        "topicsToFocus": topics,
        "numberOfQuestions": count,
    }
    missing = [name for name, value in provided.items() if _is_blank(value)]
    if missing:
        raise ClientInputError(
            f"Missing required fields: {', '.join(missing)}",
            code="MISSING_REQUIRED_FIELDS",
            fields=missing,
        )

    resolved = resolve_question_count(count)
    if resolved is None or resolved < MIN_QUESTIONS or resolved > MAX_QUESTIONS:
        raise ClientInputError(
            f"Number of questions must be between {MIN_QUESTIONS} and {MAX_QUESTIONS}",
            code="INVALID_NUM_QUESTIONS",
            fields=["numberOfQuestions"],
        )

    return QuestionRequest(
        role=_as_text("role", role),
        experience=_as_text("experience", experience),
        topics=_as_text("topicsToFocus", topics),
        count=resolved,
    )


def validate_explanation_request(
    concept: Any,
    difficulty: Any = None,
    language: Any = None,
    context: Any = None,
) -> ExplanationRequest:
    """
    Validate a concept-explanation request.

    Raises:
        ClientInputError: MISSING_CONCEPT or INVALID_DIFFICULTY
    """
    if _is_blank(concept):
        raise ClientInputError(
            "Missing required field: concept",
            code="MISSING_CONCEPT",
            fields=["concept"],
        )

    level = Difficulty.INTERMEDIATE
    if not _is_blank(difficulty):
        try:
            level = Difficulty(str(difficulty).strip().lower())
        except ValueError:
            valid = ", ".join(d.value for d in Difficulty)
            raise ClientInputError(
                f"Invalid difficulty level. Must be one of: {valid}",
                code="INVALID_DIFFICULTY",
                fields=["difficulty"],
            ) from None

    return ExplanationRequest(
        concept=_as_text("concept", concept),
        difficulty=level,
        language="English" if _is_blank(language) else _as_text("language", language),
        context=None if _is_blank(context) else _as_text("context", context, MAX_CONTEXT_LENGTH),
    )
