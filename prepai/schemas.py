"""
Data schemas for PrepAI.

Request, retry and result value types shared by the pipeline, the
service layer and the HTTP surface.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Optional

from prepai.errors import PrepAIError


class Difficulty(str, Enum):
    """Explanation difficulty levels."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class FinishReason(str, Enum):
    """Provider finish reasons."""
    STOP = "stop"
    MAX_TOKENS = "max_tokens"
    SAFETY = "safety"
    RECITATION = "recitation"
    OTHER = "other"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FinishReason":
        if not value:
            return cls.UNKNOWN
        if not isinstance(value, str):
            return cls.OTHER
        try:
            return cls(value.lower())
        except ValueError:
            return cls.OTHER


MIN_QUESTIONS = 1
MAX_QUESTIONS = 20


@dataclass(frozen=True)
class QuestionRequest:
    """
    Request for a set of interview questions.

    Built by the validation layer, so fields are already normalised.
    """
    role: str
    experience: str
    topics: str
    count: int

    def cache_params(self) -> dict:
        return {
            "role": self.role,
            "experience": self.experience,
            "topics": self.topics,
            "count": self.count,
        }


@dataclass(frozen=True)
class ExplanationRequest:
    """Request for a concept explanation."""
    concept: str
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    language: str = "English"
    context: Optional[str] = None

    def cache_params(self) -> dict:
        return {
            "concept": self.concept,
            "difficulty": self.difficulty.value,
            "language": self.language,
            "context": self.context,
        }


@dataclass
class RetryState:
    """Per-invocation retry bookkeeping owned by the pipeline."""
    attempt: int = 0
    last_error: Optional[PrepAIError] = None


@dataclass
class GenerationResult:
    """Successful pipeline outcome."""
    text: str
    attempts: int
    latency_ms: int
    model: str


@dataclass
class QuestionSet:
    """Questions returned to the caller."""
    questions: list[str]
    is_fallback: bool = False
    source: str = "model"  # model, cache or fallback


@dataclass
class Explanation:
    """A generated concept explanation."""
    concept: str
    difficulty: Difficulty
    language: str
    explanation: str
    model: str
    response_time_ms: int
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    from_cache: bool = False
