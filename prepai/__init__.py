"""
PrepAI - AI-generated interview questions and concept explanations.

Simple usage:
    import asyncio
    from prepai import InterviewPrepService, QuestionRequest

    service = InterviewPrepService()
    result = asyncio.run(service.generate_questions(
        QuestionRequest(role="Backend Engineer", experience="3", topics="Node.js", count=5)
    ))
    print(result.questions)     # ["What is the event loop?", ...]
    print(result.is_fallback)   # True when the model could not be used

Lower level:
    from prepai import RequestPipeline, parse_questions, build_question_prompt

    pipeline = RequestPipeline()
    text = await pipeline.generate_content(build_question_prompt("SRE", "5", "Kubernetes", 3))
    questions = parse_questions(text, 3)
"""

from prepai.cache import ResponseCache
from prepai.config import get_model, set_model, get_retry_policy, set_retry_policy
from prepai.errors import (
    ErrorCategory,
    PrepAIError,
    MissingApiKey,
    InvalidApiKey,
    ClientInputError,
    UpstreamInvalidResponse,
    UpstreamServerError,
    UpstreamRequestRejected,
    NetworkError,
    RateLimited,
    QuotaExceeded,
    RetriesExhausted,
    ParseFailure,
)
from prepai.fallback import fallback_questions
from prepai.metrics import MetricsCollector
from prepai.parser import parse_questions, parse_explanation
from prepai.pipeline import (
    ContentProvider,
    GeminiProvider,
    MockProvider,
    RequestPipeline,
    RetryPolicy,
)
from prepai.prompts import build_question_prompt, build_explanation_prompt
from prepai.quota import QuotaTracker
from prepai.schemas import (
    Difficulty,
    QuestionRequest,
    ExplanationRequest,
    QuestionSet,
    Explanation,
    GenerationResult,
)
from prepai.service import InterviewPrepService
from prepai.validation import validate_question_request, validate_explanation_request


__version__ = "1.0.0"
__all__ = [
    # Service
    "InterviewPrepService",
    "QuestionRequest",
    "ExplanationRequest",
    "QuestionSet",
    "Explanation",
    "Difficulty",
    "validate_question_request",
    "validate_explanation_request",
    # Pipeline
    "RequestPipeline",
    "RetryPolicy",
    "ContentProvider",
    "GeminiProvider",
    "MockProvider",
    "GenerationResult",
    "QuotaTracker",
    "ResponseCache",
    "MetricsCollector",
    # Text
    "build_question_prompt",
    "build_explanation_prompt",
    "parse_questions",
    "parse_explanation",
    "fallback_questions",
    # Config
    "get_model",
    "set_model",
    "get_retry_policy",
    "set_retry_policy",
    # Errors
    "ErrorCategory",
    "PrepAIError",
    "MissingApiKey",
    "InvalidApiKey",
    "ClientInputError",
    "UpstreamInvalidResponse",
    "UpstreamServerError",
    "UpstreamRequestRejected",
    "NetworkError",
    "RateLimited",
    "QuotaExceeded",
    "RetriesExhausted",
    "ParseFailure",
]
