"""
PrepAI service layer.

The two operations exposed to the HTTP layer and the CLI:

    service = InterviewPrepService()

    questions = await service.generate_questions(
        QuestionRequest(role="Backend Engineer", experience="3", topics="Node.js", count=5)
    )
    print(questions.questions, questions.is_fallback)

    explanation = await service.generate_explanation(ExplanationRequest(concept="closures"))
    print(explanation.explanation)

Question generation always resolves to a list: any pipeline or parse
failure degrades to template questions. Explanations have no fallback and
raise ``PrepAIError`` subclasses.
"""

import logging
import uuid
from datetime import datetime, UTC
from typing import Optional

from prepai.cache import ResponseCache
from prepai.config import get_cache_ttl_seconds
from prepai.errors import ParseFailure, PrepAIError, QuotaExceeded, RateLimited
from prepai.fallback import fallback_questions
from prepai.metrics import MetricsCollector
from prepai.parser import parse_explanation, parse_questions
from prepai.pipeline import RequestPipeline
from prepai.prompts import build_explanation_prompt, build_question_prompt
from prepai.quota import QuotaTracker
from prepai.schemas import Explanation, ExplanationRequest, QuestionRequest, QuestionSet


logger = logging.getLogger(__name__)


class InterviewPrepService:
    """Question and explanation generation on top of the request pipeline."""

    def __init__(
        self,
        pipeline: Optional[RequestPipeline] = None,
        tracker: Optional[QuotaTracker] = None,
        cache: Optional[ResponseCache] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """
        Initialize service.

        Args:
            pipeline: Request pipeline. Built around ``tracker`` and ``metrics`` when None.
            tracker: Shared quota tracker; taken from ``pipeline`` when one is given.
            cache: Response cache. TTL comes from configuration when None.
            metrics: Metrics collector shared with the pipeline.
        """
        if pipeline is None:
            self.metrics = metrics or MetricsCollector()
            self.tracker = tracker or QuotaTracker()
            pipeline = RequestPipeline(tracker=self.tracker, metrics=self.metrics)
        else:
            self.metrics = metrics or pipeline.metrics
            self.tracker = tracker or pipeline.tracker
        self.pipeline = pipeline
        self.cache = cache if cache is not None else ResponseCache(ttl_seconds=get_cache_ttl_seconds())

    async def generate_questions(self, request: QuestionRequest) -> QuestionSet:
        """Generate interview questions, degrading to template questions on failure."""
        request_id = uuid.uuid4().hex[:12]
        cache_key = ResponseCache.make_key("questions", request.cache_params())

        cached = self.cache.get(cache_key)
        if cached is not None:
            self.metrics.record_cache_hit(request_id, "questions")
            return QuestionSet(questions=list(cached), is_fallback=False, source="cache")

        skip_reason = self._short_circuit_reason()
        if skip_reason:
            return self._fallback(request_id, request, skip_reason)

        prompt = build_question_prompt(request.role, request.experience, request.topics, request.count)
        try:
            result = await self.pipeline.generate(prompt, request_id=request_id)
            questions = parse_questions(result.text, request.count)[: request.count]
        except PrepAIError as exc:
            logger.warning(f"[{request_id}] Question generation failed: {exc.code} - {exc.message}")
            return self._fallback(request_id, request, exc.code)
        except Exception:
            logger.exception(f"[{request_id}] Unexpected error during question generation")
            return self._fallback(request_id, request, "UNEXPECTED_ERROR")

        if not questions:
            logger.warning(f"[{request_id}] No valid questions found in the response")
            return self._fallback(request_id, request, ParseFailure.code)

        logger.info(f"[{request_id}] Extracted {len(questions)} questions")
        self.cache.set(cache_key, list(questions))
        return QuestionSet(questions=questions, is_fallback=False, source="model")

    async def generate_explanation(self, request: ExplanationRequest) -> Explanation:
        """
        Generate an explanation for a concept.

        Raises:
            QuotaExceeded: Daily quota already flagged as exhausted
            RateLimited: A provider cooldown is active
            ParseFailure: The model returned no usable text
            PrepAIError: Anything the pipeline raised
        """
        request_id = uuid.uuid4().hex[:12]
        cache_key = ResponseCache.make_key("explanation", request.cache_params())

        cached = self.cache.get(cache_key)
        if cached is not None:
            self.metrics.record_cache_hit(request_id, "explanation")
            return Explanation(
                concept=request.concept,
                difficulty=request.difficulty,
                language=request.language,
                explanation=cached,
                model=self.pipeline.model,
                response_time_ms=0,
                from_cache=True,
            )

        if self.tracker.is_daily_quota_exceeded():
            raise QuotaExceeded()
        remaining = self.tracker.cooldown_remaining()
        if remaining > 0:
            raise RateLimited(
                "Too many requests to the AI provider, please try again later",
                retry_after=round(remaining, 3),
            )

        prompt = build_explanation_prompt(
            request.concept, request.difficulty, request.language, request.context
        )
        result = await self.pipeline.generate(prompt, request_id=request_id)

        text = parse_explanation(result.text)
        if not text:
            logger.error(f"[{request_id}] Generated explanation is empty")
            raise ParseFailure(
                "Failed to process the generated explanation",
                code="INVALID_EXPLANATION_FORMAT",
            )

        self.cache.set(cache_key, text)
        return Explanation(
            concept=request.concept,
            difficulty=request.difficulty,
            language=request.language,
            explanation=text,
            model=result.model,
            response_time_ms=result.latency_ms,
            generated_at=datetime.now(UTC),
        )

    def _short_circuit_reason(self) -> Optional[str]:
        if self.tracker.is_daily_quota_exceeded():
            return QuotaExceeded.code
        if self.tracker.is_rate_limited():
            return RateLimited.code
        return None

    def _fallback(self, request_id: str, request: QuestionRequest, reason: str) -> QuestionSet:
        self.metrics.record_fallback(request_id, reason)
        questions = fallback_questions(request.role, request.experience, request.topics, request.count)
        return QuestionSet(questions=questions, is_fallback=True, source="fallback")
