"""
AI request pipeline for PrepAI.

Sends prompts to the generative-language provider and retries transient
failures. Providers are pluggable: ``GeminiProvider`` talks to the real
API over httpx, ``MockProvider`` answers locally for tests and dry runs.
"""

import asyncio
import json
import logging
import random
import re
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

import httpx

from prepai.config import (
    DEFAULT_GENERATION_CONFIG,
    MIN_API_KEY_LENGTH,
    get_api_key,
    get_endpoint,
    get_model,
    get_retry_policy,
)
from prepai.errors import (
    InvalidApiKey,
    MissingApiKey,
    NetworkError,
    PrepAIError,
    QuotaExceeded,
    RateLimited,
    RetriesExhausted,
    UpstreamInvalidResponse,
    UpstreamRequestRejected,
    UpstreamServerError,
)
from prepai.metrics import MetricsCollector
from prepai.quota import QuotaTracker
from prepai.schemas import FinishReason, GenerationResult, RetryState


logger = logging.getLogger(__name__)

SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]

_DAILY_QUOTA_MARKERS = ("perday", "per_day", "per day", "daily")


def validate_api_key(api_key: Optional[str]) -> str:
    """
    Check the credential before any network traffic.

    Raises:
        MissingApiKey: No key configured
        InvalidApiKey: Key is too short to be real
    """
    if not api_key:
        raise MissingApiKey()
    if not isinstance(api_key, str) or len(api_key.strip()) < MIN_API_KEY_LENGTH:
        raise InvalidApiKey()
    return api_key.strip()


def parse_retry_delay(value) -> Optional[float]:
    """Parse ``Retry-After`` seconds or a ``retryDelay`` such as "30s"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value >= 0 else None
    if isinstance(value, str):
        match = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*s?\s*", value)
        if match:
            return float(match.group(1))
    return None


# =============================================================================
# Providers
# =============================================================================

class ContentProvider(ABC):
    """Abstract base class for generative-model providers."""

    model: str = "unknown"

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """
        Make exactly one call and return the generated text.

        Raises:
            PrepAIError: Classified failure for this single attempt
        """


class MockProvider(ContentProvider):
    """
    Local provider for tests and dry runs.

    Replays ``responses`` in order (exception instances are raised, strings
    returned). Once the script runs out it answers deterministically from
    the prompt.
    """

    model = "mock"

    def __init__(
        self,
        responses: Optional[list[Union[str, Exception]]] = None,
        latency_ms: int = 0,
    ):
        self.responses = list(responses or [])
        self.latency_ms = latency_ms
        self.calls: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.calls.append(prompt)
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)
        if self.responses:
            item = self.responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return self._default_text(prompt)

    @staticmethod
    def _default_text(prompt: str) -> str:
        match = re.search(r"Number of Questions:\s*(\d+)", prompt)
        if match:
            count = int(match.group(1))
            return "\n".join(
                f"{i}. Mock interview question {i}?" for i in range(1, count + 1)
            )
        return (
            "# Mock Concept\n\n## Explanation\n"
            "This is a locally generated explanation used for dry runs."
        )


class GeminiProvider(ContentProvider):
    """
    Google Generative Language API provider.

    Requires GEMINI_API_KEY environment variable unless ``api_key`` is given.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        default_rate_limit_delay: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize provider.

        Args:
            api_key: Credential; read from the environment on each call when None.
            model: Model name; defaults to the configured model.
            timeout_seconds: Per-request timeout.
            default_rate_limit_delay: Delay assumed when a 429 carries no hint.
            client: Shared AsyncClient owned by the caller.
            transport: Transport for per-call clients (tests use httpx.MockTransport).
        """
        policy = get_retry_policy()
        self._api_key = api_key
        self.model = model or get_model()
        self.timeout_seconds = timeout_seconds or policy["timeout_seconds"]
        self.default_rate_limit_delay = (
            default_rate_limit_delay
            if default_rate_limit_delay is not None
            else policy["default_rate_limit_delay_seconds"]
        )
        self._client = client
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return get_endpoint(self.model)

    def build_payload(self, prompt: str) -> dict:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": dict(DEFAULT_GENERATION_CONFIG),
            "safetySettings": SAFETY_SETTINGS,
        }

    async def generate(self, prompt: str) -> str:
        api_key = validate_api_key(self._api_key if self._api_key is not None else get_api_key())
        payload = self.build_payload(prompt)

        try:
            if self._client is not None:
                response = await self._post(self._client, api_key, payload)
            else:
                async with httpx.AsyncClient(
                    transport=self._transport,
                    timeout=self.timeout_seconds,
                ) as client:
                    response = await self._post(client, api_key, payload)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"Request timed out after {self.timeout_seconds}s") from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"Request to provider failed: {exc}") from exc

        return self._handle_response(response)

    async def _post(self, client: httpx.AsyncClient, api_key: str, payload: dict) -> httpx.Response:
        return await client.post(
            self.endpoint,
            params={"key": api_key},
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout_seconds,
        )

    def _handle_response(self, response: httpx.Response) -> str:
        status = response.status_code
        body = self._json_body(response)

        if 200 <= status < 300:
            return self._extract_text(body)

        message = self._error_message(body) or f"Provider returned HTTP {status}"

        if status == 429:
            raise self._rate_limit_error(response, body, message)
        if status in (401, 403) or self._is_invalid_key(body):
            raise InvalidApiKey(f"Provider rejected the API key: {message}")
        if status == 408:
            raise NetworkError(f"Provider request timeout: {message}")
        if status >= 500:
            raise UpstreamServerError(message, upstream_status=status)
        if status >= 400:
            raise UpstreamRequestRejected(message, upstream_status=status)
        raise UpstreamInvalidResponse(f"Unexpected HTTP status {status}")

    @staticmethod
    def _json_body(response: httpx.Response) -> Optional[dict]:
        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError):
            return None
        return body if isinstance(body, dict) else None

    @staticmethod
    def _error_message(body: Optional[dict]) -> Optional[str]:
        if not body:
            return None
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        return None

    @staticmethod
    def _error_details(body: Optional[dict]) -> list[dict]:
        if not body or not isinstance(body.get("error"), dict):
            return []
        details = body["error"].get("details")
        if not isinstance(details, list):
            return []
        return [d for d in details if isinstance(d, dict)]

    def _is_invalid_key(self, body: Optional[dict]) -> bool:
        return any(d.get("reason") == "API_KEY_INVALID" for d in self._error_details(body))

    def _rate_limit_error(self, response: httpx.Response, body: Optional[dict], message: str) -> PrepAIError:
        retry_after = parse_retry_delay(response.headers.get("retry-after"))
        details = self._error_details(body)
        if retry_after is None:
            for detail in details:
                retry_after = parse_retry_delay(detail.get("retryDelay"))
                if retry_after is not None:
                    break
        if retry_after is None:
            retry_after = self.default_rate_limit_delay

        haystack = (message + json.dumps(details)).lower()
        if any(marker in haystack for marker in _DAILY_QUOTA_MARKERS):
            return QuotaExceeded(retry_after=retry_after)
        return RateLimited(f"Rate limited by provider: {message}", retry_after=retry_after)

    @staticmethod
    def _extract_text(body: Optional[dict]) -> str:
        if body is None:
            raise UpstreamInvalidResponse("Provider response is not a JSON object")

        candidates = body.get("candidates")
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            raise UpstreamInvalidResponse("Invalid response structure: 'candidates' is missing or empty")

        candidate = candidates[0]
        finish_reason = FinishReason.parse(candidate.get("finishReason"))
        if finish_reason != FinishReason.STOP:
            raise UpstreamInvalidResponse(
                f"AI model failed: {candidate.get('finishReason')}",
                finish_reason=str(candidate.get("finishReason")),
            )

        try:
            text = candidate["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not isinstance(text, str) or not text.strip():
            raise UpstreamInvalidResponse("Unexpected response structure: text content is missing")
        return text


# =============================================================================
# Pipeline
# =============================================================================

@dataclass
class RetryPolicy:
    """Backoff policy for the pipeline."""
    max_retries: int = 2
    initial_delay_ms: int = 3000
    max_delay_ms: int = 30000
    jitter: float = 0.5
    default_rate_limit_delay_seconds: float = 5.0

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        policy = get_retry_policy()
        return cls(
            max_retries=int(policy["max_retries"]),
            initial_delay_ms=int(policy["initial_delay_ms"]),
            max_delay_ms=int(policy["max_delay_ms"]),
            jitter=float(policy["jitter"]),
            default_rate_limit_delay_seconds=float(policy["default_rate_limit_delay_seconds"]),
        )

    def backoff_delay(self, retry_index: int, rng: random.Random) -> float:
        """Seconds to wait before backoff retry number ``retry_index`` (0-based)."""
        delay_ms = min(self.max_delay_ms, self.initial_delay_ms * (2 ** retry_index))
        return (delay_ms + rng.random() * delay_ms * self.jitter) / 1000

    def rate_limit_delay(self, retry_after: Optional[float]) -> float:
        """Provider-requested delay, capped at the maximum backoff delay."""
        if retry_after is None:
            retry_after = self.default_rate_limit_delay_seconds
        return min(max(0.0, retry_after), self.max_delay_ms / 1000)


class RequestPipeline:
    """
    Runs one prompt through the provider with bounded retries.

    Outcomes are reported to the injected ``QuotaTracker``; the tracker is
    not consulted before calling, that short-circuit is left to callers.
    """

    def __init__(
        self,
        provider: Optional[ContentProvider] = None,
        tracker: Optional[QuotaTracker] = None,
        policy: Optional[RetryPolicy] = None,
        metrics: Optional[MetricsCollector] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.provider = provider or GeminiProvider()
        self.tracker = tracker or QuotaTracker()
        self.policy = policy or RetryPolicy.from_config()
        self.metrics = metrics or MetricsCollector(enable_logging=False)
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()

    @property
    def model(self) -> str:
        return self.provider.model

    async def generate_content(self, prompt: str, max_retries: Optional[int] = None) -> str:
        """Return generated text, or raise a classified ``PrepAIError``."""
        result = await self.generate(prompt, max_retries=max_retries)
        return result.text

    async def generate(
        self,
        prompt: str,
        max_retries: Optional[int] = None,
        request_id: Optional[str] = None,
    ) -> GenerationResult:
        """
        Generate content with retries.

        Args:
            prompt: Prompt text.
            max_retries: Retries after the first attempt; policy default when None.
            request_id: Correlation id for logs.

        Returns:
            GenerationResult with the text and the number of attempts made.

        Raises:
            QuotaExceeded: Hard daily quota, never retried
            MissingApiKey, InvalidApiKey, UpstreamRequestRejected: Not retried
            RetriesExhausted: Every attempt failed with a retriable error
        """
        if max_retries is None:
            max_retries = self.policy.max_retries
        max_attempts = max(0, max_retries) + 1
        request_id = request_id or uuid.uuid4().hex[:12]
        state = RetryState()
        backoff_index = 0
        started = time.monotonic()

        logger.info(
            f"[{request_id}] Generating content (model={self.model}, "
            f"max_attempts={max_attempts}, prompt_chars={len(prompt)})"
        )

        while state.attempt < max_attempts:
            state.attempt += 1
            self.metrics.record_attempt(request_id, state.attempt, max_attempts)
            attempt_started = time.monotonic()

            try:
                text = await self.provider.generate(prompt)
            except QuotaExceeded as exc:
                self.tracker.mark_daily_quota_exceeded()
                self._report_failure(request_id, state, exc, attempt_started)
                logger.error(f"[{request_id}] Daily quota exceeded, not retrying")
                raise
            except RateLimited as exc:
                self.tracker.activate_cooldown(exc.retry_after)
                self._report_failure(request_id, state, exc, attempt_started)
                if state.attempt >= max_attempts:
                    break
                delay = self.policy.rate_limit_delay(exc.retry_after)
            except PrepAIError as exc:
                self._report_failure(request_id, state, exc, attempt_started)
                if not exc.retryable:
                    logger.error(f"[{request_id}] {exc.code} is not retriable, giving up")
                    raise
                if state.attempt >= max_attempts:
                    break
                delay = self.policy.backoff_delay(backoff_index, self._rng)
                backoff_index += 1
            else:
                self.tracker.record_request()
                latency_ms = int((time.monotonic() - started) * 1000)
                self.metrics.record_success(request_id, state.attempt, latency_ms)
                logger.info(
                    f"[{request_id}] Success on attempt {state.attempt} "
                    f"({latency_ms}ms, {len(text)} chars)"
                )
                return GenerationResult(
                    text=text,
                    attempts=state.attempt,
                    latency_ms=latency_ms,
                    model=self.model,
                )

            self.metrics.record_retry(request_id, state.attempt, delay, state.last_error.code)
            logger.info(f"[{request_id}] Retrying in {delay:.1f}s")
            await self._sleep(delay)

        logger.error(f"[{request_id}] All {state.attempt} attempts failed")
        raise RetriesExhausted(state.attempt, state.last_error)

    def _report_failure(
        self,
        request_id: str,
        state: RetryState,
        error: PrepAIError,
        attempt_started: float,
    ) -> None:
        state.last_error = error
        elapsed = time.monotonic() - attempt_started
        self.metrics.record_error(request_id, error.code, error.message, attempt=state.attempt)
        logger.warning(
            f"[{request_id}] Attempt {state.attempt} failed after {elapsed:.2f}s: "
            f"{error.code} - {error.message}"
        )
