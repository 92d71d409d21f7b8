"""
Basic usage examples for PrepAI.

Runs entirely against the local mock provider, so no API key is needed.
"""

import asyncio

from prepai import (
    ClientInputError,
    InterviewPrepService,
    MetricsCollector,
    MockProvider,
    QuotaTracker,
    RequestPipeline,
    UpstreamServerError,
    parse_questions,
    validate_question_request,
    validate_explanation_request,
)


def _service(provider: MockProvider) -> InterviewPrepService:
    pipeline = RequestPipeline(
        provider=provider,
        tracker=QuotaTracker(),
        metrics=MetricsCollector(enable_logging=False),
        sleep=lambda _: asyncio.sleep(0),
    )
    return InterviewPrepService(pipeline=pipeline)


async def example_questions():
    """Generate questions for a role."""
    print("=" * 60)
    print("Example 1: Interview Questions")
    print("=" * 60)

    service = _service(MockProvider())
    request = validate_question_request("Backend Engineer", "3", "Node.js, SQL", 3)
    result = await service.generate_questions(request)

    for i, question in enumerate(result.questions, 1):
        print(f"{i}. {question}")
    print()


async def example_fallback():
    """Upstream keeps failing: template questions are returned instead."""
    print("=" * 60)
    print("Example 2: Fallback Questions")
    print("=" * 60)

    failures = [UpstreamServerError("boom", upstream_status=503) for _ in range(3)]
    service = _service(MockProvider(responses=failures))
    request = validate_question_request("Data Engineer", "5", "Spark", 3)
    result = await service.generate_questions(request)

    print(f"Fallback used: {result.is_fallback}")
    for question in result.questions:
        print(f"- {question}")
    print()


async def example_explanation():
    """Explain a concept."""
    print("=" * 60)
    print("Example 3: Concept Explanation")
    print("=" * 60)

    service = _service(MockProvider())
    request = validate_explanation_request("JavaScript closures", difficulty="beginner")
    result = await service.generate_explanation(request)
    print(result.explanation)
    print()


def example_parsing():
    """Parse raw model output."""
    print("=" * 60)
    print("Example 4: Parsing Model Output")
    print("=" * 60)

    raw = "Here you go:\n1. **What is a closure?**\n2. Explain `hoisting`."
    print(parse_questions(raw, 2))
    print()


def example_validation():
    """Bad input is rejected before any model call."""
    print("=" * 60)
    print("Example 5: Validation")
    print("=" * 60)

    try:
        validate_question_request("SRE", "2", "Kubernetes", 50)
    except ClientInputError as e:
        print(f"Rejected [{e.code}]: {e.message}")
    print()


if __name__ == "__main__":
    asyncio.run(example_questions())
    asyncio.run(example_fallback())
    asyncio.run(example_explanation())
    example_parsing()
    example_validation()
