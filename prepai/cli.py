"""
Command-line interface for PrepAI.

Provides commands for:
- Generating interview questions
- Explaining a concept
- Printing the prompt that would be sent
- Serving the HTTP API
"""

import argparse
import asyncio
import sys

from prepai.errors import PrepAIError
from prepai.metrics import MetricsCollector
from prepai.pipeline import MockProvider, RequestPipeline
from prepai.prompts import build_explanation_prompt, build_question_prompt
from prepai.quota import QuotaTracker
from prepai.schemas import Difficulty
from prepai.service import InterviewPrepService
from prepai.validation import validate_explanation_request, validate_question_request


def _build_service(args) -> InterviewPrepService:
    metrics = MetricsCollector(enable_logging=args.verbose)
    tracker = QuotaTracker()
    provider = MockProvider() if args.dry_run else None
    pipeline = RequestPipeline(provider=provider, tracker=tracker, metrics=metrics)
    return InterviewPrepService(pipeline=pipeline)


def cmd_questions(args):
    """Generate interview questions."""
    request = validate_question_request(args.role, args.experience, args.topics, args.count)
    service = _build_service(args)
    result = asyncio.run(service.generate_questions(request))

    print("\n" + "=" * 60)
    print("INTERVIEW QUESTIONS")
    print("=" * 60)
    print(f"Role: {request.role}")
    print(f"Experience: {request.experience} years")
    print(f"Topics: {request.topics}")
    if result.is_fallback:
        print("Source: fallback templates (model unavailable)")
    print("-" * 60)
    for i, question in enumerate(result.questions, 1):
        print(f"{i}. {question}")
    print("=" * 60)


def cmd_explain(args):
    """Explain a concept."""
    request = validate_explanation_request(
        args.concept,
        difficulty=args.difficulty,
        language=args.language,
        context=args.context,
    )
    service = _build_service(args)
    result = asyncio.run(service.generate_explanation(request))

    print("\n" + "=" * 60)
    print(f"EXPLANATION ({result.difficulty.value}, {result.language})")
    print("=" * 60)
    print(result.explanation)
    print("-" * 60)
    print(f"Model: {result.model}  Response time: {result.response_time_ms}ms")
    print("=" * 60)


def cmd_prompt(args):
    """Print the prompt without calling the model."""
    if args.kind == "questions":
        request = validate_question_request(args.role, args.experience, args.topics, args.count)
        print(build_question_prompt(request.role, request.experience, request.topics, request.count))
    else:
        request = validate_explanation_request(
            args.concept,
            difficulty=args.difficulty,
            language=args.language,
            context=args.context,
        )
        print(build_explanation_prompt(
            request.concept, request.difficulty, request.language, request.context
        ))


def cmd_serve(args):
    """Serve the HTTP API with uvicorn."""
    try:
        import uvicorn
    except ImportError:
        raise ImportError("uvicorn package required. Install with: pip install prepai[server]")
    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)


def _add_question_args(parser):
    parser.add_argument("role", help="Target role, e.g. 'Backend Engineer'")
    parser.add_argument("experience", help="Years of experience")
    parser.add_argument("topics", help="Comma-separated focus topics")
    parser.add_argument("--count", "-n", type=int, default=5,
                        help="Number of questions (1-20)")


def _add_explain_args(parser):
    parser.add_argument("concept", help="Concept or question to explain")
    parser.add_argument("--difficulty", "-d", default=Difficulty.INTERMEDIATE.value,
                        choices=[d.value for d in Difficulty])
    parser.add_argument("--language", "-l", default="English")
    parser.add_argument("--context", "-c", help="Extra context for the explanation")


def _add_run_args(parser):
    parser.add_argument("--dry-run", action="store_true",
                        help="Use the local mock provider instead of the API")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log pipeline events to stderr")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="PrepAI - AI interview question generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate questions
  prepai questions "Backend Engineer" 3 "Node.js, SQL" -n 5

  # Explain a concept
  prepai explain "JavaScript closures" -d beginner

  # Show the prompt only
  prepai prompt questions "SRE" 5 "Kubernetes" -n 3

  # Run the API
  prepai serve --port 8000
""",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    q_parser = subparsers.add_parser("questions", help="Generate interview questions")
    _add_question_args(q_parser)
    _add_run_args(q_parser)

    e_parser = subparsers.add_parser("explain", help="Explain a concept")
    _add_explain_args(e_parser)
    _add_run_args(e_parser)

    p_parser = subparsers.add_parser("prompt", help="Print a prompt without calling the model")
    p_sub = p_parser.add_subparsers(dest="kind", required=True)
    _add_question_args(p_sub.add_parser("questions"))
    _add_explain_args(p_sub.add_parser("explain"))

    s_parser = subparsers.add_parser("serve", help="Serve the HTTP API")
    s_parser.add_argument("--host", default="0.0.0.0")
    s_parser.add_argument("--port", type=int, default=8000)
    s_parser.add_argument("--reload", action="store_true")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "questions": cmd_questions,
        "explain": cmd_explain,
        "prompt": cmd_prompt,
        "serve": cmd_serve,
    }

    try:
        commands[args.command](args)
    except PrepAIError as exc:
        print(f"Error [{exc.code}]: {exc.message}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
