"""FastAPI server for PrepAI."""

from __future__ import annotations

import logging
import math
import traceback
from datetime import datetime, UTC
from typing import Any, Dict, Optional, Union

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

from prepai import (
    InterviewPrepService,
    PrepAIError,
    __version__,
    validate_explanation_request,
    validate_question_request,
)
from prepai.config import get_service_key, is_development


logger = logging.getLogger("prepai.api")

_service: Optional[InterviewPrepService] = None


def get_service() -> InterviewPrepService:
    global _service
    if _service is None:
        _service = InterviewPrepService()
    return _service


def _require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    api_key = get_service_key()
    if api_key and x_api_key != api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


app = FastAPI(title="PrepAI API", version=__version__)

# Strict so booleans and lists are rejected instead of coerced.
Scalar = Union[StrictStr, StrictInt, StrictFloat]


class QuestionsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: Optional[Scalar] = Field(default=None, description="Target role")
    experience: Optional[Scalar] = Field(default=None, description="Years of experience")
    topics_to_focus: Optional[Scalar] = Field(default=None, alias="topicsToFocus", description="Comma-separated focus topics")
    number_of_questions: Optional[Scalar] = Field(default=None, alias="numberOfQuestions", description="1-20")


class ExplanationBody(BaseModel):
    concept: Optional[Scalar] = Field(default=None, description="Concept or question to explain")
    difficulty: Optional[StrictStr] = Field(default=None, description="beginner, intermediate, advanced or expert")
    language: Optional[StrictStr] = Field(default=None, description="Explanation language, English by default")
    context: Optional[StrictStr] = Field(default=None, description="Extra context from the learner")


def _error_body(exc: Exception, code: str, message: str, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": message, "code": code, **extra}
    if is_development():
        body["details"] = str(exc)
        body["stack"] = "".join(traceback.format_exception(exc))
    return body


@app.exception_handler(PrepAIError)
async def prepai_error_handler(request: Request, exc: PrepAIError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc.code} - {exc.message}")
    extra = exc.extra()
    headers = {}
    retry_after = extra.get("retry_after")
    if exc.status_code == 429 and retry_after is not None:
        headers["Retry-After"] = str(max(1, math.ceil(retry_after)))
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc, exc.code, exc.message, **extra),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=_error_body(exc, "INVALID_REQUEST", "Request body is malformed"),
    )


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    code = "UNAUTHORIZED" if exc.status_code == 401 else "HTTP_ERROR"
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail), "code": code},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} raised an unexpected error")
    return JSONResponse(
        status_code=500,
        content=_error_body(exc, "INTERNAL_SERVER_ERROR", "An unexpected error occurred"),
    )


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}


@app.post("/api/ai/generate-questions", dependencies=[Depends(_require_api_key)])
async def generate_questions(
    req: QuestionsRequest,
    service: InterviewPrepService = Depends(get_service),
) -> Dict[str, Any]:
    request = validate_question_request(
        req.role,
        req.experience,
        req.topics_to_focus,
        req.number_of_questions,
    )
    result = await service.generate_questions(request)

    body: Dict[str, Any] = {"success": True, "questions": result.questions}
    if result.is_fallback:
        body["isFallback"] = True
    return body


@app.post("/api/ai/generate-explanation", dependencies=[Depends(_require_api_key)])
async def generate_explanation(
    req: ExplanationBody,
    service: InterviewPrepService = Depends(get_service),
) -> Dict[str, Any]:
    request = validate_explanation_request(
        req.concept,
        difficulty=req.difficulty,
        language=req.language,
        context=req.context,
    )
    result = await service.generate_explanation(request)

    return {
        "success": True,
        "explanation": result.explanation,
        "concept": result.concept,
        "difficulty": result.difficulty.value,
        "language": result.language,
        "metadata": {
            "model": result.model,
            "responseTime": f"{result.response_time_ms}ms",
            "generatedAt": result.generated_at.isoformat(),
            "cached": result.from_cache,
        },
    }


@app.get("/api/ai/usage", dependencies=[Depends(_require_api_key)])
def usage(service: InterviewPrepService = Depends(get_service)) -> Dict[str, Any]:
    return {
        "success": True,
        "quota": service.tracker.get_stats(),
        "metrics": service.metrics.get_stats(),
        "cache_entries": len(service.cache),
    }
