"""Global configuration for PrepAI."""

from __future__ import annotations

import copy
import json
import os
from typing import Dict, Any


GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-2.0-flash"
MIN_API_KEY_LENGTH = 30

DEFAULT_RETRY_POLICY: Dict[str, float] = {
    "max_retries": 2,
    "initial_delay_ms": 3000,
    "max_delay_ms": 30000,
    "jitter": 0.5,
    "timeout_seconds": 30.0,
    "default_rate_limit_delay_seconds": 5.0,
}

DEFAULT_GENERATION_CONFIG: Dict[str, Any] = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 1024,
    "responseMimeType": "text/plain",
}

DEFAULT_CACHE_TTL_SECONDS = 3600

_retry_policy: Dict[str, float] = copy.deepcopy(DEFAULT_RETRY_POLICY)
_model: str | None = None


def _parse_json_env(var_name: str) -> Dict[str, Any] | None:
    value = os.getenv(var_name)
    if not value:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def get_api_key() -> str | None:
    """Return the provider credential, read fresh from the environment."""
    return os.getenv("GEMINI_API_KEY")


def get_model() -> str:
    """Return the model name: runtime override, then env, then default."""
    if _model:
        return _model
    return os.getenv("PREPAI_GEMINI_MODEL") or DEFAULT_MODEL


def set_model(model: str) -> None:
    """Set the model name at runtime."""
    global _model
    if not isinstance(model, str) or not model.strip():
        raise ValueError("model must be a non-empty string")
    _model = model.strip()


def get_endpoint(model: str | None = None) -> str:
    return f"{GEMINI_API_BASE}/{model or get_model()}:generateContent"


def get_retry_policy() -> Dict[str, float]:
    """Return retry policy, with optional env override merged over it."""
    policy = copy.deepcopy(_retry_policy)
    parsed = _parse_json_env("PREPAI_RETRY_POLICY_JSON")
    if parsed:
        for key, value in parsed.items():
            if key in policy and isinstance(value, (int, float)) and not isinstance(value, bool):
                policy[key] = value
    return policy


def set_retry_policy(**overrides: float) -> None:
    """Set retry policy values at runtime."""
    global _retry_policy
    updated = copy.deepcopy(_retry_policy)
    for key, value in overrides.items():
        if key not in DEFAULT_RETRY_POLICY:
            raise ValueError(f"unknown retry policy setting: {key}")
        if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
            raise ValueError(f"{key} must be a non-negative number")
        updated[key] = value
    _retry_policy = updated


def reset_config() -> None:
    """Restore runtime defaults (env overrides still apply)."""
    global _retry_policy, _model
    _retry_policy = copy.deepcopy(DEFAULT_RETRY_POLICY)
    _model = None


def get_cache_ttl_seconds() -> int:
    value = os.getenv("PREPAI_CACHE_TTL_SECONDS")
    if value is None or value == "":
        return DEFAULT_CACHE_TTL_SECONDS
    try:
        return max(0, int(value))
    except ValueError:
        return DEFAULT_CACHE_TTL_SECONDS


def get_log_level() -> str:
    return (os.getenv("PREPAI_LOG_LEVEL") or "INFO").upper()


def get_service_key() -> str | None:
    """Optional shared secret guarding the HTTP API."""
    return os.getenv("PREPAI_API_KEY")


def is_development() -> bool:
    return os.getenv("PREPAI_ENV", "").lower() == "development"
