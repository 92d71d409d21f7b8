"""Test doubles shared across the PrepAI test suite."""

import httpx


VALID_KEY = "AIza" + "x" * 35


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def gemini_ok(text: str = "1. What is a closure?\n2. Explain hoisting.", finish_reason: str = "STOP") -> dict:
    return {
        "candidates": [
            {
                "finishReason": finish_reason,
                "content": {"parts": [{"text": text}], "role": "model"},
            }
        ]
    }


def gemini_error(status: int, message: str, details: list | None = None) -> dict:
    error = {"code": status, "message": message}
    if details is not None:
        error["details"] = details
    return {"error": error}


class ScriptedTransport:
    """
    Replays responses in order through an httpx.MockTransport.

    Items may be httpx.Response objects or exceptions to raise; the last
    item repeats once the script is exhausted.
    """

    def __init__(self, *items):
        self.items = list(items)
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.items.pop(0) if len(self.items) > 1 else self.items[0]
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def call_count(self) -> int:
        return len(self.requests)
