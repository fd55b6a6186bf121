"""
Shared fixtures for the chat relay test suite.

No test talks to OpenAI or Redis: the chat model is replaced by
FakeChatModel and the app is built with create_app(...) per test, so every
test starts with empty sessions and fresh rate-limit counters.
"""

import os

os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

from config import Settings
from chat_relay.main import create_app
from chat_relay.services.rate_limiter import SlidingWindowRateLimiter
from chat_relay.services.session_store import InMemorySessionStore

ORIGIN = "https://automatizacionesbilbao.es"
TOKEN = "test-widget-token-0123456789abcdef0123456789abcdef"


class FakeChatModel:
    """
    Stand-in for ChatOpenAI. Replies are consumed in order; an Exception in
    the list is raised instead of answering. When the list runs out every
    call answers with ``default``.
    """

    def __init__(self, replies: Optional[list] = None, default="Respuesta de prueba."):
        self.replies = list(replies or [])
        self.default = default
        self.calls: List[list] = []

    async def ainvoke(self, messages, *args, **kwargs):
        self.calls.append(list(messages))
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return AIMessage(content=reply)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="sk-test",
        openai_model="gpt-4o-mini",
        widget_token=TOKEN,
        allowed_origins=(ORIGIN, "https://www.automatizacionesbilbao.es"),
        session_redis_url="",
        system_prompt="Eres el asistente de pruebas.",
    )


@pytest.fixture
def fake_llm() -> FakeChatModel:
    return FakeChatModel()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(settings) -> InMemorySessionStore:
    return InMemorySessionStore(max_turns=settings.max_history_turns)


@pytest.fixture
def rate_limiter(settings, clock) -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(
        limit=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
        clock=clock,
    )


@pytest.fixture
def app(settings, fake_llm, store, rate_limiter):
    return create_app(settings=settings, llm=fake_llm, store=store, rate_limiter=rate_limiter)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def widget_headers() -> dict:
    return {"Origin": ORIGIN, "X-Widget-Token": TOKEN}
