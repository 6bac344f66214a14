"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from diff_digest.config import Settings, get_settings
from diff_digest.main import app


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a fake key and no .env lookup."""
    return Settings(
        _env_file=None,
        anthropic_api_key="test-key",
        anthropic_model="claude-sonnet-4-5-20250929",
        upstream_timeout_seconds=5.0,
    )


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """sse_starlette caches its exit event on the first loop that uses it."""
    from sse_starlette.sse import AppStatus

    if hasattr(AppStatus, "should_exit_event"):
        AppStatus.should_exit_event = None
    yield


@pytest.fixture
async def client(test_settings) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Mock helpers for the Claude Agent SDK
# ---------------------------------------------------------------------------


def make_text_delta(text: str, index: int = 0, session_id: str = "test-session"):
    """Create a StreamEvent carrying one text delta."""
    from claude_agent_sdk.types import StreamEvent

    return StreamEvent(
        uuid=f"evt-{index}",
        session_id=session_id,
        event={
            "type": "content_block_delta",
            "delta": {"type": "text_delta", "text": text},
        },
    )


def make_text_deltas(chunks: list[str], session_id: str = "test-session"):
    return [make_text_delta(c, i, session_id) for i, c in enumerate(chunks)]


def make_result_message(is_error: bool = False, result: str | None = None):
    """Create a ResultMessage closing the stream."""
    from claude_agent_sdk import ResultMessage

    return ResultMessage(
        subtype="error_during_execution" if is_error else "success",
        duration_ms=500,
        duration_api_ms=400,
        is_error=is_error,
        num_turns=1,
        session_id="test-session",
        total_cost_usd=0.001,
        usage={"input_tokens": 25, "output_tokens": 10},
        result=result,
    )


def make_fake_query(messages, *, delay: float = 0.0):
    """Build a stand-in for `claude_agent_sdk.query`.

    Items in `messages` are yielded in order; an Exception item is raised
    at that point instead. Every call is recorded on `fake.calls`.
    """
    calls: list[dict] = []

    async def fake_query(*, prompt, options=None, transport=None):
        calls.append({"prompt": prompt, "options": options})
        for msg in messages:
            await asyncio.sleep(delay)
            if isinstance(msg, Exception):
                raise msg
            yield msg

    fake_query.calls = calls
    return fake_query


@pytest.fixture
def mock_llm():
    """Patch the SDK `query()` used by the LLM layer with canned responses.

    Usage:
        def test_notes(mock_llm):
            mock_llm["set_messages"]([
                *make_text_deltas(["Added ", "/// ", "dark mode"]),
                make_result_message(),
            ])
    """
    state = {"fake": make_fake_query([*make_text_deltas(["Hello ", "world"]), make_result_message()])}

    def set_messages(messages, *, delay: float = 0.0):
        state["fake"] = make_fake_query(messages, delay=delay)

    def set_query(fake):
        state["fake"] = fake

    def dispatch(**kwargs):
        return state["fake"](**kwargs)

    with patch("diff_digest.llm.query", side_effect=dispatch) as mocked:
        yield {
            "mock": mocked,
            "set_messages": set_messages,
            "set_query": set_query,
            "calls": lambda: state["fake"].calls,
        }


def parse_sse_data(raw: str) -> list[str]:
    """Return the `data:` payload of every record in a raw SSE body.

    Comment records (keep-alive pings) are skipped.
    """
    payloads = []
    for record in raw.replace("\r\n", "\n").split("\n\n"):
        if record.startswith("data: "):
            payloads.append(record[len("data: "):])
    return payloads
