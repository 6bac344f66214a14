"""Tests for the notes endpoint — SSE wire format with a mocked Claude Agent SDK."""

from __future__ import annotations

import json

from diff_digest.config import Settings, get_settings
from diff_digest.main import app
from tests.conftest import (
    make_result_message,
    make_text_delta,
    make_text_deltas,
    parse_sse_data,
)


class TestNotesEndpoint:
    async def test_returns_sse_stream(self, client, mock_llm):
        resp = await client.post("/api/notes", json={"prompt": "diff", "mode": "Marketing"})

        assert resp.status_code == 200
        assert "text/event-stream" in resp.headers.get("content-type", "")

    async def test_stream_headers(self, client, mock_llm):
        resp = await client.post("/api/notes", json={"prompt": "diff", "mode": "Developer"})

        assert "no-cache" in resp.headers["cache-control"]
        assert resp.headers["connection"] == "keep-alive"

    async def test_exact_wire_format(self, client, mock_llm):
        mock_llm["set_messages"]([
            *make_text_deltas(["Added ", "/// ", "dark mode"]),
            make_result_message(),
        ])
        resp = await client.post("/api/notes", json={"prompt": "diff", "mode": "Marketing"})

        assert resp.text == (
            'data: {"content":"Added "}\n\n'
            'data: {"content":"/// "}\n\n'
            'data: {"content":"dark mode"}\n\n'
            "data: [DONE]\n\n"
        )

    async def test_done_is_last_and_unique(self, client, mock_llm):
        resp = await client.post("/api/notes", json={"prompt": "diff", "mode": "Marketing"})
        payloads = parse_sse_data(resp.text)

        assert payloads[-1] == "[DONE]"
        assert payloads.count("[DONE]") == 1
        contents = [json.loads(p)["content"] for p in payloads[:-1]]
        assert "".join(contents) == "Hello world"

    async def test_non_ascii_content_survives(self, client, mock_llm):
        mock_llm["set_messages"]([*make_text_deltas(["Añadido ", "modo oscuro 🌙"]), make_result_message()])
        resp = await client.post("/api/notes", json={"prompt": "diff", "mode": "Marketing"})
        payloads = parse_sse_data(resp.text)

        assert "".join(json.loads(p)["content"] for p in payloads[:-1]) == "Añadido modo oscuro 🌙"

    async def test_upstream_failure_is_in_stream_error(self, client, mock_llm):
        mock_llm["set_messages"]([make_text_delta("partial"), RuntimeError("provider unreachable")])
        resp = await client.post("/api/notes", json={"prompt": "diff", "mode": "Developer"})
        payloads = parse_sse_data(resp.text)

        assert resp.status_code == 200
        assert json.loads(payloads[0]) == {"content": "partial"}
        assert "provider unreachable" in json.loads(payloads[-1])["error"]
        assert "[DONE]" not in payloads
        assert len(payloads) == 2

    async def test_missing_key_is_in_stream_error(self, client, mock_llm):
        app.dependency_overrides[get_settings] = lambda: Settings(
            _env_file=None, anthropic_api_key=""
        )
        resp = await client.post("/api/notes", json={"prompt": "diff", "mode": "Developer"})
        payloads = parse_sse_data(resp.text)

        assert payloads == ['{"error":"LLM API key not configured"}']


class TestRequestValidation:
    """Malformed requests are rejected before a stream is opened."""

    async def test_rejects_unknown_mode(self, client, mock_llm):
        resp = await client.post("/api/notes", json={"prompt": "diff", "mode": "Sales"})

        assert resp.status_code == 422
        assert resp.headers["content-type"].startswith("application/json")
        assert resp.json()["error"] == "Invalid generation request"
        mock_llm["mock"].assert_not_called()

    async def test_rejects_missing_mode(self, client, mock_llm):
        resp = await client.post("/api/notes", json={"prompt": "diff"})
        assert resp.status_code == 422
        assert any("mode" in err["loc"] for err in resp.json()["detail"])

    async def test_rejects_empty_prompt(self, client, mock_llm):
        resp = await client.post("/api/notes", json={"prompt": "", "mode": "Marketing"})
        assert resp.status_code == 422

    async def test_rejects_invalid_json(self, client, mock_llm):
        resp = await client.post(
            "/api/notes",
            content=b'{"prompt": "diff", "mode": ',
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 422
        assert "error" in resp.json()
        mock_llm["mock"].assert_not_called()
