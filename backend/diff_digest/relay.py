"""Stream relay — turns upstream text deltas into SSE data payloads.

The critical interface is `generate_notes()`, an async generator that yields
JSON-encoded payloads ready for the SSE `data:` field:

    {"content": "..."}   one per upstream delta, in arrival order
    [DONE]               exactly once after the upstream is exhausted
    {"error": "..."}     exactly once instead of [DONE] on any failure

Nothing is yielded after the terminal payload.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import aclosing

from claude_agent_sdk import ClaudeSDKError

from diff_digest.config import Settings
from diff_digest.llm import UpstreamError, stream_deltas
from diff_digest.models import (
    DONE_SENTINEL,
    ContentFrame,
    ErrorFrame,
    GenerationRequest,
)
from diff_digest.prompts import build_system_prompt

logger = logging.getLogger(__name__)


def _error_payload(message: str) -> str:
    return ErrorFrame(error=message).model_dump_json()


async def generate_notes(
    request: GenerationRequest,
    settings: Settings,
) -> AsyncGenerator[str, None]:
    """Yield SSE payloads for one release-note generation."""
    if not settings.llm_configured:
        yield _error_payload("LLM API key not configured")
        return

    system_prompt = build_system_prompt(request.mode)
    fragments = 0

    try:
        deltas = stream_deltas(system_prompt, request.prompt, settings)
        async with aclosing(deltas):
            while True:
                # Only the upstream read is timed, never our own yield.
                try:
                    async with asyncio.timeout(settings.upstream_timeout_seconds):
                        delta = await anext(deltas)
                except StopAsyncIteration:
                    break
                fragments += 1
                yield ContentFrame(content=delta).model_dump_json()

    except asyncio.CancelledError:
        logger.info(
            "Client disconnected after %d fragments (mode=%s), upstream released",
            fragments,
            request.mode.value,
        )
        raise

    except TimeoutError:
        logger.error(
            "No upstream event for %.1fs, giving up (%d fragments sent)",
            settings.upstream_timeout_seconds,
            fragments,
        )
        yield _error_payload("Generation timed out")

    except (ClaudeSDKError, UpstreamError) as e:
        logger.error("Upstream error after %d fragments: %s", fragments, e)
        yield _error_payload(f"Upstream error: {e}")

    except Exception as e:
        logger.exception("Unexpected error in generate_notes")
        yield _error_payload(f"Unexpected error: {e}")

    else:
        logger.info("Generation complete (mode=%s, %d fragments)", request.mode.value, fragments)
        yield DONE_SENTINEL
