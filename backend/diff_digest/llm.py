"""Upstream LLM call — streams text deltas via the Claude Agent SDK.

Each call runs its own one-shot `query()`; nothing is shared between
concurrent generations.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import aclosing

from claude_agent_sdk import ClaudeAgentOptions, ResultMessage, query
from claude_agent_sdk.types import StreamEvent

from diff_digest.config import Settings

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """The provider finished the call but reported a failure."""


def _stderr_callback(line: str) -> None:
    """Capture CLI subprocess stderr for debugging."""
    logger.warning("CLI stderr: %s", line)


def build_options(system_prompt: str, settings: Settings) -> ClaudeAgentOptions:
    """Single-turn, tool-less options with partial messages enabled."""
    return ClaudeAgentOptions(
        system_prompt=system_prompt,
        model=settings.anthropic_model,
        max_turns=1,
        allowed_tools=[],
        include_partial_messages=True,
        env={"ANTHROPIC_API_KEY": settings.anthropic_api_key},
        stderr=_stderr_callback,
    )


async def stream_deltas(
    system_prompt: str,
    content: str,
    settings: Settings,
) -> AsyncGenerator[str, None]:
    """Yield non-empty text deltas from one streaming completion, in order.

    Raises:
        UpstreamError: if the final ResultMessage is flagged as an error.
        ClaudeSDKError: on CLI/transport failures.
    """
    options = build_options(system_prompt, settings)
    async with aclosing(query(prompt=content, options=options)) as messages:
        async for msg in messages:
            if isinstance(msg, StreamEvent):
                event = msg.event
                if event.get("type") != "content_block_delta":
                    continue
                delta = event.get("delta", {})
                if delta.get("type") == "text_delta" and delta.get("text"):
                    yield delta["text"]

            elif isinstance(msg, ResultMessage):
                if msg.is_error:
                    raise UpstreamError(msg.result or f"upstream {msg.subtype}")
                logger.debug(
                    "Generation finished in %sms (usage=%s)",
                    msg.duration_ms,
                    msg.usage,
                )
