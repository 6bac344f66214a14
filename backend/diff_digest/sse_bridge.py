"""SSE bridge — wraps relay payloads in ServerSentEvent objects.

This module sits between the relay and the HTTP response. Records carry
only a `data` field so that each one is exactly `data: <payload>\\n\\n` on
the wire.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from sse_starlette.sse import ServerSentEvent

SSE_LINE_SEPARATOR = "\n"


async def stream_sse_events(
    payloads: AsyncGenerator[str, None],
) -> AsyncGenerator[ServerSentEvent, None]:
    """Convert JSON payload strings to SSE events.

    Args:
        payloads: Async generator from relay.generate_notes() yielding
            payload strings.

    Yields:
        ServerSentEvent objects ready for EventSourceResponse.
    """
    async for data in payloads:
        yield ServerSentEvent(data=data, sep=SSE_LINE_SEPARATOR)
