"""Release-note endpoint — POST /api/notes → SSE stream."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from diff_digest.config import Settings, get_settings
from diff_digest.models import GenerationRequest
from diff_digest.relay import generate_notes
from diff_digest.sse_bridge import SSE_LINE_SEPARATOR, stream_sse_events

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.post("/api/notes")
async def create_notes(
    request: GenerationRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> EventSourceResponse:
    """Generate release notes for one diff, streamed as SSE.

    Records: {"content": ...} per fragment, then [DONE] or {"error": ...}.
    """
    payloads = generate_notes(request, settings)
    return EventSourceResponse(
        stream_sse_events(payloads),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
        sep=SSE_LINE_SEPARATOR,
    )
