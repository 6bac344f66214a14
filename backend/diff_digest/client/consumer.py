"""Stream consumer — drives note state from the /api/notes SSE stream.

`NoteStreamConsumer.generate()` issues one generation request, reads the
response body incrementally and folds each content fragment into the
(diff id, mode) accumulator, notifying subscribers after every change.

A stream that ends without [DONE] or an error record (dropped connection,
server crash) leaves the note in the error state rather than showing a
truncated note as if it were complete.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterable

import httpx

from diff_digest.client.sse import MalformedRecordError, SSEDecoder, parse_record
from diff_digest.client.state import (
    NoteState,
    NotesMap,
    append_fragment,
    complete_generation,
    ensure_notes,
    fail_generation,
    start_generation,
    toggle_visibility,
)
from diff_digest.models import ContentFrame, DoneFrame, ErrorFrame, NoteMode

logger = logging.getLogger(__name__)

NOTES_PATH = "/api/notes"

NoteListener = Callable[[str, NoteMode, NoteState], None]


class NoteStreamConsumer:
    """Client side of the release-note stream.

    Usage:
        async with NoteStreamConsumer("http://localhost:8000") as consumer:
            consumer.subscribe(lambda diff_id, mode, state: print(state.text))
            state = await consumer.generate("42", NoteMode.MARKETING, diff_text)
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 120.0,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
        )
        self._listeners: list[NoteListener] = []
        self.notes: NotesMap = {}
        self._last_applied: dict[tuple[str, NoteMode, int], NoteState] = {}

    async def __aenter__(self) -> NoteStreamConsumer:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Render-layer hooks
    # ------------------------------------------------------------------

    def subscribe(self, listener: NoteListener) -> None:
        """Call `listener(diff_id, mode, state)` after every note mutation."""
        self._listeners.append(listener)

    def track(self, diff_ids: Iterable[str]) -> None:
        """Create empty note entries for newly listed diffs."""
        self.notes = ensure_notes(self.notes, diff_ids)

    def toggle(self, diff_id: str, mode: NoteMode) -> None:
        self.notes = toggle_visibility(self.notes, diff_id, mode)

    def state(self, diff_id: str, mode: NoteMode) -> NoteState | None:
        note = self.notes.get(diff_id)
        return note.get(mode) if note is not None else None

    def _apply(self, diff_id: str, mode: NoteMode, notes: NotesMap) -> None:
        if notes is self.notes:
            return
        self.notes = notes
        state = notes[diff_id].get(mode)
        self._last_applied[(diff_id, mode, state.generation)] = state
        for listener in self._listeners:
            listener(diff_id, mode, state)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self, diff_id: str, mode: NoteMode, raw_content: str) -> NoteState:
        """Generate notes for one diff and return the final note state.

        The returned state is the last one this generation applied, even if
        a newer generation for the same diff and mode has replaced it since.
        If the call is cancelled or a listener raises, the note is moved to
        the error state before the exception propagates.
        """
        notes, generation = start_generation(self.notes, diff_id, mode)
        key = (diff_id, mode, generation)
        finished = False
        try:
            self._apply(diff_id, mode, notes)
            finished = await self._request(diff_id, mode, generation, raw_content)
        finally:
            try:
                if not finished:
                    failed = fail_generation(self.notes, diff_id, mode, generation)
                    self._apply(diff_id, mode, failed)
            finally:
                last = self._last_applied.pop(key, None) or self.state(diff_id, mode)
        return last

    async def _request(
        self, diff_id: str, mode: NoteMode, generation: int, raw_content: str
    ) -> bool:
        body = {"prompt": json.dumps({"content": raw_content}), "mode": mode.value}
        try:
            async with self._client.stream("POST", NOTES_PATH, json=body) as response:
                if response.is_error:
                    logger.error(
                        "Note generation for %s (%s) rejected: HTTP %d",
                        diff_id,
                        mode.value,
                        response.status_code,
                    )
                    return False
                finished = await self._read_stream(response, diff_id, mode, generation)
                if not finished:
                    logger.warning(
                        "Stream for %s (%s) ended before completion", diff_id, mode.value
                    )
                return finished
        except httpx.HTTPError as e:
            logger.error("Note stream for %s (%s) failed: %s", diff_id, mode.value, e)
            return False
        except asyncio.CancelledError:
            logger.info("Note generation for %s (%s) cancelled", diff_id, mode.value)
            raise

    async def _read_stream(
        self,
        response: httpx.Response,
        diff_id: str,
        mode: NoteMode,
        generation: int,
    ) -> bool:
        """Fold records into the accumulator. True once a terminal record is seen."""
        decoder = SSEDecoder()
        async for chunk in response.aiter_bytes():
            for record in decoder.feed(chunk):
                if self._handle_record(record, diff_id, mode, generation):
                    return True
        for record in decoder.flush():
            if self._handle_record(record, diff_id, mode, generation):
                return True
        return False

    def _handle_record(
        self, record: str, diff_id: str, mode: NoteMode, generation: int
    ) -> bool:
        try:
            frame = parse_record(record)
        except MalformedRecordError as e:
            logger.warning("Skipping malformed SSE record for %s: %s", diff_id, e)
            return False

        if isinstance(frame, DoneFrame):
            self._apply(diff_id, mode, complete_generation(self.notes, diff_id, mode, generation))
            return True
        if isinstance(frame, ErrorFrame):
            logger.error("Note generation for %s (%s) failed: %s", diff_id, mode.value, frame.error)
            self._apply(diff_id, mode, fail_generation(self.notes, diff_id, mode, generation))
            return True
        if isinstance(frame, ContentFrame):
            self._apply(
                diff_id,
                mode,
                append_fragment(self.notes, diff_id, mode, generation, frame.content),
            )
        return False
