"""Per-diff note state and its transitions.

The notes map (diff id → DiffNote) is never mutated in place. Every
transition takes the current map plus an event and returns a new map, so
concurrent generations can only affect the (diff id, mode) key they own.

Each generation is stamped with a number. Events from a superseded
generation (the user re-generated while an older stream was still running)
are ignored.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict

from diff_digest.models import NoteMode
from diff_digest.prompts import BULLET_DELIMITER

ERROR_TEXT = "error while loading notes, please try again"

NoteStatus = Literal["loading", "streaming", "complete", "error"]
TERMINAL_STATUSES: frozenset[str] = frozenset({"complete", "error"})


class NoteState(BaseModel):
    """Accumulated text for one (diff id, mode) generation."""
    model_config = ConfigDict(frozen=True)

    status: NoteStatus = "loading"
    text: str = ""
    generation: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class DiffNote(BaseModel):
    """Both note modes for one diff, plus their visibility toggles."""
    model_config = ConfigDict(frozen=True)

    diff_id: str
    marketing: NoteState | None = None
    developer: NoteState | None = None
    show_marketing: bool = True
    show_developer: bool = True

    def get(self, mode: NoteMode) -> NoteState | None:
        return getattr(self, _note_field(mode))


NotesMap = Mapping[str, DiffNote]


def _note_field(mode: NoteMode) -> str:
    return "marketing" if mode == NoteMode.MARKETING else "developer"


def _replace_state(
    notes: NotesMap, diff_id: str, mode: NoteMode, state: NoteState
) -> dict[str, DiffNote]:
    note = notes.get(diff_id) or DiffNote(diff_id=diff_id)
    return {**notes, diff_id: note.model_copy(update={_note_field(mode): state})}


def _current(notes: NotesMap, diff_id: str, mode: NoteMode) -> NoteState | None:
    note = notes.get(diff_id)
    return note.get(mode) if note is not None else None


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def ensure_notes(notes: NotesMap, diff_ids: Iterable[str]) -> NotesMap:
    """Add empty entries for newly listed diffs. Returns `notes` if none are new."""
    missing = {i: DiffNote(diff_id=i) for i in diff_ids if i not in notes}
    return {**notes, **missing} if missing else notes


def start_generation(
    notes: NotesMap, diff_id: str, mode: NoteMode
) -> tuple[NotesMap, int]:
    """Reset the (diff id, mode) accumulator to loading.

    Returns the new map and the generation number that later events for this
    stream must carry.
    """
    previous = _current(notes, diff_id, mode)
    generation = previous.generation + 1 if previous is not None else 1
    state = NoteState(status="loading", text="", generation=generation)
    return _replace_state(notes, diff_id, mode, state), generation


def append_fragment(
    notes: NotesMap, diff_id: str, mode: NoteMode, generation: int, fragment: str
) -> NotesMap:
    """Append one content fragment. No-op for stale or finished generations."""
    state = _current(notes, diff_id, mode)
    if state is None or state.generation != generation or state.is_terminal:
        return notes
    updated = state.model_copy(update={"status": "streaming", "text": state.text + fragment})
    return _replace_state(notes, diff_id, mode, updated)


def complete_generation(
    notes: NotesMap, diff_id: str, mode: NoteMode, generation: int
) -> NotesMap:
    state = _current(notes, diff_id, mode)
    if state is None or state.generation != generation or state.is_terminal:
        return notes
    return _replace_state(notes, diff_id, mode, state.model_copy(update={"status": "complete"}))


def fail_generation(
    notes: NotesMap, diff_id: str, mode: NoteMode, generation: int
) -> NotesMap:
    """Replace the accumulator with the error text."""
    state = _current(notes, diff_id, mode)
    if state is None or state.generation != generation or state.is_terminal:
        return notes
    failed = NoteState(status="error", text=ERROR_TEXT, generation=generation)
    return _replace_state(notes, diff_id, mode, failed)


def toggle_visibility(notes: NotesMap, diff_id: str, mode: NoteMode) -> NotesMap:
    note = notes.get(diff_id)
    if note is None:
        return notes
    flag = "show_marketing" if mode == NoteMode.MARKETING else "show_developer"
    return {**notes, diff_id: note.model_copy(update={flag: not getattr(note, flag)})}


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_bullets(text: str) -> list[str]:
    """Split note text into bullet points.

    Everything before the first delimiter is preamble and is dropped.
    """
    segments = text.split(BULLET_DELIMITER)[1:]
    return [s.strip() for s in segments if s.strip()]


def render_note(state: NoteState | None) -> list[str]:
    """Lines to display for one note section."""
    if state is None:
        return []
    if state.status == "error":
        return [state.text]
    if state.status == "loading":
        return ["loading..."]
    return render_bullets(state.text)
