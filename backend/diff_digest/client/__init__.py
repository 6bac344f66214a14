"""Client side of Diff Digest — stream consumer, note state and diff listing."""

from .consumer import NoteStreamConsumer
from .diff_source import DiffSourceClient, DiffSourceError, merge_diffs
from .sse import MalformedRecordError, SSEDecoder, parse_record
from .state import (
    ERROR_TEXT,
    DiffNote,
    NoteState,
    render_bullets,
    render_note,
)

# Re-export public interface
__all__ = [
    "ERROR_TEXT",
    "DiffNote",
    "DiffSourceClient",
    "DiffSourceError",
    "MalformedRecordError",
    "NoteState",
    "NoteStreamConsumer",
    "SSEDecoder",
    "merge_diffs",
    "parse_record",
    "render_bullets",
    "render_note",
]
