"""Incremental SSE decoding for the note stream.

Network reads do not line up with records: a read may end mid-record or in
the middle of a multi-byte UTF-8 sequence. `SSEDecoder` buffers across reads
and only hands out complete records.
"""

from __future__ import annotations

import codecs
import json

from pydantic import ValidationError

from diff_digest.models import DONE_SENTINEL, ContentFrame, DoneFrame, ErrorFrame

DATA_PREFIX = "data: "
RECORD_SEPARATOR = "\n\n"

Frame = ContentFrame | ErrorFrame | DoneFrame


class MalformedRecordError(ValueError):
    """A `data:` record whose payload is not a recognised JSON frame."""


class SSEDecoder:
    """Turn a sequence of byte chunks into complete SSE records."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        """Add one network read; return the records it completed."""
        text = self._decoder.decode(chunk)
        # a "\r\n" pair can straddle two reads
        self._buffer = (self._buffer + text).replace("\r\n", "\n")
        *records, self._buffer = self._buffer.split(RECORD_SEPARATOR)
        return [r for r in records if r]

    def flush(self) -> list[str]:
        """Return whatever is left once the byte stream has ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer.strip("\n"), ""
        return [rest] if rest else []


def parse_record(record: str) -> Frame | None:
    """Parse one SSE record into a frame.

    Returns None for records that carry no data (comments, keep-alive pings).

    Raises:
        MalformedRecordError: the payload is not valid JSON or has neither
            a `content` nor an `error` field.
    """
    if not record.startswith(DATA_PREFIX):
        return None
    data = record[len(DATA_PREFIX):]
    if data == DONE_SENTINEL:
        return DoneFrame()

    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise MalformedRecordError(f"invalid JSON in record: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedRecordError(f"expected an object, got {type(payload).__name__}")

    try:
        if "error" in payload:
            error = payload["error"]
            return ErrorFrame(error=error if isinstance(error, str) else json.dumps(error))
        if "content" in payload:
            return ContentFrame.model_validate(payload)
    except ValidationError as e:
        raise MalformedRecordError(str(e)) from e
    raise MalformedRecordError(f"unrecognised frame keys: {sorted(payload)}")
