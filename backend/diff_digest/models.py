"""Pydantic models — the shared contract between backend and clients.

These models define the request/response shapes, the SSE frame payloads and
the diff-source page shape consumed by the client package.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class NoteMode(str, Enum):
    """Tone of the generated release notes."""
    MARKETING = "Marketing"
    DEVELOPER = "Developer"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class GenerationRequest(BaseModel):
    """POST /api/notes request body.

    `prompt` carries the raw diff content, usually JSON-encoded by the client
    as {"content": <diff>}.
    """
    prompt: str = Field(min_length=1)
    mode: NoteMode


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    """GET /api/health response."""
    status: Literal["ok", "degraded"]
    version: str
    llm_configured: bool


class ValidationErrorResponse(BaseModel):
    """Body of the 422 returned before a stream is opened."""
    error: str
    detail: list[dict] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# SSE frame payloads (what goes in the `data` field of each SSE record)
# ---------------------------------------------------------------------------

DONE_SENTINEL = "[DONE]"


class ContentFrame(BaseModel):
    """data: {"content": "..."}"""
    content: str


class ErrorFrame(BaseModel):
    """data: {"error": "..."}"""
    error: str


class DoneFrame(BaseModel):
    """data: [DONE] (not JSON on the wire)"""


# ---------------------------------------------------------------------------
# Diff source collaborator
# ---------------------------------------------------------------------------

class DiffItem(BaseModel):
    """One merged pull request as listed by the diff source."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    description: str = ""
    diff: str = ""
    url: str = ""


class DiffPage(BaseModel):
    """Paginated diff listing. camelCase on the wire."""
    model_config = ConfigDict(populate_by_name=True)

    diffs: list[DiffItem] = Field(default_factory=list)
    next_page: int | None = Field(default=None, alias="nextPage")
    current_page: int = Field(default=1, alias="currentPage")
    per_page: int = Field(default=10, alias="perPage")
