"""Health check endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from diff_digest import __version__
from diff_digest.config import Settings, get_settings
from diff_digest.models import HealthResponse

router = APIRouter()


@router.get("/api/health", response_model=HealthResponse)
async def health(settings: Annotated[Settings, Depends(get_settings)]) -> HealthResponse:
    status = "ok" if settings.llm_configured else "degraded"
    return HealthResponse(
        status=status,
        version=__version__,
        llm_configured=settings.llm_configured,
    )
