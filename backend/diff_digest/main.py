"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from diff_digest import __version__
from diff_digest.config import get_settings
from diff_digest.logging_config import configure_logging
from diff_digest.models import ValidationErrorResponse
from diff_digest.routes import health, notes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: configure logging and report whether the LLM is usable."""
    settings = get_settings()
    configure_logging(settings)
    if settings.llm_configured:
        logger.info("Diff Digest %s started (model=%s)", __version__, settings.anthropic_model)
    else:
        logger.warning("ANTHROPIC_API_KEY not set — note generation will fail")
    yield


app = FastAPI(
    title="Diff Digest",
    description="Release notes from merged pull requests, streamed over SSE",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_settings().frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Reject malformed bodies before any stream is opened."""
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    body = ValidationErrorResponse(
        error="Invalid generation request",
        detail=jsonable_encoder(exc.errors()),
    )
    return JSONResponse(status_code=422, content=body.model_dump())


app.include_router(health.router)
app.include_router(notes.router)
