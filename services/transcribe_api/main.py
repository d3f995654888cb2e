"""Transcript Relay - Transcribe API FastAPI application.

Accepts an uploaded audio file, relays it to the speech recognizer, stores
the transcript and serves a user's transcript history.

Run with:
    uvicorn services.transcribe_api.main:app --reload  # dev server only
    python -m services.transcribe_api.main
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from relay.config import ALLOWED_ORIGINS, PORT, UPLOAD_DIR
from relay.db import init_db
from relay.recognizer import SpeechRecognizer
from relay.schemas import (
    ErrorResponse,
    TranscribeSuccessResponse,
    TranscriptItem,
    TranscriptListResponse,
)
from relay.uploads import cleanup_orphan_uploads, ensure_upload_dir
from services.transcribe_api.origin_policy import OriginPolicyMiddleware
from services.transcribe_api.service import (
    ClientInputError,
    TranscribeError,
    TranscribeErrorCode,
    fetch_user_transcripts,
    receive_upload,
    transcribe_upload,
)

logger = logging.getLogger(__name__)

# --- Process-scoped clients ---

# Initialized on startup
_session_factory = None
_recognizer: SpeechRecognizer | None = None


def get_session_factory():
    """Get the session factory.

    Raises:
        RuntimeError: If session factory not initialized (app lifespan not invoked).
    """
    if _session_factory is None:
        raise RuntimeError("Session factory not initialized. App lifespan not invoked?")
    return _session_factory


def get_db_session():
    """Dependency that provides a database session."""
    SessionFactory = get_session_factory()
    session = SessionFactory()
    try:
        yield session
    finally:
        session.close()


def get_recognizer() -> SpeechRecognizer:
    """Dependency that provides the shared recognizer client."""
    if _recognizer is None:
        raise RuntimeError("Recognizer not initialized. App lifespan not invoked?")
    return _recognizer


def get_upload_dir() -> Path:
    """Dependency that provides the transient upload directory."""
    return UPLOAD_DIR


# --- Lifespan ---


def _prepare_upload_dir_safe() -> None:
    """Create the upload directory and sweep leftovers (best-effort)."""
    try:
        ensure_upload_dir(UPLOAD_DIR)
        removed = cleanup_orphan_uploads(UPLOAD_DIR)
        if removed > 0:
            logger.info("Startup cleanup: removed %d orphan uploads", removed)
    except OSError:
        # Uploads fail per request if the directory stays unusable
        logger.warning("Upload directory preparation failed (non-fatal)", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Builds the database session factory and the recognizer once per process.
    """
    global _session_factory, _recognizer
    engine, _session_factory = init_db()
    if _recognizer is None:
        _recognizer = SpeechRecognizer()

    _prepare_upload_dir_safe()

    yield

    engine.dispose()


# --- FastAPI App ---


app = FastAPI(
    title="Transcript Relay - Transcribe API",
    description="Upload audio, transcribe it and keep a per-user transcript history.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(OriginPolicyMiddleware, allowed_origins=ALLOWED_ORIGINS)


# --- Error Handling ---


def make_error_response(status_code: int, error_code: str, message: str) -> JSONResponse:
    """Create a JSON error response."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error_code=error_code, error=message).model_dump(),
    )


def make_unexpected_error_response(e: Exception) -> JSONResponse:
    """Report an uncaught exception with its raw message."""
    return make_error_response(500, TranscribeErrorCode.UNEXPECTED, str(e) or "Unknown error")


# --- Endpoints ---


@app.get("/", response_class=PlainTextResponse, summary="Liveness check")
def root():
    return "API is running..."


@app.get("/health", summary="Health check")
def health_check():
    """Simple health check endpoint."""
    return {"status": "ok"}


# The handler reads the form itself; this documents its fields for OpenAPI.
TRANSCRIBE_FORM_SCHEMA = {
    "requestBody": {
        "required": True,
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "required": ["audio"],
                    "properties": {
                        "audio": {
                            "type": "string",
                            "format": "binary",
                            "description": "MP3 or WAV audio file",
                        },
                        "user_id": {"type": "string", "description": "Owner of the transcript"},
                    },
                }
            }
        },
    }
}


@app.post(
    "/transcribe",
    response_model=TranscribeSuccessResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid audio file"},
        500: {"model": ErrorResponse, "description": "Recognition or persistence failed"},
    },
    summary="Transcribe an uploaded audio file",
    openapi_extra=TRANSCRIBE_FORM_SCHEMA,
)
async def transcribe(
    request: Request,
    session: Annotated[Session, Depends(get_db_session)],
    recognizer: Annotated[SpeechRecognizer, Depends(get_recognizer)],
    upload_dir: Annotated[Path, Depends(get_upload_dir)],
):
    """Transcribe an uploaded audio file and store the transcript.

    Accepts multipart form data with:
    - audio: The audio file (required, MP3 or WAV)
    - user_id: Owner identifier, stored as given

    The recognizer and datastore calls block, so the pipeline runs in the
    threadpool.
    """
    logger.info("Received POST /transcribe from origin: %s", request.headers.get("origin"))
    try:
        try:
            form = await request.form()
        except (StarletteHTTPException, MultiPartException) as e:
            detail = getattr(e, "detail", None) or getattr(e, "message", None) or str(e)
            raise ClientInputError(TranscribeErrorCode.MALFORMED_BODY, detail) from e

        try:
            user_id = form.get("user_id")
            if not isinstance(user_id, str):
                user_id = None
            stored = await run_in_threadpool(receive_upload, form.get("audio"), upload_dir)
            result = await run_in_threadpool(
                transcribe_upload, session, recognizer, stored, user_id
            )
        finally:
            await form.close()
        return TranscribeSuccessResponse(transcription=result.transcription)
    except TranscribeError as e:
        return make_error_response(e.status_code, e.error_code, e.message)
    except Exception as e:
        logger.exception("Unexpected error during transcribe")
        return make_unexpected_error_response(e)


@app.get(
    "/transcriptions/{user_id}",
    response_model=TranscriptListResponse,
    responses={
        500: {"model": ErrorResponse, "description": "History lookup failed"},
    },
    summary="List a user's transcripts, newest first",
)
def list_user_transcriptions(
    user_id: str,
    session: Annotated[Session, Depends(get_db_session)],
):
    try:
        records = fetch_user_transcripts(session, user_id)
        return TranscriptListResponse(
            transcriptions=[TranscriptItem.model_validate(record) for record in records],
        )
    except TranscribeError as e:
        return make_error_response(e.status_code, e.error_code, e.message)
    except Exception as e:
        logger.exception("Unexpected error during history lookup")
        return make_unexpected_error_response(e)


# --- For testing: allow overriding process-scoped clients ---


def override_session_factory(factory):
    """Override the session factory for testing."""
    global _session_factory
    _session_factory = factory


def override_recognizer(recognizer: SpeechRecognizer | None):
    """Override the recognizer for testing."""
    global _recognizer
    _recognizer = recognizer


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=PORT)
