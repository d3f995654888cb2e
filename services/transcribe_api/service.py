"""Transcript Relay - Transcribe request pipeline.

Per request: Received -> FileValidated -> Uploaded -> Transcribing ->
Transcribed -> Persisting -> Completed. Any stage may exit to Failed by
raising a TranscribeError carrying the HTTP status and message.

The stored upload is deleted as soon as transcription finishes, whether it
succeeded or not.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from relay.db import DatastoreError, insert_transcript, list_transcripts
from relay.models import TranscriptRecord
from relay.recognizer import (
    RecognitionSettings,
    RecognizerError,
    SpeechRecognizer,
    settings_for_upload,
)
from relay.uploads import check_media_type, discard_upload, save_upload, safe_basename

logger = logging.getLogger(__name__)


# --- Error Codes ---


class TranscribeErrorCode(StrEnum):
    """Error codes reported in error responses."""

    MALFORMED_BODY = "MALFORMED_BODY"
    NO_FILE = "NO_FILE"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    SPEECH_FAILED = "SPEECH_FAILED"
    NO_SPEECH = "NO_SPEECH"
    SAVE_FAILED = "SAVE_FAILED"
    FETCH_FAILED = "FETCH_FAILED"
    UNEXPECTED = "UNEXPECTED"


class TranscribeError(Exception):
    """Base exception for terminal request failures."""

    status_code = 500

    def __init__(self, error_code: str, message: str):
        self.error_code = error_code
        self.message = message
        super().__init__(f"{error_code}: {message}")


class ClientInputError(TranscribeError):
    """Missing or unacceptable upload."""

    status_code = 400


class UpstreamServiceError(TranscribeError):
    """Recognizer failure or empty recognition result."""


class PersistenceError(TranscribeError):
    """Datastore insert or query failure."""


# --- Result Types ---


@dataclass
class StoredUpload:
    """An accepted upload written to transient storage."""

    path: Path
    file_name: str
    media_type: str


@dataclass
class TranscribeResult:
    """Result of a completed transcription."""

    transcription: str
    record: TranscriptRecord


# --- Pipeline ---


def receive_upload(upload: Any, upload_dir: str | Path) -> StoredUpload:
    """Validate and store an uploaded audio file.

    upload is the raw "audio" form value; anything other than a file part
    (a missing field or a plain text field) counts as no file. Nothing is
    written unless the media type is accepted.

    Raises:
        ClientInputError: If no file was sent, its media type is not allowed,
            or it cannot be written to the upload directory.
    """
    if not isinstance(upload, UploadFile) or not upload.filename:
        raise ClientInputError(TranscribeErrorCode.NO_FILE, "No file uploaded")

    check = check_media_type(upload.content_type)
    if not check.accepted:
        logger.info("Rejected upload %r with media type %s", upload.filename, check.media_type)
        raise ClientInputError(TranscribeErrorCode.INVALID_FILE_TYPE, check.reason)

    try:
        path = save_upload(upload.file, upload.filename, upload_dir)
    except OSError as e:
        raise ClientInputError(TranscribeErrorCode.UPLOAD_FAILED, f"Upload failed: {e}") from e

    logger.info("Uploaded file: %s", path)
    return StoredUpload(
        path=path,
        file_name=safe_basename(upload.filename),
        media_type=check.media_type,
    )


def transcribe_upload(
    session: Session,
    recognizer: SpeechRecognizer,
    stored: StoredUpload,
    user_id: str | None,
    defaults: RecognitionSettings | None = None,
) -> TranscribeResult:
    """Transcribe a stored upload and persist the transcript.

    Args:
        session: Active database session.
        recognizer: Process-scoped recognizer client.
        stored: Upload returned by receive_upload; deleted by this call.
        user_id: Caller-supplied owner, stored as given.
        defaults: Recognition settings for non-WAV uploads.

    Returns:
        TranscribeResult with the text and the stored record.

    Raises:
        UpstreamServiceError: Recognizer failure, or no speech detected.
        PersistenceError: The record could not be saved.
    """
    logger.info("Transcribing: %s", stored.file_name)
    try:
        settings = settings_for_upload(stored.media_type, defaults)
        audio_bytes = stored.path.read_bytes()
        transcription = recognizer.transcribe(audio_bytes, settings)
    except RecognizerError as e:
        raise UpstreamServiceError(TranscribeErrorCode.SPEECH_FAILED, "Speech-to-Text failed") from e
    finally:
        discard_upload(stored.path)

    if not transcription:
        raise UpstreamServiceError(TranscribeErrorCode.NO_SPEECH, "No speech detected")

    try:
        record = insert_transcript(session, stored.file_name, transcription, user_id)
    except DatastoreError as e:
        logger.error("Datastore insert error: %s", e)
        raise PersistenceError(
            TranscribeErrorCode.SAVE_FAILED, "Failed to save transcription"
        ) from e

    return TranscribeResult(transcription=transcription, record=record)


def fetch_user_transcripts(session: Session, user_id: str) -> list[TranscriptRecord]:
    """Return the user's transcript history, newest first.

    Raises:
        PersistenceError: The query failed.
    """
    try:
        return list_transcripts(session, user_id)
    except DatastoreError as e:
        logger.error("Datastore fetch error: %s", e)
        raise PersistenceError(
            TranscribeErrorCode.FETCH_FAILED, "Failed to fetch transcriptions"
        ) from e
