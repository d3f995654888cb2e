"""Transcript Relay - Transient upload storage.

An upload is written to the upload directory under a timestamp-prefixed
name, read once by the orchestrator, then deleted. Concurrent requests share
the directory; unique naming replaces any locking.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import TYPE_CHECKING

from relay.config import UPLOAD_CHUNK_SIZE

if TYPE_CHECKING:
    from typing import BinaryIO

logger = logging.getLogger(__name__)

MP3_MEDIA_TYPES = frozenset({"audio/mpeg", "audio/mp3"})
WAV_MEDIA_TYPES = frozenset({"audio/wav", "audio/x-wav", "audio/wave"})
ALLOWED_MEDIA_TYPES = MP3_MEDIA_TYPES | WAV_MEDIA_TYPES


@dataclass(frozen=True)
class UploadCheck:
    """Outcome of the media type check."""

    accepted: bool
    media_type: str | None
    reason: str | None = None


def normalize_media_type(content_type: str | None) -> str | None:
    """Strip parameters and lowercase a Content-Type value."""
    if not content_type:
        return None
    return content_type.split(";", 1)[0].strip().lower() or None


def check_media_type(content_type: str | None) -> UploadCheck:
    """Decide whether a declared media type is an accepted audio format.

    Pure predicate; nothing is read or written.
    """
    media_type = normalize_media_type(content_type)
    if media_type in ALLOWED_MEDIA_TYPES:
        return UploadCheck(accepted=True, media_type=media_type)
    return UploadCheck(accepted=False, media_type=media_type, reason="Invalid file type")


def is_wav(media_type: str | None) -> bool:
    return media_type in WAV_MEDIA_TYPES


def safe_basename(filename: str | None) -> str:
    """Return the final path component of a client-supplied filename.

    Both / and \\ separators are stripped so an upload can never escape the
    upload directory.
    """
    if not filename:
        return "upload"
    name = PureWindowsPath(PurePosixPath(filename).name).name
    if name in ("", ".", ".."):
        return "upload"
    return name


def unique_upload_name(filename: str | None, now: float | None = None) -> str:
    """Build the on-disk name: "<epoch millis>-<basename>".

    Args:
        filename: Original filename from the client.
        now: Optional epoch seconds override (for tests).
    """
    timestamp = now if now is not None else time.time()
    return f"{int(timestamp * 1000)}-{safe_basename(filename)}"


def save_upload(stream: BinaryIO, filename: str | None, upload_dir: str | Path) -> Path:
    """Stream an upload to the upload directory.

    The file is opened with mode "xb"; on the rare name collision the
    timestamp is bumped by one millisecond and the write retried.

    Returns:
        Path of the stored file.

    Raises:
        OSError: If the directory cannot be created or the file cannot be written.
    """
    upload_dir = Path(upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)

    now = time.time()
    while True:
        dest_path = upload_dir / unique_upload_name(filename, now)
        try:
            out = open(dest_path, "xb")
        except FileExistsError:
            now += 0.001
            continue
        break

    try:
        with out:
            while True:
                chunk = stream.read(UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                out.write(chunk)
    except OSError:
        discard_upload(dest_path)
        raise

    return dest_path


def discard_upload(path: str | Path) -> None:
    """Delete a stored upload. Best-effort: failures are logged, never raised."""
    try:
        Path(path).unlink(missing_ok=True)
    except OSError:
        logger.warning("Failed to delete upload %s", path, exc_info=True)


def ensure_upload_dir(upload_dir: str | Path) -> Path:
    """Create the upload directory if missing."""
    upload_dir = Path(upload_dir)
    if upload_dir.exists():
        logger.info("Uploads directory already exists: %s", upload_dir)
    else:
        upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Created uploads directory: %s", upload_dir)
    return upload_dir


def cleanup_orphan_uploads(upload_dir: str | Path) -> int:
    """Remove uploads left behind by a previous process.

    Called at startup, before any request can own a file in the directory.

    Returns:
        Number of files removed.
    """
    upload_dir = Path(upload_dir)
    removed = 0

    if not upload_dir.exists():
        return 0

    for orphan in upload_dir.iterdir():
        if not orphan.is_file():
            continue
        try:
            orphan.unlink()
            removed += 1
        except OSError:
            pass  # Best-effort cleanup

    return removed


__all__ = [
    "ALLOWED_MEDIA_TYPES",
    "UploadCheck",
    "check_media_type",
    "cleanup_orphan_uploads",
    "discard_upload",
    "ensure_upload_dir",
    "is_wav",
    "save_upload",
    "unique_upload_name",
]
