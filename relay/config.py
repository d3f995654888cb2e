"""Transcript Relay - Configuration constants.

Values are read once from the environment at import time. No external
config libraries. Paths are relative to the repository root by default.
"""

import os
from pathlib import Path

# Repository root (parent of relay/)
REPO_ROOT = Path(__file__).parent.parent.resolve()


def _get_int(name: str, default: int) -> int:
    """Read a positive integer from the environment.

    Returns:
        The parsed value, or default if unset, malformed or not positive.
    """
    env_val = os.environ.get(name)
    if env_val:
        try:
            value = int(env_val)
            if value > 0:
                return value
        except ValueError:
            pass
    return default


def _get_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Read a comma separated list from the environment.

    Empty items are dropped. An unset or blank variable yields default.
    """
    env_val = os.environ.get(name, "").strip()
    if not env_val:
        return default
    return tuple(item.strip() for item in env_val.split(",") if item.strip())


# HTTP port for the uvicorn entry point
PORT = _get_int("PORT", 5000)

# Data directories
DATA_DIR = Path(os.environ.get("RELAY_DATA_DIR", REPO_ROOT / "data"))

# Transient upload storage; files live here only for the duration of one request
UPLOAD_DIR = Path(os.environ.get("RELAY_UPLOAD_DIR", DATA_DIR / "uploads"))

# Database connection URL (SQLite for dev, a managed Postgres URL in deployment)
DATABASE_URL = os.environ.get("RELAY_DATABASE_URL") or f"sqlite:///{DATA_DIR / 'transcripts.db'}"

# Service account key file for the speech recognizer
GOOGLE_CREDENTIALS_PATH = os.environ.get(
    "GOOGLE_APPLICATION_CREDENTIALS", "google-credentials.json"
)

# Cross-origin allow-list (exact match)
DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:5173",
    "https://speech-to-text-frontend-ashen.vercel.app",
)
ALLOWED_ORIGINS = _get_list("RELAY_ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)

# Recognizer defaults (applied to MP3 uploads)
RECOGNIZER_ENCODING = os.environ.get("RELAY_RECOGNIZER_ENCODING", "MP3").upper()
RECOGNIZER_SAMPLE_RATE = _get_int("RELAY_RECOGNIZER_SAMPLE_RATE", 16000)
RECOGNIZER_LANGUAGE = os.environ.get("RELAY_RECOGNIZER_LANGUAGE", "en-US")

# Upload streaming chunk size in bytes
UPLOAD_CHUNK_SIZE = 65536
