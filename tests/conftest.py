"""Shared pytest fixtures for Transcript Relay tests.

The environment is pointed at a throwaway directory before any relay module
is imported, so the app lifespan never touches the repository's data/ dir.
"""

import os
import tempfile
import wave
from pathlib import Path
from types import SimpleNamespace

_SESSION_TMP = Path(tempfile.mkdtemp(prefix="relay-tests-"))
os.environ["RELAY_DATA_DIR"] = str(_SESSION_TMP)
os.environ["RELAY_UPLOAD_DIR"] = str(_SESSION_TMP / "uploads")
os.environ["RELAY_DATABASE_URL"] = f"sqlite:///{_SESSION_TMP / 'lifespan.db'}"
os.environ.pop("RELAY_ALLOWED_ORIGINS", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from relay.db import init_db  # noqa: E402
from relay.recognizer import SpeechRecognizer  # noqa: E402
from services.transcribe_api.main import (  # noqa: E402
    app,
    get_db_session,
    get_recognizer,
    get_upload_dir,
    override_session_factory,
)

ALLOWED_ORIGIN = "http://localhost:5173"


class FakeSpeechClient:
    """Stands in for google.cloud.speech.SpeechClient.

    Returns one result segment per entry in segments, or raises error.
    Every call is recorded.
    """

    def __init__(self, segments=("hello", "world"), error=None):
        self.segments = list(segments)
        self.error = error
        self.calls = []

    def recognize(self, config, audio):
        self.calls.append(SimpleNamespace(config=config, audio=audio))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            results=[
                SimpleNamespace(alternatives=[SimpleNamespace(transcript=text)])
                for text in self.segments
            ]
        )


@pytest.fixture
def temp_db():
    """Create a temporary database for testing.

    Yields:
        tuple: (db_path, engine, SessionFactory)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        engine, SessionFactory = init_db(db_path)
        override_session_factory(SessionFactory)
        yield db_path, engine, SessionFactory
        engine.dispose()


@pytest.fixture
def speech_client():
    """Fake recognizer transport; tests adjust segments or error before calling."""
    return FakeSpeechClient()


@pytest.fixture
def upload_dir(tmp_path):
    """Empty transient upload directory."""
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def client(temp_db, speech_client, upload_dir):
    """Create a FastAPI test client with temp database, fake recognizer and upload dir.

    Yields:
        tuple: (test_client, SessionFactory)
    """
    db_path, engine, SessionFactory = temp_db

    def get_test_session():
        session = SessionFactory()
        try:
            yield session
        finally:
            session.close()

    recognizer = SpeechRecognizer(client=speech_client)

    app.dependency_overrides[get_db_session] = get_test_session
    app.dependency_overrides[get_recognizer] = lambda: recognizer
    app.dependency_overrides[get_upload_dir] = lambda: upload_dir

    with TestClient(app) as client:
        yield client, SessionFactory

    app.dependency_overrides.clear()


@pytest.fixture
def sample_audio_file():
    """Create a sample WAV audio file (1 second of silence, mono, 16000 Hz).

    Yields:
        Path: Path to the temporary WAV file.
    """
    with tempfile.NamedTemporaryFile(suffix=".wav", delete=False) as f:
        with wave.open(f.name, "wb") as wf:
            wf.setnchannels(1)
            wf.setsampwidth(2)
            wf.setframerate(16000)
            wf.writeframes(b"\x00" * 16000 * 2)

        yield Path(f.name)

    try:
        Path(f.name).unlink()
    except OSError:
        pass


@pytest.fixture
def sample_mp3_bytes():
    """Arbitrary bytes posing as an MP3 upload (never decoded locally)."""
    return b"ID3fake mp3 content " * 100
