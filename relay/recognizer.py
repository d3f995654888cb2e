"""Transcript Relay - Speech recognizer client.

Thin wrapper around the Google Cloud Speech synchronous recognize call.
One call per request: no retry, no streaming, no partial results.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from google.cloud import speech_v1p1beta1 as speech

from relay.config import (
    GOOGLE_CREDENTIALS_PATH,
    RECOGNIZER_ENCODING,
    RECOGNIZER_LANGUAGE,
    RECOGNIZER_SAMPLE_RATE,
)
from relay.uploads import is_wav

logger = logging.getLogger(__name__)

# Lets the service take encoding and sample rate from the WAV header
WAV_ENCODING = "ENCODING_UNSPECIFIED"


class RecognizerError(Exception):
    """Raised when the recognize call fails for any reason."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Speech recognition failed: {reason}")


@dataclass(frozen=True)
class RecognitionSettings:
    """Audio parameters sent alongside the audio content."""

    encoding: str = RECOGNIZER_ENCODING
    sample_rate_hertz: int | None = RECOGNIZER_SAMPLE_RATE
    language_code: str = RECOGNIZER_LANGUAGE


def settings_for_upload(
    media_type: str | None,
    defaults: RecognitionSettings | None = None,
) -> RecognitionSettings:
    """Pick recognition settings matching the uploaded format.

    WAV uploads carry their own header, so encoding and rate are left
    unspecified and the service reads them; this covers 8-bit, mu-law and
    float WAV as well as 16-bit PCM. Everything else uses the configured
    defaults.
    """
    defaults = defaults or RecognitionSettings()
    if not is_wav(media_type):
        return defaults
    return replace(defaults, encoding=WAV_ENCODING, sample_rate_hertz=None)


def join_segments(results: Iterable[Any]) -> str:
    """Join the top alternative of each result segment with newlines.

    Segment order is preserved. Segments without alternatives are skipped.
    Zero segments yield an empty string.
    """
    lines = []
    for result in results:
        alternatives = result.alternatives
        if not alternatives:
            continue
        lines.append(alternatives[0].transcript)
    return "\n".join(lines)


class SpeechRecognizer:
    """Process-scoped recognizer client.

    The underlying SpeechClient is created on first use so that startup does
    not require credentials. Pass client to inject a preconfigured or fake
    client.
    """

    def __init__(
        self,
        settings: RecognitionSettings | None = None,
        client: Any | None = None,
        credentials_path: str | Path | None = GOOGLE_CREDENTIALS_PATH,
    ):
        self.settings = settings or RecognitionSettings()
        self.credentials_path = credentials_path
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self) -> Any:
        if self.credentials_path and Path(self.credentials_path).is_file():
            logger.info("Using Google credentials at: %s", self.credentials_path)
            return speech.SpeechClient.from_service_account_file(str(self.credentials_path))
        # Fall back to application default credentials
        logger.info("Using application default credentials for speech client")
        return speech.SpeechClient()

    def build_config(self, settings: RecognitionSettings) -> speech.RecognitionConfig:
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding[settings.encoding],
            language_code=settings.language_code,
        )
        if settings.sample_rate_hertz:
            config.sample_rate_hertz = settings.sample_rate_hertz
        return config

    def transcribe(self, audio_bytes: bytes, settings: RecognitionSettings | None = None) -> str:
        """Recognize speech in audio_bytes.

        Args:
            audio_bytes: Raw file content. The client transport encodes it
                for the wire.
            settings: Per-request settings; defaults to self.settings.

        Returns:
            Recognized text, one line per segment. Empty if nothing was recognized.

        Raises:
            RecognizerError: If building the request or the remote call fails.
        """
        settings = settings or self.settings
        try:
            config = self.build_config(settings)
            audio = speech.RecognitionAudio(content=audio_bytes)
            response = self.client.recognize(config=config, audio=audio)
        except Exception as e:
            logger.error("Speech API error: %s", e, exc_info=True)
            raise RecognizerError(str(e)) from e

        return join_segments(response.results)


__all__ = [
    "RecognitionSettings",
    "RecognizerError",
    "SpeechRecognizer",
    "join_segments",
    "settings_for_upload",
]
