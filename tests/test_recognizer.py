"""Tests for relay.recognizer module."""

from types import SimpleNamespace

import pytest

from relay.recognizer import (
    RecognitionSettings,
    RecognizerError,
    SpeechRecognizer,
    join_segments,
    settings_for_upload,
)

from conftest import FakeSpeechClient


def segment(*alternatives):
    return SimpleNamespace(alternatives=[SimpleNamespace(transcript=t) for t in alternatives])


class TestJoinSegments:
    def test_two_segments(self):
        assert join_segments([segment("hello"), segment("world")]) == "hello\nworld"

    def test_first_alternative_wins(self):
        results = [segment("recognize speech", "wreck a nice beach"), segment("ok", "okay")]
        assert join_segments(results) == "recognize speech\nok"

    def test_no_segments(self):
        assert join_segments([]) == ""

    def test_segment_without_alternatives_skipped(self):
        results = [segment("one"), SimpleNamespace(alternatives=[]), segment("two")]
        assert join_segments(results) == "one\ntwo"


class TestSettingsForUpload:
    def test_mp3_uses_defaults(self):
        defaults = RecognitionSettings(encoding="MP3", sample_rate_hertz=16000, language_code="en-GB")
        assert settings_for_upload("audio/mpeg", defaults) == defaults

    @pytest.mark.parametrize("media_type", ["audio/wav", "audio/x-wav", "audio/wave"])
    def test_wav_leaves_format_to_header(self, media_type):
        defaults = RecognitionSettings(encoding="MP3", sample_rate_hertz=8000, language_code="en-GB")

        settings = settings_for_upload(media_type, defaults)

        assert settings.encoding == "ENCODING_UNSPECIFIED"
        assert settings.sample_rate_hertz is None
        assert settings.language_code == "en-GB"

    def test_wav_request_has_no_encoding_or_rate(self):
        client = FakeSpeechClient()
        recognizer = SpeechRecognizer(client=client)

        recognizer.transcribe(b"RIFF", settings_for_upload("audio/wav"))

        config = client.calls[0].config
        assert config.encoding.name == "ENCODING_UNSPECIFIED"
        assert config.sample_rate_hertz == 0


class TestSpeechRecognizer:
    def test_transcribe_returns_joined_text(self):
        client = FakeSpeechClient(segments=["good morning", "how are you"])
        recognizer = SpeechRecognizer(client=client)

        assert recognizer.transcribe(b"audio") == "good morning\nhow are you"
        assert len(client.calls) == 1

    def test_request_carries_settings(self):
        client = FakeSpeechClient()
        recognizer = SpeechRecognizer(client=client)

        recognizer.transcribe(
            b"\x01\x02",
            RecognitionSettings(encoding="MP3", sample_rate_hertz=22050, language_code="fr-FR"),
        )

        call = client.calls[0]
        assert call.audio.content == b"\x01\x02"
        assert call.config.encoding.name == "MP3"
        assert call.config.sample_rate_hertz == 22050
        assert call.config.language_code == "fr-FR"

    def test_rate_omitted_when_unknown(self):
        client = FakeSpeechClient()
        recognizer = SpeechRecognizer(client=client)

        recognizer.transcribe(
            b"RIFF",
            RecognitionSettings(encoding="LINEAR16", sample_rate_hertz=None, language_code="en-US"),
        )

        assert client.calls[0].config.sample_rate_hertz == 0

    def test_empty_result(self):
        recognizer = SpeechRecognizer(client=FakeSpeechClient(segments=[]))
        assert recognizer.transcribe(b"silence") == ""

    def test_client_error_wrapped(self):
        error = ConnectionError("unavailable")
        recognizer = SpeechRecognizer(client=FakeSpeechClient(error=error))

        with pytest.raises(RecognizerError) as exc_info:
            recognizer.transcribe(b"audio")

        assert exc_info.value.__cause__ is error
        assert "unavailable" in str(exc_info.value)

    def test_unknown_encoding_wrapped(self):
        client = FakeSpeechClient()
        recognizer = SpeechRecognizer(client=client)

        with pytest.raises(RecognizerError):
            recognizer.transcribe(b"audio", RecognitionSettings(encoding="NOT_A_CODEC"))

        assert client.calls == []

    def test_client_created_lazily(self, tmp_path):
        recognizer = SpeechRecognizer(credentials_path=tmp_path / "missing.json")
        assert recognizer._client is None
