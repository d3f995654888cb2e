"""Transcript Relay - Transcribe API service.

FastAPI service relaying uploaded audio to the speech recognizer and
storing the resulting transcripts.
"""

__all__: list[str] = []
