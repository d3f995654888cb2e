"""Transcript Relay - Pydantic models for API responses."""

from datetime import datetime  # noqa: I001

from pydantic import BaseModel, ConfigDict, Field


class TranscribeSuccessResponse(BaseModel):
    """Response for a successful transcription."""

    model_config = ConfigDict(extra="forbid")

    message: str = Field(default="Success", description="Operation status message")
    transcription: str = Field(..., description="Recognized text, one line per segment")


class TranscriptItem(BaseModel):
    """One stored transcript in a history listing."""

    model_config = ConfigDict(extra="forbid", from_attributes=True)

    id: int = Field(..., description="Record identifier")
    file_name: str = Field(..., description="Original uploaded filename")
    transcription: str = Field(..., description="Stored transcript text")
    created_at: datetime = Field(..., description="When the record was created")


class TranscriptListResponse(BaseModel):
    """Response for a user's transcript history, newest first."""

    model_config = ConfigDict(extra="forbid")

    message: str = Field(default="Success", description="Operation status message")
    transcriptions: list[TranscriptItem] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Response for any failed request."""

    model_config = ConfigDict(extra="forbid")

    status: str = Field(default="error", description="Operation status")
    error_code: str = Field(..., description="Error taxonomy code")
    error: str = Field(..., description="Human-readable error description")


__all__ = [
    "TranscribeSuccessResponse",
    "TranscriptItem",
    "TranscriptListResponse",
    "ErrorResponse",
]
