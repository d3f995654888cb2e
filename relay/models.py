"""Transcript Relay - SQLAlchemy ORM models.

Single table: audio_files, one row per successful transcription.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class TranscriptRecord(Base):
    """Transcript of one uploaded audio file.

    Created once per successful transcription and never mutated.
    user_id is an opaque grouping key; no referential integrity is enforced.
    """

    __tablename__ = "audio_files"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Caller-supplied original filename
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Recognized text, segments joined by newlines
    transcription: Mapped[str] = mapped_column(Text, nullable=False)

    # Caller-supplied owner, unvalidated
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    # History lookups filter by owner and order by creation time
    __table_args__ = (Index("ix_audio_files_user_created", "user_id", "created_at"),)
