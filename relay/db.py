"""Transcript Relay - Database engine, session management and persistence.

SQLAlchemy sync engine/session factory. The connection URL comes from
config.DATABASE_URL, so SQLite in development and a managed Postgres in
deployment share the same code path.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import Engine, create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from relay.config import DATABASE_URL
from relay.models import Base, TranscriptRecord

logger = logging.getLogger(__name__)


class DatastoreError(Exception):
    """Raised when an insert or query against the datastore fails."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed: {reason}")


def get_database_url(url: str | Path | None = None) -> str:
    """Resolve the database URL.

    Args:
        url: Optional override. A bare filesystem path is treated as a SQLite file.

    Returns:
        SQLAlchemy connection URL string.
    """
    if url is None:
        return DATABASE_URL
    if isinstance(url, Path) or "://" not in url:
        return f"sqlite:///{url}"
    return url


def create_db_engine(url: str | Path | None = None, echo: bool = False) -> Engine:
    """Create SQLAlchemy engine.

    For SQLite the parent directory of the database file is created and
    connections are allowed across threads; FastAPI runs sync endpoints in a
    threadpool with one session per request.
    """
    resolved = make_url(get_database_url(url))
    connect_args = {}
    if resolved.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if resolved.database and resolved.database != ":memory:":
            Path(resolved.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(resolved, echo=echo, connect_args=connect_args)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the given engine.

    expire_on_commit=False keeps inserted records readable after commit,
    which the insert primitive relies on to return the stored row.
    """
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(url: str | Path | None = None, echo: bool = False) -> tuple[Engine, sessionmaker]:
    """Initialize the database: create engine, session factory, and all tables.

    This is idempotent - safe to call multiple times.

    Args:
        url: Optional connection URL or SQLite file path override.
        echo: If True, log all SQL statements.

    Returns:
        Tuple of (engine, SessionFactory).
    """
    engine = create_db_engine(url, echo=echo)
    SessionFactory = create_session_factory(engine)

    Base.metadata.create_all(engine)

    return engine, SessionFactory


# --- Persistence primitives ---


def insert_transcript(
    session: Session,
    file_name: str,
    transcription: str,
    user_id: str | None,
) -> TranscriptRecord:
    """Insert one transcript record and commit.

    No local validation is performed; the datastore's constraints apply.

    Returns:
        The stored record with id and created_at populated.

    Raises:
        DatastoreError: If the insert or commit fails. The session is rolled back.
    """
    record = TranscriptRecord(
        file_name=file_name,
        transcription=transcription,
        user_id=user_id,
    )
    try:
        session.add(record)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise DatastoreError("insert", str(e)) from e

    logger.info("Saved transcript id=%s for user_id=%s", record.id, user_id)
    return record


def list_transcripts(session: Session, user_id: str) -> list[TranscriptRecord]:
    """Return every transcript owned by user_id, most recent first.

    No pagination and no limit. Records sharing a timestamp are ordered by
    descending id so the result is deterministic.

    Raises:
        DatastoreError: If the query fails.
    """
    stmt = (
        select(TranscriptRecord)
        .where(TranscriptRecord.user_id == user_id)
        .order_by(TranscriptRecord.created_at.desc(), TranscriptRecord.id.desc())
    )
    try:
        return list(session.execute(stmt).scalars().all())
    except SQLAlchemyError as e:
        raise DatastoreError("query", str(e)) from e
