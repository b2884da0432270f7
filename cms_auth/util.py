"""Helpers and Flask application integration."""

from typing import Generator, Optional, Any
from datetime import datetime
from contextlib import contextmanager

from pytz import UTC
from sqlalchemy.orm.session import Session

from . import logging
from .models import db

logger = logging.getLogger(__name__)


def now() -> datetime:
    """Get the current time (UTC)."""
    return datetime.now(tz=UTC)


def to_db(t: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware :class:`.datetime` to naive UTC for storage."""
    if t is None or t.tzinfo is None:
        return t
    return t.astimezone(UTC).replace(tzinfo=None)


def from_db(t: Optional[datetime]) -> Optional[datetime]:
    """Get an aware (UTC) :class:`.datetime` from a stored value."""
    if t is None:
        return None
    if t.tzinfo is None:
        return UTC.localize(t)
    return t.astimezone(UTC)


def describe(e: Exception) -> str:
    """
    Describe a database error without echoing statement parameters.

    Parameters may include session tokens, which must not reach the logs.
    """
    original = getattr(e, 'orig', None)
    if original is not None:
        return f'{type(e).__name__}: {original}'
    return type(e).__name__


@contextmanager
def transaction() -> Generator[Session, None, None]:
    """Context manager for database transaction."""
    try:
        yield db.session
        # The caller may have explicitly committed already, in order to
        # implement exception handling logic. We only want to commit here if
        # there is anything remaining that is not flushed.
        if db.session.new or db.session.dirty or db.session.deleted:
            db.session.commit()
    except Exception as e:
        logger.error('Commit failed, rolling back: %s', describe(e))
        db.session.rollback()
        raise


def init_app(app: Any) -> None:
    """Attach the database to the application."""
    db.init_app(app)


def current_session() -> Session:
    """Get/create database session for this context."""
    return db.session


def create_all() -> None:
    """Create all tables in the database."""
    db.create_all()


def drop_all() -> None:
    """Drop all tables in the database."""
    db.drop_all()
