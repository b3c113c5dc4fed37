"""
Database session management utilities.
Provides context managers for database sessions.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.orm import Session

from database.base import SessionLocal


@contextmanager
def get_db_context(commit: bool = False) -> Generator[Session, None, None]:
    """
    Database session context manager.

    Usage (read-only):
        with get_db_context() as db:
            rules = db.query(EmailRule).filter(EmailRule.form_id == form_id).all()

    Usage (with write):
        with get_db_context(commit=True) as db:
            db.add(email_log)

    Args:
        commit: Commit the transaction when the block exits without error
    """
    db = SessionLocal()
    try:
        yield db
        if commit:
            db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
