"""
FastAPI dependency injection for database sessions.
Provides database session dependencies for API endpoints.
"""

from typing import Generator

import logfire
from sqlalchemy.orm import Session

from database.base import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that provides a database session.

    Usage:
        @router.get("/api/email-rules")
        def list_rules(db: Session = Depends(get_db)):
            return db.query(EmailRule).all()

    Yields:
        Session: SQLAlchemy database session

    Ensures:
        - Session is automatically closed after the request
        - Uncommitted work is rolled back if the handler raises
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        logfire.warning("Rolling back request session after handler error")
        db.rollback()
        raise
    finally:
        db.close()
