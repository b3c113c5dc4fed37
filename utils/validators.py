"""
Validation utility functions.
Provides reusable validation helpers for common database operations.
"""

from typing import Type, TypeVar
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

ModelT = TypeVar("ModelT")


def get_or_404(db: Session, model: Type[ModelT], object_id: UUID, label: str) -> ModelT:
    """
    Fetch a row by primary key or raise a 404.

    Args:
        db: Database session
        model: ORM model class
        object_id: Primary key value
        label: Human-readable name used in the error detail

    Raises:
        HTTPException: 404 if the row does not exist
    """
    instance = db.get(model, object_id)

    if instance is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{label} not found"
        )

    return instance


def parse_uuid_or_400(value: str, label: str) -> UUID:
    """Coerce a path/query value to UUID, raising 400 on malformed input."""
    try:
        return UUID(str(value))
    except (ValueError, AttributeError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label}: {value}"
        )
