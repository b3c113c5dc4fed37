"""Helpers for converting between string ids and UUID objects."""

from uuid import UUID
from typing import Optional, Union


def ensure_uuid(value: Union[str, UUID]) -> UUID:
    """Return a UUID object, coercing from string when needed."""
    if isinstance(value, UUID):
        return value

    try:
        return UUID(str(value))
    except (ValueError, AttributeError) as e:
        raise ValueError(f"Invalid UUID format: {value}") from e


def optional_uuid(value: Optional[Union[str, UUID]]) -> Optional[UUID]:
    """Like ensure_uuid, but None and malformed ids map to None."""
    if value is None or value == "":
        return None
    try:
        return ensure_uuid(value)
    except ValueError:
        return None


def id_str(value: Optional[UUID]) -> Optional[str]:
    """Stringify a UUID column value, keeping None."""
    return str(value) if value is not None else None
