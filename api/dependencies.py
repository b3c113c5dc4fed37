"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Query

from config.settings import settings


def pagination_params(
    limit: int = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0)
) -> dict:
    """Page size falls back to the configured default and is capped at the configured maximum."""
    if limit is None:
        limit = settings.pagination_default_limit
    limit = min(limit, settings.pagination_max_limit)

    return {"limit": limit, "offset": offset}


# Type alias for dependency injection
PaginationParams = Annotated[dict, Depends(pagination_params)]
