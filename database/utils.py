"""
Database utility functions.
Provides helpers for health checks and safe logging of connection details.
"""

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from database.base import engine
from config import settings


def check_db_connection() -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection is successful, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except OperationalError:
        return False


def sanitize_db_url(url: str) -> str:
    """
    Hide password in database URL for safe logging.

    Replaces the password portion of a database connection URL with "***".
    URLs without credentials (e.g. sqlite://) are returned unchanged.
    """
    if "@" not in url:
        return url

    try:
        protocol, rest = url.split("://", 1)
        credentials, host = rest.rsplit("@", 1)
        username = credentials.split(":", 1)[0]
        return f"{protocol}://{username}:***@{host}"
    except ValueError:
        return url


def get_db_info() -> dict:
    """
    Get database connection information and status.

    Returns:
        dict: Connection status, dialect and sanitized URL
    """
    is_connected = check_db_connection()

    return {
        "status": "connected" if is_connected else "disconnected",
        "dialect": engine.dialect.name,
        "url": sanitize_db_url(settings.database_url),
        "environment": settings.environment,
    }
