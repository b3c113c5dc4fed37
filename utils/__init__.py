"""Small shared helpers."""

from utils.uuid_helpers import ensure_uuid
from utils.timeouts import run_blocking

__all__ = ["ensure_uuid", "run_blocking"]
