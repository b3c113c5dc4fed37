"""
Retry helper for repository reads and writes.

Only OperationalError (dropped connection, failover, pool exhaustion) is
retried. Integrity and programming errors surface immediately.
"""

import time
from functools import wraps
from typing import Callable, Optional, TypeVar

import logfire
from sqlalchemy.exc import OperationalError

from database.base import engine

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3
BASE_DELAY_SECONDS = 0.25


def _backoff(attempt: int, base_delay: float) -> float:
    return base_delay * (2 ** (attempt - 1))


def retry_on_db_error(
    func: Optional[Callable[..., T]] = None,
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    base_delay: float = BASE_DELAY_SECONDS,
):
    """
    Retry a synchronous DB operation on OperationalError with exponential backoff.

    Usable bare (``@retry_on_db_error``) or configured
    (``@retry_on_db_error(attempts=5)``). The pool is disposed between
    attempts so that stale connections are not handed out again.
    """

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @wraps(fn)
        def wrapper(*args, **kwargs) -> T:
            attempt = 1
            while True:
                try:
                    return fn(*args, **kwargs)
                except OperationalError as e:
                    if attempt >= attempts:
                        logfire.error(
                            "Database operation failed, giving up",
                            function=fn.__qualname__,
                            error=str(e)[:200],
                            attempts=attempts,
                        )
                        raise

                    delay = _backoff(attempt, base_delay)
                    logfire.warning(
                        "Database operation failed, retrying",
                        function=fn.__qualname__,
                        error=str(e)[:200],
                        attempt=attempt,
                        retry_in=delay,
                    )
                    engine.dispose()
                    time.sleep(delay)
                    attempt += 1

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
