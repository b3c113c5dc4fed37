"""
Redis configuration for the Celery broker and result backend.

Supports a single REDIS_URL (hosted Redis, including rediss://) or the
individual host/port/db settings used in local development.
"""
from typing import Optional
from pydantic_settings import BaseSettings


class RedisSettings(BaseSettings):
    """Redis configuration settings."""

    redis_url: Optional[str] = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    def _url_for_db(self, db: int) -> str:
        if self.redis_url:
            base = self.redis_url.rstrip("/")
            # Strip an explicit db suffix so broker and backend can use different dbs
            scheme, _, rest = base.partition("://")
            host_part = rest.split("/", 1)[0]
            return f"{scheme}://{host_part}/{db}"
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{db}"

    @property
    def broker_url(self) -> str:
        """Celery broker URL."""
        return self._url_for_db(self.redis_db)

    @property
    def result_backend(self) -> str:
        """Celery result backend URL (db+1 so task results never collide with the broker)."""
        return self._url_for_db(self.redis_db + 1)


# Global instance
redis_settings = RedisSettings()
