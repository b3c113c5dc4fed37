"""
Logfire configuration and initialization.

Logfire provides structured logging and tracing for the API, the rule
pipeline and the Celery worker.

Environment Variables:
    LOGFIRE_TOKEN: Logfire project token (optional; without it logs stay local)
    ENVIRONMENT: deployment environment (development, staging, production)
"""
from typing import Optional

import logfire

from config.settings import settings


class LogfireConfig:
    """
    Logfire configuration singleton.

    Ensures Logfire is initialized only once per process.
    """

    _initialized = False

    @classmethod
    def initialize(cls, token: Optional[str] = None, service_name: str = "bookingops-api") -> None:
        """
        Initialize Logfire.

        Args:
            token: Logfire project token (defaults to settings.logfire_token)
            service_name: Service name shown in traces

        Note:
            Without a token Logfire is configured for local console output only,
            so development and CI runs never fail on missing credentials.
        """
        if cls._initialized:
            return

        token = token or settings.logfire_token

        if token:
            logfire.configure(
                token=token,
                service_name=service_name,
                environment=settings.environment,
                send_to_logfire=True,
            )
        else:
            logfire.configure(
                service_name=service_name,
                environment=settings.environment,
                send_to_logfire=False,
                console=None if settings.is_development else False,
            )

        cls._initialized = True

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._initialized
