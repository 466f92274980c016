from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from jobqueue.config.logging import get_logger
from jobqueue.config.settings import Settings

logger = get_logger(__name__)


def init_sentry(settings: Settings) -> bool:
    """Initialize Sentry when a DSN is configured. Returns True if enabled."""
    if not settings.sentry_dsn:
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=settings.version,
        traces_sample_rate=1.0 if settings.debug else 0.1,
        integrations=[FastApiIntegration()],
    )
    logger.info("Sentry error reporting enabled", environment=settings.environment)
    return True


def capture_error(error: BaseException, extra: dict[str, Any] | None = None) -> None:
    """Send an exception to Sentry with extra context."""
    sentry_sdk.capture_exception(error, extras=extra or {})
