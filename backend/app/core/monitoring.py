"""
Monitoring: Sentry error tracking and request timing.
"""

import time

from fastapi import FastAPI, Request

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger("monitoring")


def setup_sentry() -> None:
    """Initialize Sentry for error monitoring (if configured)."""
    settings = get_settings()
    if not settings.SENTRY_DSN:
        logger.info("Sentry DSN not configured, error tracking disabled")
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=0.1,
        environment=settings.APP_ENV,
        release=settings.APP_VERSION,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
    )
    logger.info("✅ Sentry initialized")


class RequestTimer:
    """Track request timing for performance monitoring."""

    @staticmethod
    def start() -> float:
        return time.perf_counter()

    @staticmethod
    def elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)

    @staticmethod
    def log_slow_request(path: str, method: str, elapsed_ms: int, threshold: int = 1000) -> bool:
        """Log slow requests exceeding threshold. Returns True when logged."""
        if elapsed_ms > threshold:
            logger.warning(
                "🐌 Slow request: %s %s took %dms (threshold: %dms)",
                method, path, elapsed_ms, threshold,
            )
            return True
        return False


def register_request_timing(app: FastAPI) -> None:
    """Attach a middleware that adds X-Response-Time and logs slow requests."""
    threshold = get_settings().SLOW_REQUEST_THRESHOLD_MS

    @app.middleware("http")
    async def request_timing(request: Request, call_next):
        start = RequestTimer.start()
        response = await call_next(request)
        elapsed = RequestTimer.elapsed_ms(start)
        response.headers["X-Response-Time"] = f"{elapsed}ms"
        RequestTimer.log_slow_request(request.url.path, request.method, elapsed, threshold)
        return response
