"""
Rate limiter: fixed-window counters in Redis.

Per-user limiting for authenticated requests (keyed on user UUID), per-IP
fallback for anonymous requests. A Redis outage fails open.

Usage
-----
    # As a router dependency (per-IP):
    APIRouter(dependencies=[Depends(rate_limit_api)])

    # Inside a handler (per-user):
    await check_rate_limit(request, limit=20, window=60, user_id=str(user.id))
"""

from fastapi import HTTPException, Request, status

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.redis import get_redis

logger = get_logger("rate_limiter")
settings = get_settings()


async def check_rate_limit(
    request: Request,
    limit: int | None = None,
    window: int = 60,
    user_id: str | None = None,
) -> None:
    """
    Count this request against the caller's window.

    Parameters
    ----------
    request  : the FastAPI Request object (used for IP fallback and route)
    limit    : max requests in `window` seconds (defaults to RATE_LIMIT_PER_MINUTE)
    window   : time window in seconds (default 60)
    user_id  : authenticated user UUID string; when present, limits are
               applied per-user rather than per-IP.

    Raises HTTP 429 when the limit is exceeded.
    """
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE

    if user_id:
        identity = f"user:{user_id}"
    else:
        client_ip = (request.client.host if request.client else "unknown")
        identity = f"ip:{client_ip}"

    # Route template, so every /analytics/{record_id} shares one counter.
    route = request.scope.get("route")
    path = getattr(route, "path", None) or request.url.path.rstrip("/") or "/"
    key = f"rl:{identity}:{path}"

    try:
        redis = await get_redis()

        current = await redis.get(key)
        if current is not None and int(current) >= limit:
            logger.warning(
                "Rate limit hit: %s on %s (%s req/%ds)",
                identity, path, limit, window,
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests, please try again later.",
                headers={"Retry-After": str(window)},
            )

        pipe = redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, window)
        await pipe.execute()

    except HTTPException:
        raise
    except Exception as exc:
        logger.error("Rate limiter Redis error (allowing request through): %s", exc)


# ── Convenience wrappers ──────────────────────────────────────────────────────

async def rate_limit_api(request: Request) -> None:
    """Default limit for the analytics API."""
    await check_rate_limit(request, limit=settings.RATE_LIMIT_PER_MINUTE, window=60)


async def rate_limit_auth(request: Request) -> None:
    """Strict limit for auth endpoints (login, register)."""
    await check_rate_limit(request, limit=settings.RATE_LIMIT_AUTH_PER_MINUTE, window=60)
