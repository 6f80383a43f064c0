"""
Authentication endpoints: register, login, refresh, me.
Refresh tokens are tracked in Redis so they can be revoked.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, user_id_from_token
from app.core.config import get_settings
from app.core.database import get_db
from app.core.logging import get_logger
from app.core.rate_limiter import rate_limit_auth
from app.core.redis import get_redis
from app.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
)
from app.models.user import User
from app.schemas.user import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    Token,
    TokenRefresh,
    UserCreate,
    UserResponse,
)
from app.services.realtime_service import NEW_USER, publish_event

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = get_logger("auth")
settings = get_settings()

REFRESH_TOKEN_TTL_SECONDS = 86400 * settings.REFRESH_TOKEN_EXPIRE_DAYS


def _refresh_key(user_id) -> str:
    return f"refresh_token:{user_id}"


async def _issue_tokens(user: User) -> Token:
    token_data = {"sub": str(user.id), "email": user.email}
    access_token = create_access_token(token_data)
    refresh_token = create_refresh_token(token_data)

    try:
        redis = await get_redis()
        await redis.setex(_refresh_key(user.id), REFRESH_TOKEN_TTL_SECONDS, refresh_token)
    except Exception as e:
        logger.warning("Could not store refresh token in Redis: %s", str(e))

    return Token(access_token=access_token, refresh_token=refresh_token)


# ── Register ─────────────────────────────────────────────────────────────────
@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit_auth)],
)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    """Register a new dashboard account and sign it in."""
    normalized_email = user_data.email.strip().lower()

    result = await db.execute(select(User).where(func.lower(User.email) == normalized_email))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already exists",
        )

    user = User(
        email=normalized_email,
        hashed_password=hash_password(user_data.password),
        name=user_data.name.strip(),
        last_login=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("New user registered: %s", user.email)
    await publish_event(NEW_USER, {"id": str(user.id), "name": user.name})

    tokens = await _issue_tokens(user)
    return AuthResponse(user=UserResponse.model_validate(user), **tokens.model_dump())


# ── Login ────────────────────────────────────────────────────────────────────
@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(rate_limit_auth)],
)
async def login(
    login_data: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate a user and return JWT tokens."""
    normalized_email = login_data.email.strip().lower()
    result = await db.execute(select(User).where(func.lower(User.email) == normalized_email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(login_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    user.last_login = datetime.now(timezone.utc)
    await db.flush()

    tokens = await _issue_tokens(user)

    response.headers["Cache-Control"] = "no-store, no-cache, private"
    logger.info("User logged in: %s", user.email)
    return AuthResponse(user=UserResponse.model_validate(user), **tokens.model_dump())


# ── Refresh Token ───────────────────────────────────────────────────────────
@router.post("/refresh", response_model=Token)
async def refresh_token(
    token_data: TokenRefresh,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a valid refresh token for a new token pair."""
    user_id = user_id_from_token(token_data.refresh_token, expected_type="refresh")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    # A Redis outage degrades to signature-only verification
    try:
        redis = await get_redis()
        stored_token = await redis.get(_refresh_key(user_id))
        if stored_token != token_data.refresh_token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Refresh token has been revoked",
            )
    except HTTPException:
        raise
    except Exception as e:
        logger.warning("Could not verify refresh token in Redis: %s", str(e))

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or deactivated",
        )

    return await _issue_tokens(user)


# ── Get Current User ────────────────────────────────────────────────────────
@router.get("/me", response_model=MeResponse)
async def get_me(
    response: Response,
    current_user: User = Depends(get_current_user),
):
    """Get the current authenticated user's profile."""
    response.headers["Cache-Control"] = "no-store, no-cache, private, must-revalidate"
    return MeResponse(user=UserResponse.model_validate(current_user))
