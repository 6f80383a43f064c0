"""
Pydantic schemas for user operations and authentication.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


# ── Registration ─────────────────────────────────────────────────────────────
class UserCreate(BaseModel):
    """Schema for creating a new user."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)


# ── Login ────────────────────────────────────────────────────────────────────
class LoginRequest(BaseModel):
    """Schema for login requests."""
    email: EmailStr
    password: str


# ── Tokens ───────────────────────────────────────────────────────────────────
class Token(BaseModel):
    """JWT token response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    """Refresh token request."""
    refresh_token: str


# ── User Responses ───────────────────────────────────────────────────────────
class UserResponse(BaseModel):
    """Public user response (safe to return to client)."""
    id: uuid.UUID
    email: str
    name: str
    is_active: bool
    created_at: datetime
    last_login: datetime | None

    model_config = {"from_attributes": True}


class AuthResponse(Token):
    """Token pair plus the authenticated user."""
    user: UserResponse


class MeResponse(BaseModel):
    user: UserResponse
