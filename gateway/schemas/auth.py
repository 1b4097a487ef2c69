"""Pydantic schemas for authentication payloads."""

from __future__ import annotations

from enum import Enum
from uuid import UUID

from pydantic import BaseModel
from pydantic import EmailStr
from pydantic import Field


class RoleEnum(str, Enum):
    USER = "user"
    ADMIN = "admin"


class RegisterBody(BaseModel):
    """Payload to register a user."""

    email: EmailStr
    password: str = Field(min_length=6)
    name: str | None = Field(default=None, min_length=1, max_length=100)
    role: RoleEnum = RoleEnum.USER


class RefreshBody(BaseModel):
    """Payload to exchange a refresh token."""

    refresh_token: str = Field(min_length=1)


class User(BaseModel):
    """Registered user view."""

    id: UUID
    email: EmailStr
    name: str | None = None
    role: RoleEnum


class TokenBundle(BaseModel):
    """Access and refresh credentials issued together."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    access_expires_in: int
    refresh_expires_in: int


class RegisterResult(BaseModel):
    user: User
    tokens: TokenBundle
