"""Pydantic models carried across the request boundary."""

from typing import List

from pydantic import BaseModel, Field


class UserForm(BaseModel):
    """Create/edit form data for a user; never persisted."""

    username: str = ""
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    age: int | None = None
    password: str | None = Field(None, description="Blank on update keeps the current password")
    role_ids: List[int] = Field(default_factory=list)


class UserLogin(BaseModel):
    """Request body for user login."""

    username: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    """JWT access and refresh tokens."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
