"""Pydantic schemas for accounts and auth responses."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


def normalize_email(value: str) -> str:
    """Trim and lowercase; reject anything without a local part and domain."""
    email = value.strip().lower()
    local, sep, domain = email.partition("@")
    if not sep or not local or "." not in domain or domain.startswith("."):
        raise ValueError("Please provide a valid email")
    return email


class RegisterRequest(BaseModel):
    """Registration body. A `role` key, if sent, is ignored."""

    name: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=8)

    model_config = {"extra": "ignore"}

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please provide a name")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return v.strip().lower()


class UserBrief(BaseModel):
    """Who owns a task, as embedded in task responses."""

    id: uuid.UUID
    name: str
    email: str

    model_config = {"from_attributes": True}


class UserRead(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    user: UserRead
    token: str
    token_type: str = "bearer"
