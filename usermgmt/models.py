"""Domain models and request payloads for the user management service."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# Wire format for timestamps: ``yyyy-MM-ddTHH:mm:ss.SSSSSS`` without an offset.
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"


def current_timestamp() -> datetime:
    return datetime.now()


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class User:
    """Represents a user account stored in the user database."""

    id: uuid.UUID
    username: str
    email: str
    first_name: str
    last_name: str
    created_at: datetime
    updated_at: datetime
    active: bool = True


def _reject_blank(value: str, label: str) -> str:
    if not value.strip():
        raise ValueError(f"{label} cannot be blank")
    return value


class CreateUserRequest(BaseModel):
    """Payload for creating a user. The guid and timestamps are server-generated."""

    model_config = ConfigDict(populate_by_name=True)

    user_name: str = Field(..., alias="userName", min_length=3, max_length=50)
    email: EmailStr
    first_name: str = Field(..., alias="firstName", max_length=100)
    last_name: str = Field(..., alias="lastName", max_length=100)

    @field_validator("user_name")
    @classmethod
    def _username_not_blank(cls, value: str) -> str:
        return _reject_blank(value, "Username")

    @field_validator("first_name")
    @classmethod
    def _first_name_not_blank(cls, value: str) -> str:
        return _reject_blank(value, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name_not_blank(cls, value: str) -> str:
        return _reject_blank(value, "Last name")


class UpdateUserRequest(BaseModel):
    """Partial update. Fields left unset (or blank) keep their current value.

    The username and guid cannot be changed after creation.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(default=None, alias="firstName", max_length=100)
    last_name: Optional[str] = Field(default=None, alias="lastName", max_length=100)
    active: Optional[bool] = None

    @field_validator("email", "first_name", "last_name", mode="before")
    @classmethod
    def _blank_as_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


__all__ = [
    "TIMESTAMP_FORMAT",
    "CreateUserRequest",
    "UpdateUserRequest",
    "User",
    "current_timestamp",
    "format_timestamp",
    "parse_timestamp",
]
