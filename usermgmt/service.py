"""Business rules for user management on top of :class:`UserDao`."""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import List

from .dao import UserDao
from .models import CreateUserRequest, UpdateUserRequest, User, current_timestamp

logger = logging.getLogger("usermgmt.service")

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100
MAX_OFFSET = 2**63 - 1


class UserServiceError(Exception):
    """Base class for errors raised by :class:`UserService`."""


class ConflictError(UserServiceError):
    """A username or email is already taken."""


class NotFoundError(UserServiceError):
    """No user matches the lookup key."""


class OperationFailedError(UserServiceError):
    """A write reported that it did not affect any row."""


class UserService:
    """Create, read, update and delete users while enforcing uniqueness."""

    def __init__(
        self,
        dao: UserDao,
        *,
        default_limit: int = DEFAULT_PAGE_LIMIT,
        max_limit: int = MAX_PAGE_LIMIT,
    ) -> None:
        if default_limit < 1 or max_limit < default_limit:
            raise ValueError("Page limits must satisfy 1 <= default_limit <= max_limit")
        self._dao = dao
        self._default_limit = default_limit
        self._max_limit = max_limit

    @property
    def default_limit(self) -> int:
        return self._default_limit

    @property
    def max_limit(self) -> int:
        return self._max_limit

    def initialize(self) -> None:
        logger.info("Initializing UserService")

    def create_user(self, request: CreateUserRequest) -> User:
        """Persist a new active user with a fresh guid.

        Raises :class:`ConflictError` if the username or the email is taken.
        """

        if self._dao.find_by_username(request.user_name) is not None:
            raise ConflictError(f"Username '{request.user_name}' already exists")

        if self._dao.find_by_email(request.email) is not None:
            raise ConflictError(f"Email '{request.email}' already exists")

        now = current_timestamp()
        user = User(
            id=uuid.uuid4(),
            username=request.user_name,
            email=request.email,
            first_name=request.first_name,
            last_name=request.last_name,
            active=True,
            created_at=now,
            updated_at=now,
        )
        return self._dao.save(user)

    def get_by_id(self, guid: uuid.UUID) -> User:
        user = self._dao.find_by_id(guid)
        if user is None:
            raise NotFoundError(f"User with id '{guid}' not found")
        return user

    def get_by_username(self, username: str) -> User:
        user = self._dao.find_by_username(username)
        if user is None:
            raise NotFoundError(f"User with username '{username}' not found")
        return user

    def list_users(self, limit: int | None = None, offset: int = 0) -> List[User]:
        """Return a page of users, newest first.

        Limits above the maximum are capped; limits below one fall back to the
        default rather than the nearest bound. Negative offsets become zero and
        offsets beyond the SQLite integer range are capped to it.
        """

        if limit is None:
            limit = self._default_limit
        if limit > self._max_limit:
            valid_limit = self._max_limit
        elif limit < 1:
            valid_limit = self._default_limit
        else:
            valid_limit = limit
        valid_offset = min(max(offset, 0), MAX_OFFSET)
        return self._dao.find_all(valid_limit, valid_offset)

    def update_user(self, guid: uuid.UUID, request: UpdateUserRequest) -> User:
        """Merge the provided fields over the stored user and persist it."""

        existing = self.get_by_id(guid)

        new_email = request.email
        if (
            new_email is not None
            and new_email != existing.email
            and self._dao.find_by_email(new_email) is not None
        ):
            raise ConflictError(f"Email '{new_email}' already exists")

        updated = replace(
            existing,
            email=new_email if new_email is not None else existing.email,
            first_name=request.first_name if request.first_name is not None else existing.first_name,
            last_name=request.last_name if request.last_name is not None else existing.last_name,
            active=request.active if request.active is not None else existing.active,
            updated_at=current_timestamp(),
        )
        return self._dao.save(updated)

    def deactivate_user(self, guid: uuid.UUID, request: UpdateUserRequest) -> User:
        # Applies the payload as-is; callers pass ``active=False`` themselves.
        logger.info("Deactivating user with guid: %s", guid)
        return self.update_user(guid, request)

    def delete_user(self, guid: uuid.UUID) -> None:
        """Hard-delete a user. Deleting a missing guid is reported as a failure."""

        if not self._dao.delete(guid):
            raise OperationFailedError("Failed to delete user")


__all__ = [
    "DEFAULT_PAGE_LIMIT",
    "MAX_OFFSET",
    "MAX_PAGE_LIMIT",
    "ConflictError",
    "NotFoundError",
    "OperationFailedError",
    "UserService",
    "UserServiceError",
]
