"""HTTP client for services consuming the user management API."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, NoReturn, Optional

import httpx

from .models import CreateUserRequest, UpdateUserRequest, User, parse_timestamp

logger = logging.getLogger("usermgmt.client")


class UserClientError(RuntimeError):
    """Raised when the user API returns an unexpected response."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UserNotFoundError(UserClientError):
    """The requested user does not exist."""


class UserRequestError(UserClientError):
    """The API rejected the request as invalid (HTTP 400)."""


def _normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise ValueError("API base URL must not be empty")
    return cleaned.rstrip("/")


def _extract_error_message(response: httpx.Response, default: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = response.text
    if isinstance(payload, dict):
        detail = payload.get("detail")
        if isinstance(detail, str) and detail.strip():
            return detail.strip()
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return default


def user_from_payload(payload: object) -> User:
    if not isinstance(payload, dict):
        raise UserClientError("User API returned an unexpected response payload")
    try:
        return User(
            id=uuid.UUID(str(payload["guid"])),
            username=str(payload["username"]),
            email=str(payload["email"]),
            first_name=str(payload["firstName"]),
            last_name=str(payload["lastName"]),
            active=bool(payload.get("active", True)),
            created_at=parse_timestamp(str(payload["createdAt"])),
            updated_at=parse_timestamp(str(payload["updatedAt"])),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise UserClientError("User API response was missing required fields") from exc


class UserClient:
    """Client mirroring the ``/api/users`` endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        http_client: httpx.Client | None = None,
        api_token: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._base_path = f"{_normalize_base_url(base_url)}/api/users"
        self._owns_client = http_client is None
        self._http = http_client if http_client is not None else httpx.Client(timeout=timeout)
        self._headers: Dict[str, str] = {}
        if api_token:
            self._headers["Authorization"] = f"Bearer {api_token.strip()}"

    def __enter__(self) -> "UserClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_all_users(self, limit: int = 20) -> List[User]:
        logger.info("Fetching all users with limit: %s", limit)
        response = self._request("GET", f"{self._base_path}/all", params={"limit": limit})
        if response.status_code == 200:
            payload = self._json(response)
            if not isinstance(payload, list):
                raise UserClientError("User API returned an unexpected response payload")
            return [user_from_payload(item) for item in payload]
        self._raise_for_status(response, "get users")

    def get_user_by_guid(self, guid: uuid.UUID) -> User:
        logger.info("Fetching user by GUID: %s", guid)
        response = self._request("GET", f"{self._base_path}/{guid}")
        if response.status_code == 200:
            return user_from_payload(self._json(response))
        self._raise_for_status(response, "get user", not_found=f"User not found with GUID: {guid}")

    def get_user_by_username(self, username: str) -> User:
        logger.info("Fetching user by username: %s", username)
        response = self._request("GET", f"{self._base_path}/userName/{username}")
        if response.status_code == 200:
            return user_from_payload(self._json(response))
        self._raise_for_status(
            response, "get user", not_found=f"User not found with username: {username}"
        )

    def create_user(self, request: CreateUserRequest) -> User:
        logger.info("Creating user with username: %s", request.user_name)
        response = self._request(
            "POST",
            self._base_path,
            json=request.model_dump(mode="json", by_alias=True),
        )
        if response.status_code == 201:
            return user_from_payload(self._json(response))
        self._raise_for_status(response, "create user")

    def update_user(self, guid: uuid.UUID, request: UpdateUserRequest) -> User:
        logger.info("Updating user with GUID: %s", guid)
        response = self._request(
            "PUT",
            f"{self._base_path}/{guid}",
            json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        if response.status_code == 200:
            return user_from_payload(self._json(response))
        self._raise_for_status(response, "update user", not_found=f"User not found with GUID: {guid}")

    def deactivate_user(self, guid: uuid.UUID, request: UpdateUserRequest) -> User:
        logger.info("Deactivating user with GUID: %s", guid)
        response = self._request(
            "POST",
            f"{self._base_path}/{guid}/deactivate",
            json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        if response.status_code == 200:
            return user_from_payload(self._json(response))
        self._raise_for_status(
            response, "deactivate user", not_found=f"User not found with GUID: {guid}"
        )

    def delete_user(self, guid: uuid.UUID) -> None:
        logger.info("Deleting user with GUID: %s", guid)
        response = self._request("DELETE", f"{self._base_path}/{guid}")
        if response.status_code == 204:
            logger.info("User deleted successfully")
            return
        self._raise_for_status(response, "delete user", not_found=f"User not found with GUID: {guid}")

    def close(self) -> None:
        if self._owns_client:
            self._http.close()
        logger.info("UserClient closed")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._http.request(method, url, headers=self._headers, **kwargs)
        except httpx.RequestError as exc:
            raise UserClientError(f"Failed to contact user API: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response) -> object:
        try:
            return response.json()
        except ValueError as exc:
            raise UserClientError("User API returned an invalid response") from exc

    @staticmethod
    def _raise_for_status(
        response: httpx.Response,
        operation: str,
        *,
        not_found: Optional[str] = None,
    ) -> NoReturn:
        status_code = response.status_code
        if status_code == 404:
            message = not_found or _extract_error_message(response, "User not found")
            raise UserNotFoundError(message, status_code=status_code)
        if status_code == 400:
            message = _extract_error_message(response, "Invalid user data provided")
            raise UserRequestError(message, status_code=status_code)
        raise UserClientError(
            f"Failed to {operation}: {status_code} - {response.text.strip()}",
            status_code=status_code,
        )


__all__ = [
    "UserClient",
    "UserClientError",
    "UserNotFoundError",
    "UserRequestError",
    "user_from_payload",
]
