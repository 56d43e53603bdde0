"""Scope-based authorization for the user API."""
from __future__ import annotations

import secrets
from typing import Awaitable, Callable, Iterable, Mapping, Tuple

from fastapi import HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings

READ_SCOPE = "user:read"
WRITE_SCOPE = "user:write"

ScopeDependency = Callable[[Request], Awaitable[None]]


class ScopeAuth:
    """Bearer tokens mapped to the scopes they grant, compared in constant time."""

    def __init__(self, tokens: Mapping[str, Iterable[str]]):
        grants: list[Tuple[str, frozenset[str]]] = []
        for token, scopes in tokens.items():
            cleaned = token.strip()
            if cleaned:
                grants.append((cleaned, frozenset(scopes)))
        if not grants:
            raise ValueError("At least one API token must be provided")
        self._grants = grants
        self._bearer = HTTPBearer(auto_error=False)

    def require(self, scope: str) -> ScopeDependency:
        """Return a dependency that admits requests whose token grants ``scope``."""

        async def dependency(request: Request) -> None:
            credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
            if credentials is None or credentials.scheme.lower() != "bearer":
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

            granted = self._scopes_for(credentials.credentials)
            if granted is None:
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API token")
            if scope not in granted:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Missing required scope '{scope}'",
                )

        return dependency

    def _scopes_for(self, provided: str) -> frozenset[str] | None:
        match: frozenset[str] | None = None
        for token, scopes in self._grants:
            if secrets.compare_digest(provided.encode("utf-8"), token.encode("utf-8")):
                match = scopes
        return match


class AllowAllAuth:
    """Declares scopes without enforcing them."""

    def require(self, scope: str) -> ScopeDependency:
        async def dependency(request: Request) -> None:
            return None

        return dependency


def build_auth(settings: Settings) -> ScopeAuth | AllowAllAuth:
    if settings.api_tokens:
        return ScopeAuth(settings.api_tokens)
    return AllowAllAuth()


__all__ = ["READ_SCOPE", "WRITE_SCOPE", "AllowAllAuth", "ScopeAuth", "build_auth"]
