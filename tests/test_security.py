from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from usermgmt.api import create_app
from usermgmt.config import Settings
from usermgmt.dao import UserDao
from usermgmt.database import Database
from usermgmt.security import AllowAllAuth, ScopeAuth, build_auth
from usermgmt.service import UserService

READER = "reader-token"
WRITER = "writer-token"
ALICE = {"userName": "alice01", "email": "a@x.com", "firstName": "Alice", "lastName": "A"}


@pytest.fixture()
def client(tmp_path: Path):
    database = Database(tmp_path / "users.sqlite3")
    database.initialize()
    auth = ScopeAuth({READER: ["user:read"], WRITER: ["user:write"]})
    app = create_app(database=database, service=UserService(UserDao(database)), auth=auth)
    with TestClient(app) as test_client:
        yield test_client


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_missing_token_is_unauthorized(client: TestClient) -> None:
    response = client.get("/api/users/all")
    assert response.status_code == 401
    assert response.json()["detail"] == "Missing bearer token"


def test_unknown_token_is_forbidden(client: TestClient) -> None:
    response = client.get("/api/users/all", headers=_bearer("nope"))
    assert response.status_code == 403
    assert response.json()["detail"] == "Invalid API token"


def test_read_scope_allows_reads_but_not_writes(client: TestClient) -> None:
    assert client.get("/api/users/all", headers=_bearer(READER)).status_code == 200

    response = client.post("/api/users", json=ALICE, headers=_bearer(READER))
    assert response.status_code == 403
    assert response.json()["detail"] == "Missing required scope 'user:write'"


def test_write_scope_overrides_read_scope_on_mutations(client: TestClient) -> None:
    created = client.post("/api/users", json=ALICE, headers=_bearer(WRITER))
    assert created.status_code == 201, created.text
    guid = created.json()["guid"]

    updated = client.put(f"/api/users/{guid}", json={"lastName": "B"}, headers=_bearer(WRITER))
    assert updated.status_code == 200, updated.text

    assert client.get(f"/api/users/{guid}", headers=_bearer(WRITER)).status_code == 403
    assert client.get(f"/api/users/{guid}", headers=_bearer(READER)).status_code == 200

    assert client.delete(f"/api/users/{guid}", headers=_bearer(WRITER)).status_code == 204


def test_health_does_not_require_a_token(client: TestClient) -> None:
    assert client.get("/health").status_code == 200


def test_scope_auth_requires_tokens() -> None:
    with pytest.raises(ValueError):
        ScopeAuth({"   ": ["user:read"]})


def test_build_auth_follows_configuration(tmp_path: Path) -> None:
    disabled = build_auth(Settings(database_path=tmp_path / "db.sqlite3"))
    enabled = build_auth(
        Settings(database_path=tmp_path / "db.sqlite3", api_tokens={READER: ("user:read",)})
    )

    assert isinstance(disabled, AllowAllAuth)
    assert isinstance(enabled, ScopeAuth)


def test_non_ascii_token_is_forbidden(client: TestClient) -> None:
    response = client.get("/api/users/all", headers={"Authorization": "Bearer café".encode("latin-1")})
    assert response.status_code == 403
    assert response.json()["detail"] == "Invalid API token"
