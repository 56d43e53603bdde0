"""FastAPI application exposing the user management endpoints."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .config import Settings, load_settings
from .dao import UserDao
from .database import Database
from .health import HealthCheckRegistry, database_probe
from .models import CreateUserRequest, UpdateUserRequest, User, format_timestamp
from .security import READ_SCOPE, WRITE_SCOPE, AllowAllAuth, ScopeAuth, build_auth
from .service import (
    ConflictError,
    NotFoundError,
    OperationFailedError,
    UserService,
)

logger = logging.getLogger("usermgmt.api")


class InvalidIdentifierError(ValueError):
    """A path parameter could not be parsed as a user guid."""


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    guid: uuid.UUID
    username: str
    email: str
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    active: bool
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_serializer("created_at", "updated_at")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        guid=user.id,
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        active=user.active,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def parse_guid(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except (ValueError, AttributeError, TypeError) as exc:
        raise InvalidIdentifierError(f"Invalid UUID format: {value}") from exc


def _format_validation_errors(exc: RequestValidationError) -> str:
    messages: List[str] = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location)
        message = str(error.get("msg", "Invalid value"))
        messages.append(f"{field}: {message}" if field else message)
    return "; ".join(messages) or "Invalid request"


def create_app(
    *,
    database: Database | None = None,
    service: UserService | None = None,
    auth: ScopeAuth | AllowAllAuth | None = None,
    settings: Settings | None = None,
    health: HealthCheckRegistry | None = None,
    initialize_database: bool = False,
) -> FastAPI:
    if service is None or auth is None:
        if settings is None:
            settings = load_settings()
        if auth is None:
            auth = build_auth(settings)

    if service is None:
        if database is None:
            database = Database(settings.database_path)
            database.initialize()
        elif initialize_database:
            database.initialize()
        service = UserService(
            UserDao(database),
            default_limit=settings.default_page_limit,
            max_limit=settings.max_page_limit,
        )
        service.initialize()

    if health is None:
        health = HealthCheckRegistry()
        if database is not None:
            health.register("database", database_probe(database))

    app = FastAPI(
        title="User Management API",
        description="CRUD API for managing user accounts",
        version="1.0.0",
    )
    app.state.service = service
    app.state.health = health

    read = Depends(auth.require(READ_SCOPE))
    write = Depends(auth.require(WRITE_SCOPE))

    def get_service() -> UserService:
        return service

    @app.get("/health")
    def healthcheck() -> JSONResponse:
        results = health.run()
        healthy = all(result.healthy for result in results.values())
        checks: Dict[str, Dict[str, object]] = {
            name: {"healthy": result.healthy, "message": result.message}
            for name, result in results.items()
        }
        return JSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "ok" if healthy else "unhealthy", "checks": checks},
        )

    router = APIRouter(prefix="/api/users")

    @router.get(
        "/all",
        response_model=List[UserResponse],
        dependencies=[read],
    )
    def list_users(
        limit: Optional[int] = None,
        offset: int = 0,
        users: UserService = Depends(get_service),
    ) -> List[UserResponse]:
        return [user_to_response(user) for user in users.list_users(limit, offset)]

    @router.get(
        "/userName/{username}",
        response_model=UserResponse,
        dependencies=[read],
    )
    def read_user_by_username(username: str, users: UserService = Depends(get_service)) -> UserResponse:
        return user_to_response(users.get_by_username(username))

    @router.get("/{guid}", response_model=UserResponse, dependencies=[read])
    def read_user(guid: str, users: UserService = Depends(get_service)) -> UserResponse:
        return user_to_response(users.get_by_id(parse_guid(guid)))

    @router.post(
        "",
        response_model=UserResponse,
        status_code=status.HTTP_201_CREATED,
        dependencies=[write],
    )
    def create_user(payload: CreateUserRequest, users: UserService = Depends(get_service)) -> UserResponse:
        return user_to_response(users.create_user(payload))

    @router.put("/{guid}", response_model=UserResponse, dependencies=[write])
    def update_user(
        guid: str,
        payload: UpdateUserRequest,
        users: UserService = Depends(get_service),
    ) -> UserResponse:
        return user_to_response(users.update_user(parse_guid(guid), payload))

    @router.post("/{guid}/deactivate", response_model=UserResponse, dependencies=[write])
    def deactivate_user(
        guid: str,
        payload: UpdateUserRequest,
        users: UserService = Depends(get_service),
    ) -> UserResponse:
        return user_to_response(users.deactivate_user(parse_guid(guid), payload))

    @router.delete("/{guid}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[write])
    def delete_user(guid: str, users: UserService = Depends(get_service)) -> Response:
        users.delete_user(parse_guid(guid))
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    app.include_router(router)

    @app.exception_handler(InvalidIdentifierError)
    async def handle_invalid_identifier(_: object, exc: InvalidIdentifierError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: object, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": _format_validation_errors(exc)},
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(_: object, exc: ConflictError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_: object, exc: NotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(OperationFailedError)
    async def handle_operation_failed(_: object, exc: OperationFailedError):
        logger.error("User operation failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc)},
        )

    return app


__all__ = ["UserResponse", "create_app", "parse_guid", "user_to_response"]
