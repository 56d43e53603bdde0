"""Application factory wiring settings, storage, service and API together."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from .api import create_app
from .config import Settings, load_settings
from .dao import UserDao
from .database import Database
from .health import HealthCheckRegistry, database_probe
from .security import build_auth
from .service import UserService

logger = logging.getLogger("usermgmt.application")


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    """Create the ASGI application for the configured environment."""

    if settings is None:
        settings = load_settings()

    logger.info("Validating database configuration...")
    logger.info("Database path: %s", settings.database_path)
    database = Database(settings.database_path)
    database.initialize()

    dao = UserDao(database)
    logger.info("Created UserDao instance")

    service = UserService(
        dao,
        default_limit=settings.default_page_limit,
        max_limit=settings.max_page_limit,
    )
    service.initialize()
    logger.info("Created and initialized UserService")

    health = HealthCheckRegistry()
    health.register("database", database_probe(database))

    auth = build_auth(settings)
    if settings.api_tokens:
        logger.info("Scope authorization enabled for %d API token(s)", len(settings.api_tokens))
    else:
        logger.warning("No API tokens configured; scope authorization is disabled")

    app = create_app(
        database=database,
        service=service,
        auth=auth,
        settings=settings,
        health=health,
    )
    app.state.database = database
    app.state.settings = settings
    logger.info("Created and registered user routes")
    return app


__all__ = ["create_application"]
