"""Command-line interface for the user management service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from usermgmt.config import CONFIG_PATH_ENV, Settings, load_settings, resolve_config_path
from usermgmt.dao import UserDao
from usermgmt.database import Database
from usermgmt.models import CreateUserRequest
from usermgmt.service import ConflictError, UserService

logger = logging.getLogger("usermgmt.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User management service utilities")
    parser.add_argument(
        "--config",
        default=None,
        help=f"Path to the YAML configuration file (defaults to {CONFIG_PATH_ENV} or config/usermgmt.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the user database")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP user API")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Port for the HTTP API (default: 8080)",
    )
    serve_parser.add_argument(
        "--config",
        default=argparse.SUPPRESS,
        help="Path to the YAML configuration file",
    )

    create_parser = subparsers.add_parser("create-user", help="Create a user directly in the database")
    create_parser.add_argument("username", help="Unique username (3-50 characters)")
    create_parser.add_argument("email", help="Unique email address")
    create_parser.add_argument("first_name", help="First name")
    create_parser.add_argument("last_name", help="Last name")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "create-user"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands and not any(arg in known_commands for arg in args_list):
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = _insert_default_command(args_list)

    return parser.parse_args(args_list)


def _insert_default_command(args_list: list[str]) -> list[str]:
    # ``--config`` belongs to the top-level parser and must precede the subcommand.
    if args_list[0] == "--config" and len(args_list) >= 2:
        return [*args_list[:2], "serve", *args_list[2:]]
    if args_list[0].startswith("--config="):
        return [args_list[0], "serve", *args_list[1:]]
    return ["serve", *args_list]


def _load_settings(config: str | None) -> Settings:
    path = resolve_config_path(config or os.getenv(CONFIG_PATH_ENV))
    return load_settings(path)


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _serve(*, settings: Settings, host: str, port: int) -> None:
    from usermgmt.application import create_application
    import uvicorn

    logger.info("Starting user API on http://%s:%s", host, port)

    app = create_application(settings)
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
    )


def _create_user(database: Database, settings: Settings, args: argparse.Namespace) -> int:
    try:
        request = CreateUserRequest(
            user_name=args.username,
            email=args.email,
            first_name=args.first_name,
            last_name=args.last_name,
        )
    except ValidationError as exc:
        for error in exc.errors():
            field = ".".join(str(part) for part in error.get("loc", ()))
            print(f"Invalid {field}: {error.get('msg')}", file=sys.stderr)
        return 1

    service = UserService(
        UserDao(database),
        default_limit=settings.default_page_limit,
        max_limit=settings.max_page_limit,
    )
    service.initialize()
    try:
        user = service.create_user(request)
    except ConflictError as exc:
        print(f"Failed to create user: {exc}", file=sys.stderr)
        return 1

    print(f"Created user {user.id}: {user.username} <{user.email}>")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    settings = _load_settings(args.config)

    logging.basicConfig(level=settings.log_level, format="%(asctime)s [%(levelname)s] %(message)s")

    if args.command == "serve":
        _serve(settings=settings, host=args.host, port=args.port)
        return 0

    database = _initialise_database(settings)
    if args.command == "create-user":
        return _create_user(database, settings, args)

    print("Database initialisation complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
