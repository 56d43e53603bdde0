"""Configuration management for the user management service."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

from .database import resolve_database_path
from .service import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT

CONFIG_PATH_ENV = "USERMGMT_CONFIG"
DB_PATH_ENV = "USERMGMT_DB_PATH"


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the service."""

    database_path: Path
    default_page_limit: int = DEFAULT_PAGE_LIMIT
    max_page_limit: int = MAX_PAGE_LIMIT
    api_tokens: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    log_level: str = "INFO"

    @staticmethod
    def from_dict(
        data: Dict[str, object],
        base_path: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> "Settings":
        """Create :class:`Settings` from raw YAML data plus environment overrides."""
        env = os.environ if env is None else env

        database = _section(data, "database")
        pagination = _section(data, "pagination")
        auth = _section(data, "auth")
        logging_section = _section(data, "logging")

        db_value = env.get(DB_PATH_ENV)
        if not db_value:
            db_value = database.get("path")
            if db_value and base_path is not None and not Path(str(db_value)).expanduser().is_absolute():
                db_value = str(base_path / Path(str(db_value)).expanduser())
        database_path = resolve_database_path(str(db_value) if db_value else None)

        default_limit = int(pagination.get("default_limit", DEFAULT_PAGE_LIMIT))
        max_limit = int(pagination.get("max_limit", MAX_PAGE_LIMIT))
        if default_limit < 1 or max_limit < 1:
            raise ValueError("Pagination limits must be positive integers")
        if default_limit > max_limit:
            raise ValueError("pagination.default_limit must not exceed pagination.max_limit")

        tokens_raw = auth.get("tokens") or {}
        if not isinstance(tokens_raw, dict):
            raise ValueError("auth.tokens must map API tokens to lists of scopes")
        tokens: Dict[str, Tuple[str, ...]] = {}
        for token, scopes in tokens_raw.items():
            if isinstance(scopes, str):
                scopes = [scopes]
            tokens[str(token)] = tuple(str(scope).strip() for scope in scopes or [] if str(scope).strip())

        return Settings(
            database_path=database_path,
            default_page_limit=default_limit,
            max_page_limit=max_limit,
            api_tokens=tokens,
            log_level=str(logging_section.get("level", "INFO")).upper(),
        )


def _section(data: Dict[str, object], name: str) -> Dict[str, object]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    return value


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load settings from a YAML file; a missing file yields the defaults."""
    if config_path is None:
        config_path = resolve_config_path(os.getenv(CONFIG_PATH_ENV))

    if not config_path.exists():
        return Settings.from_dict({})

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")

    return Settings.from_dict(raw, base_path=config_path.parent)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "usermgmt.yaml").resolve(strict=False)
    return candidate


__all__ = ["Settings", "load_settings", "resolve_config_path"]
