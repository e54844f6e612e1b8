"""Configuration for the boards service.

Configuration is loaded with these rules:
- Primary source: `boards_config.json` at the project root.
- Overrides: optional text files under `config/`, then environment variables.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_BOARDS_CONFIG = Path("boards_config.json")
DEFAULT_DSN = "sqlite+pysqlite:///:memory:"
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _as_bool(text: object) -> bool:
    return str(text).strip().lower() in {"1", "true", "yes", "on"}


class DatabaseConfig(BaseModel):
    dsn: str = DEFAULT_DSN

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class AuthConfig(BaseModel):
    # Empty disables single-user mode
    single_user_token: str = ""
    csrf_check: bool = Field(default=True)


class AuditConfig(BaseModel):
    enabled: bool = Field(default=True)


class CorsConfig(BaseModel):
    origins: list[str] = Field(default_factory=lambda: ["*"])


class AppConfig(BaseModel):
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) boards_config.json at project root (primary base)
    4) Safe defaults for development (in-memory SQLite)
    """

    base = _read_json_file(ROOT_BOARDS_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    # Database
    dsn = _env("DATABASE_URL") or _read_config_file("database.url") or _base("database.dsn") or DEFAULT_DSN

    # Auth
    single_user_token = (
        _env("SINGLE_USER_TOKEN") or _read_config_file("auth.single_user_token") or _base("auth.single_user_token", "")
    )
    csrf_text = _env("CSRF_CHECK_ENABLED") or _read_config_file("auth.csrf_check") or _base("auth.csrf_check", "true")

    # Audit
    audit_text = _env("AUDIT_ENABLED") or _read_config_file("audit.enabled") or _base("audit.enabled", "true")

    # CORS
    origins_text = _env("CORS_ORIGINS") or _read_config_file("cors.origins")
    if origins_text:
        origins = [o.strip() for o in origins_text.split(",") if o.strip()]
    else:
        base_origins = base.get("cors", {}).get("origins") if isinstance(base.get("cors"), dict) else None
        origins = list(base_origins) if isinstance(base_origins, list) else ["*"]

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn),
            auth=AuthConfig(single_user_token=single_user_token or "", csrf_check=_as_bool(csrf_text)),
            audit=AuditConfig(enabled=_as_bool(audit_text)),
            cors=CorsConfig(origins=origins),
        )
        return cfg
    except PydanticValidationError as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "AuthConfig",
    "AuditConfig",
    "CorsConfig",
    "load_config",
]
