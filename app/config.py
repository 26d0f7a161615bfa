"""Configuration utilities for the survey service.

This module loads application configuration with the following rules:
- Primary source: `survey_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
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
ROOT_SURVEY_CONFIG = Path("survey_config.json")
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


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_migrations: bool = Field(default=True)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class ShopifyConfig(BaseModel):
    api_key: str = ""
    api_secret: str = ""
    api_version: str = "2024-01"
    metafield_namespace: str = "custom"
    http_timeout: float = Field(default=30.0, gt=0)

    @field_validator("metafield_namespace")
    @classmethod
    def namespace_must_be_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("shopify.metafield_namespace must be a non-empty string")
        return v.strip()


class SurveyConfig(BaseModel):
    default_count: int = Field(default=1, ge=0)
    backend_url: str = "http://127.0.0.1:8000"


class AppConfig(BaseModel):
    database: DatabaseConfig
    shopify: ShopifyConfig
    survey: SurveyConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:  # pragma: no cover
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def _truthy(value: object) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) survey_config.json at project root
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_SURVEY_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    def _pick(env_key: str, file_key: str, base_key: str, default: Optional[str] = None) -> Optional[str]:
        return _env(env_key) or _read_config_file(file_key) or _base(base_key, default)

    # Database
    dsn = _pick("DATABASE_URL", "database.url", "database.dsn", "sqlite+pysqlite:///survey.db")
    auto_migrate = _pick("AUTO_APPLY_MIGRATIONS", "database.auto_apply_migrations", "database.auto_apply_migrations", "true")

    # Shopify Admin API
    api_key = _pick("SHOPIFY_API_KEY", "shopify.api_key", "shopify.api_key", "")
    api_secret = _pick("SHOPIFY_API_SECRET", "shopify.api_secret", "shopify.api_secret", "")
    api_version = _pick("SHOPIFY_API_VERSION", "shopify.api_version", "shopify.api_version", "2024-01")
    namespace = _pick("METAFIELD_NAMESPACE", "shopify.metafield_namespace", "shopify.metafield_namespace", "custom")
    timeout_text = _pick("SHOPIFY_HTTP_TIMEOUT", "shopify.http_timeout", "shopify.http_timeout", "30")

    # Survey behaviour
    default_count_text = _pick("SURVEY_DEFAULT_COUNT", "survey.default_count", "survey.default_count", "1")
    backend_url = _pick("SURVEY_BACKEND_URL", "survey.backend_url", "survey.backend_url", "http://127.0.0.1:8000")

    try:
        return AppConfig(
            database=DatabaseConfig(dsn=dsn, auto_apply_migrations=_truthy(auto_migrate)),
            shopify=ShopifyConfig(
                api_key=api_key or "",
                api_secret=api_secret or "",
                api_version=(api_version or "2024-01").strip(),
                metafield_namespace=namespace or "custom",
                http_timeout=float(str(timeout_text).strip()),
            ),
            survey=SurveyConfig(
                default_count=int(str(default_count_text).strip()),
                backend_url=(backend_url or "").rstrip("/"),
            ),
        )
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "ShopifyConfig",
    "SurveyConfig",
    "load_config",
]
