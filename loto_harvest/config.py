"""Environment-based configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from sqlalchemy.engine import URL

from loto_harvest.constants import (
    DEFAULT_DRAW_URL_TEMPLATE,
    DEFAULT_ID_PATTERN,
    DEFAULT_OPTION_SELECTOR,
    DEFAULT_PARSER_SELECTORS,
)


def resolve_database_url() -> str:
    """Resolve DB connection string.

    Priority:
      1) DATABASE_URL (explicit)
      2) Build from PG* env vars (common Postgres convention)
      3) Fallback to local sqlite
    """

    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    host = os.getenv("PGHOST")
    user = os.getenv("PGUSER")
    database = os.getenv("PGDATABASE")
    port_raw = os.getenv("PGPORT")

    if host and user and database:
        try:
            port = int(port_raw) if port_raw else 5432
        except ValueError:
            port = 5432

        sslmode = os.getenv("PGSSLMODE", "require")
        url = URL.create(
            drivername="postgresql+psycopg2",
            username=user,
            password=os.getenv("PGPASSWORD"),
            host=host,
            port=port,
            database=database,
            query={"sslmode": sslmode} if sslmode else {},
        )
        return url.render_as_string(hide_password=False)

    return "sqlite:///./loto_harvest.db"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: tuple[str, ...], sep: str = ",") -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return tuple(part.strip() for part in raw.split(sep) if part.strip())


@dataclass(frozen=True)
class BaseConfig:
    """Base configuration shared by all environments."""

    APP_ENV: str = os.getenv("APP_ENV", "development")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    DB_BACKEND: str = (
        os.getenv("DB_BACKEND")
        or ("mongo" if os.getenv("MONGODB_URI") else "sql")
    ).lower().strip()  # "sql" | "mongo"

    # SQL backend
    DATABASE_URL: str = resolve_database_url()

    # Mongo backend
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DB: str = os.getenv("MONGODB_DB", "lotodb")
    MONGODB_TIMEOUT_MS: int = _env_int("MONGODB_TIMEOUT_MS", 5000)

    # Upstream source
    UPSTREAM_DRAW_URL_TEMPLATE: str = os.getenv("UPSTREAM_DRAW_URL_TEMPLATE", DEFAULT_DRAW_URL_TEMPLATE)
    UPSTREAM_INDEX_URLS: tuple[str, ...] = _env_list("UPSTREAM_INDEX_URLS", ())
    UPSTREAM_USER_AGENT: str = os.getenv("UPSTREAM_USER_AGENT", "Mozilla/5.0 (compatible; PiyangoBot/1.0)")
    UPSTREAM_TIMEOUT_SECONDS: float = _env_float("UPSTREAM_TIMEOUT_SECONDS", 15.0)
    UPSTREAM_DELAY_SECONDS: float = _env_float("UPSTREAM_DELAY_SECONDS", 0.5)
    UPSTREAM_RETRIES: int = _env_int("UPSTREAM_RETRIES", 0)
    UPSTREAM_BACKOFF: float = _env_float("UPSTREAM_BACKOFF", 0.3)

    # Draw discovery: "enumeration" | "index"
    LOCATOR_STRATEGY: str = os.getenv("LOCATOR_STRATEGY", "enumeration").lower().strip()
    LOCATOR_START_ID: int = _env_int("LOCATOR_START_ID", 1)
    LOCATOR_MAX_PROBE: int = _env_int("LOCATOR_MAX_PROBE", 500)
    LOCATOR_MAX_MISSES: int = _env_int("LOCATOR_MAX_MISSES", 3)
    LOCATOR_ID_PATTERN: str = os.getenv("LOCATOR_ID_PATTERN", DEFAULT_ID_PATTERN)
    LOCATOR_OPTION_SELECTOR: str = os.getenv("LOCATOR_OPTION_SELECTOR", DEFAULT_OPTION_SELECTOR)

    # Parsing: NUMBER_FORMAT is "int" | "str"
    PARSER_SELECTORS: tuple[str, ...] = _env_list("PARSER_SELECTORS", DEFAULT_PARSER_SELECTORS, sep="|")
    NUMBER_FORMAT: str = os.getenv("NUMBER_FORMAT", "int").lower().strip()
    BONUS_CATEGORIES: tuple[str, ...] = _env_list("BONUS_CATEGORIES", ("joker", "superstar"))

    SYNC_COMMIT_ATTEMPTS: int = _env_int("SYNC_COMMIT_ATTEMPTS", 3)

    PREDICT_TOP_MAIN: int = _env_int("PREDICT_TOP_MAIN", 10)
    PREDICT_TOP_BONUS: int = _env_int("PREDICT_TOP_BONUS", 3)
    PREDICT_SAMPLES: int = _env_int("PREDICT_SAMPLES", 3)


@dataclass(frozen=True)
class DevelopmentConfig(BaseConfig):
    """Development configuration."""

    DEBUG: bool = True


@dataclass(frozen=True)
class ProductionConfig(BaseConfig):
    """Production configuration."""

    DEBUG: bool = False


def get_config() -> type[BaseConfig]:
    """Resolve configuration class based on APP_ENV."""

    env = os.getenv("APP_ENV", "development").lower().strip()
    if env == "production":
        return ProductionConfig
    return DevelopmentConfig
