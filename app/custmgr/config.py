import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    auto_create_schema: bool
    seed_on_start: bool

    default_country: str
    max_page_size: int
    log_level: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name)
    if not raw:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///customers.db"),
        auto_create_schema=_getenv_bool("AUTO_CREATE_SCHEMA", True),
        seed_on_start=_getenv_bool("SEED_ON_START", True),
        default_country=_getenv("DEFAULT_COUNTRY", "India"),
        max_page_size=_getenv_int("MAX_PAGE_SIZE", 100),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "AUTO_CREATE_SCHEMA": s.auto_create_schema,
        "SEED_ON_START": s.seed_on_start,
        "DEFAULT_COUNTRY": s.default_country,
        "MAX_PAGE_SIZE": s.max_page_size,
        "LOG_LEVEL": s.log_level,
        # JSON request bodies (5MB)
        "MAX_CONTENT_LENGTH": 5 * 1024 * 1024,
    }
