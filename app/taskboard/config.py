import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    jwt_secret_key: str
    jwt_algorithm: str
    jwt_issuer: str
    jwt_access_ttl_seconds: int
    jwt_refresh_ttl_seconds: int

    default_page_limit: int
    max_page_limit: int
    log_level: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def load_settings() -> Settings:
    secret_key = _getenv("SECRET_KEY", "change-me")
    return Settings(
        secret_key=secret_key,
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///taskboard.db"),
        jwt_secret_key=_getenv("JWT_SECRET_KEY", secret_key),
        jwt_algorithm=_getenv("JWT_ALGORITHM", "HS256"),
        jwt_issuer=_getenv("JWT_ISSUER", "taskboard"),
        jwt_access_ttl_seconds=_getenv_int("JWT_ACCESS_TTL_SECONDS", 60 * 60),
        jwt_refresh_ttl_seconds=_getenv_int("JWT_REFRESH_TTL_SECONDS", 60 * 60 * 24 * 7),
        default_page_limit=_getenv_int("DEFAULT_PAGE_LIMIT", 20),
        max_page_limit=_getenv_int("MAX_PAGE_LIMIT", 200),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "JWT_SECRET_KEY": s.jwt_secret_key,
        "JWT_ALGORITHM": s.jwt_algorithm,
        "JWT_ISSUER": s.jwt_issuer,
        "JWT_ACCESS_TTL_SECONDS": s.jwt_access_ttl_seconds,
        "JWT_REFRESH_TTL_SECONDS": s.jwt_refresh_ttl_seconds,
        "DEFAULT_PAGE_LIMIT": s.default_page_limit,
        "MAX_PAGE_LIMIT": s.max_page_limit,
        "LOG_LEVEL": s.log_level,
        # JSON API: keep key order as written by the serializers
        "JSON_SORT_KEYS": False,
        # request bodies are small JSON documents (1MB)
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }
