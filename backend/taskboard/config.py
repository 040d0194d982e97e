from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_JWT_SECRET = "dev-secret-change-me-before-any-real-deployment"


@dataclass(frozen=True)
class Settings:
    database_url: str
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_alg: str = "HS256"
    session_ttl_seconds: int = 604800  # 7d
    session_cookie: str = "session"
    bcrypt_rounds: int = 12
    app_env: str = "dev"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    redis_url: str = "redis://localhost:6379/0"
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


def load_settings() -> Settings:
    """Read settings from the environment. Called once at startup."""
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required")

    app_env = os.environ.get("APP_ENV", "dev").strip().lower()
    secret = os.environ.get("JWT_SECRET", DEFAULT_JWT_SECRET)
    if app_env == "production" and secret == DEFAULT_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set in production")

    origins = os.environ.get("CORS_ORIGINS", "*")
    return Settings(
        database_url=url,
        jwt_secret=secret,
        session_ttl_seconds=int(os.environ.get("SESSION_TTL_SECONDS", "604800")),
        session_cookie=os.environ.get("SESSION_COOKIE", "session"),
        bcrypt_rounds=int(os.environ.get("BCRYPT_ROUNDS", "12")),
        app_env=app_env,
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
