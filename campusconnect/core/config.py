import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./campusconnect.db"
    redis_url: str = "redis://localhost:6379/0"
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    token_expire_days: int = 7
    qr_prefix: str = "CAMPUSCONNECT"
    frontend_url: str = "http://localhost:3000"
    lock_timeout_seconds: int = 10
    lock_blocking_timeout_seconds: int = 5
    db_timeout_seconds: int = 30
    log_level: str = "INFO"


def get_settings() -> Settings:
    """Build settings from the environment (and a local .env file if present)."""
    load_dotenv(override=False)

    jwt_secret = os.getenv("JWT_SECRET")
    if not jwt_secret:
        raise RuntimeError("JWT_SECRET is missing. Set it in .env")

    defaults = Settings()
    return Settings(
        database_url=os.getenv("DATABASE_URL", defaults.database_url),
        redis_url=os.getenv("REDIS_URL", defaults.redis_url),
        jwt_secret=jwt_secret,
        jwt_algorithm=os.getenv("JWT_ALGORITHM", defaults.jwt_algorithm),
        token_expire_days=int(os.getenv("TOKEN_EXPIRE_DAYS", defaults.token_expire_days)),
        qr_prefix=os.getenv("QR_PREFIX", defaults.qr_prefix),
        frontend_url=os.getenv("FRONTEND_URL", defaults.frontend_url),
        lock_timeout_seconds=int(os.getenv("LOCK_TIMEOUT_SECONDS", defaults.lock_timeout_seconds)),
        lock_blocking_timeout_seconds=int(
            os.getenv("LOCK_BLOCKING_TIMEOUT_SECONDS", defaults.lock_blocking_timeout_seconds)
        ),
        db_timeout_seconds=int(os.getenv("DB_TIMEOUT_SECONDS", defaults.db_timeout_seconds)),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
    )
