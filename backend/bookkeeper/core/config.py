import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    database_url: str
    session_secret: str
    cookie_secure: bool
    redis_url: str | None
    redis_prefix: str
    login_rate_limit: int
    login_rate_window: int
    password_min_len: int
    audit_log_limit: int
    db_pool_min: int
    db_pool_max: int
    db_pool_timeout: float
    db_pool_max_waiting: int
    log_level: str
    log_json: bool


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    database_url = os.getenv("DATABASE_URL", "")
    session_secret = os.getenv("SESSION_SECRET")
    if not database_url:
        raise RuntimeError("DATABASE_URL is required")
    if not session_secret:
        raise RuntimeError("SESSION_SECRET is required")

    db_pool_min = max(1, int(os.getenv("DB_POOL_MIN", "1")))
    db_pool_max = max(db_pool_min, int(os.getenv("DB_POOL_MAX", "10")))

    return Settings(
        database_url=database_url,
        session_secret=session_secret,
        cookie_secure=_env_flag("COOKIE_SECURE"),
        redis_url=(os.getenv("REDIS_URL") or "").strip() or None,
        redis_prefix=(os.getenv("REDIS_PREFIX") or "bookkeeper").strip() or "bookkeeper",
        login_rate_limit=max(1, int(os.getenv("LOGIN_RATE_LIMIT", "10"))),
        login_rate_window=max(1, int(os.getenv("LOGIN_RATE_WINDOW", "300"))),
        password_min_len=max(1, int(os.getenv("PASSWORD_MIN_LEN", "8"))),
        audit_log_limit=max(1, min(1000, int(os.getenv("AUDIT_LOG_LIMIT", "100")))),
        db_pool_min=db_pool_min,
        db_pool_max=db_pool_max,
        db_pool_timeout=float(os.getenv("DB_POOL_TIMEOUT", "30")),
        db_pool_max_waiting=int(os.getenv("DB_POOL_MAX_WAITING", "100")),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        log_json=_env_flag("LOG_JSON", "true"),
    )


settings = load_settings()
