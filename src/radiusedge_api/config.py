import os


def require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required env var: {name}")
    return value


def optional_env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _int_env(name: str, default: int) -> int:
    raw = optional_env(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Env var {name} must be an integer, got {raw!r}") from exc


def get_database_url() -> str:
    return require_env("DATABASE_URL")


def get_log_level() -> str:
    return optional_env("LOG_LEVEL", "INFO") or "INFO"


def get_statement_timeout_ms() -> int:
    return _int_env("DB_STATEMENT_TIMEOUT_MS", 5000)


def get_connect_timeout_s() -> int:
    return _int_env("DB_CONNECT_TIMEOUT_S", 5)


def get_init_schema() -> bool:
    value = optional_env("DB_INIT_SCHEMA", "") or ""
    return value.strip().lower() in ("1", "true", "yes", "y", "on")
