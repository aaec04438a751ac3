import os


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def data_file() -> str:
    return os.getenv("MOVIES_DATA_FILE", "./data/movies.json").strip() or "./data/movies.json"


def create_if_missing() -> bool:
    return _bool_env("MOVIES_CREATE_IF_MISSING", True)


def host() -> str:
    return os.getenv("HOST", "127.0.0.1")


def port() -> int:
    return _int_env("PORT", 1234)


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
