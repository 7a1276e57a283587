import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


APP_DIR_NAME = "RideHail"

_SUPPORTED_DB_SCHEMES = ("postgresql://", "postgresql+psycopg://", "sqlite://", "sqlite+pysqlite://")


def _load_dotenvs() -> None:
    load_dotenv(override=False)
    here = Path(__file__).resolve()
    project_env = here.parents[1] / ".env"
    if project_env.exists():
        load_dotenv(project_env, override=False)


def _parse_cors_origins(raw: str | None) -> list[str]:
    if not raw or not raw.strip():
        return ["*"]
    return [x.strip() for x in raw.split(",") if x.strip()]


def _default_user_data_dir() -> Path:
    if os.name == "nt":
        base = Path(os.getenv("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    else:
        base = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / APP_DIR_NAME


def _positive_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"Invalid {name}: expected a number, got {raw!r}.")
    if not value > 0:
        raise RuntimeError(f"Invalid {name}: must be greater than zero.")
    return value


def _port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError:
        raise RuntimeError(f"Invalid PORT: {raw!r}.")
    if not 0 < port < 65536:
        raise RuntimeError(f"Invalid PORT: {port}.")
    return port


@dataclass(frozen=True)
class Settings:
    APP_ENV: str
    DATABASE_URL: str
    cors_origins_list: list[str]
    USER_DATA_DIR: str
    LOG_DIR: str
    LOG_LEVEL: str
    POLL_INTERVAL_SECONDS: float
    STORE_TIMEOUT_SECONDS: float
    FARE_PER_KM: float
    MINUTES_PER_KM: float
    HOST: str
    PORT: int


def load_settings() -> Settings:
    _load_dotenvs()

    app_env = os.getenv("APP_ENV", "dev").strip().lower()
    if app_env not in {"dev", "prod"}:
        raise RuntimeError("Invalid APP_ENV. Use APP_ENV=dev or APP_ENV=prod.")

    user_data_dir = Path(os.getenv("USER_DATA_DIR", "").strip() or _default_user_data_dir()).expanduser().resolve()
    log_dir = Path(os.getenv("LOG_DIR", "").strip() or user_data_dir / "logs").expanduser().resolve()
    user_data_dir.mkdir(parents=True, exist_ok=True)
    log_dir.mkdir(parents=True, exist_ok=True)

    db_env = os.getenv("DATABASE_URL", "").strip()
    if not db_env and app_env == "prod":
        raise RuntimeError("Missing DATABASE_URL. Configure DATABASE_URL (e.g. postgresql+psycopg://...).")
    database_url = db_env or f"sqlite+pysqlite:///{(user_data_dir / 'ridehail.db').resolve()}"

    if not database_url.lower().startswith(_SUPPORTED_DB_SCHEMES):
        raise RuntimeError(
            "Invalid DATABASE_URL. Supported schemes: postgresql://, postgresql+psycopg://, sqlite://, sqlite+pysqlite://"
        )

    cors = _parse_cors_origins(os.getenv("CORS_ORIGINS"))
    if app_env == "prod" and "*" in cors:
        raise RuntimeError("CORS_ORIGINS=* is not allowed in prod. Set CORS_ORIGINS in environment.")

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise RuntimeError(f"Invalid LOG_LEVEL: {log_level}.")

    return Settings(
        APP_ENV=app_env,
        DATABASE_URL=database_url,
        cors_origins_list=cors,
        USER_DATA_DIR=str(user_data_dir),
        LOG_DIR=str(log_dir),
        LOG_LEVEL=log_level,
        POLL_INTERVAL_SECONDS=_positive_float("POLL_INTERVAL_SECONDS", 2.0),
        STORE_TIMEOUT_SECONDS=_positive_float("STORE_TIMEOUT_SECONDS", 5.0),
        FARE_PER_KM=_positive_float("FARE_PER_KM", 15.0),
        MINUTES_PER_KM=_positive_float("MINUTES_PER_KM", 3.0),
        HOST=os.getenv("HOST", "127.0.0.1").strip() or "127.0.0.1",
        PORT=_port(os.getenv("PORT", "8000").strip() or "8000"),
    )


settings = load_settings()
