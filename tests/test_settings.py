import pytest

from ridehail.settings import load_settings

_ENV_VARS = (
    "APP_ENV",
    "DATABASE_URL",
    "CORS_ORIGINS",
    "LOG_LEVEL",
    "POLL_INTERVAL_SECONDS",
    "STORE_TIMEOUT_SECONDS",
    "FARE_PER_KM",
    "MINUTES_PER_KM",
    "HOST",
    "PORT",
)


@pytest.fixture
def env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("USER_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    # .env files never override what is already set
    monkeypatch.setattr("ridehail.settings._load_dotenvs", lambda: None)
    return monkeypatch


def test_dev_defaults(env, tmp_path):
    s = load_settings()

    assert s.APP_ENV == "dev"
    assert s.DATABASE_URL.startswith("sqlite+pysqlite:///")
    assert s.DATABASE_URL.endswith("ridehail.db")
    assert s.cors_origins_list == ["*"]
    assert s.POLL_INTERVAL_SECONDS == 2.0
    assert s.STORE_TIMEOUT_SECONDS == 5.0
    assert (s.FARE_PER_KM, s.MINUTES_PER_KM) == (15.0, 3.0)
    assert s.PORT == 8000
    assert (tmp_path / "logs").is_dir()


def test_cors_origins_are_split_and_trimmed(env):
    env.setenv("CORS_ORIGINS", " http://a.test , ,http://b.test")

    assert load_settings().cors_origins_list == ["http://a.test", "http://b.test"]


def test_prod_requires_database_url(env):
    env.setenv("APP_ENV", "prod")
    env.setenv("CORS_ORIGINS", "http://a.test")

    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        load_settings()


def test_prod_rejects_wildcard_cors(env):
    env.setenv("APP_ENV", "prod")
    env.setenv("DATABASE_URL", "postgresql+psycopg://u:p@db/rides")

    with pytest.raises(RuntimeError, match="CORS_ORIGINS"):
        load_settings()


@pytest.mark.parametrize(
    "name,value",
    [
        ("APP_ENV", "staging"),
        ("DATABASE_URL", "mysql://u:p@db/rides"),
        ("LOG_LEVEL", "chatty"),
        ("POLL_INTERVAL_SECONDS", "0"),
        ("STORE_TIMEOUT_SECONDS", "soon"),
        ("PORT", "70000"),
    ],
)
def test_invalid_values_fail_fast(env, name, value):
    env.setenv(name, value)

    with pytest.raises(RuntimeError):
        load_settings()


def test_overrides_are_parsed(env):
    env.setenv("POLL_INTERVAL_SECONDS", "1.5")
    env.setenv("FARE_PER_KM", "22")
    env.setenv("LOG_LEVEL", "debug")

    s = load_settings()
    assert s.POLL_INTERVAL_SECONDS == 1.5
    assert s.FARE_PER_KM == 22.0
    assert s.LOG_LEVEL == "DEBUG"
