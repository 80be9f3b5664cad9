import pytest

CONFIG_ENV_VARS = (
    "DATA_DIR",
    "LOCK_TIMEOUT",
    "HEART_RATE_HISTORY_CAP",
    "HEART_RATE_RECENCY_SECONDS",
    "OPENWEATHER_API_KEY",
    "OPENWEATHER_BASE_URL",
    "WEATHER_CACHE_TTL",
    "WEATHER_TIMEOUT",
    "DEFAULT_TEMPERATURE_C",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in CONFIG_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_all_settings_have_defaults(clean_env):
    """Settings initialize without any environment or .env file."""
    from healthstore.config import Settings

    settings = Settings(_env_file=None)

    assert settings.openweather_api_key is None
    assert settings.has_weather is False
    assert settings.heart_rate_history_cap == 200
    assert settings.heart_rate_recency_seconds == 86400
    assert settings.weather_cache_ttl == 3600
    assert settings.default_temperature_c == 28.0
    assert settings.log_level == "INFO"
    assert settings.data_dir.name == "data"


def test_environment_overrides(clean_env, tmp_path):
    from healthstore.config import Settings

    clean_env.setenv("DATA_DIR", str(tmp_path))
    clean_env.setenv("HEART_RATE_HISTORY_CAP", "50")
    clean_env.setenv("OPENWEATHER_API_KEY", "secret")

    settings = Settings(_env_file=None)

    assert settings.data_dir == tmp_path
    assert settings.heart_rate_history_cap == 50
    assert settings.has_weather is True


def test_env_file_is_read(clean_env, tmp_path):
    from healthstore.config import Settings

    env_file = tmp_path / ".env"
    env_file.write_text("LOG_LEVEL=DEBUG\nUNRELATED_SETTING=ignored\n")

    settings = Settings(_env_file=env_file)

    assert settings.log_level == "DEBUG"


def test_invalid_value_raises(clean_env):
    from pydantic import ValidationError

    from healthstore.config import Settings

    clean_env.setenv("HEART_RATE_HISTORY_CAP", "lots")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
