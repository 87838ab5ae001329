import pytest
from pinvid.config import DEFAULT_USER_AGENT, Config, load_config

ENV_VARS = [
    "API_KEYS",
    "PORT",
    "HOST",
    "API_KEY_REQUIRED",
    "PINTEREST_USER_AGENT",
    "REDIS_URL",
    "GLOBAL_RATE_LIMIT_WINDOW_MS",
    "GLOBAL_RATE_LIMIT_MAX",
    "RATE_LIMIT_SWEEP_SECONDS",
    "ROBOTS_URL",
    "ADMIN_TOKEN",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_config_defaults():
    config = load_config(use_dotenv=False)

    assert config.api_keys == []
    assert config.port == 8080
    assert config.host == "0.0.0.0"
    assert config.api_key_required is False
    assert config.pinterest_user_agent == DEFAULT_USER_AGENT
    assert config.redis_url == ""
    assert config.rate_limit_window_ms == 60000
    assert config.rate_limit_window_seconds == 60
    assert config.rate_limit_max == 60
    assert config.rate_limit_sweep_seconds == 300
    assert config.robots_url == "https://www.pinterest.com/robots.txt"
    assert config.admin_token == ""
    assert config.log_level == "INFO"


def test_config_custom_values(monkeypatch):
    monkeypatch.setenv("API_KEYS", "abc:pro:Company A,def:enterprise:Big Co")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("API_KEY_REQUIRED", "true")
    monkeypatch.setenv("PINTEREST_USER_AGENT", "TestAgent/1.0")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("GLOBAL_RATE_LIMIT_WINDOW_MS", "30000")
    monkeypatch.setenv("GLOBAL_RATE_LIMIT_MAX", "20")
    monkeypatch.setenv("ADMIN_TOKEN", "secret")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = load_config(use_dotenv=False)

    assert config.api_keys == ["abc:pro:Company A", "def:enterprise:Big Co"]
    assert config.port == 9000
    assert config.host == "127.0.0.1"
    assert config.api_key_required is True
    assert config.pinterest_user_agent == "TestAgent/1.0"
    assert config.redis_url == "redis://localhost:6379/0"
    assert config.rate_limit_window_seconds == 30
    assert config.rate_limit_max == 20
    assert config.admin_token == "secret"
    assert config.log_level == "DEBUG"


def test_config_strips_whitespace(monkeypatch):
    monkeypatch.setenv("API_KEYS", " key1:free:A , key2:pro:B ,, ")

    config = load_config(use_dotenv=False)

    assert config.api_keys == ["key1:free:A", "key2:pro:B"]


def test_config_bad_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("PORT", "not-a-port")
    monkeypatch.setenv("GLOBAL_RATE_LIMIT_MAX", "lots")

    config = load_config(use_dotenv=False)

    assert config.port == 8080
    assert config.rate_limit_max == 60


def test_config_api_key_required_accepts_one(monkeypatch):
    monkeypatch.setenv("API_KEY_REQUIRED", "1")

    assert load_config(use_dotenv=False).api_key_required is True


def test_config_rejects_non_positive_limits():
    with pytest.raises(ValueError, match="GLOBAL_RATE_LIMIT_MAX"):
        Config(rate_limit_max=0)

    with pytest.raises(ValueError, match="GLOBAL_RATE_LIMIT_WINDOW_MS"):
        Config(rate_limit_window_ms=-1)


@pytest.mark.parametrize("interval", [0, -5])
def test_config_rejects_non_positive_sweep_interval(interval):
    with pytest.raises(ValueError, match="RATE_LIMIT_SWEEP_SECONDS"):
        Config(rate_limit_sweep_seconds=interval)


def test_load_config_rejects_zero_sweep_interval(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_SWEEP_SECONDS", "0")

    with pytest.raises(ValueError, match="RATE_LIMIT_SWEEP_SECONDS"):
        load_config(use_dotenv=False)
