"""Tests for environment-sourced configuration."""

import dataclasses

import pytest

from llm_proxy.config import DEFAULT_PORT, ProxyConfig, load_config
from llm_proxy.errors import ConfigError

REQUIRED_ENV = {
    "OPENAI_BASE_URL": "https://openai.example",
    "OPENAI_API_KEY": "ok",
    "ANTHROPIC_BASE_URL": "https://anthropic.example",
    "ANTHROPIC_API_KEY": "ak",
    "PROXY_TOKEN": "pt",
}


class TestLoadConfig:
    """Tests for load_config."""

    def test_loads_required_vars_and_defaults(self):
        config = load_config(dict(REQUIRED_ENV))

        assert config.openai_base_url == "https://openai.example"
        assert config.openai_api_key == "ok"
        assert config.anthropic_base_url == "https://anthropic.example"
        assert config.anthropic_api_key == "ak"
        assert config.proxy_token == "pt"
        assert config.port == DEFAULT_PORT == 33000
        assert config.host == "0.0.0.0"
        assert config.anthropic_version is None
        assert config.connect_timeout is None
        assert config.read_timeout is None

    def test_raises_when_everything_missing(self):
        with pytest.raises(ConfigError):
            load_config({})

    @pytest.mark.parametrize("name", sorted(REQUIRED_ENV))
    def test_each_required_var_is_enforced(self, name):
        env = dict(REQUIRED_ENV)
        del env[name]

        with pytest.raises(ConfigError, match=f"Missing required env: {name}"):
            load_config(env)

    def test_empty_required_value_counts_as_missing(self):
        env = {**REQUIRED_ENV, "PROXY_TOKEN": ""}

        with pytest.raises(ConfigError, match="PROXY_TOKEN"):
            load_config(env)

    def test_optional_values(self):
        env = {
            **REQUIRED_ENV,
            "PORT": "8080",
            "HOST": "127.0.0.1",
            "ANTHROPIC_VERSION": "2023-06-01",
            "UPSTREAM_CONNECT_TIMEOUT": "5",
            "UPSTREAM_READ_TIMEOUT": "120.5",
        }

        config = load_config(env)

        assert config.port == 8080
        assert config.host == "127.0.0.1"
        assert config.anthropic_version == "2023-06-01"
        assert config.connect_timeout == 5.0
        assert config.read_timeout == 120.5

    def test_empty_anthropic_version_is_unset(self):
        config = load_config({**REQUIRED_ENV, "ANTHROPIC_VERSION": ""})

        assert config.anthropic_version is None

    @pytest.mark.parametrize("port", ["abc", "-1", "70000", "80.5"])
    def test_invalid_port(self, port):
        with pytest.raises(ConfigError, match="PORT"):
            load_config({**REQUIRED_ENV, "PORT": port})

    def test_invalid_timeout(self):
        with pytest.raises(ConfigError, match="UPSTREAM_READ_TIMEOUT"):
            load_config({**REQUIRED_ENV, "UPSTREAM_READ_TIMEOUT": "soon"})

    @pytest.mark.parametrize("url", ["openai.example", "ftp://openai.example", "/v1"])
    def test_base_url_must_be_absolute_http(self, url):
        with pytest.raises(ConfigError, match="OPENAI_BASE_URL"):
            load_config({**REQUIRED_ENV, "OPENAI_BASE_URL": url})

    def test_reads_os_environ_by_default(self, monkeypatch):
        for name, value in REQUIRED_ENV.items():
            monkeypatch.setenv(name, value)
        monkeypatch.setenv("PORT", "9000")

        assert load_config().port == 9000

    def test_config_is_immutable(self):
        config = load_config(dict(REQUIRED_ENV))

        assert isinstance(config, ProxyConfig)
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.proxy_token = "other"  # type: ignore[misc]
