"""Tests for config loading."""

import logging

import pytest
from fleet_monitor.config import AppConfig, configure_logging, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("MBTA_API_KEY", "MBTA_API_URL", "LOG_LEVEL", "CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def valid_config_yaml(tmp_path):
    """Write a minimal valid config.yaml and return its path."""
    content = """\
poll_interval: 15
stale_time: 5
retry: 1
list_limit: 24
proxy_prefix: "/upstream/"
"""
    p = tmp_path / "config.yaml"
    p.write_text(content)
    return str(p)


class TestLoadConfig:
    def test_loads_valid_config(self, valid_config_yaml):
        config = load_config(valid_config_yaml)
        assert config.poll_interval == 15
        assert config.stale_time == 5
        assert config.retry == 1
        assert config.list_limit == 24
        assert config.proxy_prefix == "/upstream"

    def test_defaults_applied(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("")
        config = load_config(str(p))
        assert config.mbta_base_url == "https://api-v3.mbta.com"
        assert config.upstream_name == "MBTA API"
        assert config.proxy_prefix == "/api/mbta"
        assert config.poll_interval == 30
        assert config.routes_page_size == 30
        assert config.trips_page_size == 30
        assert config.list_limit == 12
        assert config.retry == 3

    def test_env_overrides_secrets(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("MBTA_API_KEY", "test-key-123")
        config = load_config(valid_config_yaml)
        assert config.mbta_api_key == "test-key-123"

    def test_secrets_none_when_not_set(self, valid_config_yaml):
        config = load_config(valid_config_yaml)
        assert config.mbta_api_key is None

    def test_empty_api_key_treated_as_unset(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("MBTA_API_KEY", "")
        config = load_config(valid_config_yaml)
        assert config.mbta_api_key is None

    def test_api_key_never_read_from_yaml(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text('mbta_api_key: "from-yaml"\n')
        config = load_config(str(p))
        assert config.mbta_api_key is None

    def test_base_url_from_env(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("MBTA_API_URL", "http://localhost:9999")
        config = load_config(valid_config_yaml)
        assert config.mbta_base_url == "http://localhost:9999"

    def test_mbta_base_url_from_yaml(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text('mbta_base_url: "http://localhost:9999"\n')
        config = load_config(str(p))
        assert config.mbta_base_url == "http://localhost:9999"

    def test_log_level_from_env(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert load_config(valid_config_yaml).log_level == "debug"

    def test_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/config.yaml")

    def test_missing_default_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config()
        assert config == AppConfig()

    def test_config_path_from_env(self, valid_config_yaml, monkeypatch):
        monkeypatch.setenv("CONFIG_PATH", valid_config_yaml)
        config = load_config()
        assert config.list_limit == 24

    def test_config_path_env_missing_file_raises(self, monkeypatch):
        monkeypatch.setenv("CONFIG_PATH", "/nonexistent/config.yaml")
        with pytest.raises(FileNotFoundError):
            load_config()

    def test_invalid_list_limit_raises(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("list_limit: 13\n")
        with pytest.raises(Exception, match="list_limit"):
            load_config(str(p))

    def test_non_positive_poll_interval_raises(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("poll_interval: 0\n")
        with pytest.raises(Exception):  # ValidationError
            load_config(str(p))


class TestConfigureLogging:
    def test_sets_root_level(self, monkeypatch):
        root = logging.getLogger()
        monkeypatch.setattr(root, "handlers", [])
        monkeypatch.setattr(root, "level", logging.WARNING)
        configure_logging("debug")
        assert root.level == logging.DEBUG
