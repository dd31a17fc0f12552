"""Tests for hostpulse.config: sources, precedence and validation."""

from __future__ import annotations

import pytest

from hostpulse.config import AgentConfig, ConfigError, first_non_empty

ENV = {"OMNIPULSE_URL": "https://ingest.example.com/", "AGENT_TOKEN": "tok"}


class TestAgentConfig:
    def test_defaults(self):
        config = AgentConfig()
        assert config.interval == 10
        assert config.timeout == 10.0
        assert config.provider_timeout == 5.0
        assert (config.processes.interval, config.watchdog.interval) == (30, 30)
        assert (config.logs.interval, config.discovery.interval) == (60, 300)
        assert config.log_level == "INFO"

    def test_requires_url(self):
        with pytest.raises(ConfigError, match="OMNIPULSE_URL"):
            AgentConfig.load(environ={"AGENT_TOKEN": "tok"})

    def test_requires_token(self):
        with pytest.raises(ConfigError, match="AGENT_TOKEN"):
            AgentConfig.load(environ={"OMNIPULSE_URL": "https://x"})

    def test_env_success_trims_trailing_slash(self):
        config = AgentConfig.load(environ=ENV)
        assert config.base_url == "https://ingest.example.com"
        assert config.token == "tok"
        assert config.interval == 10

    def test_env_interval(self):
        config = AgentConfig.load(environ={**ENV, "INTERVAL_SECONDS": " 30 "})
        assert config.interval == 30

    @pytest.mark.parametrize("raw", ["abc", "0", "-5", "1.5"])
    def test_invalid_env_interval(self, raw):
        with pytest.raises(ConfigError, match="INTERVAL_SECONDS"):
            AgentConfig.load(environ={**ENV, "INTERVAL_SECONDS": raw})

    def test_flags_override_env(self):
        config = AgentConfig.load(
            url="https://flag.example.com",
            token="flag-token",
            interval=45,
            environ={**ENV, "INTERVAL_SECONDS": "20"},
        )
        assert config.base_url == "https://flag.example.com"
        assert config.token == "flag-token"
        assert config.interval == 45

    def test_blank_flags_ignored(self):
        config = AgentConfig.load(url="   ", token="", environ=ENV)
        assert config.base_url == "https://ingest.example.com"

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "agent.yaml"
        path.write_text(
            "base_url: https://yaml.example.com\n"
            "token: yaml-token\n"
            "interval: 15\n"
            "collectors:\n"
            "  watchdog:\n"
            "    interval: 45\n"
            "  logs:\n"
            "    enabled: false\n"
        )
        config = AgentConfig.load(config_path=str(path), environ={})

        assert config.base_url == "https://yaml.example.com"
        assert config.interval == 15
        assert config.watchdog.interval == 45
        assert config.watchdog.enabled is True
        assert config.logs.enabled is False
        assert config.logs.interval == 60

    def test_env_overrides_yaml(self, tmp_path):
        path = tmp_path / "agent.yaml"
        path.write_text("base_url: https://yaml.example.com\ntoken: yaml-token\n")
        config = AgentConfig.load(config_path=str(path), environ={"AGENT_TOKEN": "env-token"})
        assert config.base_url == "https://yaml.example.com"
        assert config.token == "env-token"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "agent.yaml"
        path.write_text("base_url: [unclosed\n")
        with pytest.raises(ConfigError):
            AgentConfig.from_yaml(str(path))

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "agent.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            AgentConfig.from_yaml(str(path))

    def test_invalid_collector_interval(self, tmp_path):
        path = tmp_path / "agent.yaml"
        path.write_text("collectors:\n  processes:\n    interval: 0\n")
        with pytest.raises(ConfigError, match="processes"):
            AgentConfig.load(config_path=str(path), environ=ENV)


class TestFirstNonEmpty:
    @pytest.mark.parametrize(
        "values, expected",
        [
            (("a", "b"), "a"),
            (("", "b"), "b"),
            (("  ", "b"), "b"),
            (("", ""), ""),
            ((), ""),
            ((" x ",), "x"),
        ],
    )
    def test_values(self, values, expected):
        assert first_non_empty(*values) == expected


class TestMalformedYaml:
    """Wrong types in the file surface as ConfigError naming the key."""

    def _load(self, tmp_path, text: str) -> AgentConfig:
        path = tmp_path / "agent.yaml"
        path.write_text(text)
        return AgentConfig.load(config_path=str(path), environ=ENV)

    def test_unknown_collector_key(self, tmp_path):
        with pytest.raises(ConfigError, match="intervall"):
            self._load(tmp_path, "collectors:\n  logs:\n    intervall: 5\n")

    def test_unknown_collector(self, tmp_path):
        with pytest.raises(ConfigError, match="gpu"):
            self._load(tmp_path, "collectors:\n  gpu:\n    interval: 5\n")

    def test_collector_section_not_a_mapping(self, tmp_path):
        with pytest.raises(ConfigError, match="collectors.logs"):
            self._load(tmp_path, "collectors:\n  logs: 5\n")

    def test_collectors_not_a_mapping(self, tmp_path):
        with pytest.raises(ConfigError, match="collectors"):
            self._load(tmp_path, "collectors:\n  - logs\n")

    @pytest.mark.parametrize(
        "text, key",
        [
            ("interval: '30'\n", "interval"),
            ("interval: 2.5\n", "interval"),
            ("interval: true\n", "interval"),
            ("timeout: '10'\n", "timeout"),
            ("provider_timeout: fast\n", "provider_timeout"),
            ("collectors:\n  watchdog:\n    interval: '30'\n", "watchdog interval"),
            ("collectors:\n  watchdog:\n    enabled: 'yes please'\n", "watchdog enabled"),
            ("log_level: 10\n", "log_level"),
            ("log_file: [a, b]\n", "log_file"),
        ],
    )
    def test_wrong_types(self, tmp_path, text, key):
        with pytest.raises(ConfigError, match=key):
            self._load(tmp_path, text)

    def test_non_string_url(self, tmp_path):
        path = tmp_path / "agent.yaml"
        path.write_text("base_url: 123\ntoken: tok\n")
        with pytest.raises(ConfigError, match="base_url"):
            AgentConfig.load(config_path=str(path), environ={})

    def test_non_string_token(self, tmp_path):
        path = tmp_path / "agent.yaml"
        path.write_text("base_url: https://x\ntoken: 42\n")
        with pytest.raises(ConfigError, match="token"):
            AgentConfig.load(config_path=str(path), environ={})

    def test_float_timeouts_accepted(self, tmp_path):
        config = self._load(tmp_path, "timeout: 2.5\nprovider_timeout: 3\n")
        assert config.timeout == 2.5
        assert config.provider_timeout == 3


class TestProviderTimeout:
    @pytest.mark.parametrize("value", [0, -1, 0.0])
    def test_non_positive_rejected(self, value):
        config = AgentConfig(base_url="https://x", token="tok", provider_timeout=value)
        with pytest.raises(ConfigError, match="provider_timeout"):
            config.validate()

    def test_non_positive_timeout_rejected(self):
        config = AgentConfig(base_url="https://x", token="tok", timeout=0)
        with pytest.raises(ConfigError, match="timeout"):
            config.validate()
