"""
Agent Configuration.
"""

import os
from dataclasses import dataclass, field
from typing import Optional
import yaml


COLLECTOR_NAMES = ("processes", "watchdog", "logs", "discovery")


class ConfigError(ValueError):
    """Raised when the agent configuration is missing or invalid."""


@dataclass
class CollectorConfig:
    """Configuration for an individual collector loop."""
    enabled: bool = True
    interval: int = 30  # seconds


def _processes_default() -> CollectorConfig:
    return CollectorConfig(interval=30)


def _watchdog_default() -> CollectorConfig:
    return CollectorConfig(interval=30)


def _logs_default() -> CollectorConfig:
    return CollectorConfig(interval=60)


def _discovery_default() -> CollectorConfig:
    return CollectorConfig(interval=300)


@dataclass
class AgentConfig:
    """Main agent configuration."""
    # Ingestion endpoint
    base_url: str = ""
    token: str = ""

    # Metrics cadence and bounded waits (seconds)
    interval: int = 10
    timeout: float = 10.0
    provider_timeout: float = 5.0

    # Sibling collectors, each with its own schedule
    processes: CollectorConfig = field(default_factory=_processes_default)
    watchdog: CollectorConfig = field(default_factory=_watchdog_default)
    logs: CollectorConfig = field(default_factory=_logs_default)
    discovery: CollectorConfig = field(default_factory=_discovery_default)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_yaml(cls, path: str) -> "AgentConfig":
        """Load configuration from YAML file."""
        with open(path, 'r') as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a mapping at top level")
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "AgentConfig":
        """Create config from dictionary."""
        config = cls()

        for key in ["base_url", "token", "interval", "timeout", "provider_timeout", "log_level", "log_file"]:
            if key in data:
                setattr(config, key, data[key])

        collectors = data.get("collectors") or {}
        if not isinstance(collectors, dict):
            raise ConfigError("collectors: expected a mapping")
        for name, section in collectors.items():
            if name not in COLLECTOR_NAMES:
                raise ConfigError(f"unknown collector: {name!r}")
            section = section or {}
            if not isinstance(section, dict):
                raise ConfigError(f"collectors.{name}: expected a mapping")
            unknown = ", ".join(sorted(str(key) for key in set(section) - {"enabled", "interval"}))
            if unknown:
                raise ConfigError(f"collectors.{name}: unknown keys: {unknown}")
            current = getattr(config, name)
            merged = {"enabled": current.enabled, "interval": current.interval}
            merged.update(section)
            setattr(config, name, CollectorConfig(**merged))

        return config

    def apply_env(self, environ: Optional[dict] = None) -> "AgentConfig":
        """Override fields with environment variables."""
        env = os.environ if environ is None else environ

        url = first_non_empty(env.get("OMNIPULSE_URL", ""))
        if url:
            self.base_url = url
        token = first_non_empty(env.get("AGENT_TOKEN", ""))
        if token:
            self.token = token
        raw_interval = env.get("INTERVAL_SECONDS", "").strip()
        if raw_interval:
            self.interval = _parse_interval(raw_interval, "INTERVAL_SECONDS")
        level = first_non_empty(env.get("HOSTPULSE_LOG_LEVEL", ""))
        if level:
            self.log_level = level

        return self

    def apply_overrides(
        self,
        url: Optional[str] = None,
        token: Optional[str] = None,
        interval: Optional[int] = None,
    ) -> "AgentConfig":
        """Override fields with command-line values, ignoring unset ones."""
        if url and url.strip():
            self.base_url = url
        if token and token.strip():
            self.token = token
        if interval is not None and interval > 0:
            self.interval = interval
        return self

    def validate(self) -> "AgentConfig":
        """Normalize and check required fields."""
        for key in ("base_url", "token"):
            value = getattr(self, key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"invalid {key}: expected a string, got {value!r}")
        self.base_url = (self.base_url or "").strip().rstrip('/')
        self.token = (self.token or "").strip()

        if not self.base_url:
            raise ConfigError("OMNIPULSE_URL is required")
        if not self.token:
            raise ConfigError("AGENT_TOKEN is required")
        if not _is_positive_int(self.interval):
            raise ConfigError(f"invalid interval: {self.interval!r}")
        for key in ("timeout", "provider_timeout"):
            value = getattr(self, key)
            if not _is_positive_number(value):
                raise ConfigError(f"invalid {key}: {value!r}")
        if not isinstance(self.log_level, str):
            raise ConfigError(f"invalid log_level: {self.log_level!r}")
        if self.log_file is not None and not isinstance(self.log_file, str):
            raise ConfigError(f"invalid log_file: {self.log_file!r}")
        for name in COLLECTOR_NAMES:
            collector = getattr(self, name)
            if not isinstance(collector.enabled, bool):
                raise ConfigError(f"invalid {name} enabled: {collector.enabled!r}")
            if not _is_positive_int(collector.interval):
                raise ConfigError(f"invalid {name} interval: {collector.interval!r}")

        return self

    @classmethod
    def load(
        cls,
        config_path: Optional[str] = None,
        url: Optional[str] = None,
        token: Optional[str] = None,
        interval: Optional[int] = None,
        environ: Optional[dict] = None,
    ) -> "AgentConfig":
        """Build a validated config from file, environment and flags."""
        config = cls.from_yaml(config_path) if config_path else cls()
        config.apply_env(environ)
        config.apply_overrides(url=url, token=token, interval=interval)
        return config.validate()


def first_non_empty(*values: str) -> str:
    """Return the first value that is not blank, stripped."""
    for value in values:
        if value and value.strip():
            return value.strip()
    return ""


def _parse_interval(raw: str, key: str) -> int:
    try:
        parsed = int(raw)
    except ValueError:
        raise ConfigError(f"invalid {key}: {raw!r}") from None
    if parsed <= 0:
        raise ConfigError(f"invalid {key}: {raw!r}")
    return parsed


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_positive_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0
