"""
Configuration loading and validation for Woodwatch.
"""

import re
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_pascal

_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration such as "4s", "1m30s" or "250ms".

    The format is a sequence of decimal numbers each followed by a unit
    (ns, us, ms, s, m, h), optionally preceded by a sign. "0" on its own
    is accepted as zero.

    Raises:
        ValueError: If the string is not a valid duration
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if text == "0":
        return timedelta(0)

    seconds = 0.0
    position = 0
    while position < len(text):
        match = _DURATION_PART.match(text, position)
        if match is None:
            raise ValueError(f"invalid duration: {value!r}")
        number, unit = match.groups()
        seconds += float(number) * _DURATION_UNITS[unit]
        position = match.end()

    if position == 0:
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(seconds=sign * seconds)


class _ConfigModel(BaseModel):
    """Base model accepting both snake_case and PascalCase keys."""
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)


class PeerConfig(_ConfigModel):
    """Configuration for a single monitored peer."""
    name: str = Field(..., min_length=1)
    network: str = Field(..., min_length=1)  # CIDR, e.g. "192.168.1.0/24"
    up_threshold: int = Field(default=0, ge=0)  # 0 = use global
    down_threshold: int = Field(default=0, ge=0)  # 0 = use global
    webhook: str = ""  # "" = use global


class NotifierConfig(_ConfigModel):
    """Configuration for how events are delivered to webhooks."""
    type: str = "webhook"  # "webhook", "slack"
    config: dict[str, Any] = Field(default_factory=dict)


class Config(_ConfigModel):
    """Main configuration for Woodwatch."""
    up_threshold: int = Field(default=0, ge=0)
    down_threshold: int = Field(default=0, ge=0)
    monitor_cycle: str
    peer_timeout: str
    webhook: str = ""
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)
    # Emptiness is rejected when the peer registry is built.
    peers: list[PeerConfig] = Field(default_factory=list)

    @field_validator("monitor_cycle")
    @classmethod
    def _check_monitor_cycle(cls, value: str) -> str:
        if parse_duration(value) <= timedelta(0):
            raise ValueError("monitor_cycle must be positive")
        return value

    @field_validator("peer_timeout")
    @classmethod
    def _check_peer_timeout(cls, value: str) -> str:
        if parse_duration(value) < timedelta(0):
            raise ValueError("peer_timeout must not be negative")
        return value

    @property
    def monitor_cycle_seconds(self) -> float:
        """The monitor cycle in seconds."""
        return parse_duration(self.monitor_cycle).total_seconds()

    @property
    def peer_timeout_delta(self) -> timedelta:
        """How recently a peer must have been seen to count as seen."""
        return parse_duration(self.peer_timeout)


def load_config(config_path: str | Path) -> Config:
    """
    Load and validate configuration from a YAML (or JSON) file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Validated Config object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
        yaml.YAMLError: If parsing fails
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with path.open("r", encoding="utf-8") as f:
        raw_config: Any = yaml.safe_load(f)

    if not isinstance(raw_config, dict):
        raise ValueError(f"Configuration validation error: expected a mapping in {config_path}")

    try:
        return Config.model_validate(raw_config)
    except ValidationError as e:
        raise ValueError(f"Configuration validation error: {e}") from e
