"""
Tests for configuration loading and validation.
"""

from datetime import timedelta
from pathlib import Path

import pytest

from woodwatch.config import Config, load_config, parse_duration


class TestParseDuration:
    """Tests for parse_duration."""

    @pytest.mark.parametrize("text,expected", [
        ("4s", timedelta(seconds=4)),
        ("1m", timedelta(minutes=1)),
        ("1m30s", timedelta(seconds=90)),
        ("250ms", timedelta(milliseconds=250)),
        ("1.5h", timedelta(minutes=90)),
        ("2h45m", timedelta(hours=2, minutes=45)),
        ("0", timedelta(0)),
        ("-3s", timedelta(seconds=-3)),
    ])
    def test_valid_durations(self, text: str, expected: timedelta) -> None:
        """Test parsing well-formed durations."""
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "4", "s", "4x", "4 s", "1m-3s", "-", "abc"])
    def test_invalid_durations(self, text: str) -> None:
        """Test that malformed durations raise ValueError."""
        with pytest.raises(ValueError):
            parse_duration(text)


class TestConfigModel:
    """Tests for the Config model."""

    def test_defaults(self) -> None:
        """Test default values for optional fields."""
        config = Config.model_validate({"monitor_cycle": "4s", "peer_timeout": "8s"})

        assert config.up_threshold == 0
        assert config.down_threshold == 0
        assert config.webhook == ""
        assert config.notifier.type == "webhook"
        assert config.peers == []

    def test_parsed_durations(self) -> None:
        """Test the parsed duration properties."""
        config = Config.model_validate({"monitor_cycle": "1m", "peer_timeout": "90s"})

        assert config.monitor_cycle_seconds == 60.0
        assert config.peer_timeout_delta == timedelta(seconds=90)

    def test_pascal_case_keys(self) -> None:
        """Test that configuration in the PascalCase JSON layout is accepted."""
        config = Config.model_validate({
            "UpThreshold": 2,
            "DownThreshold": 4,
            "MonitorCycle": "5s",
            "PeerTimeout": "10s",
            "Webhook": "https://hooks.example.com/global",
            "Peers": [
                {"Name": "Comcast", "Network": "192.168.1.0/24", "UpThreshold": 9},
            ],
        })

        assert config.up_threshold == 2
        assert config.down_threshold == 4
        assert config.webhook == "https://hooks.example.com/global"
        assert config.peers[0].name == "Comcast"
        assert config.peers[0].network == "192.168.1.0/24"
        assert config.peers[0].up_threshold == 9
        assert config.peers[0].down_threshold == 0

    @pytest.mark.parametrize("field,value", [
        ("monitor_cycle", "0s"),
        ("monitor_cycle", "-1s"),
        ("monitor_cycle", "soon"),
        ("peer_timeout", "-1s"),
        ("peer_timeout", "later"),
    ])
    def test_invalid_durations_rejected(self, field: str, value: str) -> None:
        """Test that bad durations fail validation."""
        raw = {"monitor_cycle": "4s", "peer_timeout": "8s", field: value}

        with pytest.raises(ValueError):
            Config.model_validate(raw)

    def test_missing_durations_rejected(self) -> None:
        """Test that monitor_cycle and peer_timeout are mandatory."""
        with pytest.raises(ValueError):
            Config.model_validate({"peers": []})

    def test_negative_threshold_rejected(self) -> None:
        """Test that thresholds cannot be negative."""
        with pytest.raises(ValueError):
            Config.model_validate({
                "monitor_cycle": "4s",
                "peer_timeout": "8s",
                "up_threshold": -1,
            })

    def test_peer_requires_name_and_network(self) -> None:
        """Test that peers need a name and a network."""
        for peer in ({"network": "10.0.0.0/8"}, {"name": "x"}, {"name": "", "network": "10.0.0.0/8"}):
            with pytest.raises(ValueError):
                Config.model_validate({
                    "monitor_cycle": "4s",
                    "peer_timeout": "8s",
                    "peers": [peer],
                })


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_valid_yaml(self, tmp_path: Path) -> None:
        """Test loading a valid YAML configuration file."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
up_threshold: 3
down_threshold: 2
monitor_cycle: "4s"
peer_timeout: "8s"
webhook: "https://hooks.example.com/global"
notifier:
  type: "slack"
  config:
    timeout: 5
peers:
  - name: "Comcast"
    network: "192.168.1.0/24"
  - name: "Cogeco :fire:"
    network: "10.0.0.0/16"
    down_threshold: 5
    webhook: "https://hooks.example.com/cogeco"
""")

        config = load_config(config_file)

        assert config.up_threshold == 3
        assert config.monitor_cycle == "4s"
        assert config.notifier.type == "slack"
        assert config.notifier.config == {"timeout": 5}
        assert [p.name for p in config.peers] == ["Comcast", "Cogeco :fire:"]
        assert config.peers[1].down_threshold == 5
        assert config.peers[1].webhook == "https://hooks.example.com/cogeco"

    def test_load_json(self, tmp_path: Path) -> None:
        """Test that JSON configuration files load too."""
        config_file = tmp_path / "config.json"
        config_file.write_text("""{
  "UpThreshold": 2,
  "DownThreshold": 2,
  "MonitorCycle": "3s",
  "PeerTimeout": "6s",
  "Peers": [{"Name": "Home", "Network": "172.16.0.0/12"}]
}""")

        config = load_config(config_file)

        assert config.monitor_cycle_seconds == 3.0
        assert config.peers[0].name == "Home"

    def test_load_missing_file(self) -> None:
        """Test that loading a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/config.yaml")

    def test_load_invalid_yaml(self, tmp_path: Path) -> None:
        """Test that invalid YAML raises an error."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("invalid: yaml: content: [")

        with pytest.raises(Exception):  # yaml.YAMLError
            load_config(config_file)

    def test_load_non_mapping(self, tmp_path: Path) -> None:
        """Test that a document that is not a mapping is rejected."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- just\n- a list\n")

        with pytest.raises(ValueError, match="validation error"):
            load_config(config_file)

    def test_load_invalid_content(self, tmp_path: Path) -> None:
        """Test that schema violations raise ValueError."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("""
monitor_cycle: "4s"
peers:
  - name: "Comcast"
    network: "192.168.1.0/24"
""")

        with pytest.raises(ValueError, match="validation error"):
            load_config(config_file)
