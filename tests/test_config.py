"""Tests for configuration loading and validation."""

import json

import pytest

from tracker_sdk.config import CollectorConfig, ConfigurationError, TrackerConfig


class TestDefaults:
    def test_defaults(self):
        config = TrackerConfig(report_url="https://collect.example.com/e")

        assert config.batch_size == 10
        assert config.report_interval == 5000
        assert config.report_interval_seconds == 5.0
        assert config.headers == {}
        assert config.max_retries == 3
        assert config.retry_backoff_seconds == 1.0
        assert config.validate() is config


class TestValidation:
    @pytest.mark.parametrize("url", ["", "collect.example.com", "ftp://collect.example.com", "https://"])
    def test_bad_report_url(self, url):
        with pytest.raises(ConfigurationError):
            TrackerConfig(report_url=url).validate()

    @pytest.mark.parametrize("field, value", [
        ("batch_size", 0),
        ("report_interval", 0),
        ("max_retries", -1),
        ("retry_backoff", -5),
        ("sampling_rate", 1.5),
        ("storage_type", "redis"),
        ("storage_prefix", ""),
        ("max_queue_size", 5),
    ])
    def test_out_of_range(self, field, value):
        config = TrackerConfig(report_url="https://collect.example.com/e")
        setattr(config, field, value)

        with pytest.raises(ConfigurationError):
            config.validate()


class TestLoading:
    def test_from_dict(self):
        config = TrackerConfig.from_dict({
            "report_url": "https://collect.example.com/e",
            "batch_size": 25,
            "headers": {"Authorization": "Bearer t"},
        })

        assert config.batch_size == 25
        assert config.headers == {"Authorization": "Bearer t"}

    def test_unknown_keys_rejected(self):
        with pytest.raises(ConfigurationError, match="reportUrl"):
            TrackerConfig.from_dict({"reportUrl": "https://collect.example.com/e"})

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "tracker.yaml"
        path.write_text(
            "report_url: https://collect.example.com/e\n"
            "report_interval: 1000\n"
            "debug: true\n"
        )

        config = TrackerConfig.from_yaml(str(path))

        assert config.report_interval_seconds == 1.0
        assert config.debug is True

    def test_from_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = TrackerConfig.from_yaml(str(path))

        with pytest.raises(ConfigurationError):
            config.validate()

    def test_from_json(self, tmp_path):
        path = tmp_path / "tracker.json"
        path.write_text(json.dumps({"report_url": "http://localhost:8060/collect", "max_retries": 0}))

        config = TrackerConfig.from_json(str(path))

        assert config.max_retries == 0
        config.validate()

    def test_collector_config_from_yaml(self, tmp_path):
        path = tmp_path / "collector.yaml"
        path.write_text("sink_type: file\nsink_config:\n  path: out/events.jsonl\nport: 9000\n")

        config = CollectorConfig.from_yaml(str(path))

        assert config.sink_type == "file"
        assert config.sink_config == {"path": "out/events.jsonl"}
        assert config.port == 9000
