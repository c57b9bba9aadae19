"""
Unit tests for configuration management.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from listing_watch.models.config import Configuration
from listing_watch.services.config_manager import ConfigurationManager
from listing_watch.utils.error_handling import ConfigError

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "config" / "config.example.yaml"


@pytest.fixture
def raw_config():
    """A complete configuration dictionary using local storage."""
    return {
        "app_name": "acme-jobs",
        "local_file": "jobs.json",
        "source": {
            "target_url": "https://job-boards.greenhouse.io/acme",
            "allowed_domains": ["job-boards.greenhouse.io"],
            "selectors": {
                "listing": ".job-post",
                "title": "p.body.body--medium",
                "location": "p.body.body__secondary.body--metadata",
            },
        },
        "storage": {"type": "local", "directory": "snapshots"},
        "notifier": {
            "sender": "${NOTIFY_EMAIL}",
            "password": "${GMAIL_PASSWORD}",
        },
        "logging": {"level": "DEBUG", "dir": "run-logs"},
    }


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


class TestConfigurationManager:
    """Test cases for ConfigurationManager."""

    def test_load_yaml_config(self, tmp_path, raw_config, mock_env_vars):
        path = write_yaml(tmp_path / "config.yaml", raw_config)

        config = ConfigurationManager(path).load_config()

        assert isinstance(config, Configuration)
        assert config.app_name == "acme-jobs"
        assert config.source.listing_selector == ".job-post"
        assert config.source.url_selector == "a"
        assert config.source.url_attribute == "href"
        assert config.storage.type == "local"
        assert config.storage.directory == "snapshots"
        assert config.notifier.sender == "watcher@example.com"
        assert config.notifier.password == "app-password"
        assert config.notifier.recipients == ["watcher@example.com"]
        assert config.log_level == "DEBUG"
        assert config.log_dir == "run-logs"
        assert config.skip_on_degraded_fetch is True

    def test_load_json_config(self, tmp_path, raw_config, mock_env_vars):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(raw_config), encoding="utf-8")

        config = ConfigurationManager(str(path)).load_config()

        assert config.source.target_url == "https://job-boards.greenhouse.io/acme"

    def test_missing_env_var(self, tmp_path, raw_config, monkeypatch):
        monkeypatch.delenv("NOTIFY_EMAIL", raising=False)
        monkeypatch.setenv("GMAIL_PASSWORD", "app-password")
        path = write_yaml(tmp_path / "config.yaml", raw_config)

        with pytest.raises(ConfigError, match="NOTIFY_EMAIL"):
            ConfigurationManager(path).load_config()

    def test_recipients_string_becomes_list(self, tmp_path, raw_config, mock_env_vars):
        raw_config["notifier"]["recipients"] = "team@example.com"
        path = write_yaml(tmp_path / "config.yaml", raw_config)

        config = ConfigurationManager(path).load_config()

        assert config.notifier.recipients == ["team@example.com"]

    def test_s3_bucket_parameter_default(self, tmp_path, raw_config, mock_env_vars):
        raw_config["storage"] = {"type": "s3"}
        path = write_yaml(tmp_path / "config.yaml", raw_config)

        config = ConfigurationManager(path).load_config()

        assert config.storage.bucket is None
        assert config.storage.bucket_parameter == "/acme-jobs/s3BucketName"
        assert config.storage.key == "jobs.json"

    def test_invalid_values_raise_config_error(self, tmp_path, raw_config, mock_env_vars):
        raw_config["source"]["target_url"] = "ftp://example.com"
        path = write_yaml(tmp_path / "config.yaml", raw_config)

        with pytest.raises(ConfigError, match="HTTP or HTTPS"):
            ConfigurationManager(path).load_config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            ConfigurationManager(str(tmp_path / "missing.yaml")).load_config()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("source: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            ConfigurationManager(str(path)).load_config()

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="mapping"):
            ConfigurationManager(str(path)).load_config()

    def test_find_config_file(self, tmp_path, raw_config, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config").mkdir()
        write_yaml(tmp_path / "config" / "config.yaml", raw_config)

        assert ConfigurationManager().config_path == "config/config.yaml"

    def test_find_config_file_points_at_example(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "config.example.yaml").write_text("{}", encoding="utf-8")

        with pytest.raises(ConfigError, match="config.example.yaml"):
            ConfigurationManager()

    def test_no_config_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigError, match="No configuration file found"):
            ConfigurationManager()

    def test_get_config_caches(self, tmp_path, raw_config, mock_env_vars):
        manager = ConfigurationManager(write_yaml(tmp_path / "config.yaml", raw_config))

        assert manager.get_config() is manager.get_config()

    def test_validate_config_file_skips_expansion_without_env(self, tmp_path, monkeypatch):
        monkeypatch.delenv("NOTIFY_EMAIL", raising=False)
        manager = ConfigurationManager(str(EXAMPLE_CONFIG))

        with pytest.raises(ConfigError, match="Invalid sender"):
            manager.validate_config_file(str(EXAMPLE_CONFIG))

    def test_validate_config_file_warns_about_skipped_expansion(
        self, tmp_path, raw_config, monkeypatch
    ):
        monkeypatch.delenv("GMAIL_PASSWORD", raising=False)
        raw_config["notifier"]["sender"] = "watcher@example.com"
        path = write_yaml(tmp_path / "config.yaml", raw_config)

        with patch("listing_watch.services.config_manager.logger") as mock_logger:
            assert ConfigurationManager(path).validate_config_file(path) is True

        message = mock_logger.warning.call_args[0][0]
        assert "GMAIL_PASSWORD" in message

    def test_example_config_loads(self, mock_env_vars):
        config = ConfigurationManager(str(EXAMPLE_CONFIG)).load_config()

        assert config.source.target_url == "https://job-boards.greenhouse.io/defenseunicorns"
        assert config.storage.bucket_parameter == "/du-job-scraping/s3BucketName"
        assert config.notifier.password_secret == "GMAIL_APP_PASSWORD"
        assert config.notifier.subject == "Defense Unicorns Job Change"

    def test_template_validates(self, tmp_path, mock_env_vars):
        manager = ConfigurationManager(str(EXAMPLE_CONFIG))
        path = write_yaml(tmp_path / "template.yaml", manager.get_config_template())

        assert manager.validate_config_file(path) is True
