"""
Configuration management for the Listing Watch system.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

import yaml

from ..models.config import Configuration, NotifierConfig, SourceConfig, StorageConfig
from ..utils.error_handling import ConfigError

logger = logging.getLogger(__name__)


class ConfigurationManager:
    """Manages loading and validation of system configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file. If None, uses default paths.
        """
        self.config_path = config_path or self._find_config_file()
        self._config: Optional[Configuration] = None

    def _find_config_file(self) -> str:
        """Find the configuration file in standard locations."""
        possible_paths = [
            "config/config.yaml",
            "config/config.yml",
            "config/config.json",
            "config.yaml",
            "config.yml",
            "config.json",
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        if os.path.exists("config/config.example.yaml"):
            raise ConfigError(
                "No configuration file found. Please copy 'config/config.example.yaml' "
                "to 'config/config.yaml' and customize it for your needs."
            )

        raise ConfigError(
            "No configuration file found. Please create a configuration file "
            "at one of these locations: " + ", ".join(possible_paths)
        )

    def load_config(self) -> Configuration:
        """
        Load configuration from file.

        Returns:
            Configuration object with validated settings.

        Raises:
            ConfigError: If the file is missing, unreadable or invalid.
        """
        raw_config = self._read_file(self.config_path)

        try:
            raw_config = self._expand_env_vars(raw_config)
            config = self._parse_config(raw_config)
            config.validate()
        except ConfigError:
            raise
        except (ValueError, TypeError, AttributeError) as e:
            raise ConfigError(f"Invalid configuration: {e}", e)

        self._config = config
        return config

    def _read_file(self, config_path: str) -> Dict[str, Any]:
        if not os.path.exists(config_path):
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if config_path.endswith(".json"):
                    raw_config = json.load(f)
                else:
                    raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in configuration file: {e}", e)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in configuration file: {e}", e)
        except OSError as e:
            raise ConfigError(f"Error reading configuration: {e}", e)

        if not isinstance(raw_config, dict):
            raise ConfigError("Configuration file must contain a mapping")

        return raw_config

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively expand ${VAR_NAME} values from the environment."""
        if isinstance(obj, dict):
            return {key: self._expand_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [self._expand_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            if obj.startswith("${") and obj.endswith("}"):
                var_name = obj[2:-1]
                env_value = os.getenv(var_name)
                if env_value is None:
                    raise ConfigError(f"Environment variable '{var_name}' not found")
                return env_value
            return obj
        else:
            return obj

    def _parse_config(self, raw_config: Dict[str, Any]) -> Configuration:
        """Parse raw configuration dictionary into Configuration object."""
        app_name = raw_config.get("app_name", "listing-watch")

        source_data = raw_config.get("source") or {}
        selectors = source_data.get("selectors") or {}
        source = SourceConfig(
            target_url=source_data.get("target_url", ""),
            allowed_domains=source_data.get("allowed_domains", []),
            listing_selector=selectors.get("listing", ""),
            title_selector=selectors.get("title", ""),
            location_selector=selectors.get("location", ""),
            url_selector=selectors.get("url", "a"),
            url_attribute=selectors.get("url_attribute", "href"),
            request_timeout=source_data.get("request_timeout", 30),
            user_agent=source_data.get("user_agent", "Listing-Watch/1.0"),
        )

        storage_data = raw_config.get("storage") or {}
        storage = StorageConfig(
            type=storage_data.get("type", "s3"),
            key=storage_data.get("key", "jobs.json"),
            bucket=storage_data.get("bucket"),
            bucket_parameter=storage_data.get("bucket_parameter"),
            region=storage_data.get("region"),
            directory=storage_data.get("directory"),
            wait_timeout=storage_data.get("wait_timeout", 60),
            pending_marker=storage_data.get("pending_marker", True),
        )
        if storage.type == "s3" and not storage.bucket and not storage.bucket_parameter:
            storage.bucket_parameter = f"/{app_name}/s3BucketName"

        notifier_data = raw_config.get("notifier") or {}
        recipients = notifier_data.get("recipients")
        if isinstance(recipients, str):
            recipients = [recipients]
        notifier = NotifierConfig(
            type=notifier_data.get("type", "email"),
            sender=notifier_data.get("sender", ""),
            recipients=recipients or [notifier_data.get("sender", "")],
            subject=notifier_data.get("subject", "Job Listing Changes"),
            smtp_host=notifier_data.get("smtp_host", "smtp.gmail.com"),
            smtp_port=notifier_data.get("smtp_port", 587),
            username=notifier_data.get("username"),
            password=notifier_data.get("password"),
            password_secret=notifier_data.get("password_secret"),
            use_tls=notifier_data.get("use_tls", True),
            max_retries=notifier_data.get("max_retries", 0),
        )

        logging_data = raw_config.get("logging") or {}

        return Configuration(
            source=source,
            storage=storage,
            notifier=notifier,
            app_name=app_name,
            local_file=raw_config.get("local_file", "jobs.json"),
            skip_on_degraded_fetch=raw_config.get("skip_on_degraded_fetch", True),
            log_level=logging_data.get("level", "INFO"),
            log_dir=logging_data.get("dir", "logs"),
        )

    def get_config(self) -> Configuration:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            return self.load_config()
        return self._config

    def validate_config_file(self, config_path: str) -> bool:
        """
        Validate a configuration file without keeping it.

        Environment expansion is skipped when a variable is missing, so
        placeholders in fields with a required format still fail validation.

        Raises:
            ConfigError: If configuration is invalid with detailed error message.
        """
        raw_config = self._read_file(config_path)

        try:
            raw_config = self._expand_env_vars(raw_config)
        except ConfigError as e:
            logger.warning(f"Validating without environment expansion: {e}")

        try:
            self._parse_config(raw_config).validate()
        except (ValueError, TypeError, AttributeError) as e:
            raise ConfigError(f"Configuration validation failed: {e}", e)

        return True

    def get_config_template(self) -> Dict[str, Any]:
        """Get a template configuration dictionary."""
        return {
            "app_name": "du-job-scraping",
            "local_file": "jobs.json",
            "skip_on_degraded_fetch": True,
            "source": {
                "target_url": "https://job-boards.greenhouse.io/defenseunicorns",
                "allowed_domains": ["job-boards.greenhouse.io"],
                "selectors": {
                    "listing": ".job-post",
                    "title": "p.body.body--medium",
                    "location": "p.body.body__secondary.body--metadata",
                    "url": "a",
                    "url_attribute": "href",
                },
                "request_timeout": 30,
            },
            "storage": {
                "type": "s3",
                "key": "jobs.json",
                "bucket_parameter": "/du-job-scraping/s3BucketName",
                "region": "us-east-1",
                "pending_marker": True,
            },
            "notifier": {
                "type": "email",
                "sender": "${NOTIFY_EMAIL}",
                "recipients": ["${NOTIFY_EMAIL}"],
                "subject": "Defense Unicorns Job Change",
                "smtp_host": "smtp.gmail.com",
                "smtp_port": 587,
                "password_secret": "GMAIL_APP_PASSWORD",
            },
            "logging": {"level": "INFO", "dir": "logs"},
        }
