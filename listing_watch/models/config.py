"""
Configuration models for the system.
"""

from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse


@dataclass
class SourceConfig:
    """Target page and the CSS selectors used to extract listings."""

    target_url: str
    allowed_domains: List[str]
    listing_selector: str
    title_selector: str
    location_selector: str
    url_selector: str = "a"
    url_attribute: str = "href"
    request_timeout: int = 30
    user_agent: str = "Listing-Watch/1.0"

    def validate(self) -> bool:
        """Validate source configuration."""
        parsed_url = urlparse(self.target_url or "")
        if not parsed_url.scheme or not parsed_url.netloc:
            raise ValueError(f"Invalid target URL format: {self.target_url}")

        if parsed_url.scheme not in ["http", "https"]:
            raise ValueError(f"Target URL must use HTTP or HTTPS: {self.target_url}")

        if not isinstance(self.allowed_domains, list):
            raise ValueError("Allowed domains must be a list")

        for domain in self.allowed_domains:
            if not isinstance(domain, str) or not domain.strip():
                raise ValueError("All allowed domains must be non-empty strings")

        for name in ["listing_selector", "title_selector", "location_selector"]:
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"Source {name} cannot be empty")

        if not self.url_attribute:
            raise ValueError("Source url_attribute cannot be empty")

        if not isinstance(self.request_timeout, int) or self.request_timeout <= 0:
            raise ValueError("Request timeout must be a positive integer")

        return True


@dataclass
class StorageConfig:
    """Where the current snapshot is kept."""

    type: str = "s3"  # "s3" or "local"
    key: str = "jobs.json"
    bucket: Optional[str] = None
    bucket_parameter: Optional[str] = None
    region: Optional[str] = None
    directory: Optional[str] = None
    wait_timeout: int = 60
    pending_marker: bool = True

    def validate(self) -> bool:
        """Validate storage configuration."""
        if self.type not in ["s3", "local"]:
            raise ValueError("Storage type must be 's3' or 'local'")

        if not self.key or not self.key.strip():
            raise ValueError("Storage key cannot be empty")

        if self.type == "s3" and not (self.bucket or self.bucket_parameter):
            raise ValueError("S3 storage requires 'bucket' or 'bucket_parameter'")

        if self.type == "local" and not self.directory:
            raise ValueError("Local storage requires 'directory'")

        if not isinstance(self.wait_timeout, int) or self.wait_timeout <= 0:
            raise ValueError("Wait timeout must be a positive integer")

        return True


@dataclass
class NotifierConfig:
    """Email delivery settings."""

    sender: str
    recipients: List[str]
    subject: str = "Job Listing Changes"
    type: str = "email"
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    password_secret: Optional[str] = None
    use_tls: bool = True
    max_retries: int = 0

    def validate(self) -> bool:
        """Validate notifier configuration."""
        if self.type != "email":
            raise ValueError("Notifier type must be 'email'")

        if not self.sender or "@" not in self.sender:
            raise ValueError(f"Invalid sender address: {self.sender}")

        if not isinstance(self.recipients, list) or not self.recipients:
            raise ValueError("At least one recipient must be configured")

        for recipient in self.recipients:
            if not isinstance(recipient, str) or "@" not in recipient:
                raise ValueError(f"Invalid recipient address: {recipient}")

        if not self.subject or not self.subject.strip():
            raise ValueError("Subject cannot be empty")

        if not self.smtp_host:
            raise ValueError("SMTP host cannot be empty")

        if not isinstance(self.smtp_port, int) or not (0 < self.smtp_port < 65536):
            raise ValueError("SMTP port must be between 1 and 65535")

        if not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise ValueError("Max retries cannot be negative")

        return True


@dataclass
class Configuration:
    """System configuration."""

    source: SourceConfig
    storage: StorageConfig
    notifier: NotifierConfig
    app_name: str = "listing-watch"
    local_file: str = "jobs.json"
    skip_on_degraded_fetch: bool = True
    log_level: str = "INFO"
    log_dir: Optional[str] = "logs"

    def validate(self) -> bool:
        """Validate system configuration."""
        if not self.app_name or not self.app_name.strip():
            raise ValueError("App name cannot be empty")

        if not self.local_file or not self.local_file.strip():
            raise ValueError("Local file cannot be empty")

        if self.log_level.upper() not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError(f"Invalid log level: {self.log_level}")

        self.source.validate()
        self.storage.validate()
        self.notifier.validate()

        return True
