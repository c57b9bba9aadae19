"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the Listing Watch test suite.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from unittest.mock import Mock

import pytest

from listing_watch.components.listing_fetcher import FetchResult
from listing_watch.models.config import (
    Configuration,
    NotifierConfig,
    SourceConfig,
    StorageConfig,
)
from listing_watch.models.notification import DeliveryResult
from listing_watch.models.record import Record
from listing_watch.utils import logging as logging_utils
from listing_watch.utils.error_handling import StoreTransientError, get_error_tracker
from listing_watch.utils.logging import ROOT_LOGGER_NAME


class InMemorySnapshotStore:
    """Snapshot store double that records every call."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self.objects: Dict[str, bytes] = dict(initial or {})
        self.gets: List[str] = []
        self.puts: List[Tuple[str, bytes]] = []
        self.deletes: List[str] = []
        self.fail_put_keys: set = set()

    def get(self, key: str) -> Optional[bytes]:
        self.gets.append(key)
        return self.objects.get(key)

    def put(self, key: str, data: bytes) -> None:
        if key in self.fail_put_keys:
            raise StoreTransientError(f"simulated put failure for {key}")
        self.puts.append((key, data))
        self.objects[key] = data

    def delete(self, key: str) -> None:
        self.deletes.append(key)
        self.objects.pop(key, None)


# Test data fixtures
@pytest.fixture
def record_a():
    return Record(title="A", location="L1", url="u1")


@pytest.fixture
def record_b():
    return Record(title="B", location="L2", url="u2")


@pytest.fixture
def sample_records(record_a, record_b):
    """Create a sample record collection for testing."""
    return [record_a, record_b]


@pytest.fixture
def sample_html():
    """Listing page markup in the job board's layout."""
    return """
    <html>
      <body>
        <div class="job-post">
          <a href="https://job-boards.greenhouse.io/acme/jobs/1">
            <p class="body body--medium">Platform Engineer</p>
            <p class="body body__secondary body--metadata">Remote, US</p>
          </a>
        </div>
        <div class="job-post">
          <a href="/acme/jobs/2">
            <p class="body body--medium">  Site Reliability
               Engineer </p>
            <p class="body body__secondary body--metadata">Denver, CO</p>
          </a>
        </div>
        <div class="other">
          <p class="body body--medium">Not a listing</p>
        </div>
      </body>
    </html>
    """


@pytest.fixture
def source_config():
    """Create a SourceConfig for the sample page."""
    return SourceConfig(
        target_url="https://job-boards.greenhouse.io/acme",
        allowed_domains=["job-boards.greenhouse.io"],
        listing_selector=".job-post",
        title_selector="p.body.body--medium",
        location_selector="p.body.body__secondary.body--metadata",
        url_selector="a",
        url_attribute="href",
    )


@pytest.fixture
def sample_configuration(source_config, tmp_path):
    """Create a local-storage Configuration for testing."""
    return Configuration(
        source=source_config,
        storage=StorageConfig(type="local", directory=str(tmp_path / "store")),
        notifier=NotifierConfig(
            sender="watcher@example.com",
            recipients=["watcher@example.com"],
            subject="Job Listing Changes",
            password="app-password",
        ),
        local_file=str(tmp_path / "jobs.json"),
        log_dir=str(tmp_path / "logs"),
    )


# Mock fixtures
@pytest.fixture
def memory_store():
    return InMemorySnapshotStore()


@pytest.fixture
def mock_fetcher(sample_records):
    """Create a fetcher double returning the sample records."""
    fetcher = Mock()
    fetcher.fetch.return_value = FetchResult(records=list(sample_records))
    return fetcher


@pytest.fixture
def mock_notifier():
    """Create a notifier double that always succeeds."""
    notifier = Mock()
    notifier.notify.return_value = DeliveryResult(
        success=True, delivery_time=datetime.now(timezone.utc), error_message=None
    )
    notifier.test_connection.return_value = True
    return notifier


@pytest.fixture(autouse=True)
def reset_error_tracker():
    """Each test starts with an empty error tracker."""
    get_error_tracker().clear()
    yield
    get_error_tracker().clear()


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging during a test."""
    yield
    logging_utils._logging_manager = None
    for name in [ROOT_LOGGER_NAME] + list(logging_utils.COMPONENTS.values()):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()


# Environment fixtures
@pytest.fixture
def mock_env_vars():
    """Set environment variables used by configuration files."""
    env_vars = {
        "NOTIFY_EMAIL": "watcher@example.com",
        "GMAIL_PASSWORD": "app-password",
    }

    original_values = {}
    for key, value in env_vars.items():
        original_values[key] = os.environ.get(key)
        os.environ[key] = value

    yield env_vars

    for key, original_value in original_values.items():
        if original_value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original_value


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


def pytest_collection_modifyitems(config, items):
    """Add the unit marker to every test not marked otherwise."""
    for item in items:
        if not any(
            marker.name in ["integration", "slow"] for marker in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)
