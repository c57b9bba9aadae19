"""
Protocol interfaces for the Listing Watch system.

These protocols establish the component boundaries the orchestrator
depends on, so each collaborator can be replaced in tests.
"""

from typing import TYPE_CHECKING, Optional, Protocol

from .models.notification import DeliveryResult
from .models.diff import DiffResult

if TYPE_CHECKING:
    from .components.listing_fetcher import FetchResult


class IListingFetcher(Protocol):
    """Protocol for extracting listings from the target page."""

    def fetch(self) -> "FetchResult":
        """Fetch the target page and extract its listings."""
        ...


class ISnapshotStore(Protocol):
    """Protocol for durable storage of the current snapshot."""

    def get(self, key: str) -> Optional[bytes]:
        """Return stored bytes, or None when the key was never written."""
        ...

    def put(self, key: str, data: bytes) -> None:
        """Overwrite the value stored under key."""
        ...

    def delete(self, key: str) -> None:
        """Remove key; a missing key is not an error."""
        ...


class IDifferencer(Protocol):
    """Protocol for structural comparison of serialized collections."""

    def diff(self, old: bytes, new: bytes) -> DiffResult:
        """Compare two serialized record collections."""
        ...


class INotifier(Protocol):
    """Protocol for delivering change reports."""

    def notify(self, diff_body: str) -> DeliveryResult:
        """Format and deliver a change report."""
        ...

    def test_connection(self) -> bool:
        """Test connection to the delivery transport."""
        ...
