"""
Core components for the Listing Watch system.

This module contains the components that fetch listings, store snapshots,
compare them and deliver change notifications.
"""

from .differencer import Differencer, compare_records
from .listing_fetcher import FetchResult, ListingFetcher, extract_records
from .notifier import ChangeReportFormatter, EmailNotifier, NotifierFactory
from .snapshot_store import LocalSnapshotStore, S3SnapshotStore, create_snapshot_store

__all__ = [
    "ListingFetcher",
    "FetchResult",
    "extract_records",
    "Differencer",
    "compare_records",
    "ChangeReportFormatter",
    "EmailNotifier",
    "NotifierFactory",
    "S3SnapshotStore",
    "LocalSnapshotStore",
    "create_snapshot_store",
]
