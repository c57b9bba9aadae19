"""
Data models for the Listing Watch system.

This module contains the data classes used throughout the application for
representing listings, diffs, configuration and delivery results.
"""

from .config import Configuration, NotifierConfig, SourceConfig, StorageConfig
from .diff import DiffResult, RecordChange
from .notification import DeliveryResult, NotificationMessage
from .record import Record, RecordCollection, deserialize_records, serialize_records

__all__ = [
    "Record",
    "RecordCollection",
    "serialize_records",
    "deserialize_records",
    "DiffResult",
    "RecordChange",
    "NotificationMessage",
    "DeliveryResult",
    "Configuration",
    "SourceConfig",
    "StorageConfig",
    "NotifierConfig",
]
