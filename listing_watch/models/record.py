"""
Record data models for the Listing Watch system.
"""

import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence

from ..utils.error_handling import SerializationError

RECORD_FIELDS = ("title", "location", "url")


@dataclass(frozen=True)
class Record:
    """A single listing scraped from the target page."""

    title: str
    location: str
    url: str

    def validate(self) -> bool:
        """Validate the record fields."""
        for name in RECORD_FIELDS:
            if not isinstance(getattr(self, name), str):
                raise ValueError(f"Record {name} must be a string")

        return True

    def to_dict(self) -> Dict[str, str]:
        """Return the record as a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        """Build a record from a decoded JSON object.

        Missing keys decode to empty strings; unknown keys are ignored.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Record must be a JSON object, got {type(data).__name__}")

        values = {}
        for name in RECORD_FIELDS:
            value = data.get(name, "")
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise ValueError(f"Record {name} must be a string")
            values[name] = value

        return cls(**values)


# Ordered, possibly empty result of one fetch
RecordCollection = List[Record]


def serialize_records(records: Sequence[Record]) -> bytes:
    """
    Encode a record collection as the JSON snapshot format.

    Args:
        records: Records in page traversal order

    Returns:
        UTF-8 encoded JSON array

    Raises:
        SerializationError: If the records cannot be encoded
    """
    try:
        payload = []
        for record in records:
            record.validate()
            payload.append(record.to_dict())
        return json.dumps(payload, indent=1, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError, AttributeError) as e:
        raise SerializationError(f"Failed to encode record collection: {e}", e)


def deserialize_records(data: bytes) -> RecordCollection:
    """
    Decode a JSON snapshot into a record collection.

    An empty payload or a JSON ``null`` decodes to an empty collection.

    Raises:
        SerializationError: If the payload is not a JSON array of records
    """
    try:
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        if not text.strip():
            return []

        decoded = json.loads(text)
        if decoded is None:
            return []
        if not isinstance(decoded, list):
            raise ValueError("snapshot must be a JSON array")

        return [Record.from_dict(item) for item in decoded]

    except (UnicodeDecodeError, json.JSONDecodeError, ValueError) as e:
        raise SerializationError(f"Failed to decode record collection: {e}", e)
