"""
Notification message and delivery result models.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class NotificationMessage:
    """A change report ready for delivery."""

    subject: str
    html_body: str
    text_body: str

    def validate(self) -> bool:
        """Validate notification message data."""
        if not isinstance(self.subject, str) or not self.subject.strip():
            raise ValueError("subject cannot be empty")

        if len(self.subject) > 200:
            raise ValueError("subject too long (max 200 characters)")

        if "\n" in self.subject or "\r" in self.subject:
            raise ValueError("subject cannot contain line breaks")

        if not isinstance(self.html_body, str) or not self.html_body.strip():
            raise ValueError("html_body cannot be empty")

        if not isinstance(self.text_body, str):
            raise ValueError("text_body must be a string")

        return True


@dataclass
class DeliveryResult:
    """Outcome of sending one change report, across all attempts."""

    success: bool
    delivery_time: datetime
    error_message: Optional[str]
    attempts: int = 1

    def validate(self) -> bool:
        if not isinstance(self.delivery_time, datetime):
            raise ValueError("delivery_time must be a datetime object")

        if not isinstance(self.attempts, int) or self.attempts < 1:
            raise ValueError("attempts must be a positive integer")

        if self.success:
            if self.error_message is not None:
                raise ValueError("error_message must be None for a successful delivery")
        else:
            if not self.error_message:
                raise ValueError("error_message is required for a failed delivery")
            if len(self.error_message) > 500:
                raise ValueError("error_message too long (max 500 characters)")

        return True
