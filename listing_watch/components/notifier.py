"""
Change notification components for the Listing Watch system.

This module formats a diff body into an HTML email and delivers it over
SMTP with optional retry logic.
"""

import logging
import smtplib
import time
from datetime import datetime
from email.message import EmailMessage
from html import escape
from typing import List, Optional

from bs4 import BeautifulSoup

from ..interfaces import INotifier
from ..models.config import NotifierConfig
from ..models.notification import DeliveryResult, NotificationMessage
from ..utils.error_handling import (
    ConfigError,
    ErrorCategory,
    ErrorSeverity,
    with_error_handling,
)

logger = logging.getLogger(__name__)

HTML_TEMPLATE = """<html>
<body>
<h1 style="color:blue;">{heading}</h1>
<pre style="font-family:monospace;">{body}</pre>
</body>
</html>"""


class ChangeReportFormatter:
    """Formats a diff body into a notification message."""

    def __init__(self, subject: str, heading: str = "Job Changes"):
        self.subject = subject
        self.heading = heading

    def format_report(
        self, diff_body: str, text_body: Optional[str] = None
    ) -> NotificationMessage:
        """
        Build the message for a diff.

        Args:
            diff_body: Display-ready diff markup, placed inside a <pre> block
            text_body: Plain-text alternative; derived from diff_body if omitted

        Returns:
            Validated NotificationMessage
        """
        message = NotificationMessage(
            subject=self.subject,
            html_body=HTML_TEMPLATE.format(heading=escape(self.heading), body=diff_body),
            text_body=text_body if text_body is not None else _strip_tags(diff_body),
        )
        message.validate()
        return message


def _strip_tags(markup: str) -> str:
    return BeautifulSoup(markup, "html.parser").get_text()


class EmailNotifier(INotifier):
    """Delivers change reports by email over SMTP."""

    def __init__(
        self,
        sender: str,
        recipients: List[str],
        password: str,
        subject: str,
        smtp_host: str = "smtp.gmail.com",
        smtp_port: int = 587,
        username: Optional[str] = None,
        use_tls: bool = True,
        max_retries: int = 0,
        retry_delay: float = 1.0,
        timeout: int = 30,
    ):
        """
        Initialize email notifier.

        Args:
            sender: From address
            recipients: To addresses
            password: SMTP password
            subject: Fixed subject line
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            username: SMTP login; defaults to the sender address
            use_tls: Whether to upgrade the connection with STARTTLS
            max_retries: Extra delivery attempts after the first failure
            retry_delay: Initial delay between retries in seconds
            timeout: Socket timeout in seconds
        """
        self.sender = sender
        self.recipients = recipients
        self.password = password
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.username = username or sender
        self.use_tls = use_tls
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.formatter = ChangeReportFormatter(subject)

    def build_email(self, message: NotificationMessage) -> EmailMessage:
        """Build a multipart/alternative email for the message."""
        email = EmailMessage()
        email["From"] = self.sender
        email["To"] = ", ".join(self.recipients)
        email["Subject"] = message.subject
        email.set_content(message.text_body or message.subject)
        email.add_alternative(message.html_body, subtype="html")
        return email

    def notify(self, diff_body: str) -> DeliveryResult:
        """
        Format and send a change report.

        Each attempt may deliver a message, so retries can duplicate mail.

        Returns:
            DeliveryResult: Result of delivery attempt
        """
        email = self.build_email(self.formatter.format_report(diff_body))
        start_time = datetime.now()
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                logger.info(
                    f"Attempting to send notification (attempt {attempt + 1}/{self.max_retries + 1})"
                )
                self._send(email)

                delivery_time = datetime.now()
                logger.info(
                    f"Notification sent to {', '.join(self.recipients)} in "
                    f"{(delivery_time - start_time).total_seconds():.2f}s"
                )
                result = DeliveryResult(
                    success=True,
                    delivery_time=delivery_time,
                    error_message=None,
                    attempts=attempt + 1,
                )
                result.validate()
                return result

            except (smtplib.SMTPException, OSError) as e:
                last_error = str(e) or type(e).__name__
                logger.warning(f"Send attempt {attempt + 1} failed: {last_error}")

                if attempt < self.max_retries:
                    sleep_time = self.retry_delay * (2**attempt)
                    logger.info(f"Retrying in {sleep_time:.1f} seconds...")
                    time.sleep(sleep_time)

        error_msg = f"Failed after {self.max_retries + 1} attempts. Last error: {last_error}"
        logger.error(error_msg)

        result = DeliveryResult(
            success=False,
            delivery_time=datetime.now(),
            error_message=error_msg[:500],
            attempts=self.max_retries + 1,
        )
        result.validate()
        return result

    def _send(self, email: EmailMessage) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            smtp.login(self.username, self.password)
            smtp.send_message(email)

    @with_error_handling(
        component="notifier",
        category=ErrorCategory.MESSAGE_DELIVERY,
        severity=ErrorSeverity.LOW,
        fallback_value=False,
        suppress_exceptions=True,
    )
    def test_connection(self) -> bool:
        """Test that the SMTP server accepts our credentials."""
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            smtp.login(self.username, self.password)
            smtp.noop()
        logger.info(f"SMTP connection to {self.smtp_host}:{self.smtp_port} OK")
        return True


class NotifierFactory:
    """Factory for creating notifiers."""

    @staticmethod
    def create_notifier(config: NotifierConfig) -> INotifier:
        """
        Create a notifier for the configured transport.

        Args:
            config: Notifier configuration with a resolved password

        Raises:
            ConfigError: If the transport is unsupported or the password is missing
        """
        if config.type != "email":
            raise ConfigError(f"Unsupported notifier type: {config.type}")

        if not config.password:
            raise ConfigError("Email password has not been resolved")

        return EmailNotifier(
            sender=config.sender,
            recipients=config.recipients,
            password=config.password,
            subject=config.subject,
            smtp_host=config.smtp_host,
            smtp_port=config.smtp_port,
            username=config.username,
            use_tls=config.use_tls,
            max_retries=config.max_retries,
        )
