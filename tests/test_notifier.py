"""
Unit tests for change report formatting and email delivery.
"""

import smtplib
from unittest.mock import patch

import pytest

from listing_watch.components.notifier import (
    ChangeReportFormatter,
    EmailNotifier,
    NotifierFactory,
)
from listing_watch.models.config import NotifierConfig
from listing_watch.utils.error_handling import ConfigError, get_error_tracker

DIFF_BODY = (
    '<span style="color:green;">+ {&quot;title&quot;: &quot;B&quot;, '
    "&quot;location&quot;: &quot;L2&quot;, &quot;url&quot;: &quot;u2&quot;}</span>"
)


@pytest.fixture
def notifier():
    return EmailNotifier(
        sender="watcher@example.com",
        recipients=["watcher@example.com", "team@example.com"],
        password="app-password",
        subject="Job Listing Changes",
        retry_delay=0.01,
    )


class TestChangeReportFormatter:
    """Test cases for ChangeReportFormatter."""

    def test_html_wraps_diff_in_pre_block(self):
        message = ChangeReportFormatter("Job Listing Changes").format_report(DIFF_BODY)

        assert message.subject == "Job Listing Changes"
        assert '<h1 style="color:blue;">Job Changes</h1>' in message.html_body
        assert f'<pre style="font-family:monospace;">{DIFF_BODY}</pre>' in message.html_body

    def test_text_body_is_unescaped_diff(self):
        message = ChangeReportFormatter("Subject").format_report(DIFF_BODY)

        assert message.text_body == '+ {"title": "B", "location": "L2", "url": "u2"}'

    def test_explicit_text_body(self):
        message = ChangeReportFormatter("Subject").format_report(DIFF_BODY, text_body="plain")

        assert message.text_body == "plain"

    def test_heading_is_escaped(self):
        message = ChangeReportFormatter("Subject", heading="Jobs & <Roles>").format_report("x")

        assert "Jobs &amp; &lt;Roles&gt;" in message.html_body

    def test_invalid_subject_rejected(self):
        with pytest.raises(ValueError, match="line breaks"):
            ChangeReportFormatter("Line one\nLine two").format_report("x")


class TestEmailNotifier:
    """Test cases for EmailNotifier."""

    def test_build_email(self, notifier):
        email = notifier.build_email(notifier.formatter.format_report(DIFF_BODY))

        assert email["From"] == "watcher@example.com"
        assert email["To"] == "watcher@example.com, team@example.com"
        assert email["Subject"] == "Job Listing Changes"
        assert email.is_multipart()
        html_part = email.get_body(preferencelist=("html",))
        assert "Job Changes" in html_part.get_content()

    @patch("smtplib.SMTP")
    def test_notify_success(self, mock_smtp, notifier):
        smtp = mock_smtp.return_value.__enter__.return_value

        result = notifier.notify(DIFF_BODY)

        assert result.success is True
        assert result.error_message is None
        mock_smtp.assert_called_once_with("smtp.gmail.com", 587, timeout=30)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("watcher@example.com", "app-password")
        smtp.send_message.assert_called_once()
        sent = smtp.send_message.call_args[0][0]
        assert sent["Subject"] == "Job Listing Changes"

    @patch("smtplib.SMTP")
    def test_notify_without_tls(self, mock_smtp):
        smtp = mock_smtp.return_value.__enter__.return_value
        notifier = EmailNotifier(
            sender="a@example.com",
            recipients=["a@example.com"],
            password="pw",
            subject="S",
            smtp_host="localhost",
            smtp_port=25,
            username="relay-user",
            use_tls=False,
        )

        assert notifier.notify("x").success is True
        smtp.starttls.assert_not_called()
        smtp.login.assert_called_once_with("relay-user", "pw")

    @patch("smtplib.SMTP")
    def test_notify_failure_without_retries(self, mock_smtp, notifier):
        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"Bad credentials")

        result = notifier.notify(DIFF_BODY)

        assert result.success is False
        assert "Failed after 1 attempts" in result.error_message
        assert "Bad credentials" in result.error_message
        assert mock_smtp.call_count == 1

    @patch("listing_watch.components.notifier.time.sleep")
    @patch("smtplib.SMTP")
    def test_notify_retries_then_succeeds(self, mock_smtp, mock_sleep, notifier):
        notifier.max_retries = 2
        smtp = mock_smtp.return_value.__enter__.return_value
        smtp.send_message.side_effect = [ConnectionResetError("reset"), None]

        result = notifier.notify(DIFF_BODY)

        assert result.success is True
        assert smtp.send_message.call_count == 2
        assert result.attempts == 2
        mock_sleep.assert_called_once_with(0.01)

    @patch("listing_watch.components.notifier.time.sleep")
    @patch("smtplib.SMTP")
    def test_notify_exhausts_retries(self, mock_smtp, mock_sleep, notifier):
        notifier.max_retries = 2
        mock_smtp.side_effect = OSError("unreachable")

        result = notifier.notify(DIFF_BODY)

        assert result.success is False
        assert "Failed after 3 attempts" in result.error_message
        assert result.attempts == 3
        assert mock_smtp.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.01, 0.02]

    @patch("smtplib.SMTP")
    def test_test_connection_success(self, mock_smtp, notifier):
        smtp = mock_smtp.return_value.__enter__.return_value

        assert notifier.test_connection() is True
        smtp.noop.assert_called_once()

    @patch("smtplib.SMTP")
    def test_test_connection_failure_returns_false(self, mock_smtp, notifier):
        mock_smtp.side_effect = OSError("unreachable")

        assert notifier.test_connection() is False
        assert get_error_tracker().get_error_stats()["total_errors"] == 1


class TestNotifierFactory:
    """Test cases for NotifierFactory."""

    def test_create_email_notifier(self):
        config = NotifierConfig(
            sender="watcher@example.com",
            recipients=["watcher@example.com"],
            subject="Defense Unicorns Job Change",
            password="app-password",
            max_retries=1,
        )

        notifier = NotifierFactory.create_notifier(config)

        assert isinstance(notifier, EmailNotifier)
        assert notifier.username == "watcher@example.com"
        assert notifier.max_retries == 1
        assert notifier.formatter.subject == "Defense Unicorns Job Change"

    def test_missing_password(self):
        config = NotifierConfig(
            sender="watcher@example.com",
            recipients=["watcher@example.com"],
            password_secret="GMAIL_APP_PASSWORD",
        )

        with pytest.raises(ConfigError, match="password"):
            NotifierFactory.create_notifier(config)

    def test_unsupported_type(self):
        config = NotifierConfig(
            sender="watcher@example.com",
            recipients=["watcher@example.com"],
            password="pw",
            type="sms",
        )

        with pytest.raises(ConfigError, match="Unsupported"):
            NotifierFactory.create_notifier(config)
