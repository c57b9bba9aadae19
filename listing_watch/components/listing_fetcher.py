"""
Listing extraction components for the Listing Watch system.

This module fetches the target page over HTTP and extracts listing
records from it with CSS selectors.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from ..models.config import SourceConfig
from ..models.record import Record, RecordCollection
from ..utils.error_handling import FetchDegradedError, get_error_tracker

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Records extracted by one fetch and whether the fetch degraded."""

    records: RecordCollection = field(default_factory=list)
    degraded: bool = False
    error: Optional[FetchDegradedError] = None


def is_allowed_url(url: str, allowed_domains: List[str]) -> bool:
    """Check that url's host is one of allowed_domains (or a subdomain)."""
    if not allowed_domains:
        return True

    host = (urlparse(url).hostname or "").lower()
    for domain in allowed_domains:
        domain = domain.lower().lstrip(".")
        if host == domain or host.endswith("." + domain):
            return True
    return False


def extract_records(
    html: str, source: SourceConfig, base_url: Optional[str] = None
) -> RecordCollection:
    """
    Extract listing records from page markup.

    Every element matching the listing selector yields one record in
    document order. Missing children yield empty fields; relative URLs are
    resolved against base_url.

    Args:
        html: Page markup
        source: Selectors to apply
        base_url: URL the markup was served from

    Returns:
        Records in page traversal order
    """
    soup = BeautifulSoup(html, "html.parser")

    records = []
    for element in soup.select(source.listing_selector):
        href = ""
        link = element.select_one(source.url_selector)
        if link is not None:
            href = (link.get(source.url_attribute) or "").strip()
            if href and base_url:
                href = urljoin(base_url, href)

        records.append(
            Record(
                title=_child_text(element, source.title_selector),
                location=_child_text(element, source.location_selector),
                url=href,
            )
        )

    return records


def _child_text(element, selector: str) -> str:
    """Concatenated, whitespace-normalized text of all matching children."""
    texts = [child.get_text(" ", strip=True) for child in element.select(selector)]
    return " ".join(" ".join(text.split()) for text in texts if text)


class ListingFetcher:
    """Fetches the configured page and extracts its listings."""

    def __init__(self, source: SourceConfig, session: Optional[requests.Session] = None):
        """
        Initialize listing fetcher.

        Args:
            source: Target page and selectors
            session: HTTP session to use; a new one is created if omitted
        """
        self.source = source
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": source.user_agent})

    def fetch_page(self) -> str:
        """
        Download the target page.

        No retries are attempted.

        Raises:
            FetchDegradedError: On disallowed domain, network or HTTP errors
        """
        url = self.source.target_url
        if not is_allowed_url(url, self.source.allowed_domains):
            raise FetchDegradedError(f"URL not in allowed domains: {url}")

        try:
            logger.debug(f"Fetching listing page: {url}")
            response = self.session.get(url, timeout=self.source.request_timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise FetchDegradedError(f"Timeout fetching {url}", e)
        except requests.exceptions.ConnectionError as e:
            raise FetchDegradedError(f"Connection error for {url}", e)
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            raise FetchDegradedError(f"HTTP error {status} for {url}", e)
        except requests.exceptions.RequestException as e:
            raise FetchDegradedError(f"Request failed for {url}: {e}", e)

        # Redirects may leave the allowed domains
        if not is_allowed_url(response.url or url, self.source.allowed_domains):
            raise FetchDegradedError(
                f"Redirected outside allowed domains: {response.url}"
            )

        return response.text

    def fetch(self) -> FetchResult:
        """
        Fetch the page and extract listings.

        Never raises for network or parse problems: those produce a degraded
        result with no records.
        """
        try:
            html = self.fetch_page()
            records = extract_records(html, self.source, base_url=self.source.target_url)
        except FetchDegradedError as e:
            error = e
        except Exception as e:
            error = FetchDegradedError(f"Failed to parse listing page: {e}", e)
        else:
            logger.info(
                f"Extracted {len(records)} listings from {self.source.target_url}"
            )
            return FetchResult(records=records)

        logger.warning(f"Listing fetch degraded: {error.message}")
        get_error_tracker().record_exception(
            "fetcher", error, context={"url": self.source.target_url}
        )
        return FetchResult(records=[], degraded=True, error=error)

