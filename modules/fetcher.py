"""
Disclosure Ingest - Document Fetcher

Rate-limited HTTP retrieval shared by every network-backed connector.
Wraps a requests.Session with a minimum inter-request delay, per-request
timeout, 503 backoff, bounded pagination and temporary document downloads.
"""
from __future__ import annotations

import json
import os
import random
import logging
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, TypeVar
from urllib.parse import urlparse

import requests

from config.settings import TEMP_DOCS_DIR, get_config
from modules.errors import FetchError, ParseError

fetch_logger = logging.getLogger("disclosure_ingest.fetcher")

P = TypeVar("P")
C = TypeVar("C")

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
}


class DocumentFetcher:
    """
    Network retrieval with a source-specific politeness delay.

    Every failure surfaces as FetchError scoped to the one url requested,
    so callers can skip the document and keep going.
    """

    def __init__(self,
                 delay_seconds: float = 0.0,
                 timeout: Optional[int] = None,
                 max_retries: Optional[int] = None,
                 retry_base_delay: Optional[float] = None,
                 user_agent: Optional[str] = None,
                 headers: Optional[dict[str, str]] = None,
                 session: Optional[requests.Session] = None,
                 temp_dir: Path = TEMP_DOCS_DIR):
        scraping = get_config().scraping
        self.delay_seconds = delay_seconds
        self.timeout = timeout if timeout is not None else scraping.request_timeout
        self.max_retries = max(1, max_retries if max_retries is not None else scraping.max_retries)
        self.retry_base_delay = (
            retry_base_delay if retry_base_delay is not None else scraping.retry_base_delay
        )
        self.temp_dir = Path(temp_dir)
        self.session = session or requests.Session()
        self._last_request: Optional[float] = None
        self._setup_session(user_agent or random.choice(scraping.user_agents), headers)

    def _setup_session(self, user_agent: str, headers: Optional[dict[str, str]]) -> None:
        """Configure session with headers."""
        self.session.headers.update(DEFAULT_HEADERS)
        self.session.headers["User-Agent"] = user_agent
        if headers:
            self.session.headers.update(headers)

    def __enter__(self) -> "DocumentFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    # -------------------------------------------------------------------------
    # Core request
    # -------------------------------------------------------------------------
    def _throttle(self) -> None:
        """Sleep until the minimum delay since the previous request has passed."""
        if self._last_request is not None and self.delay_seconds > 0:
            elapsed = time.monotonic() - self._last_request
            remaining = self.delay_seconds - elapsed
            if remaining > 0:
                time.sleep(remaining)
        self._last_request = time.monotonic()

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """
        Issue one HTTP request with throttling, timeout and 503 retry.

        Raises:
            FetchError: on timeout, connection failure, or non-success status.
        """
        kwargs.setdefault("timeout", self.timeout)

        for attempt in range(self.max_retries):
            self._throttle()
            try:
                fetch_logger.debug(f"{method} {url} (attempt {attempt + 1}/{self.max_retries})")
                response = self.session.request(method, url, **kwargs)
            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = self.retry_base_delay * (2 ** attempt)
                    fetch_logger.warning(f"Request failed: {e}, retrying in {delay}s...")
                    time.sleep(delay)
                    continue
                raise FetchError(f"Request failed: {e}", url=url) from e

            # Handle rate limiting (503) with retry
            if response.status_code == 503:
                if attempt < self.max_retries - 1:
                    delay = self.retry_base_delay * (2 ** attempt) + random.uniform(0, 1)
                    fetch_logger.warning(f"Rate limited (503), retrying in {delay:.1f}s...")
                    time.sleep(delay)
                    continue
                raise FetchError("Rate limited, max retries exceeded", url=url, status_code=503)

            if response.status_code >= 400:
                raise FetchError(
                    f"HTTP {response.status_code}", url=url, status_code=response.status_code
                )
            return response

        raise FetchError("Request not attempted", url=url)

    # -------------------------------------------------------------------------
    # Convenience wrappers
    # -------------------------------------------------------------------------
    def fetch(self, url: str, **kwargs: Any) -> str:
        """GET a document and return its text."""
        return self.request("GET", url, **kwargs).text

    def post(self, url: str, data: Any = None, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, data=data, **kwargs)

    def fetch_json(self, url: str, method: str = "GET", **kwargs: Any) -> Any:
        """Request a url and decode its JSON body."""
        response = self.request(method, url, **kwargs)
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise ParseError("Invalid JSON response", {"url": url}) from e

    def paginate(self,
                 load_page: Callable[[C], P],
                 first_cursor: C,
                 next_cursor: Callable[[P, C], Optional[C]],
                 max_pages: int) -> Iterator[P]:
        """
        Walk a paginated listing, yielding each loaded page.

        Follows next_cursor until it returns None or max_pages pages have
        been loaded. A failure on the first page propagates; a failure on a
        later page ends the walk with the pages already yielded.
        """
        cursor: Optional[C] = first_cursor
        pages = 0
        while cursor is not None and pages < max_pages:
            try:
                page = load_page(cursor)
            except (FetchError, ParseError) as e:
                if pages == 0:
                    raise
                fetch_logger.warning(f"Stopping pagination after {pages} pages: {e}")
                return
            pages += 1
            yield page
            cursor = next_cursor(page, cursor)
        fetch_logger.debug(f"Pagination finished after {pages} pages")

    @contextmanager
    def download(self, url: str, suffix: Optional[str] = None) -> Iterator[Path]:
        """
        Download a document into a temporary file and yield its path.

        The file is removed when the block exits, whatever the outcome.
        """
        response = self.request("GET", url)
        if suffix is None:
            suffix = Path(urlparse(url).path).suffix or ".bin"

        self.temp_dir.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(suffix=suffix, dir=self.temp_dir)
        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(response.content)
            fetch_logger.debug(f"Downloaded {url} -> {path}")
            yield path
        finally:
            path.unlink(missing_ok=True)
