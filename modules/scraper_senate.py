"""
Disclosure Ingest - Senate Financial Disclosure Scraper

Discovers Periodic Transaction Reports on efdsearch.senate.gov. The
prohibition agreement is accepted automatically with a CSRF form post;
if that fails, a rendered browser session accepts it and hands its cookies
to the HTTP session. Reports are then paged through the DataTables API.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional

import requests
from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError

from config.settings import get_config
from modules.browser import rendered_session
from modules.errors import FetchError
from modules.extractor import (
    HtmlTableParser, TickerFirstParser, TransactionExtractor, TypeFirstParser,
)
from modules.fetcher import DocumentFetcher
from modules.models import DiscoveryWindow, FilingReference, RawTransaction
from modules.pdf_text import extract_text, is_pdf
from modules.source_base import SourceConnector

_DATE_RE = re.compile(r'^\s*\d{1,2}/\d{1,2}/\d{4}\s*$')


class SenateConnector(SourceConnector):
    """
    Scraper for Senate financial disclosures.

    HTML (electronic) reports are parsed from their transaction table;
    PDF and paper reports are downloaded and run through text patterns.
    """

    name = "senate"
    chamber = "Senate"

    def __init__(self, fetcher: Optional[DocumentFetcher] = None):
        scraping = get_config().scraping
        self.base_url = scraping.senate_base_url
        self.search_url = f"{self.base_url}/search/"
        self.api_url = f"{self.base_url}/search/report/data/"
        self.page_size = scraping.senate_page_size
        self.headless = scraping.browser_headless
        super().__init__(fetcher or DocumentFetcher(
            delay_seconds=scraping.senate_delay_seconds,
            headers={"Referer": self.search_url},
        ))
        self.html_extractor = TransactionExtractor([HtmlTableParser()])
        self.text_extractor = TransactionExtractor([TickerFirstParser(), TypeFirstParser()])

    # -------------------------------------------------------------------------
    # Agreement / authentication
    # -------------------------------------------------------------------------
    @staticmethod
    def check_auth(response: requests.Response) -> bool:
        """False when the response is the agreement or captcha wall."""
        url = (response.url or "").lower()
        if 'agreement' in url or 'captcha' in url or url.rstrip('/').endswith('/search/home'):
            return False
        content = response.text.lower()
        for marker in ('i understand the prohibitions', 'agree to the terms', 'captcha'):
            if marker in content:
                return False
        return True

    def _csrf_cookie(self) -> Optional[str]:
        for cookie in self.fetcher.session.cookies:
            if cookie.name == 'csrftoken':
                return cookie.value
        return None

    def accept_agreement(self) -> bool:
        """
        Accept the site agreement with a plain form post.

        Returns True once the search page is reachable.
        """
        response = self.fetcher.request("GET", self.search_url, allow_redirects=True)
        if self.check_auth(response):
            return True

        self.logger.info("Accepting Senate agreement automatically...")
        soup = BeautifulSoup(response.text, 'lxml')
        csrf_input = soup.find('input', {'name': 'csrfmiddlewaretoken'})
        csrf_token = csrf_input.get('value') if csrf_input else self._csrf_cookie()
        if not csrf_token:
            self.logger.warning("Could not find CSRF token for agreement acceptance")
            return False

        self.fetcher.post(
            response.url,
            data={'csrfmiddlewaretoken': csrf_token, 'prohibition_agreement': '1'},
            headers={'Referer': response.url, 'Origin': self.base_url},
            allow_redirects=True,
        )
        check = self.fetcher.request("GET", self.search_url, allow_redirects=True)
        if self.check_auth(check):
            self.logger.info("Senate agreement accepted")
            return True
        return False

    def accept_agreement_rendered(self) -> None:
        """Accept the agreement in a real browser and adopt its cookies."""
        self.logger.info("Falling back to rendered browser session for agreement")
        try:
            with rendered_session(headless=self.headless) as page:
                page.goto(self.search_url, wait_until="networkidle")
                if "home" in page.url.lower() or "agreement" in page.url.lower():
                    page.locator('input[type="checkbox"]').first.check()
                    page.wait_for_load_state("networkidle")
                cookies = page.context.cookies()
        except PlaywrightError as e:
            raise FetchError(f"Rendered agreement failed: {e}", url=self.search_url) from e

        for cookie in cookies:
            self.fetcher.session.cookies.set(
                cookie["name"], cookie["value"],
                domain=cookie.get("domain"), path=cookie.get("path", "/"),
            )
        self.logger.debug(f"Adopted {len(cookies)} browser cookies")

    def authenticate(self) -> None:
        """Reach the search page or raise FetchError."""
        if self.accept_agreement():
            return
        self.accept_agreement_rendered()
        response = self.fetcher.request("GET", self.search_url, allow_redirects=True)
        if not self.check_auth(response):
            raise FetchError("Senate agreement could not be accepted", url=self.search_url)

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------
    def _search_payload(self, start: int, window: DiscoveryWindow) -> dict[str, Any]:
        return {
            'start': start,
            'length': self.page_size,
            'report_types': '[11]',
            'filer_types': '[]',
            'submitted_start_date': window.start.strftime("%m/%d/%Y 00:00:00"),
            'submitted_end_date': '',
            'candidate_state': '',
            'senator_state': '',
            'office_id': '',
            'first_name': '',
            'last_name': '',
            'order[0][column]': 4,
            'order[0][dir]': 'desc',
        }

    def parse_api_results(self, data: dict[str, Any],
                          window: DiscoveryWindow) -> list[FilingReference]:
        """
        Parse the DataTables response.

        Rows look like [first, last, "Last, First (Senator)", "<a href=...>", "mm/dd/yyyy"].
        """
        refs = []
        for record in data.get('data', []):
            if not isinstance(record, list):
                continue
            link_html = next((c for c in record if isinstance(c, str) and '<a' in c), None)
            if not link_html:
                continue
            link = BeautifulSoup(link_html, 'lxml').find('a')
            href = link.get('href') if link else None
            if not href:
                continue
            url = self.base_url + href if href.startswith('/') else href

            if len(record) >= 5 and all(isinstance(c, str) for c in record[:2]):
                name = f"{record[0].strip()} {record[1].strip()}"
            else:
                name = link.get_text(strip=True)

            filed = next(
                (c.strip() for c in reversed(record) if isinstance(c, str) and _DATE_RE.match(c)),
                None,
            )
            if filed:
                filed_on = datetime.strptime(filed, "%m/%d/%Y").date()
                if not window.contains(filed_on):
                    continue

            lowered = url.lower()
            is_document = '.pdf' in lowered or '/paper/' in lowered
            refs.append(FilingReference(
                politician=name,
                url=url,
                reported_date=filed,
                chamber=self.chamber,
                format_hint="pdf" if is_document else "html",
            ))
        return refs

    def _next_start(self, data: dict[str, Any], start: int) -> Optional[int]:
        total = data.get('recordsFiltered', data.get('recordsTotal', 0)) or 0
        nxt = start + self.page_size
        if not data.get('data') or nxt >= total:
            return None
        return nxt

    def discover(self, window: DiscoveryWindow, max_pages: int) -> list[FilingReference]:
        self.authenticate()

        def load_page(start: int) -> dict[str, Any]:
            headers = {
                'X-Requested-With': 'XMLHttpRequest',
                'Referer': self.search_url,
                'Origin': self.base_url,
            }
            csrf_token = self._csrf_cookie()
            if csrf_token:
                headers['X-CSRFToken'] = csrf_token
            return self.fetcher.fetch_json(
                self.api_url, method="POST",
                data=self._search_payload(start, window), headers=headers,
            )

        refs: list[FilingReference] = []
        for data in self.fetcher.paginate(load_page, 0, self._next_start, max_pages):
            refs.extend(self.parse_api_results(data, window))
        return refs

    # -------------------------------------------------------------------------
    # Extraction
    # -------------------------------------------------------------------------
    def extract(self, ref: FilingReference) -> list[RawTransaction]:
        if ref.format_hint == "html":
            response = self.fetcher.request("GET", ref.url)
            if not self.check_auth(response):
                raise FetchError("Report hidden behind agreement", url=ref.url)
            return self.html_extractor.extract(response.text)

        with self.fetcher.download(ref.url) as path:
            if is_pdf(path):
                text = extract_text(path)
            else:
                # Paper reports are HTML wrappers around the scanned pages
                html = path.read_text(errors="replace")
                text = BeautifulSoup(html, 'lxml').get_text("\n")
        return self.text_extractor.extract(text)
