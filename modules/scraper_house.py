"""
Disclosure Ingest - House of Representatives Scraper

Discovers Periodic Transaction Reports on disclosures-clerk.house.gov
through the member search form and extracts transactions from the
downloaded PTR documents.
"""
from __future__ import annotations

import re
from typing import Optional

from bs4 import BeautifulSoup

from config.settings import get_config
from modules.extractor import (
    HtmlTableParser, PipeDelimitedParser, PtrCodeParser, TransactionExtractor, TypeFirstParser,
)
from modules.fetcher import DocumentFetcher
from modules.models import DiscoveryWindow, FilingReference, RawTransaction
from modules.pdf_text import extract_text, is_pdf
from modules.source_base import SourceConnector

_OFFICE_RE = re.compile(r'([A-Z]{2})(\d{1,2})')


class HouseConnector(SourceConnector):
    """
    Scraper for House of Representatives financial disclosures.

    The member search accepts a simple POST form; the results table links
    each filing to its PTR document.

    The listing carries a filing year but no filing date, so discovery is
    only as fine as the window's calendar years: a 180-day window ending in
    December still reads that year's January PTRs.
    """

    name = "house"
    chamber = "House"

    def __init__(self, fetcher: Optional[DocumentFetcher] = None):
        scraping = get_config().scraping
        self.base_url = scraping.house_base_url
        self.search_url = self.base_url + scraping.house_search_path
        super().__init__(fetcher or DocumentFetcher(
            delay_seconds=scraping.house_delay_seconds,
            headers={
                "Referer": f"{self.base_url}/FinancialDisclosure/ViewSearch",
                "Origin": self.base_url,
            },
        ))
        self.pdf_extractor = TransactionExtractor([
            PipeDelimitedParser(),
            TypeFirstParser(),
            PtrCodeParser(),
        ])
        self.html_extractor = TransactionExtractor([HtmlTableParser()])

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------
    def _absolute_url(self, href: str) -> Optional[str]:
        if not href:
            return None
        if href.startswith('http'):
            return href
        if href.startswith('/'):
            return self.base_url + href
        if href.startswith('public_disc'):
            return f"{self.base_url}/{href}"
        return f"{self.base_url}/FinancialDisclosure/{href}"

    def parse_results(self, html: str) -> list[FilingReference]:
        """
        Parse the results table from a search response.

        Table columns: Name (with document link), Office (e.g. "CA12"),
        Filing Year, Filing (e.g. "PTR Original"). Only PTR rows are kept.
        """
        soup = BeautifulSoup(html, 'lxml')

        table = soup.find('table', {'class': 'library-table'})
        if not table:
            for t in soup.find_all('table'):
                if t.find('th', string=lambda x: x and 'Name' in x):
                    table = t
                    break
        if not table:
            self.logger.warning("Results table not found in response")
            return []

        refs = []
        for row in table.find_all('tr')[1:]:
            cells = row.find_all('td')
            if len(cells) < 4:
                continue

            name_link = cells[0].find('a')
            if not name_link:
                continue

            filing_type = cells[3].get_text(strip=True)
            if 'PTR' not in filing_type.upper():
                continue

            url = self._absolute_url(name_link.get('href', ''))
            if not url:
                continue

            hints = {}
            office = _OFFICE_RE.search(cells[1].get_text(strip=True))
            if office:
                hints = {"state": office.group(1), "district": office.group(2)}

            refs.append(FilingReference(
                politician=name_link.get_text(strip=True),
                url=url,
                chamber=self.chamber,
                format_hint="pdf" if url.lower().endswith('.pdf') else "html",
                politician_hints=hints,
            ))
        return refs

    def _next_link(self, html: str) -> Optional[str]:
        soup = BeautifulSoup(html, 'lxml')
        link = soup.find('a', attrs={'rel': 'next'}) or soup.find(
            'a', string=lambda x: x and x.strip().lower() in ('next', 'next »', '»')
        )
        if link and link.get('href'):
            return self._absolute_url(link['href'])
        return None

    def discover(self, window: DiscoveryWindow, max_pages: int) -> list[FilingReference]:
        refs: list[FilingReference] = []
        pages_left = max_pages

        for year in reversed(window.years()):
            if pages_left <= 0:
                break
            payload = {
                'LastName': '',
                'FilingYear': str(year),
                'State': '',
                'District': '',
            }

            def load_page(url: str) -> str:
                if url == self.search_url:
                    return self.fetcher.post(url, data=payload).text
                return self.fetcher.fetch(url)

            pages = 0
            for html in self.fetcher.paginate(
                load_page, self.search_url,
                lambda page, _cursor: self._next_link(page),
                pages_left,
            ):
                pages += 1
                if 'no results found' in html.lower() or 'no matching records' in html.lower():
                    break
                refs.extend(self.parse_results(html))
            pages_left -= pages
            self.logger.info(f"Filing year {year}: {len(refs)} PTR filings so far")

        return refs

    # -------------------------------------------------------------------------
    # Extraction
    # -------------------------------------------------------------------------
    def extract(self, ref: FilingReference) -> list[RawTransaction]:
        if ref.format_hint == "html":
            return self.html_extractor.extract(self.fetcher.fetch(ref.url))

        with self.fetcher.download(ref.url, suffix=".pdf") as path:
            if not is_pdf(path):
                return self.html_extractor.extract(path.read_text(errors="replace"))
            text = extract_text(path)
        return self.pdf_extractor.extract(text)
