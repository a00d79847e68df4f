"""
Disclosure Ingest - Transaction Extractor

Ordered, pluggable format parsers over raw document content. The first
parser that finds structural matches wins; every candidate it produced is
then checked against one validation contract and invalid ones are dropped.
"""
from __future__ import annotations

import re
import logging
from datetime import datetime
from typing import Optional, Sequence

from bs4 import BeautifulSoup

from modules.errors import ParseError
from modules.models import RawTransaction

extract_logger = logging.getLogger("disclosure_ingest.extractor")

# -----------------------------------------------------------------------------
# Validation contract
# -----------------------------------------------------------------------------
TICKER_RE = re.compile(r'^[A-Z]{1,5}$')
DATE_RE = re.compile(r'(\d{1,2})/(\d{1,2})/(\d{4})')
TYPE_KEYWORDS = ("buy", "sell", "sale", "purchase", "exchange")
CURRENCY_MARKER = "$"


def is_calendar_date(value: Optional[str]) -> bool:
    """True when value holds an m/d/Y date that exists on the calendar."""
    match = DATE_RE.search(value or "")
    if not match:
        return False
    month, day, year = (int(g) for g in match.groups())
    try:
        datetime(year, month, day)
    except ValueError:
        return False
    return True


def validate_candidate(raw: RawTransaction) -> bool:
    """True when the candidate satisfies every field rule."""
    if not TICKER_RE.match(raw.ticker or ""):
        return False
    type_token = (raw.transaction_type or "").lower()
    if not any(k in type_token for k in TYPE_KEYWORDS):
        return False
    if not is_calendar_date(raw.transaction_date):
        return False
    return CURRENCY_MARKER in (raw.amount or "")


# Shared regex fragments for text patterns
_TYPE = r'(Buy|Sell|Sale|Purchase|Exchange)'
_TICKER = r'\b((?-i:[A-Z]{1,5}))'
_DATE = r'(\d{1,2}/\d{1,2}/\d{4})'
_AMOUNT = r'(\$[\d,]+(?:\s*[-–]\s*\$[\d,]+)?)'


# -----------------------------------------------------------------------------
# Format parsers
# -----------------------------------------------------------------------------
class FormatParser:
    """One document layout. parse() returns structural matches, unvalidated."""

    name = "base"

    def parse(self, content: str) -> list[RawTransaction]:
        raise NotImplementedError


class RegexParser(FormatParser):
    """Parser driven by a single regex with five groups."""

    pattern: re.Pattern
    # Order of (ticker, company, type, date, amount) within the match groups
    group_order: tuple[int, int, int, int, int] = (1, 2, 3, 4, 5)

    def parse(self, content: str) -> list[RawTransaction]:
        results = []
        t, c, ty, d, a = self.group_order
        for match in self.pattern.finditer(content):
            results.append(RawTransaction(
                ticker=match.group(t).strip(),
                company_name=match.group(c).strip(),
                transaction_type=match.group(ty).strip(),
                transaction_date=match.group(d).strip(),
                amount=match.group(a).strip(),
            ))
        return results


class PipeDelimitedParser(FormatParser):
    """
    Pipe-separated rows, in either column order:

        AAPL | Apple Inc | Buy | 01/15/2024 | $1,001 - $15,000
        Apple Inc | AAPL | Buy | 01/15/2024 | $1,001 - $15,000
    """

    name = "pipe"
    _cell = r'\s*([^|\n]+?)\s*'
    # Ticker cells are matched case-sensitively so "Intel" stays a company name
    TICKER_FIRST = re.compile(
        r'^\s*((?-i:[A-Z]{1,5}))\s*\|' + r'\|'.join([_cell] * 4) + r'(?:\||$)',
        re.IGNORECASE | re.MULTILINE,
    )
    COMPANY_FIRST = re.compile(
        r'^' + _cell + r'\|\s*((?-i:[A-Z]{1,5}))\s*\|' + r'\|'.join([_cell] * 3) + r'(?:\||$)',
        re.IGNORECASE | re.MULTILINE,
    )

    def parse(self, content: str) -> list[RawTransaction]:
        results = []
        for line in content.splitlines():
            match = self.TICKER_FIRST.match(line)
            if match:
                ticker, company, ttype, tdate, amount = match.groups()
            else:
                match = self.COMPANY_FIRST.match(line)
                if not match:
                    continue
                company, ticker, ttype, tdate, amount = match.groups()
            results.append(RawTransaction(
                ticker=ticker.strip(),
                company_name=company.strip(),
                transaction_type=ttype.strip(),
                transaction_date=tdate.strip(),
                amount=amount.strip(),
            ))
        return results


class TypeFirstParser(RegexParser):
    """Buy AAPL Apple Inc 01/15/2024 $1,001 - $15,000"""

    name = "type_first"
    pattern = re.compile(
        _TYPE + r'\s+' + _TICKER + r'\s+([^$\n]+?)\s+' + _DATE + r'\s+' + _AMOUNT,
        re.IGNORECASE,
    )
    group_order = (2, 3, 1, 4, 5)


class TickerFirstParser(RegexParser):
    """AAPL Apple Inc Buy 01/15/2024 $1,001 - $15,000"""

    name = "ticker_first"
    pattern = re.compile(
        _TICKER + r'\s+([^$\n]+?)\s+' + _TYPE + r'\s+' + _DATE + r'\s+' + _AMOUNT,
        re.IGNORECASE,
    )


class LabeledTextParser(RegexParser):
    """Security: AAPL Company: Apple Inc Transaction: Buy Date: 01/15/2024 Amount: $1,001"""

    name = "labeled"
    pattern = re.compile(
        r'Security:\s*((?-i:[A-Z]{1,5}))\s+Company:\s*([^\n]+?)\s+'
        r'Transaction:\s*' + _TYPE + r'\s+Date:\s*' + _DATE + r'\s+Amount:\s*' + _AMOUNT,
        re.IGNORECASE,
    )


class PtrCodeParser(FormatParser):
    """
    Electronic House PTR text layer, one transaction per asset line:

        SP Apple Inc. (AAPL) [ST] P 01/15/2024 01/20/2024 $1,001 - $15,000
    """

    name = "ptr_code"
    CODES = {"P": "Purchase", "S": "Sale", "S (partial)": "Sale (Partial)", "E": "Exchange"}
    pattern = re.compile(
        r'^(?:(?:SP|JT|DC)\s+)?([^\n(]*?)\s*\(([A-Z]{1,5})\)\s*(?:\[[A-Z]{2}\])?\s*'
        r'(P|S \(partial\)|S|E)\s+' + _DATE + r'\s+\d{1,2}/\d{1,2}/\d{4}\s+' + _AMOUNT,
        re.MULTILINE,
    )

    def parse(self, content: str) -> list[RawTransaction]:
        results = []
        for match in self.pattern.finditer(content):
            company, ticker, code, tdate, amount = match.groups()
            results.append(RawTransaction(
                ticker=ticker,
                company_name=company.strip() or None,
                transaction_type=self.CODES[code],
                transaction_date=tdate,
                amount=re.sub(r'\s+', ' ', amount),
            ))
        return results


class TaggedFieldParser(FormatParser):
    """<transaction><ticker>..</ticker><company>..</company><type>..</type>...</transaction>"""

    name = "tagged"
    FIELDS = ("ticker", "company", "type", "date", "amount")

    def parse(self, content: str) -> list[RawTransaction]:
        if "<transaction" not in content.lower():
            return []
        soup = BeautifulSoup(content, 'lxml')
        results = []
        for node in soup.find_all('transaction'):
            values = {}
            for tag in self.FIELDS:
                child = node.find(tag)
                if child is None:
                    break
                values[tag] = child.get_text(strip=True)
            else:
                results.append(RawTransaction(
                    ticker=values["ticker"],
                    company_name=values["company"],
                    transaction_type=values["type"],
                    transaction_date=values["date"],
                    amount=values["amount"],
                ))
        return results


class HtmlTableParser(FormatParser):
    """
    Transaction rows of rendered HTML tables.

    Columns are located by header keywords (Senate eFD, House HTML, EDGAR
    primary documents). Tables without recognizable headers are read
    positionally as ticker, company, type, date, amount, asset type.
    """

    name = "html_table"
    POSITIONAL = ("ticker", "company", "type", "date", "amount", "asset_type")
    _paren_ticker = re.compile(r'\(([A-Z]{1,5})\)')

    @staticmethod
    def _classify_header(text: str) -> Optional[str]:
        h = text.lower()
        if "asset type" in h:
            return "asset_type"
        if "ticker" in h or "symbol" in h:
            return "ticker"
        if "date" in h:
            return "date"
        if "amount" in h or "value" in h:
            return "amount"
        if "type" in h or h.strip() == "transaction":
            return "type"
        if any(k in h for k in ("asset", "company", "security", "description", "issuer")):
            return "company"
        if "comment" in h:
            return "comment"
        return None

    def _map_headers(self, headers: list[str]) -> dict[str, int]:
        mapping: dict[str, int] = {}
        for idx, text in enumerate(headers):
            key = self._classify_header(text)
            if key is None:
                continue
            # Prefer the transaction date over notification/filing dates
            if key == "date" and "date" in mapping and "transaction" not in text.lower():
                continue
            if key in mapping and key != "date":
                continue
            mapping[key] = idx
        return mapping

    def _ticker_from(self, ticker_cell: str, company: str) -> str:
        ticker = ticker_cell.strip()
        if TICKER_RE.match(ticker):
            return ticker
        # "Apple Inc (AAPL)" style asset names
        match = self._paren_ticker.search(company) or self._paren_ticker.search(ticker)
        return match.group(1) if match else ticker

    def parse(self, content: str) -> list[RawTransaction]:
        if "<table" not in content.lower():
            return []
        soup = BeautifulSoup(content, 'lxml')
        results = []

        for table in soup.find_all('table'):
            rows = table.find_all('tr')
            if not rows:
                continue

            header_cells = rows[0].find_all('th') or rows[0].find_all('td')
            mapping = self._map_headers([c.get_text(" ", strip=True) for c in header_cells])
            positional = not ({"type", "date", "amount"} <= mapping.keys()
                              and ({"ticker", "company"} & mapping.keys()))
            if positional:
                mapping = {k: i for i, k in enumerate(self.POSITIONAL)}
                body = rows if not rows[0].find_all('th') else rows[1:]
            else:
                body = rows[1:]

            for row in body:
                cells = [c.get_text(" ", strip=True) for c in row.find_all('td')]
                if positional and (len(cells) < 5 or not DATE_RE.search(cells[3])):
                    continue

                def cell(key: str) -> str:
                    idx = mapping.get(key)
                    return cells[idx] if idx is not None and idx < len(cells) else ""

                company = cell("company")
                ticker = self._ticker_from(cell("ticker"), company)
                ttype, tdate, amount = cell("type"), cell("date"), cell("amount")
                if not (ticker or company) or not (ttype and tdate and amount):
                    continue

                results.append(RawTransaction(
                    ticker=ticker,
                    company_name=company or None,
                    transaction_type=ttype,
                    transaction_date=tdate,
                    amount=amount,
                    asset_type=cell("asset_type") or None,
                    comment=(cell("comment") if cell("comment") not in ("", "--") else None),
                ))
        return results


# -----------------------------------------------------------------------------
# Extractor
# -----------------------------------------------------------------------------
class TransactionExtractor:
    """Try each parser in order; the first with structural matches wins."""

    def __init__(self, parsers: Sequence[FormatParser]):
        self.parsers = list(parsers)

    def _first_match(self, content: str) -> tuple[Optional[FormatParser], list[RawTransaction]]:
        for parser in self.parsers:
            candidates = parser.parse(content)
            if candidates:
                return parser, candidates
        return None, []

    def _validated(self, parser: FormatParser,
                   candidates: list[RawTransaction]) -> list[RawTransaction]:
        valid = [c for c in candidates if validate_candidate(c)]
        dropped = len(candidates) - len(valid)
        if dropped:
            extract_logger.debug(f"{parser.name}: dropped {dropped} invalid candidates")
        extract_logger.debug(f"{parser.name}: {len(valid)} valid candidates")
        return valid

    def extract(self, content: str) -> list[RawTransaction]:
        """Valid candidates from the winning parser, or [] when none matched."""
        parser, candidates = self._first_match(content)
        if parser is None:
            return []
        return self._validated(parser, candidates)

    def extract_or_raise(self, content: str) -> list[RawTransaction]:
        """Like extract(), but a document no parser recognizes is a ParseError."""
        parser, candidates = self._first_match(content)
        if parser is None:
            raise ParseError(
                "No format parser matched",
                {"parsers": [p.name for p in self.parsers]},
            )
        return self._validated(parser, candidates)
