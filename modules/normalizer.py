"""
Disclosure Ingest - Normalizer

Canonical transaction type, date and amount range for extracted candidates,
plus politician display-name cleanup.
"""
from __future__ import annotations

import re
import logging
from datetime import datetime
from typing import Optional

from modules.models import NormalizedTransaction, Provenance, RawTransaction

norm_logger = logging.getLogger("disclosure_ingest.normalizer")

# Checked in order; "sale" must not be shadowed by later tokens
TYPE_TOKENS: list[tuple[tuple[str, ...], str]] = [
    (("buy", "purchase"), "Buy"),
    (("sell", "sale"), "Sell"),
    (("exchange",), "Exchange"),
]

_MDY_RE = re.compile(r'^\s*(\d{1,2})/(\d{1,2})/(\d{4})')
_ISO_RE = re.compile(r'^\s*(\d{4})-(\d{2})-(\d{2})')
_RANGE_RE = re.compile(r'\$\s*([\d,]*\d)\s*[-–]\s*\$?\s*([\d,]*\d)')
_SINGLE_RE = re.compile(r'\$\s*([\d,]*\d)')


def normalize_transaction_type(token: str) -> str:
    """Map a free-text type token to Buy/Sell/Exchange, else pass it through."""
    lowered = (token or "").lower()
    for needles, canonical in TYPE_TOKENS:
        if any(n in lowered for n in needles):
            return canonical
    return token


def normalize_date(value: Optional[str], now: Optional[datetime] = None) -> datetime:
    """
    Parse a disclosure date to midnight of that day.

    Accepts m/d/Y (documents) and Y-m-d (structured feeds). Anything else
    falls back to midnight of the processing day, so repeated runs on the
    same day produce the same key.
    """
    fallback = (now or datetime.now()).replace(hour=0, minute=0, second=0, microsecond=0)
    if not value:
        return fallback

    match = _MDY_RE.match(value)
    if match:
        month, day, year = (int(g) for g in match.groups())
    else:
        match = _ISO_RE.match(value)
        if not match:
            norm_logger.debug(f"Unparsable date {value!r}, using processing time")
            return fallback
        year, month, day = (int(g) for g in match.groups())

    try:
        return datetime(year, month, day)
    except ValueError:
        norm_logger.debug(f"Invalid calendar date {value!r}, using processing time")
        return fallback


def _to_int(digits: str) -> int:
    return int(digits.replace(',', ''))


def parse_amount_range(amount: Optional[str]) -> Optional[tuple[int, int]]:
    """
    "$a - $b" -> (a, b); "$v" -> (v, v); otherwise None.

    Reversed bounds are swapped so min <= max always holds.
    """
    if not amount:
        return None

    match = _RANGE_RE.search(amount)
    if match:
        low, high = _to_int(match.group(1)), _to_int(match.group(2))
        return (low, high) if low <= high else (high, low)

    match = _SINGLE_RE.search(amount)
    if match:
        value = _to_int(match.group(1))
        return value, value

    return None


def normalize_amount(amount: Optional[str]) -> str:
    """Display form of an amount: whitespace collapsed, otherwise as filed."""
    return re.sub(r'\s+', ' ', amount or '').strip()


def normalize_name(name: str) -> str:
    """
    Clean a politician name for display.

    Handles formats like:
    - "Pelosi, Hon.. Nancy"
    - "Hon. Nancy Pelosi"
    - "Senator Mark Kelly"
    """
    name = re.sub(r'\bHon\b\.*\s*', '', name, flags=re.IGNORECASE)
    name = re.sub(r'\bSenator\s+', '', name, flags=re.IGNORECASE)

    # "Last, First" -> "First Last"
    if ',' in name:
        last, first = name.split(',', 1)
        name = f"{first.strip()} {last.strip()}"

    name = re.sub(r'\s+', ' ', name)
    return name.strip(' .,')


def normalize_candidate(raw: RawTransaction,
                        source: str,
                        default_provenance: Provenance,
                        now: Optional[datetime] = None) -> NormalizedTransaction:
    """Turn an extracted candidate into its canonical form."""
    now = now or datetime.now()
    amount = normalize_amount(raw.amount)
    bounds = parse_amount_range(amount)

    return NormalizedTransaction(
        politician=normalize_name(raw.politician or "Unknown"),
        ticker=raw.ticker.strip().upper(),
        company_name=raw.company_name.strip() if raw.company_name else None,
        transaction_type=normalize_transaction_type(raw.transaction_type.strip()),
        transaction_date=normalize_date(raw.transaction_date, now),
        reported_date=normalize_date(raw.reported_date, now),
        amount=amount,
        amount_min=bounds[0] if bounds else None,
        amount_max=bounds[1] if bounds else None,
        asset_type=raw.asset_type or "Stock",
        filing_url=raw.filing_url or "",
        comment=raw.comment,
        source=source,
        provenance=raw.provenance or default_provenance,
        chamber=raw.chamber,
        politician_hints=dict(raw.politician_hints),
    )
