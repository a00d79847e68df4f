"""
Disclosure Ingest - Synthetic Sample Source

Randomized sample trades over a small fixed universe of politicians and
tickers. Used by test-mode runs, which must work without network access,
and optionally to pad the aggregated feed. Every record is tagged synthetic.
"""
from __future__ import annotations

import random
from datetime import date, timedelta
from typing import Optional

from modules.models import DiscoveryWindow, FilingReference, Provenance, RawTransaction
from modules.source_base import SourceConnector

# name -> party, chamber, state, district
SAMPLE_POLITICIANS: dict[str, dict[str, str]] = {
    "Nancy Pelosi": {"party": "Democratic", "chamber": "House", "state": "CA", "district": "11"},
    "Paul Pelosi": {"party": "Democratic", "chamber": "House", "state": "CA", "district": "11"},
    "Dan Crenshaw": {"party": "Republican", "chamber": "House", "state": "TX", "district": "2"},
    "Josh Gottheimer": {"party": "Democratic", "chamber": "House", "state": "NJ", "district": "5"},
    "Virginia Foxx": {"party": "Republican", "chamber": "House", "state": "NC", "district": "5"},
    "Tommy Tuberville": {"party": "Republican", "chamber": "Senate", "state": "AL"},
    "Jon Ossoff": {"party": "Democratic", "chamber": "Senate", "state": "GA"},
    "Mark Kelly": {"party": "Democratic", "chamber": "Senate", "state": "AZ"},
}

SAMPLE_TICKERS = [
    "AAPL", "MSFT", "GOOGL", "AMZN", "TSLA", "META", "NVDA", "JPM",
    "BAC", "WMT", "JNJ", "PG", "DIS", "NFLX", "CRM", "ORCL",
]

SAMPLE_AMOUNTS = [
    "$1,001 - $15,000",
    "$15,001 - $50,000",
    "$50,001 - $100,000",
    "$100,001 - $250,000",
    "$250,001 - $500,000",
]

SAMPLE_TYPES = ["Buy", "Sell", "Exchange"]

SAMPLE_URL = "https://example.com/filing-{n}"


def generate_trades(count: int,
                    rng: Optional[random.Random] = None,
                    window_days: int = 180,
                    today: Optional[date] = None,
                    url_prefix: str = "sample") -> list[RawTransaction]:
    """Generate ``count`` sample trades dated within the trailing window."""
    rng = rng or random.Random()
    today = today or date.today()
    names = list(SAMPLE_POLITICIANS)
    trades = []

    for i in range(count):
        name = rng.choice(names)
        traded_on = today - timedelta(days=rng.randrange(window_days))
        info = SAMPLE_POLITICIANS[name]
        trades.append(RawTransaction(
            politician=name,
            ticker=rng.choice(SAMPLE_TICKERS),
            company_name=None,
            transaction_type=rng.choice(SAMPLE_TYPES),
            transaction_date=traded_on.strftime("%m/%d/%Y"),
            reported_date=today.strftime("%m/%d/%Y"),
            amount=rng.choice(SAMPLE_AMOUNTS),
            asset_type="Stock",
            filing_url=SAMPLE_URL.format(n=f"{url_prefix}-{i + 1}"),
            chamber=info["chamber"],
            provenance=Provenance.SYNTHETIC,
            politician_hints=dict(info),
        ))
    return trades


class SyntheticConnector(SourceConnector):
    """Offline sample generator; never touches the network."""

    name = "synthetic"
    provenance = Provenance.SYNTHETIC

    def __init__(self, count: int = 50, seed: Optional[int] = None):
        super().__init__(fetcher=None)
        self.count = count
        self.rng = random.Random(seed)

    def discover(self, window: DiscoveryWindow, max_pages: int) -> list[FilingReference]:
        days = max(1, (window.end - window.start).days)
        refs = []
        for trade in generate_trades(self.count, self.rng, days, window.end):
            refs.append(FilingReference(
                politician=trade.politician,
                url=trade.filing_url,
                reported_date=trade.reported_date,
                chamber=trade.chamber,
                format_hint="json",
                payload={"trade": trade},
            ))
        return refs

    def extract(self, ref: FilingReference) -> list[RawTransaction]:
        return [ref.payload["trade"]]
