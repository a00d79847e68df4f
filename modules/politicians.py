"""
Disclosure Ingest - Politician Directory

Best-effort party/chamber/state lookup for politicians first seen in a
filing. Unknown names get "Unknown" party/state and a chamber taken from
the filing source when it has one.
"""
from __future__ import annotations

from typing import Optional

from modules.models import Politician

UNKNOWN = "Unknown"

# name -> (party, chamber, state, district)
KNOWN_POLITICIANS: dict[str, tuple[str, str, str, Optional[str]]] = {
    "Nancy Pelosi": ("Democratic", "House", "CA", "11"),
    "Paul Pelosi": ("Democratic", "House", "CA", "11"),
    "Dan Crenshaw": ("Republican", "House", "TX", "2"),
    "Josh Gottheimer": ("Democratic", "House", "NJ", "5"),
    "Virginia Foxx": ("Republican", "House", "NC", "5"),
    "Brian Mast": ("Republican", "House", "FL", None),
    "Michael McCaul": ("Republican", "House", "TX", None),
    "Pat Fallon": ("Republican", "House", "TX", None),
    "Marjorie Taylor Greene": ("Republican", "House", "GA", None),
    "Ro Khanna": ("Democratic", "House", "CA", None),
    "Katherine Clark": ("Democratic", "House", "MA", None),
    "Kathy Castor": ("Democratic", "House", "FL", None),
    "Debbie Wasserman Schultz": ("Democratic", "House", "FL", None),
    "Alexandria Ocasio-Cortez": ("Democratic", "House", "NY", None),
    "Katie Porter": ("Democratic", "House", "CA", None),
    "Tommy Tuberville": ("Republican", "Senate", "AL", None),
    "Jon Ossoff": ("Democratic", "Senate", "GA", None),
    "Mark Kelly": ("Democratic", "Senate", "AZ", None),
    "Gary Peters": ("Democratic", "Senate", "MI", None),
    "Sheldon Whitehouse": ("Democratic", "Senate", "RI", None),
    "Kirsten Gillibrand": ("Democratic", "Senate", "NY", None),
    "Elizabeth Warren": ("Democratic", "Senate", "MA", None),
    "Ted Cruz": ("Republican", "Senate", "TX", None),
    "Mitt Romney": ("Republican", "Senate", "UT", None),
    "Marco Rubio": ("Republican", "Senate", "FL", None),
    "Josh Hawley": ("Republican", "Senate", "MO", None),
}


def _match_known(name: str) -> Optional[tuple[str, str, str, Optional[str]]]:
    """Substring match so "Hon. Nancy Pelosi" and "Nancy Pelosi (CA11)" resolve."""
    lowered = name.lower()
    # Longest names first so "Paul Pelosi" is not taken for a shorter entry
    for known in sorted(KNOWN_POLITICIANS, key=len, reverse=True):
        if known.lower() in lowered:
            return KNOWN_POLITICIANS[known]
    return None


def build_politician(name: str,
                     chamber: Optional[str] = None,
                     hints: Optional[dict[str, str]] = None) -> Politician:
    """
    Build the record for a politician seen for the first time.

    Explicit hints (e.g. from the regulator registry) win over the lookup
    table, and the table wins over the source chamber.
    """
    hints = hints or {}
    info = _match_known(name)
    return Politician(
        name=name,
        party=hints.get("party") or (info[0] if info else UNKNOWN),
        chamber=hints.get("chamber") or (info[1] if info else chamber or "House"),
        state=hints.get("state") or (info[2] if info else UNKNOWN),
        district=hints.get("district") or (info[3] if info else None),
    )
