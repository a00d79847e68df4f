"""
Disclosure Ingest - Persistence Gateway

Deduplicating writer in front of the database: resolve the politician,
check the natural key, insert only new transactions.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from modules.db_manager import DatabaseManager, get_db
from modules.errors import PersistenceError
from modules.models import NormalizedTransaction, SaveResult
from modules.politicians import build_politician

persist_logger = logging.getLogger("disclosure_ingest.persistence")


class PersistenceGateway:
    """Insert-or-skip storage of normalized transactions."""

    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db or get_db()

    def save(self, tx: NormalizedTransaction) -> bool:
        """
        Store one transaction unless its natural key already exists.

        Returns True when a row was written, False for a duplicate.

        Raises:
            PersistenceError: if a storage read or write fails.
        """
        politician = self.db.get_or_create_politician(
            build_politician(tx.politician, tx.chamber, tx.politician_hints),
            chamber_known=bool(tx.chamber or tx.politician_hints.get("chamber")),
        )

        if self.db.transaction_exists(
            politician.id, tx.ticker, tx.transaction_date.isoformat(),
            tx.amount, tx.filing_url
        ):
            persist_logger.debug(f"Duplicate skipped: {tx.politician} {tx.ticker} {tx.amount}")
            return False

        row_id = self.db.insert_transaction(politician.id, tx)
        if row_id is None:
            # Inserted concurrently between the check and the write
            persist_logger.debug(f"Duplicate skipped at insert: {tx.politician} {tx.ticker}")
            return False

        persist_logger.info(
            f"Saved {tx.transaction_type} {tx.ticker} by {tx.politician} "
            f"({tx.amount}, {tx.provenance.value})"
        )
        return True

    def save_all(self, records: Iterable[NormalizedTransaction]) -> SaveResult:
        """Save each record; a failed write is counted and the rest continue."""
        result = SaveResult()
        for tx in records:
            try:
                if self.save(tx):
                    result.saved += 1
                else:
                    result.skipped += 1
            except PersistenceError as e:
                result.failed += 1
                persist_logger.error(f"Failed to save {tx.ticker} for {tx.politician}: {e}")
        return result
