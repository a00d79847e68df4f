"""
Disclosure Ingest - Database Manager

SQLite storage for politicians, disclosed transactions, ingestion runs and
the event log. Transactions are keyed by their natural key and are never
updated in place.
"""
from __future__ import annotations

import json
import sqlite3
import logging
from datetime import datetime
from pathlib import Path
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional, Iterator

from config.settings import DATABASE_PATH
from modules.errors import PersistenceError
from modules.models import NormalizedTransaction, Politician, RunStatus, ScrapeRun

# Module logger
db_logger = logging.getLogger("disclosure_ingest.db")


@dataclass
class LogEntry:
    """Represents a system log entry."""
    level: str
    module: str
    message: str
    created_at: Optional[str] = None
    id: Optional[int] = None


# -----------------------------------------------------------------------------
# Database Schema
# -----------------------------------------------------------------------------
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS politicians (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    party TEXT NOT NULL DEFAULT 'Unknown',
    chamber TEXT NOT NULL,
    state TEXT NOT NULL DEFAULT 'Unknown',
    district TEXT,
    created_at TEXT DEFAULT (datetime('now')),
    UNIQUE(name, chamber)
);

CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    politician_id INTEGER NOT NULL,
    ticker TEXT NOT NULL,
    company_name TEXT,
    transaction_type TEXT NOT NULL,
    transaction_date TEXT NOT NULL,
    reported_date TEXT NOT NULL,
    amount TEXT NOT NULL,
    amount_min INTEGER,
    amount_max INTEGER,
    asset_type TEXT NOT NULL DEFAULT 'Stock',
    filing_url TEXT NOT NULL DEFAULT '',
    comment TEXT,
    source TEXT NOT NULL,
    provenance TEXT NOT NULL CHECK(provenance IN ('verified', 'curated', 'synthetic')),
    created_at TEXT DEFAULT (datetime('now')),
    CHECK(amount_min IS NULL OR amount_max IS NULL OR amount_min <= amount_max),
    UNIQUE(politician_id, ticker, transaction_date, amount, filing_url),
    FOREIGN KEY (politician_id) REFERENCES politicians(id)
);

CREATE TABLE IF NOT EXISTS scrape_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    start_time TEXT NOT NULL,
    end_time TEXT,
    status TEXT NOT NULL CHECK(status IN ('Running', 'Success', 'PartialFailure', 'NoData')),
    max_pages INTEGER,
    test_mode INTEGER DEFAULT 0,
    total_found INTEGER DEFAULT 0,
    total_saved INTEGER DEFAULT 0,
    per_source_found TEXT DEFAULT '{}',
    per_source_saved TEXT DEFAULT '{}',
    errors TEXT DEFAULT '[]'
);

-- System logs
CREATE TABLE IF NOT EXISTS logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    level TEXT NOT NULL,
    module TEXT NOT NULL,
    message TEXT NOT NULL,
    created_at TEXT DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_transactions_ticker ON transactions(ticker);
CREATE INDEX IF NOT EXISTS idx_transactions_politician ON transactions(politician_id);
CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(transaction_date);
CREATE INDEX IF NOT EXISTS idx_transactions_provenance ON transactions(provenance);

CREATE INDEX IF NOT EXISTS idx_runs_start ON scrape_runs(start_time);

CREATE INDEX IF NOT EXISTS idx_logs_level ON logs(level);
CREATE INDEX IF NOT EXISTS idx_logs_created ON logs(created_at);
"""


# -----------------------------------------------------------------------------
# Database Connection Management
# -----------------------------------------------------------------------------
class DatabaseManager:
    """SQLite database manager; one connection per operation."""

    def __init__(self, db_path: Path = DATABASE_PATH):
        self.db_path = Path(db_path)
        self._ensure_db_exists()

    def _ensure_db_exists(self) -> None:
        """Create database and schema if not exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self.get_connection() as conn:
            conn.executescript(SCHEMA_SQL)
            db_logger.info(f"Database initialized at {self.db_path}")

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(
            self.db_path,
            detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
        )
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            db_logger.error(f"Database error: {e}")
            raise
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Politician Operations
    # -------------------------------------------------------------------------
    def find_politician(self, name: str, chamber: Optional[str] = None) -> Optional[Politician]:
        """Look up by display name, narrowed by chamber when known."""
        try:
            with self.get_connection() as conn:
                if chamber:
                    cursor = conn.execute(
                        "SELECT * FROM politicians WHERE name = ? AND chamber = ?",
                        (name, chamber)
                    )
                else:
                    cursor = conn.execute(
                        "SELECT * FROM politicians WHERE name = ? ORDER BY id LIMIT 1",
                        (name,)
                    )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Could not look up politician: {e}", {"name": name}
            ) from e
        return _politician_from_row(row) if row else None

    def get_or_create_politician(self, politician: Politician,
                                 chamber_known: bool = True) -> Politician:
        """
        Return the stored politician, creating it on first sight.

        An existing record is never updated or merged.
        """
        existing = self.find_politician(
            politician.name, politician.chamber if chamber_known else None
        )
        if existing:
            return existing

        try:
            with self.get_connection() as conn:
                conn.execute("""
                    INSERT OR IGNORE INTO politicians (name, party, chamber, state, district)
                    VALUES (?, ?, ?, ?, ?)
                """, (
                    politician.name, politician.party, politician.chamber,
                    politician.state, politician.district
                ))
                row = conn.execute(
                    "SELECT * FROM politicians WHERE name = ? AND chamber = ?",
                    (politician.name, politician.chamber)
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Could not store politician: {e}", {"name": politician.name}
            ) from e

        created = _politician_from_row(row)
        db_logger.info(f"Created politician: {created.name} ({created.chamber}, {created.party})")
        return created

    # -------------------------------------------------------------------------
    # Transaction Operations
    # -------------------------------------------------------------------------
    def transaction_exists(self, politician_id: int, ticker: str,
                           transaction_date: str, amount: str,
                           filing_url: str) -> bool:
        """Check for a stored record with the same natural key."""
        try:
            with self.get_connection() as conn:
                cursor = conn.execute("""
                    SELECT 1 FROM transactions
                    WHERE politician_id = ? AND ticker = ?
                    AND transaction_date = ? AND amount = ? AND filing_url = ?
                """, (politician_id, ticker, transaction_date, amount, filing_url))
                return cursor.fetchone() is not None
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Could not check for duplicate: {e}", {"ticker": ticker}
            ) from e

    def insert_transaction(self, politician_id: int,
                           tx: NormalizedTransaction) -> Optional[int]:
        """
        Insert a transaction, returns the id.

        Returns None when a record with the same natural key already exists.
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.execute("""
                    INSERT INTO transactions
                    (politician_id, ticker, company_name, transaction_type,
                     transaction_date, reported_date, amount, amount_min, amount_max,
                     asset_type, filing_url, comment, source, provenance)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(politician_id, ticker, transaction_date, amount, filing_url)
                    DO NOTHING
                """, (
                    politician_id, tx.ticker, tx.company_name, tx.transaction_type,
                    tx.transaction_date.isoformat(), tx.reported_date.isoformat(),
                    tx.amount, tx.amount_min, tx.amount_max, tx.asset_type,
                    tx.filing_url, tx.comment, tx.source, tx.provenance.value
                ))
                return cursor.lastrowid if cursor.rowcount > 0 else None
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Could not store transaction: {e}",
                {"ticker": tx.ticker, "source": tx.source}
            ) from e

    def get_transactions(self, limit: int = 100,
                         provenance: Optional[str] = None) -> list[dict]:
        """Recent transactions joined with their politician."""
        query = """
            SELECT t.*, p.name AS politician, p.party, p.chamber, p.state
            FROM transactions t JOIN politicians p ON p.id = t.politician_id
        """
        params: tuple = ()
        if provenance:
            query += " WHERE t.provenance = ?"
            params = (provenance,)
        query += " ORDER BY t.transaction_date DESC, t.id DESC LIMIT ?"
        with self.get_connection() as conn:
            cursor = conn.execute(query, params + (limit,))
            return [dict(row) for row in cursor.fetchall()]

    # -------------------------------------------------------------------------
    # Scrape Run Operations
    # -------------------------------------------------------------------------
    def create_run(self, max_pages: Optional[int], test_mode: bool) -> int:
        """Open a run record in Running state."""
        with self.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO scrape_runs (start_time, status, max_pages, test_mode)
                VALUES (?, ?, ?, ?)
            """, (datetime.now().isoformat(), RunStatus.RUNNING.value, max_pages, int(test_mode)))
            return cursor.lastrowid

    def finalize_run(self, run_id: int, status: RunStatus,
                     total_found: int, total_saved: int,
                     per_source_found: dict[str, int],
                     per_source_saved: dict[str, int],
                     errors: list[str]) -> bool:
        """
        Close a run. Only a Running run can be finalized; returns False
        if it was already closed.
        """
        with self.get_connection() as conn:
            cursor = conn.execute("""
                UPDATE scrape_runs
                SET end_time = ?, status = ?, total_found = ?, total_saved = ?,
                    per_source_found = ?, per_source_saved = ?, errors = ?
                WHERE id = ? AND status = ?
            """, (
                datetime.now().isoformat(), status.value, total_found, total_saved,
                json.dumps(per_source_found), json.dumps(per_source_saved),
                json.dumps(errors), run_id, RunStatus.RUNNING.value
            ))
            return cursor.rowcount > 0

    def get_run(self, run_id: int) -> Optional[ScrapeRun]:
        with self.get_connection() as conn:
            row = conn.execute("SELECT * FROM scrape_runs WHERE id = ?", (run_id,)).fetchone()
            return _run_from_row(row) if row else None

    def get_recent_runs(self, limit: int = 20) -> list[ScrapeRun]:
        """Most recent runs first."""
        with self.get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM scrape_runs ORDER BY id DESC LIMIT ?", (limit,)
            )
            return [_run_from_row(row) for row in cursor.fetchall()]

    # -------------------------------------------------------------------------
    # Logging Operations
    # -------------------------------------------------------------------------
    def log_event(self, level: str, module: str, message: str) -> None:
        """Insert a log entry."""
        with self.get_connection() as conn:
            conn.execute("""
                INSERT INTO logs (level, module, message)
                VALUES (?, ?, ?)
            """, (level, module, message))

    def get_recent_logs(self, limit: int = 100,
                        level: Optional[str] = None) -> list[LogEntry]:
        """Get recent log entries."""
        with self.get_connection() as conn:
            if level:
                cursor = conn.execute("""
                    SELECT * FROM logs WHERE level = ?
                    ORDER BY id DESC LIMIT ?
                """, (level, limit))
            else:
                cursor = conn.execute("""
                    SELECT * FROM logs
                    ORDER BY id DESC LIMIT ?
                """, (limit,))
            rows = cursor.fetchall()
            return [LogEntry(**dict(row)) for row in rows]

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------
    def get_stats(self) -> dict:
        """Get database statistics."""
        with self.get_connection() as conn:
            stats = {}

            cursor = conn.execute("SELECT COUNT(*) FROM politicians")
            stats["total_politicians"] = cursor.fetchone()[0]

            cursor = conn.execute("SELECT COUNT(*) FROM transactions")
            stats["total_transactions"] = cursor.fetchone()[0]

            cursor = conn.execute("""
                SELECT provenance, COUNT(*) FROM transactions GROUP BY provenance
            """)
            stats["by_provenance"] = {row[0]: row[1] for row in cursor.fetchall()}

            cursor = conn.execute("SELECT COUNT(*) FROM scrape_runs")
            stats["total_runs"] = cursor.fetchone()[0]

            cursor = conn.execute("SELECT COUNT(*) FROM logs")
            stats["total_logs"] = cursor.fetchone()[0]

            return stats


def _politician_from_row(row: sqlite3.Row) -> Politician:
    return Politician(
        id=row["id"], name=row["name"], party=row["party"],
        chamber=row["chamber"], state=row["state"], district=row["district"],
    )


def _run_from_row(row: sqlite3.Row) -> ScrapeRun:
    return ScrapeRun(
        id=row["id"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        status=row["status"],
        max_pages=row["max_pages"],
        test_mode=bool(row["test_mode"]),
        total_found=row["total_found"],
        total_saved=row["total_saved"],
        per_source_found=json.loads(row["per_source_found"] or "{}"),
        per_source_saved=json.loads(row["per_source_saved"] or "{}"),
        errors=json.loads(row["errors"] or "[]"),
    )


# -----------------------------------------------------------------------------
# Module-level convenience functions
# -----------------------------------------------------------------------------
_db: Optional[DatabaseManager] = None


def get_db() -> DatabaseManager:
    """Get or create the global database manager instance."""
    global _db
    if _db is None:
        _db = DatabaseManager()
    return _db
