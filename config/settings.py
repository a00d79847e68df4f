"""
Disclosure Ingest - Configuration Settings

Centralized configuration management with environment variable loading
for source endpoints, rate limits, feed options and the run scheduler.
"""
from __future__ import annotations

import os
import logging
from pathlib import Path
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load from project root .env file
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).parent.parent
CONFIG_DIR = BASE_DIR / "config"
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
TEMP_DOCS_DIR = DATA_DIR / "tmp_docs"
DATABASE_PATH = Path(os.getenv("DATABASE_PATH", str(DATA_DIR / "disclosures.db")))
REGISTRY_PATH = CONFIG_DIR / "regulator_registry.json"

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
TEMP_DOCS_DIR.mkdir(parents=True, exist_ok=True)

# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format=LOG_FORMAT,
    datefmt=LOG_DATE_FORMAT
)

logger = logging.getLogger("disclosure_ingest")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# -----------------------------------------------------------------------------
# Scraping Configuration
# -----------------------------------------------------------------------------
@dataclass
class ScrapingConfig:
    """Government site endpoints, rate limits and request defaults."""
    # House of Representatives
    house_base_url: str = "https://disclosures-clerk.house.gov"
    house_search_path: str = "/FinancialDisclosure/ViewMemberSearchResult"
    house_delay_seconds: float = field(
        default_factory=lambda: float(os.getenv("HOUSE_DELAY_SECONDS", "2.0"))
    )

    # Senate
    senate_base_url: str = "https://efdsearch.senate.gov"
    senate_page_size: int = 100
    senate_delay_seconds: float = field(
        default_factory=lambda: float(os.getenv("SENATE_DELAY_SECONDS", "3.0"))
    )
    browser_headless: bool = field(
        default_factory=lambda: _env_bool("BROWSER_HEADLESS", True)
    )

    # Request behaviour
    request_timeout: int = field(
        default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "30"))
    )
    max_retries: int = 3
    retry_base_delay: float = 2.0

    # Trailing discovery window
    window_days: int = field(
        default_factory=lambda: int(os.getenv("WINDOW_DAYS", "180"))
    )

    # User agents for rotation
    user_agents: list[str] = field(default_factory=lambda: [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    ])


@dataclass
class RegulatorConfig:
    """SEC EDGAR submissions API configuration."""
    data_url: str = "https://data.sec.gov"
    archive_url: str = "https://www.sec.gov/Archives/edgar/data"
    # SEC requires a descriptive User-Agent with contact details
    user_agent: str = field(default_factory=lambda: os.getenv(
        "SEC_USER_AGENT", "Political-Stock-Tracker/1.0 (contact@example.com)"
    ))
    delay_seconds: float = 0.12  # stays under 10 requests/sec
    registry_path: Path = field(default_factory=lambda: Path(
        os.getenv("REGULATOR_REGISTRY", str(REGISTRY_PATH))
    ))
    forms: tuple[str, ...] = ("PTR", "FD")

    def validate(self) -> bool:
        """Check that the SEC user agent carries contact details."""
        if "@" not in self.user_agent:
            logger.warning("SEC_USER_AGENT should include a contact email")
            return False
        return True


@dataclass
class FeedConfig:
    """Aggregated bulk feed configuration."""
    url: str = field(default_factory=lambda: os.getenv(
        "AGGREGATED_FEED_URL",
        "https://raw.githubusercontent.com/jbesomi/house-stock-watcher/main/data/all_transactions.json",
    ))
    max_records: int = field(
        default_factory=lambda: int(os.getenv("FEED_MAX_RECORDS", "30"))
    )
    # Synthetic records appended purely to pad coverage; 0 disables
    synthetic_padding: int = field(
        default_factory=lambda: int(os.getenv("SYNTHETIC_PADDING", "0"))
    )
    delay_seconds: float = 1.0

    def validate(self) -> bool:
        """Check the feed URL is set."""
        if not self.url:
            logger.warning("AGGREGATED_FEED_URL not configured")
            return False
        return True


@dataclass
class SourcesConfig:
    """Per-connector enable flags."""
    regulator: bool = field(default_factory=lambda: _env_bool("ENABLE_REGULATOR", True))
    aggregated_feed: bool = field(default_factory=lambda: _env_bool("ENABLE_FEED", True))
    house: bool = field(default_factory=lambda: _env_bool("ENABLE_HOUSE", True))
    senate: bool = field(default_factory=lambda: _env_bool("ENABLE_SENATE", True))


# -----------------------------------------------------------------------------
# Scheduler Configuration
# -----------------------------------------------------------------------------
@dataclass
class SchedulerConfig:
    """Recurring ingestion triggers."""
    timezone: str = field(
        default_factory=lambda: os.getenv("SCHEDULER_TIMEZONE", "America/New_York")
    )

    # Daily run at 11:00
    daily_cron: str = field(
        default_factory=lambda: os.getenv("DAILY_SCRAPE_CRON", "0 11 * * *")
    )
    daily_max_pages: int = 5

    # Weekly deep run, Sunday 08:00
    weekly_cron: str = field(
        default_factory=lambda: os.getenv("WEEKLY_SCRAPE_CRON", "0 8 * * sun")
    )
    weekly_max_pages: int = 10

    # Manual trigger
    manual_max_pages: int = 3

    autostart: bool = field(
        default_factory=lambda: _env_bool("SCHEDULER_AUTOSTART", True)
    )


# -----------------------------------------------------------------------------
# Global Config Instance
# -----------------------------------------------------------------------------
@dataclass
class Config:
    """Main configuration container."""
    scraping: ScrapingConfig = field(default_factory=ScrapingConfig)
    regulator: RegulatorConfig = field(default_factory=RegulatorConfig)
    feed: FeedConfig = field(default_factory=FeedConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)

    def validate_all(self) -> dict[str, bool]:
        """Validate source configurations."""
        return {
            "regulator": self.regulator.validate(),
            "aggregated_feed": self.feed.validate(),
        }


# Singleton config instance
config = Config()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config
