"""
Modules for the Disclosure Ingest system.

- fetcher: rate-limited HTTP retrieval and temporary downloads
- pdf_text: PDF text layer with OCR fallback
- extractor: pluggable format parsers with one validation contract
- normalizer: canonical type, date and amount range
- scraper_house / scraper_senate / scraper_regulator: government sources
- feed_aggregated / feed_synthetic: bulk feed and offline sample data
- persistence / db_manager: deduplicating SQLite storage
- orchestrator / scheduler: ingestion runs and their recurring triggers

The Senate fallback needs a browser: pip install playwright && playwright install chromium
"""
