"""
Disclosure Ingest - Rendered Browser Session

Playwright Chromium session for pages that only work with a real browser.
The browser and the Playwright driver are closed on every exit path,
including SIGTERM delivered while the session is open.
"""
from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager
from typing import Iterator

from playwright.sync_api import Page, sync_playwright

browser_logger = logging.getLogger("disclosure_ingest.browser")


def _raise_system_exit(signum, frame):
    browser_logger.warning(f"Signal {signum} received, closing browser session")
    raise SystemExit(128 + signum)


@contextmanager
def rendered_session(headless: bool = True, timeout_ms: int = 30000) -> Iterator[Page]:
    """
    Yield a Playwright page inside a managed Chromium session.

    On the main thread SIGTERM is turned into SystemExit for the lifetime
    of the session so the ``finally`` cleanup runs.
    """
    on_main_thread = threading.current_thread() is threading.main_thread()
    previous_handler = None
    if on_main_thread:
        previous_handler = signal.signal(signal.SIGTERM, _raise_system_exit)

    playwright = None
    browser = None
    try:
        playwright = sync_playwright().start()
        browser = playwright.chromium.launch(headless=headless)
        page = browser.new_page()
        page.set_viewport_size({"width": 1280, "height": 800})
        page.set_default_timeout(timeout_ms)
        browser_logger.info("Started Playwright browser")
        yield page
    finally:
        try:
            if browser is not None:
                browser.close()
        finally:
            try:
                if playwright is not None:
                    playwright.stop()
                    browser_logger.info("Stopped Playwright browser")
            finally:
                if on_main_thread:
                    signal.signal(
                        signal.SIGTERM,
                        previous_handler if previous_handler is not None else signal.SIG_DFL,
                    )
