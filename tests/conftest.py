"""Shared test configuration and fixtures."""

from typing import Any, Optional
from unittest.mock import Mock, patch

import pytest
import requests

from modules.db_manager import DatabaseManager
from modules.fetcher import DocumentFetcher


@pytest.fixture
def db(tmp_path):
    """Create an isolated database for testing."""
    return DatabaseManager(tmp_path / "test.db")


@pytest.fixture(autouse=True)
def no_sleep():
    """Never wait on politeness delays or retry backoff."""
    with patch("modules.fetcher.time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture
def fake_fetcher(tmp_path):
    """DocumentFetcher stand-in; tests set return values per method."""
    fetcher = Mock(spec=DocumentFetcher)
    fetcher.temp_dir = tmp_path
    fetcher.session = requests.Session()
    return fetcher


def make_response(status_code: int = 200,
                  text: str = "",
                  json_data: Any = None,
                  url: str = "https://example.gov/",
                  content: Optional[bytes] = None) -> Mock:
    """Build a requests.Response-like mock."""
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.text = text
    response.url = url
    response.content = content if content is not None else text.encode()
    if json_data is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def response_factory():
    return make_response
