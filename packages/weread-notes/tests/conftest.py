"""Shared pytest fixtures for weread-notes tests."""

import json
from pathlib import Path
from typing import Any

import pytest
import responses

from weread_notes.config import RetryConfig

# Path to JSON payload fixtures
FIXTURES_DIR = Path(__file__).parent / "fixtures"

BASE_URL = "https://i.weread.qq.com"
BOOK_ID = "812345"
COOKIES = {"wr_vid": "10001", "wr_skey": "skey-abc", "wr_name": "reader"}


def load_fixture(path: str) -> Any:
    """Load a JSON fixture file.

    Args:
        path: Relative path within the fixtures directory

    Returns:
        Parsed JSON content
    """
    with open(FIXTURES_DIR / path, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def chapter_infos():
    """Load chapterInfos response fixture (all three outline shapes)."""
    return load_fixture("chapter_infos.json")


@pytest.fixture
def bookmark_list():
    """Load bookmarklist response fixture."""
    return load_fixture("bookmarklist.json")


@pytest.fixture
def best_bookmark_list():
    """Load bestbookmarks response fixture."""
    return load_fixture("bestbookmarks.json")


@pytest.fixture
def shelf():
    """Load friendCommon shelf response fixture."""
    return load_fixture("shelf.json")


@pytest.fixture
def notebooks():
    """Load notebooks response fixture."""
    return load_fixture("notebooks.json")


@pytest.fixture
def book_info():
    """Load book info response fixture."""
    return load_fixture("book_info.json")


@pytest.fixture
def no_wait_retry():
    """Retry policy with the default attempt count and no sleeping."""
    return RetryConfig(max_attempts=3, initial_delay=0.0, max_delay=0.0)


@pytest.fixture
def weread_api(no_wait_retry):
    """Create a WeReadAPI instance for testing."""
    from weread_notes.api import WeReadAPI
    api = WeReadAPI(COOKIES, retry=no_wait_retry)
    yield api
    api.close()


@pytest.fixture
def mock_responses():
    """Context manager for mocking HTTP responses.

    Usage:
        def test_something(mock_responses):
            mock_responses.add(responses.GET, url, json=data)
            # ... test code
    """
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def mock_book(mock_responses, chapter_infos, bookmark_list, best_bookmark_list, book_info):
    """Register every per-book endpoint for BOOK_ID."""
    mock_responses.add(responses.GET, f"{BASE_URL}/book/bookmarklist", json=bookmark_list)
    mock_responses.add(responses.GET, f"{BASE_URL}/book/bestbookmarks", json=best_bookmark_list)
    mock_responses.add(responses.POST, f"{BASE_URL}/book/chapterInfos", json=chapter_infos)
    mock_responses.add(responses.GET, f"{BASE_URL}/book/info", json=book_info)
    return mock_responses
