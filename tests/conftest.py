# tests/conftest.py
"""Shared fixtures for link checker tests."""

import pytest

from linkcrawl.config import CrawlConfig

from fakes import FakeFetcher, RecordingSink


@pytest.fixture
def fetcher():
    """Fake fetcher with no routes; tests add the pages they need."""
    return FakeFetcher()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def fast_config():
    """Default budgets with the politeness delays removed."""
    return CrawlConfig(page_delay=0, drain_poll_interval=0.001)
