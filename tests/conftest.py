"""Shared test fixtures for the notion-site test suite."""

from __future__ import annotations

import pytest

from notionsite.config import NotionSiteConfig
from notionsite.converter.engine import RenderingEngine
from notionsite.converter.enrich import Enricher


@pytest.fixture
def config(tmp_path) -> NotionSiteConfig:
    """Default test configuration with a dummy token, writing into tmp_path."""
    return NotionSiteConfig(
        token="test_token_1234",
        database_id="db-root",
        home_path=str(tmp_path / "site"),
        retry_max_attempts=2,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        retry_jitter=False,
        rate_limit_rps=10_000.0,
    )


@pytest.fixture
def engine(config: NotionSiteConfig) -> RenderingEngine:
    """Rendering engine without media downloads or network enrichment."""
    return RenderingEngine(config, enricher=Enricher(config))
