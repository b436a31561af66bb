"""Tests for content_acquisition.config module."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from content_acquisition.config import DEFAULT_BASE_URL, Settings


class TestSettings:
    def test_default_values(self):
        s = Settings(api_key="test-key")
        assert s.api_key == "test-key"
        assert s.base_url == DEFAULT_BASE_URL
        assert s.retry_base_delay == 2.0
        assert s.poll_interval == 2.0
        assert s.scrape_timeout == 30.0
        assert s.map_timeout == 45.0
        assert s.extract_timeout == 30.0
        assert s.extract_poll_timeout == 15.0
        assert s.search_timeout == 30.0
        assert s.agent_timeout == 120.0
        assert s.batch_concurrency == 5
        assert s.max_age == 86400

    def test_frozen_dataclass(self):
        s = Settings(api_key="test-key")
        with pytest.raises(AttributeError):
            s.api_key = "new-key"  # type: ignore[misc]

    def test_has_credentials(self):
        assert Settings(api_key="k").has_credentials is True
        assert Settings().has_credentials is False

    def test_from_env_reads_env_vars(self):
        env = {
            "FIRECRAWL_API_KEY": "fc-live-key",
            "FIRECRAWL_BASE_URL": "https://firecrawl.internal/v2/",
            "FIRECRAWL_RETRY_BASE_DELAY": "0.5",
            "FIRECRAWL_POLL_INTERVAL": "1",
            "FIRECRAWL_TIMEOUT": "10",
            "FIRECRAWL_POLL_TIMEOUT": "60",
            "FIRECRAWL_BATCH_CONCURRENCY": "3",
        }
        with patch.dict("os.environ", env, clear=False), \
             patch("content_acquisition.config.load_dotenv"):
            s = Settings.from_env()
            assert s.api_key == "fc-live-key"
            assert s.base_url == "https://firecrawl.internal/v2"
            assert s.retry_base_delay == 0.5
            assert s.poll_interval == 1.0
            assert s.scrape_timeout == 10.0
            assert s.extract_poll_timeout == 60.0
            assert s.batch_concurrency == 3

    def test_from_env_without_key_is_not_an_error(self):
        with (
            patch.dict("os.environ", {}, clear=True),
            patch("content_acquisition.config.load_dotenv"),
        ):
            s = Settings.from_env()
        assert s.api_key == ""
        assert s.has_credentials is False
        assert s.base_url == DEFAULT_BASE_URL
