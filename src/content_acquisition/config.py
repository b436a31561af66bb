"""Extraction-service API key, endpoint and timing knobs, read from the environment or .env."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://api.firecrawl.dev/v2"


def _load_env() -> None:
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)
    else:
        load_dotenv()


@dataclass(frozen=True)
class Settings:
    # Extraction service credentials; empty means "not configured"
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL

    # Retry / polling cadence (seconds)
    retry_base_delay: float = 2.0
    poll_interval: float = 2.0

    # Per-operation request timeouts (seconds)
    scrape_timeout: float = 30.0
    map_timeout: float = 45.0
    extract_timeout: float = 30.0
    extract_poll_timeout: float = 15.0
    search_timeout: float = 30.0
    agent_timeout: float = 120.0

    # Batch fan-out
    batch_concurrency: int = 5

    # Cache-freshness hint sent with every scrape (1 day)
    max_age: int = 86400

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> Settings:
        _load_env()
        return cls(
            api_key=os.getenv("FIRECRAWL_API_KEY", ""),
            base_url=os.getenv("FIRECRAWL_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            retry_base_delay=float(os.getenv("FIRECRAWL_RETRY_BASE_DELAY", "2.0")),
            poll_interval=float(os.getenv("FIRECRAWL_POLL_INTERVAL", "2.0")),
            scrape_timeout=float(os.getenv("FIRECRAWL_TIMEOUT", "30.0")),
            extract_poll_timeout=float(os.getenv("FIRECRAWL_POLL_TIMEOUT", "15.0")),
            batch_concurrency=int(os.getenv("FIRECRAWL_BATCH_CONCURRENCY", "5")),
        )
