"""content-acquisition - resilient async client for a remote scraping/extraction service."""

__version__ = "0.1.0"

from content_acquisition.client import AcquisitionClient
from content_acquisition.config import Settings
from content_acquisition.models import (
    BatchResult,
    ExtractResult,
    ScrapeOptions,
    ScrapeResult,
    SearchRecord,
    SearchResult,
)

__all__ = [
    "AcquisitionClient",
    "BatchResult",
    "ExtractResult",
    "ScrapeOptions",
    "ScrapeResult",
    "SearchRecord",
    "SearchResult",
    "Settings",
]
