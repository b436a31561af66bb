"""Async client for the scraping/extraction service.

Two failure philosophies live side by side here:

  retried, error-surfaced:  scrape (and batch_scrape), extract, agent.
                            Transient failures are retried or polled through;
                            the result explains what went wrong.
  best-effort:              map_site, search. One attempt, any failure gives
                            an empty result, nothing ever raises.

No operation raises for an expected failure; callers branch on ``success``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from content_acquisition.config import Settings
from content_acquisition.errors import (
    AcquisitionError,
    ConfigurationError,
    PollingTimeoutError,
    UnexpectedResponseError,
)
from content_acquisition.models import (
    BatchResult,
    ExtractResult,
    ScrapeOptions,
    ScrapeResult,
    SearchRecord,
    SearchResult,
)
from content_acquisition.polling import JobPoller
from content_acquisition.retry import Sleep, retrying
from content_acquisition.transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_MAP_SEARCH = "about story mission team blog press careers values history"

# Acquisition-robustness defaults sent with every scrape
SCRAPE_DEFAULTS: dict[str, Any] = {
    "blockAds": True,
    "skipTlsVerification": True,
}

Schema = dict[str, Any] | type[BaseModel]


def _schema_model(schema: Schema | None) -> type[BaseModel] | None:
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return schema
    return None


def _json_schema(schema: Schema | None) -> dict[str, Any] | None:
    model = _schema_model(schema)
    return model.model_json_schema() if model else schema


def _link_url(link: Any) -> str | None:
    """Map responses list plain strings, or objects with a url key."""
    if isinstance(link, str):
        return link
    if isinstance(link, dict) and isinstance(link.get("url"), str):
        return link["url"]
    return None


def _search_records(payload: Any) -> list[SearchRecord]:
    if not isinstance(payload, dict) or not payload.get("success"):
        raise UnexpectedResponseError("No results")
    data = payload.get("data")
    if isinstance(data, dict):
        data = data.get("web")
    if not isinstance(data, list):
        raise UnexpectedResponseError("No results")

    records = []
    for item in data:
        try:
            records.append(SearchRecord.model_validate(item))
        except ValidationError:
            logger.debug("Skipping malformed search record: %.100r", item)
    return records


def _scrape_result(url: str, payload: dict[str, Any], attempts: int) -> ScrapeResult:
    data = payload.get("data") or {}
    if not isinstance(data, dict):
        raise UnexpectedResponseError(f"Scrape data is {type(data).__name__}, expected object")
    metadata = data.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise UnexpectedResponseError(
            f"Scrape metadata is {type(metadata).__name__}, expected object"
        )

    metadata = dict(metadata)
    screenshot = data.get("screenshot")
    if screenshot:
        metadata["screenshot"] = screenshot
    try:
        return ScrapeResult(
            success=True,
            url=url,
            markdown=data.get("markdown") or "",
            html=data.get("html"),
            screenshot=screenshot,
            metadata=metadata,
            attempts=attempts,
        )
    except ValidationError as exc:
        raise UnexpectedResponseError(
            f"Malformed scrape data ({exc.error_count()} invalid field(s))"
        ) from exc


class AcquisitionClient:
    """
    Entry point for scrape, map, extract, search, batch and agent calls.

    Use as an async context manager so the underlying HTTP client is closed::

        async with AcquisitionClient(Settings.from_env()) as client:
            result = await client.scrape("https://example.com")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self._transport = Transport(self.settings, client=http_client)
        self._sleep = sleep
        self._poller = JobPoller(
            self._transport,
            interval=self.settings.poll_interval,
            sleep=sleep,
            clock=clock,
        )

    async def __aenter__(self) -> AcquisitionClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._transport.aclose()

    def _missing_credentials(self, operation: str) -> ConfigurationError | None:
        try:
            self._transport.ensure_configured()
        except ConfigurationError as exc:
            logger.warning("%s, skipping %s", exc, operation)
            return exc
        return None

    # ------------------------------------------------------------------
    # Scrape
    # ------------------------------------------------------------------

    async def scrape(self, url: str, options: ScrapeOptions | None = None) -> ScrapeResult:
        """Fetch one page, retrying transient failures with linear backoff."""
        if not url:
            raise ValueError("url is required")
        options = options or ScrapeOptions()

        if exc := self._missing_credentials(f"scrape of {url}"):
            return ScrapeResult.failure(url, str(exc), exc.kind)

        body = {
            "url": url,
            "formats": list(options.formats),
            "onlyMainContent": options.only_main_content,
            "removeBase64Images": options.remove_base64_images,
            "maxAge": self.settings.max_age,
            **SCRAPE_DEFAULTS,
        }
        timeout = options.timeout or self.settings.scrape_timeout

        attempts = 0
        try:
            async for attempt in retrying(
                options.retries,
                self.settings.retry_base_delay,
                sleep=self._sleep,
                label=url,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    response = await self._transport.request(
                        "POST", "/scrape", json=body, timeout=timeout
                    )
                    payload = response.raise_for_status().body
                    if not isinstance(payload, dict) or not payload.get("success"):
                        raise UnexpectedResponseError("Service returned success:false")
                    result = _scrape_result(url, payload, attempts)
        except AcquisitionError as exc:
            logger.error("Scrape failed for %s after %d attempt(s): %s", url, attempts, exc)
            return ScrapeResult.failure(url, str(exc), exc.kind, attempts)

        logger.info("Scrape success: %.50s (%d chars)", url, len(result.markdown))
        return result

    async def batch_scrape(
        self,
        urls: Iterable[str],
        options: ScrapeOptions | None = None,
        *,
        concurrency: int | None = None,
    ) -> BatchResult:
        """
        Scrape many URLs in waves of at most ``concurrency`` at a time.

        A wave starts only once every scrape of the previous wave resolved.
        Duplicate URLs are scraped once.
        """
        if concurrency is None:
            concurrency = self.settings.batch_concurrency
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")

        unique = list(dict.fromkeys(urls))
        if not all(unique):
            raise ValueError("urls must be non-empty strings")

        results: dict[str, ScrapeResult] = {}
        for start in range(0, len(unique), concurrency):
            wave = unique[start:start + concurrency]
            logger.debug("Batch wave %d: %d URLs", start // concurrency + 1, len(wave))
            wave_results = await asyncio.gather(
                *(self.scrape(u, options) for u in wave), return_exceptions=True
            )
            for url, outcome in zip(wave, wave_results):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    logger.error("Scrape of %s raised unexpectedly: %r", url, outcome)
                    outcome = ScrapeResult.failure(url, str(outcome) or repr(outcome),
                                                   type(outcome).__name__)
                results[url] = outcome

        batch = BatchResult(results=results)
        logger.info("Batch scrape completed: %d/%d successful", batch.succeeded, batch.total)
        return batch

    # ------------------------------------------------------------------
    # Map / search (best-effort)
    # ------------------------------------------------------------------

    async def map_site(
        self,
        url: str,
        *,
        search: str = DEFAULT_MAP_SEARCH,
        limit: int = 50,
        include_subdomains: bool = False,
        timeout: float | None = None,
    ) -> list[str]:
        """Discover internal pages of a site. Returns [] on any failure."""
        if self._missing_credentials("map"):
            return []

        body = {
            "url": url,
            "search": search,
            "sitemap": "include",
            "includeSubdomains": include_subdomains,
            "limit": limit,
        }
        logger.info("Mapping website: %s", url)
        try:
            response = await self._transport.request(
                "POST", "/map", json=body, timeout=timeout or self.settings.map_timeout
            )
            payload = response.raise_for_status().body
            if not isinstance(payload, dict) or not payload.get("success"):
                raise UnexpectedResponseError("Service returned success:false")
            links = payload.get("links")
            if not isinstance(links, list):
                raise UnexpectedResponseError("links is not a list")
            urls = [u for u in map(_link_url, links) if u]
        except Exception as exc:
            logger.warning("Map failed for %s: %s", url, exc)
            return []

        logger.info("Map found %d pages", len(urls))
        return urls[:max(limit, 0)]

    async def search(
        self,
        query: str,
        *,
        limit: int = 5,
        scrape_formats: Sequence[str] = ("markdown",),
        timeout: float | None = None,
    ) -> SearchResult:
        """Web search with scraped result content. Never raises."""
        if exc := self._missing_credentials("search"):
            return SearchResult(success=False, error=str(exc), error_kind=exc.kind)

        body = {
            "query": query,
            "limit": limit,
            "scrapeOptions": {"formats": list(scrape_formats)},
        }
        logger.info('Search: "%.50s"', query)
        try:
            response = await self._transport.request(
                "POST", "/search", json=body, timeout=timeout or self.settings.search_timeout
            )
            records = _search_records(response.raise_for_status().body)
        except Exception as exc:
            logger.warning("Search failed for %.50r: %s", query, exc)
            return SearchResult(
                success=False, error=str(exc) or "Unknown error", error_kind=type(exc).__name__
            )

        logger.info("Search returned %d results", len(records))
        return SearchResult(success=True, results=records)

    # ------------------------------------------------------------------
    # Extract / agent (deferred jobs)
    # ------------------------------------------------------------------

    async def extract(
        self,
        urls: str | Sequence[str],
        *,
        prompt: str,
        schema: Schema,
        enable_web_search: bool = True,
        timeout: float | None = None,
        poll_timeout: float | None = None,
    ) -> ExtractResult:
        """
        Derive structured data from ``urls`` following ``prompt``.

        ``schema`` is a JSON schema dict or a pydantic model class; with a
        model class the payload is validated into an instance of it.
        ``timeout`` bounds the submission request, ``poll_timeout`` bounds
        the total time spent waiting on a deferred job.
        """
        url_list = [urls] if isinstance(urls, str) else list(urls)
        if not url_list or not all(url_list):
            raise ValueError("at least one non-empty url is required")

        if exc := self._missing_credentials("extract"):
            return ExtractResult(success=False, error=str(exc), error_kind=exc.kind)

        body = {
            "urls": url_list,
            "prompt": prompt,
            "schema": _json_schema(schema),
            "enableWebSearch": enable_web_search,
        }
        logger.info("Extract for %d URL(s)...", len(url_list))
        return await self._run_job(
            "extract",
            body,
            timeout=timeout or self.settings.extract_timeout,
            budget=poll_timeout if poll_timeout is not None else self.settings.extract_poll_timeout,
            model=_schema_model(schema),
        )

    async def agent(
        self,
        prompt: str,
        *,
        schema: Schema | None = None,
        urls: Sequence[str] | None = None,
        timeout: float | None = None,
    ) -> ExtractResult:
        """
        Open-ended research job: the service decides which pages to visit.

        ``timeout`` is the polling budget for the job.
        """
        if exc := self._missing_credentials("agent"):
            return ExtractResult(success=False, error=str(exc), error_kind=exc.kind)

        body: dict[str, Any] = {"prompt": prompt}
        if schema is not None:
            body["schema"] = _json_schema(schema)
        if urls:
            body["urls"] = list(urls)

        logger.info("Agent job for prompt %.50r...", prompt.strip())
        return await self._run_job(
            "agent",
            body,
            timeout=self.settings.extract_timeout,
            budget=timeout or self.settings.agent_timeout,
            model=_schema_model(schema),
        )

    async def _run_job(
        self,
        endpoint: str,
        body: dict[str, Any],
        *,
        timeout: float,
        budget: float,
        model: type[BaseModel] | None,
    ) -> ExtractResult:
        """Submit once, then either take the immediate result or poll the job."""
        job_id = None
        try:
            response = await self._transport.request(
                "POST", f"/{endpoint}", json=body, timeout=timeout
            )
            payload = response.raise_for_status().body
            if not isinstance(payload, dict):
                raise UnexpectedResponseError("No data returned")

            job_id = payload.get("jobId") or payload.get("id")
            if job_id:
                logger.info(
                    "%s job started: %s, polling for up to %gs", endpoint, job_id, budget
                )
                data = await self._poller.poll(f"/{endpoint}/{job_id}", budget)
            elif payload.get("success") and payload.get("data"):
                logger.info("%s success (immediate)", endpoint)
                data = payload["data"]
            else:
                raise UnexpectedResponseError("No data returned")

            if model is not None:
                data = model.model_validate(data)
        except PollingTimeoutError as exc:
            return ExtractResult(success=False, error=str(exc), error_kind=exc.kind, job_id=job_id)
        except AcquisitionError as exc:
            logger.warning("%s failed: %s", endpoint, exc)
            return ExtractResult(success=False, error=str(exc), error_kind=exc.kind, job_id=job_id)
        except ValidationError as exc:
            logger.warning("%s payload did not match %s: %s", endpoint, model.__name__, exc)
            return ExtractResult(
                success=False,
                error=f"Payload did not match {model.__name__} ({exc.error_count()} errors)",
                error_kind="ValidationError",
                job_id=job_id,
            )

        return ExtractResult(success=True, data=data, job_id=job_id)
