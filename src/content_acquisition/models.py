"""Pydantic models for acquisition requests and results."""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

T = TypeVar("T")

ScrapeFormat = Literal["markdown", "html", "rawHtml", "screenshot", "links"]


class ScrapeOptions(BaseModel):
    """Per-call scrape configuration. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    formats: list[ScrapeFormat] = Field(
        default_factory=lambda: ["markdown"],
        min_length=1,
        description="Content formats to request from the service",
    )
    only_main_content: bool = Field(
        default=False,
        description="Drop headers, navs and footers from the page content",
    )
    remove_base64_images: bool = Field(
        default=True,
        description="Strip inline base64 images from the returned markdown",
    )
    timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-attempt timeout in seconds; None uses the settings default",
    )
    retries: int = Field(
        default=1,
        ge=0,
        description="Retries after the first attempt for transient failures",
    )


class ScrapeResult(BaseModel):
    """Normalized content of one scraped page, or why it could not be had."""

    success: bool
    url: str = ""
    markdown: str = ""
    html: str | None = None
    screenshot: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    error_kind: str | None = None
    attempts: int = 0

    @model_validator(mode="after")
    def _check_outcome(self) -> ScrapeResult:
        if self.success:
            if self.error is not None:
                raise ValueError("successful result cannot carry an error")
        else:
            if not self.error:
                raise ValueError("failed result must describe its error")
            if self.markdown or self.html or self.screenshot:
                raise ValueError("failed result cannot carry content")
        return self

    @classmethod
    def failure(
        cls, url: str, error: str, error_kind: str | None = None, attempts: int = 0
    ) -> ScrapeResult:
        return cls(
            success=False,
            url=url,
            error=error,
            error_kind=error_kind,
            attempts=attempts,
        )


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: Any) -> JobStatus:
        """Unknown or missing statuses count as still running."""
        try:
            return cls(value)
        except ValueError:
            return cls.PENDING

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


class ExtractJob(BaseModel):
    """Server-owned deferred job, as last observed by the client."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: JobStatus = JobStatus.PENDING


class ExtractResult(BaseModel, Generic[T]):
    """Structured payload from an extract (or agent) call."""

    success: bool
    data: T | None = None
    error: str | None = None
    error_kind: str | None = None
    job_id: str | None = Field(
        default=None,
        description="Set when the result came from a polled server-side job",
    )


class SearchRecord(BaseModel):
    """One web search hit, scraped in the requested formats."""

    model_config = ConfigDict(extra="allow")

    url: str
    title: str | None = None
    description: str | None = None
    markdown: str | None = None


class SearchResult(BaseModel):
    success: bool
    results: list[SearchRecord] = Field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None


class BatchResult(BaseModel):
    """Every input URL mapped to its own scrape result, in input order."""

    results: dict[str, ScrapeResult] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results.values() if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    def __getitem__(self, url: str) -> ScrapeResult:
        return self.results[url]

    def __len__(self) -> int:
        return len(self.results)
