"""Error taxonomy for calls against the extraction service.

These are raised by the transport, retry and polling layers and turned into
``success=False`` results at the operation boundary, so callers of the
client never have to catch them.
"""

from __future__ import annotations


class AcquisitionError(Exception):
    """Base class for every expected failure mode."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class ConfigurationError(AcquisitionError):
    """Raised when the service credential is not configured."""


class TransientNetworkError(AcquisitionError):
    """No response was received; the request may succeed if repeated."""


class RequestTimeoutError(TransientNetworkError):
    """The request exceeded its timeout and was cancelled."""


class ConnectionFailedError(TransientNetworkError):
    """Connection refused, reset or otherwise broken before a response."""


class HTTPStatusError(AcquisitionError):
    """The service answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        detail = f": {body[:200]}" if body else ""
        super().__init__(f"HTTP {status_code}{detail}")


class ServerError(HTTPStatusError):
    """5xx response."""


class RateLimitError(HTTPStatusError):
    """429 response."""


class ClientError(HTTPStatusError):
    """4xx response other than 429. Never retried."""


class UnexpectedResponseError(AcquisitionError):
    """2xx response whose body is not what the endpoint promises."""


class JobFailedError(AcquisitionError):
    """The service reported the deferred job as failed."""


class PollingTimeoutError(AcquisitionError):
    """The job was still running when the local polling budget ran out."""


def error_for_status(status_code: int, body: str = "") -> HTTPStatusError:
    """Map a non-2xx status code to its exception class."""
    if status_code == 429:
        return RateLimitError(status_code, body)
    if 500 <= status_code < 600:
        return ServerError(status_code, body)
    if 400 <= status_code < 500:
        return ClientError(status_code, body)
    return HTTPStatusError(status_code, body)
