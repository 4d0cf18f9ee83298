"""Typed errors raised by the registry client.

Every error carries the stage it originated from (config, acquire, encode,
submit) so callers can tell which step of a submission failed.
"""

from typing import Optional


class CrptApiError(Exception):
    """Base class for all errors raised by the client."""

    stage: str = "client"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidConfigurationError(CrptApiError, ValueError):
    """Raised at construction time when limits or settings are invalid."""

    stage = "config"


class RateLimitedError(CrptApiError):
    """Raised when no permit is available in the current window."""

    stage = "acquire"

    def __init__(self, message: str = "Request limit reached for the current time window", wait_timeout: Optional[float] = None):
        self.wait_timeout = wait_timeout
        super().__init__(message)


class ClientClosedError(CrptApiError):
    """Raised when acquiring a permit from a governor that was closed."""

    stage = "acquire"


class EncodingError(CrptApiError):
    """Raised when a document cannot be built or serialized."""

    stage = "encode"


class TransportError(CrptApiError):
    """Raised when the POST fails: timeout, connection error or non-2xx status."""

    stage = "submit"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        timed_out: bool = False,
        response_body: Optional[str] = None,
    ):
        self.status_code = status_code
        self.timed_out = timed_out
        self.response_body = response_body
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Timeouts, connection failures, 429 and 5xx responses may succeed later."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500
