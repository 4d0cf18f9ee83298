"""Service for executing submissions with automatic retries.

The client itself never retries. This service is a caller-side policy layered
on top of it: it implements exponential backoff for transient failures such as
rate limiting, timeouts, 429 or 5xx responses, and gives up immediately on
failures that cannot succeed on a second attempt.
"""

import logging
import time
from typing import Any, Callable, Optional

from crptapi.domain.errors import (
    ClientClosedError, CrptApiError, EncodingError, InvalidConfigurationError,
    RateLimitedError, TransportError
)
from crptapi.domain.events.api_events import EventListener, RetryScheduled, dispatch_event

logger = logging.getLogger(__name__)

NON_RETRYABLE_EXCEPTIONS = (EncodingError, InvalidConfigurationError, ClientClosedError)

# --- Custom Exceptions ---
class MaxRetryError(CrptApiError):
    """Exception raised when max retries are exceeded."""

    def __init__(self, original_exception: Exception, attempts: int):
        self.original_exception = original_exception
        self.attempts = attempts
        self.stage = getattr(original_exception, "stage", "client")
        super().__init__(f"Gave up after {attempts} attempts. Last error: {original_exception}")

# --- Retry Service ---

class SubmissionRetryService:
    """Handles submission execution with retries and exponential backoff."""

    def __init__(
        self,
        max_retries: int = 3,
        initial_backoff_s: float = 1.0,
        backoff_factor: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the SubmissionRetryService.

        Args:
            max_retries: Maximum number of retry attempts after the first call.
            initial_backoff_s: Initial delay in seconds for the first retry.
            backoff_factor: Multiplier for the backoff delay (e.g., 2 for exponential).
            sleep: Function used to wait between attempts.
            event_listener: Optional callable receiving RetryScheduled events.
        """
        if max_retries < 0:
            raise InvalidConfigurationError(f"max_retries must not be negative, got {max_retries}")
        if initial_backoff_s < 0 or backoff_factor < 1:
            raise InvalidConfigurationError("Backoff must be non-negative with a factor of at least 1")

        self.max_retries = max_retries
        self.initial_backoff_s = initial_backoff_s
        self.backoff_factor = backoff_factor
        self._sleep = sleep
        self._event_listener = event_listener

        logger.info(
            f"SubmissionRetryService initialized: max_retries={max_retries}, "
            f"initial_backoff={initial_backoff_s}s, factor={backoff_factor}"
        )

    @staticmethod
    def is_retryable(error: Exception) -> bool:
        if isinstance(error, NON_RETRYABLE_EXCEPTIONS):
            return False
        if isinstance(error, RateLimitedError):
            return True
        if isinstance(error, TransportError):
            return error.is_retryable
        return False

    def execute_with_retry(
        self,
        func: Callable[..., Any],
        *args: Any,
        endpoint_name: Optional[str] = None,
        **kwargs: Any
    ) -> Any:
        """Executes a function, retrying retryable failures.

        Args:
            func: The call to execute (typically ``CrptApi.submit``).
            *args: Positional arguments for the function.
            endpoint_name: Name used in logs and events; defaults to the function name.
            **kwargs: Keyword arguments for the function.

        Returns:
            The result of the first successful call.

        Raises:
            MaxRetryError: If every attempt failed with a retryable error.
            Exception: The original error if it is not retryable.
        """
        current_backoff = self.initial_backoff_s
        effective_endpoint = endpoint_name or getattr(func, "__name__", "call")
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                return func(*args, **kwargs)
            except CrptApiError as e:
                if not self.is_retryable(e):
                    logger.error(f"Non-retryable {e.stage} error calling {effective_endpoint} on attempt {attempt + 1}: {e}")
                    raise
                last_exception = e

            if attempt >= self.max_retries:
                logger.error(f"Max retries ({self.max_retries}) reached for {effective_endpoint}. Last error: {last_exception}")
                break

            logger.warning(
                f"Retryable error calling {effective_endpoint} on attempt {attempt + 1}/{self.max_retries + 1}: "
                f"{type(last_exception).__name__}. Waiting {current_backoff:.2f}s..."
            )
            dispatch_event(
                RetryScheduled(endpoint=effective_endpoint, attempt_number=attempt + 1, delay_seconds=current_backoff),
                self._event_listener,
            )
            self._sleep(current_backoff)
            current_backoff *= self.backoff_factor

        raise MaxRetryError(last_exception, self.max_retries + 1)
