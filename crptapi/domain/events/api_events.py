"""Domain Events related to rate limiting and registry API calls.

Examples include events for when a window starts or resets, when a permit is
denied, and when a submission is initiated, retried, fails or succeeds.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


EventListener = Callable[[DomainEvent], None]

# --- Rate Limiting Events ---

@dataclass
class WindowStarted(DomainEvent):
    """Event triggered when a new rate limit window opens and its reset is scheduled."""
    capacity: int
    window_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class WindowReset(DomainEvent):
    """Event triggered when the reset timer fires and the budget is replenished."""
    capacity: int
    permits_used: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class PermitDenied(DomainEvent):
    """Event triggered when a non-blocking acquisition finds the window exhausted."""
    capacity: int
    timestamp: float = field(default_factory=time.time)

# --- Specific API Events ---

@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when a POST is about to be made."""
    endpoint: str
    document_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when the registry accepted the request."""
    endpoint: str
    latency_ms: float
    document_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when a submission fails at any stage."""
    endpoint: str
    stage: str
    error_type: str
    error_message: str
    document_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed submission."""
    endpoint: str
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)


def dispatch_event(event: DomainEvent, listener: Optional[EventListener] = None) -> None:
    """Logs the event and hands it to the listener, if any.

    Listener failures are logged and do not affect the operation that
    produced the event.
    """
    logger.debug(f"EVENT: {event}")
    if listener is None:
        return
    try:
        listener(event)
    except Exception as e:
        logger.error(f"Event listener failed for {type(event).__name__}: {e}", exc_info=True)
