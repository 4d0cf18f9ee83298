import threading
from typing import Any, Callable, List, Optional

import pytest
from typer.testing import CliRunner

from crptapi.domain.models.document import Document, Product
from crptapi.infrastructure.config.settings import clear_test_config


class FakeTimer:
    """Stands in for threading.Timer; fires only when the test says so."""

    def __init__(self, interval: float, function: Callable[..., Any], args: Optional[tuple] = None, kwargs: Optional[dict] = None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.fired = True
        self.function(*self.args, **self.kwargs)


class FakeTimerFactory:
    """Records every timer a governor schedules."""

    def __init__(self):
        self.timers: List[FakeTimer] = []
        self._lock = threading.Lock()

    def __call__(self, interval: float, function: Callable[..., Any], args: Optional[tuple] = None, kwargs: Optional[dict] = None) -> FakeTimer:
        timer = FakeTimer(interval, function, args, kwargs)
        with self._lock:
            self.timers.append(timer)
        return timer

    @property
    def live(self) -> List[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    def fire_latest(self) -> None:
        self.timers[-1].fire()


@pytest.fixture
def timer_factory() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture
def events() -> list:
    """Collects domain events; pass ``events.append`` as the listener."""
    return []


@pytest.fixture
def sample_document() -> Document:
    return Document.create(
        document_id="doc-001",
        document_status="DRAFT",
        document_type="LP_INTRODUCE_GOODS",
        import_request=True,
        participant_inn="7700000000",
        producer_inn="7711111111",
        production_date="2024-01-23",
        production_type="OWN_PRODUCTION",
        products=[
            Product(
                certificate_document="CONFORMITY_CERTIFICATE",
                certificate_document_date="2024-01-20",
                certificate_document_number="CERT-42",
                owner_inn="7700000000",
                producer_inn="7711111111",
                production_date="2024-01-23",
                tnved_code="6401100000",
                uit_code="010463003407001221SxMGorvNuq6Wk91fgr92sdfsdfghfgjh",
            )
        ],
        reg_date="2024-01-24",
        reg_number="REG-7",
    )


@pytest.fixture
def document_dict() -> dict:
    return {
        "document_id": "doc-001",
        "document_type": "LP_INTRODUCE_GOODS",
        "participant_inn": "7700000000",
        "import_request": True,
        "production_date": "2024-01-23",
        "products": [{"tnved_code": "6401100000", "uit_code": "0104630034070012"}],
    }


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_test_config():
    """Keep test overrides from leaking between tests."""
    yield
    clear_test_config()
