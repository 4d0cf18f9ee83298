import base64
import json
import threading
from unittest.mock import MagicMock

import pytest

from crptapi.core.api_client import CrptApi
from crptapi.domain.errors import (
    ClientClosedError, EncodingError, InvalidConfigurationError, RateLimitedError, TransportError
)
from crptapi.domain.events.api_events import ApiCallFailed, ApiCallInitiated, ApiCallSucceeded
from crptapi.domain.interfaces.encoder import DocumentEncoder
from crptapi.domain.interfaces.submitter import HttpSubmitter
from crptapi.domain.models.common import TimeUnit
from crptapi.infrastructure.encoding.json_encoder import JsonDocumentEncoder
from crptapi.infrastructure.resilience.rate_limiter import RateGovernor

BASE_URL = "https://registry.test/api/v3"


@pytest.fixture
def mock_submitter():
    submitter = MagicMock(spec=HttpSubmitter)
    submitter.post.return_value = '{"value":"accepted"}'
    return submitter


@pytest.fixture
def governor(timer_factory):
    return RateGovernor(2, 60, timer_factory=timer_factory)


@pytest.fixture
def client(governor, mock_submitter, events):
    return CrptApi(
        governor=governor,
        encoder=JsonDocumentEncoder(),
        submitter=mock_submitter,
        base_url=BASE_URL + "/",
        event_listener=events.append,
    )


def test_submit_posts_envelope_and_returns_body(client, mock_submitter, sample_document):
    response = client.submit(sample_document, "c2lnbmF0dXJl")

    assert response == '{"value":"accepted"}'
    mock_submitter.post.assert_called_once()
    url, body, content_type = mock_submitter.post.call_args.args
    assert url == f"{BASE_URL}/lk/documents/create"
    assert content_type == "application/json"

    envelope = json.loads(body)
    assert set(envelope) == {"document_format", "product_document", "type", "signature"}
    assert envelope["document_format"] == "MANUAL"
    assert envelope["type"] == "LP_INTRODUCE_GOODS"
    assert envelope["signature"] == "c2lnbmF0dXJl"
    decoded = base64.b64decode(envelope["product_document"])
    assert decoded == JsonDocumentEncoder().serialize(sample_document)


def test_submit_emits_initiated_and_succeeded_events(client, sample_document, events):
    client.submit(sample_document, "sig")
    api_events = [e for e in events if isinstance(e, (ApiCallInitiated, ApiCallSucceeded))]
    assert [type(e) for e in api_events] == [ApiCallInitiated, ApiCallSucceeded]
    assert api_events[1].document_id == "doc-001"


def test_rate_limited_submit_skips_encoder_and_submitter(governor, mock_submitter, sample_document, events):
    encoder = MagicMock(spec=DocumentEncoder)
    encoder.encode.return_value = "ZW5jb2RlZA=="
    client = CrptApi(governor, encoder=encoder, submitter=mock_submitter, event_listener=events.append)

    client.submit(sample_document, "sig")
    client.submit(sample_document, "sig")
    encoder.reset_mock()
    mock_submitter.reset_mock()

    with pytest.raises(RateLimitedError) as excinfo:
        client.submit(sample_document, "sig")

    assert excinfo.value.stage == "acquire"
    encoder.encode.assert_not_called()
    mock_submitter.post.assert_not_called()
    failed = [e for e in events if isinstance(e, ApiCallFailed)]
    assert failed[-1].stage == "acquire"


def test_encoding_error_skips_submitter(client, mock_submitter, sample_document):
    encoder = MagicMock(spec=DocumentEncoder)
    encoder.encode.side_effect = EncodingError("bad document")
    client.encoder = encoder

    with pytest.raises(EncodingError):
        client.submit(sample_document, "sig")

    mock_submitter.post.assert_not_called()


def test_transport_error_propagates_unchanged(client, mock_submitter, sample_document, events):
    error = TransportError("gateway timeout", status_code=504)
    mock_submitter.post.side_effect = error

    with pytest.raises(TransportError) as excinfo:
        client.submit(sample_document, "sig")

    assert excinfo.value is error
    mock_submitter.post.assert_called_once()
    assert isinstance(events[-1], ApiCallFailed)
    assert events[-1].stage == "submit"


def test_failed_submission_still_consumes_permit(client, mock_submitter, sample_document, governor):
    mock_submitter.post.side_effect = TransportError("down")
    with pytest.raises(TransportError):
        client.submit(sample_document, "sig")
    assert governor.remaining == 1


def test_blocking_client_waits_then_times_out(governor, mock_submitter, sample_document):
    client = CrptApi(governor, submitter=mock_submitter, blocking=True, acquire_timeout=0.05)
    client.submit(sample_document, "sig")
    client.submit(sample_document, "sig")

    with pytest.raises(RateLimitedError):
        client.submit(sample_document, "sig")
    assert mock_submitter.post.call_count == 2


def test_blocking_client_proceeds_after_reset(governor, timer_factory, mock_submitter, sample_document):
    client = CrptApi(governor, submitter=mock_submitter, blocking=True, acquire_timeout=5)
    client.submit(sample_document, "sig")
    client.submit(sample_document, "sig")

    results = []
    thread = threading.Thread(target=lambda: results.append(client.submit(sample_document, "sig")))
    thread.start()
    thread.join(timeout=0.1)
    assert results == []

    timer_factory.fire_latest()
    thread.join(timeout=2)

    assert results == ['{"value":"accepted"}']
    assert mock_submitter.post.call_count == 3


def test_concurrent_submissions_respect_capacity(governor, mock_submitter, sample_document):
    client = CrptApi(governor, submitter=mock_submitter)
    outcomes = []
    lock = threading.Lock()
    barrier = threading.Barrier(20)

    def worker():
        barrier.wait()
        try:
            client.submit(sample_document, "sig")
            outcome = "ok"
        except RateLimitedError:
            outcome = "limited"
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 2
    assert outcomes.count("limited") == 18
    assert mock_submitter.post.call_count == 2


def test_close_tears_down_governor_and_submitter(client, governor, mock_submitter, timer_factory, sample_document):
    client.submit(sample_document, "sig")
    client.close()

    assert timer_factory.timers[0].cancelled
    mock_submitter.close.assert_called_once()
    with pytest.raises(ClientClosedError):
        client.submit(sample_document, "sig")


def test_context_manager_closes(governor, mock_submitter):
    with CrptApi(governor, submitter=mock_submitter):
        pass
    assert governor.closed
    mock_submitter.close.assert_called_once()


def test_create_from_time_unit(mock_submitter):
    client = CrptApi.create(TimeUnit.MINUTES, 10, submitter=mock_submitter)
    try:
        assert client.governor.capacity == 10
        assert client.governor.window_seconds == 60
        assert client.blocking is False
    finally:
        client.close()


@pytest.mark.parametrize("limit", [0, -3])
def test_create_rejects_non_positive_limit(limit, mock_submitter):
    with pytest.raises(InvalidConfigurationError):
        CrptApi.create(TimeUnit.SECONDS, limit, submitter=mock_submitter)


def test_create_document_builds_description(client):
    document = client.create_document(
        document_id="doc-9",
        document_status=None,
        document_type="LP_INTRODUCE_GOODS",
        import_request=False,
        participant_inn="7799999999",
        producer_inn=None,
        production_date=None,
        production_type=None,
        products=[],
        reg_date=None,
        reg_number=None,
    )
    assert document.description.participant_inn == "7799999999"
    assert document.products == ()
