"""Registry API client: orchestrates governor, encoder and submitter.

A submission first takes a permit from the rate governor, then encodes the
document, wraps it in the submission envelope and posts it once. Each failure
is raised as a typed error attributable to its stage.
"""

import json
import logging
import time
from typing import Any, List, Optional

from crptapi.domain.errors import CrptApiError, RateLimitedError
from crptapi.domain.events.api_events import (
    ApiCallFailed, ApiCallInitiated, ApiCallSucceeded, EventListener, dispatch_event
)
from crptapi.domain.interfaces.encoder import DocumentEncoder
from crptapi.domain.interfaces.submitter import HttpSubmitter
from crptapi.domain.models.common import ResponseBody, Signature, TimeUnit
from crptapi.domain.models.document import (
    DateValue, Document, DocumentFormat, DocumentType, Product, SubmissionRequest
)
from crptapi.infrastructure.config.settings import DEFAULT_BASE_URL
from crptapi.infrastructure.encoding.json_encoder import JsonDocumentEncoder
from crptapi.infrastructure.http.httpx_submitter import HttpxSubmitter
from crptapi.infrastructure.resilience.rate_limiter import RateGovernor

logger = logging.getLogger(__name__)

CREATE_DOCUMENT_PATH = "/lk/documents/create"
JSON_CONTENT_TYPE = "application/json"


class CrptApi:
    """Thread-safe client for the registry "create document" operation."""

    def __init__(
        self,
        governor: RateGovernor,
        encoder: Optional[DocumentEncoder] = None,
        submitter: Optional[HttpSubmitter] = None,
        base_url: str = DEFAULT_BASE_URL,
        blocking: bool = False,
        acquire_timeout: Optional[float] = None,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the client.

        Args:
            governor: Rate governor shared by every submission of this client.
            encoder: Document encoder; JSON by default.
            submitter: HTTP submitter; httpx by default.
            base_url: Registry API root, e.g. https://ismp.crpt.ru/api/v3.
            blocking: Wait for a permit instead of failing fast when the window is exhausted.
            acquire_timeout: Maximum seconds to wait in blocking mode; None waits indefinitely.
            event_listener: Optional callable receiving submission events.
        """
        self.governor = governor
        self.encoder = encoder or JsonDocumentEncoder()
        self.submitter = submitter or HttpxSubmitter()
        self.base_url = base_url.rstrip("/")
        self.blocking = blocking
        self.acquire_timeout = acquire_timeout
        self._event_listener = event_listener
        logger.info(
            f"CrptApi initialized: base_url={self.base_url}, "
            f"limit={governor.capacity}/{governor.window_seconds:g}s, blocking={blocking}"
        )

    @classmethod
    def create(cls, time_unit: TimeUnit, request_limit: int, **kwargs: Any) -> "CrptApi":
        """Creates a client allowing ``request_limit`` requests per one ``time_unit``.

        Raises:
            InvalidConfigurationError: If ``request_limit`` is not positive.
        """
        governor = RateGovernor.per(time_unit, request_limit)
        return cls(governor, **kwargs)

    @property
    def create_document_url(self) -> str:
        return f"{self.base_url}{CREATE_DOCUMENT_PATH}"

    def create_document(
        self,
        document_id: str,
        document_status: Optional[str],
        document_type: str,
        import_request: bool,
        participant_inn: str,
        producer_inn: Optional[str],
        production_date: Optional[DateValue],
        production_type: Optional[str],
        products: List[Product],
        reg_date: Optional[DateValue],
        reg_number: Optional[str],
    ) -> Document:
        """Builds a Document whose description carries ``participant_inn``."""
        return Document.create(
            document_id=document_id,
            document_status=document_status,
            document_type=document_type,
            import_request=import_request,
            participant_inn=participant_inn,
            producer_inn=producer_inn,
            production_date=production_date,
            production_type=production_type,
            products=products,
            reg_date=reg_date,
            reg_number=reg_number,
        )

    def build_request(self, document: Document, signature: str) -> SubmissionRequest:
        """Encodes the document and wraps it in the submission envelope.

        Raises:
            EncodingError: If the document cannot be encoded.
        """
        return SubmissionRequest(
            document_format=DocumentFormat.MANUAL,
            product_document=self.encoder.encode(document),
            type=DocumentType.LP_INTRODUCE_GOODS,
            signature=Signature(signature),
        )

    def submit(self, document: Document, signature: str) -> ResponseBody:
        """Submits a document to the registry.

        Args:
            document: The document to introduce.
            signature: Signature of the product document, passed through verbatim.

        Returns:
            The registry response body, verbatim.

        Raises:
            RateLimitedError: If no permit is available (or the wait timed out).
            ClientClosedError: If the client was closed.
            EncodingError: If the document cannot be encoded; nothing is sent.
            TransportError: If the POST fails.
        """
        url = self.create_document_url
        document_id = getattr(document, "document_id", None)
        try:
            self._acquire()
            request = self.build_request(document, signature)
            body = json.dumps(request.to_payload()).encode("utf-8")

            dispatch_event(ApiCallInitiated(endpoint=url, document_id=document_id), self._event_listener)
            start_time = time.perf_counter()
            response_text = self.submitter.post(url, body, JSON_CONTENT_TYPE)
            latency_ms = (time.perf_counter() - start_time) * 1000
        except CrptApiError as e:
            logger.error(f"Submission of document {document_id} failed at {e.stage} stage: {e}")
            dispatch_event(
                ApiCallFailed(
                    endpoint=url,
                    stage=e.stage,
                    error_type=type(e).__name__,
                    error_message=str(e),
                    document_id=document_id,
                ),
                self._event_listener,
            )
            raise

        logger.info(f"Document {document_id} submitted in {latency_ms:.2f}ms")
        dispatch_event(
            ApiCallSucceeded(endpoint=url, latency_ms=latency_ms, document_id=document_id),
            self._event_listener,
        )
        return ResponseBody(response_text)

    def _acquire(self) -> None:
        if self.blocking:
            self.governor.wait_for_permission(timeout=self.acquire_timeout)
            return
        if not self.governor.try_acquire():
            raise RateLimitedError()

    def close(self) -> None:
        """Cancels the pending window reset and releases HTTP resources."""
        self.governor.close()
        self.submitter.close()

    def __enter__(self) -> "CrptApi":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
