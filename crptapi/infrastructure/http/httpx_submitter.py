"""Concrete implementation of the HttpSubmitter interface using httpx.

Hides the specifics of the HTTP library and translates its failures into
TransportError. Performs exactly one request per call; no retries.
"""

import logging
from typing import Dict, Optional

import httpx

from crptapi.domain.errors import TransportError
from crptapi.domain.interfaces.submitter import HttpSubmitter

logger = logging.getLogger(__name__)


class HttpxSubmitter(HttpSubmitter):
    """httpx implementation of the HttpSubmitter interface."""

    DEFAULT_TIMEOUT_SECONDS = 30.0

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        auth_token: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        """Initializes the submitter.

        Args:
            timeout: Request timeout in seconds.
            auth_token: Optional bearer token sent as the Authorization header.
            client: Pre-built httpx client (e.g., with a mock transport); the
                submitter does not close clients it did not create.
        """
        headers: Dict[str, str] = {}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        self._headers = headers
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)
        self.timeout = timeout
        logger.info(f"HttpxSubmitter initialized (timeout={timeout}s, auth={'yes' if auth_token else 'no'})")

    def post(self, url: str, body: bytes, content_type: str) -> str:
        headers = dict(self._headers)
        headers["Content-Type"] = content_type
        logger.debug(f"POST {url} ({len(body)} bytes)")
        try:
            response = self._client.post(url, content=body, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.warning(f"Registry request timed out: {url}")
            raise TransportError(f"Request to {url} timed out: {e}", timed_out=True) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"Registry responded with HTTP {status} for {url}")
            raise TransportError(
                f"Registry responded with HTTP {status}",
                status_code=status,
                response_body=e.response.text,
            ) from e
        except httpx.RequestError as e:
            logger.warning(f"Registry request failed: {type(e).__name__} - {e}")
            raise TransportError(f"Request to {url} failed: {e}") from e

        logger.debug(f"Registry responded with HTTP {response.status_code}")
        return response.text

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
