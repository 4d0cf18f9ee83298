"""Interface for HTTP submitters.

Defines the contract for performing exactly one POST against the registry.
Retries are not part of this contract.
"""

import abc


class HttpSubmitter(abc.ABC):
    """Abstract Base Class for a single-shot HTTP POST."""

    @abc.abstractmethod
    def post(self, url: str, body: bytes, content_type: str) -> str:
        """Posts ``body`` to ``url``.

        Args:
            url: Absolute endpoint URL.
            body: Request body bytes.
            content_type: Value of the Content-Type header.

        Returns:
            The response body text, verbatim.

        Raises:
            TransportError: On timeouts, connection failures or non-2xx responses.
        """
        pass

    def close(self) -> None:
        """Releases any underlying connection resources."""
        pass
