"""Interface for document encoders.

Defines the contract for turning a Document into the text-safe payload
embedded in the submission envelope.
"""

import abc
import base64

from crptapi.domain.models.common import EncodedDocument
from crptapi.domain.models.document import Document


class DocumentEncoder(abc.ABC):
    """Abstract Base Class for document serialization."""

    @abc.abstractmethod
    def serialize(self, document: Document) -> bytes:
        """Serializes the document to its structured-text form.

        Args:
            document: The document to serialize.

        Returns:
            The serialized bytes.

        Raises:
            EncodingError: If the document is incomplete or cannot be serialized.
        """
        pass

    def encode(self, document: Document) -> EncodedDocument:
        """Serializes the document and wraps it in base64 text."""
        return EncodedDocument(base64.b64encode(self.serialize(document)).decode("ascii"))
