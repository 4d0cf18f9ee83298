"""JSON implementation of the DocumentEncoder interface.

Serializes a Document with snake_case keys as UTF-8 JSON. Dates are rendered
in ISO-8601 and enums by value.
"""

import dataclasses
import json
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any

from crptapi.domain.errors import EncodingError
from crptapi.domain.interfaces.encoder import DocumentEncoder
from crptapi.domain.models.document import Document

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonDocumentEncoder(DocumentEncoder):
    """Encodes documents as compact JSON."""

    def __init__(self, ensure_ascii: bool = False):
        self.ensure_ascii = ensure_ascii

    def serialize(self, document: Document) -> bytes:
        if not isinstance(document, Document):
            raise EncodingError(f"Expected a Document, got {type(document).__name__}")

        missing = document.missing_fields()
        if missing:
            raise EncodingError(f"Document is missing required fields: {', '.join(missing)}")

        try:
            text = json.dumps(
                dataclasses.asdict(document),
                default=_json_default,
                ensure_ascii=self.ensure_ascii,
                separators=(",", ":"),
                allow_nan=False,
            )
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize document {document.document_id}: {e}")
            raise EncodingError(f"Cannot serialize document {document.document_id}: {e}") from e

        logger.debug(f"Serialized document {document.document_id} ({len(text)} chars)")
        return text.encode("utf-8")
