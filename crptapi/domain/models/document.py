"""Domain models for the "introduce goods" document and its submission envelope.

The business document is owned by the caller; the encoder derives an
independent byte payload from it. ``SubmissionRequest`` is the wire envelope
posted to the registry.
"""

from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from crptapi.domain.errors import EncodingError
from crptapi.domain.models.common import EncodedDocument, Signature

DateValue = Union[str, date]


class DocumentFormat(str, Enum):
    """Format of the product document embedded in the envelope."""

    MANUAL = "MANUAL"
    CSV = "CSV"
    XML = "XML"


class DocumentType(str, Enum):
    """Registry document types supported by the client."""

    LP_INTRODUCE_GOODS = "LP_INTRODUCE_GOODS"


@dataclass(frozen=True)
class Description:
    participant_inn: str


@dataclass(frozen=True)
class Product:
    """One product entry of the document."""

    certificate_document: Optional[str] = None
    certificate_document_date: Optional[DateValue] = None
    certificate_document_number: Optional[str] = None
    owner_inn: Optional[str] = None
    producer_inn: Optional[str] = None
    production_date: Optional[DateValue] = None
    tnved_code: Optional[str] = None
    uit_code: Optional[str] = None
    uitu_code: Optional[str] = None


@dataclass(frozen=True)
class Document:
    """The "introduce goods into circulation" document."""

    description: Description
    document_id: str
    document_type: str
    participant_inn: str
    document_status: Optional[str] = None
    import_request: bool = False
    producer_inn: Optional[str] = None
    production_date: Optional[DateValue] = None
    production_type: Optional[str] = None
    products: Tuple[Product, ...] = field(default_factory=tuple)
    reg_date: Optional[DateValue] = None
    reg_number: Optional[str] = None

    REQUIRED_FIELDS = ("document_id", "document_type", "participant_inn")

    def missing_fields(self) -> List[str]:
        """Names of required fields that are absent or empty."""
        missing = [name for name in self.REQUIRED_FIELDS if not getattr(self, name)]
        if self.description is None or not self.description.participant_inn:
            missing.append("description.participant_inn")
        return missing

    @classmethod
    def create(
        cls,
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
    ) -> "Document":
        """Builds a document, deriving its description from ``participant_inn``."""
        return cls(
            description=Description(participant_inn=participant_inn),
            document_id=document_id,
            document_status=document_status,
            document_type=document_type,
            import_request=import_request,
            participant_inn=participant_inn,
            producer_inn=producer_inn,
            production_date=production_date,
            production_type=production_type,
            products=tuple(products or ()),
            reg_date=reg_date,
            reg_number=reg_number,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Document":
        """Builds a document from a parsed JSON or YAML mapping.

        Unknown keys are rejected so that typos do not silently drop data.

        Raises:
            EncodingError: If the mapping is malformed.
        """
        if not isinstance(data, Mapping):
            raise EncodingError(f"Document must be a mapping, got {type(data).__name__}")

        payload = dict(data)
        known = {f.name for f in fields(cls)}
        unknown = sorted(str(key) for key in set(payload) - known)
        if unknown:
            raise EncodingError(f"Unknown document fields: {', '.join(unknown)}")

        try:
            raw_description = payload.pop("description", None)
            if raw_description is None:
                description = Description(participant_inn=payload.get("participant_inn"))
            else:
                description = Description(**raw_description)
            products = tuple(Product(**item) for item in payload.pop("products", None) or ())
            return cls(description=description, products=products, **payload)
        except TypeError as e:
            raise EncodingError(f"Malformed document: {e}") from e


@dataclass(frozen=True)
class SubmissionRequest:
    """Wire envelope wrapping the encoded product document."""

    document_format: DocumentFormat
    product_document: EncodedDocument
    type: DocumentType
    signature: Signature

    def to_payload(self) -> Dict[str, str]:
        return {
            "document_format": self.document_format.value,
            "product_document": self.product_document,
            "type": self.type.value,
            "signature": self.signature,
        }
