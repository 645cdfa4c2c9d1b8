"""Data models for the document OCR pipeline."""

import base64
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class ContentType(str, Enum):
    """Content-type tags recognised by the sniffer."""

    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    BMP = "bmp"
    PDF = "pdf"

    @property
    def mime_type(self) -> str:
        if self is ContentType.PDF:
            return "application/pdf"
        return f"image/{self.value}"


class ErrorCategory(str, Enum):
    """Why a single provider attempt failed."""

    AUTH_FAILURE = "auth_failure"
    NOT_FOUND = "not_found"
    PROVIDER_WARMING_UP = "provider_warming_up"
    TIMEOUT = "timeout"
    TRANSPORT_ERROR = "transport_error"
    MALFORMED_RESPONSE = "malformed_response"


class DocumentType(str, Enum):
    CERTIFICATE = "certificate"
    FINANCIAL = "financial"
    LEGAL = "legal"
    ACADEMIC = "academic"
    REPORT = "report"
    DOCUMENT = "document"


@dataclass(frozen=True)
class ExtractionRequest:
    """Raw document bytes plus the sniffed content type."""

    payload: bytes
    content_type: ContentType

    @classmethod
    def from_bytes(cls, data: bytes) -> "ExtractionRequest":
        # Local import keeps models free of import cycles.
        from document_ocr.sniffer import sniff_content_type

        return cls(payload=data, content_type=sniff_content_type(data))

    @property
    def mime_type(self) -> str:
        return self.content_type.mime_type

    @property
    def size_bytes(self) -> int:
        return len(self.payload)

    def base64(self) -> str:
        return base64.b64encode(self.payload).decode("ascii")

    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64()}"


@dataclass(frozen=True)
class ExtractionSuccess:
    """A provider returned usable text."""

    raw_text: str
    provider: str


@dataclass(frozen=True)
class ExtractionFailure:
    """A provider attempt failed; the category drives logging only."""

    category: ErrorCategory
    message: str
    provider: str

    @property
    def retryable(self) -> bool:
        """Whether the caller could reasonably retry later.

        Nothing in this package retries on its own.
        """
        return self.category in (ErrorCategory.PROVIDER_WARMING_UP, ErrorCategory.TIMEOUT)


ProviderOutcome = Union[ExtractionSuccess, ExtractionFailure]


@dataclass(frozen=True)
class LanguageScore:
    language_code: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {"language_code": self.language_code, "confidence": self.confidence}


@dataclass
class DocumentMetadata:
    """Descriptors derived from the extracted text."""

    estimated_page_count: int
    has_equations: bool
    has_tables: bool
    document_type: DocumentType

    def to_dict(self) -> dict[str, Any]:
        return {
            "estimated_page_count": self.estimated_page_count,
            "has_equations": self.has_equations,
            "has_tables": self.has_tables,
            "document_type": self.document_type.value,
        }


@dataclass
class ExtractionResult:
    """Result returned to callers. Always fully populated.

    A confidence of 0 with empty text means no provider produced usable
    output; see ``is_degraded``.
    """

    text: str
    markdown: str
    language_code: str
    language_confidence: float
    confidence: float
    processing_time_ms: int
    metadata: Optional[DocumentMetadata] = None
    provider: Optional[str] = None
    attempts: list[ExtractionFailure] = field(default_factory=list)

    @classmethod
    def degraded(
        cls,
        processing_time_ms: int = 0,
        attempts: Optional[list[ExtractionFailure]] = None,
        language_code: str = "en",
    ) -> "ExtractionResult":
        return cls(
            text="",
            markdown="",
            language_code=language_code,
            language_confidence=0.0,
            confidence=0.0,
            processing_time_ms=max(0, processing_time_ms),
            metadata=None,
            provider=None,
            attempts=list(attempts or []),
        )

    @property
    def is_degraded(self) -> bool:
        return self.confidence == 0 and not self.text

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "markdown": self.markdown,
            "language_code": self.language_code,
            "language_confidence": self.language_confidence,
            "confidence": self.confidence,
            "processing_time_ms": self.processing_time_ms,
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "provider": self.provider,
            "attempts": [
                {**asdict(attempt), "category": attempt.category.value}
                for attempt in self.attempts
            ],
        }
