"""Document text extraction with provider fallback and language detection."""

from document_ocr.config import OCRConfig, PipelineConfig, ProviderConfig
from document_ocr.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DocumentOCRError,
    MalformedResponseError,
    ModelNotFoundError,
    ProviderError,
    ProviderTimeoutError,
    ProviderTransportError,
    ProviderWarmingUpError,
)
from document_ocr.language import detect_language
from document_ocr.logger import setup_logging
from document_ocr.metadata import extract_metadata
from document_ocr.models import (
    ContentType,
    DocumentMetadata,
    DocumentType,
    ErrorCategory,
    ExtractionFailure,
    ExtractionRequest,
    ExtractionResult,
    ExtractionSuccess,
    LanguageScore,
)
from document_ocr.normalizer import clean_ocr_text, markdown_to_plain, plain_to_markdown
from document_ocr.parser import extract_document
from document_ocr.pipeline import DocumentOCRService, ExtractionPipeline, PipelineState
from document_ocr.providers import PayloadShape, ProviderClient, ProviderDescriptor
from document_ocr.sniffer import sniff_content_type

__version__ = "0.1.0"

__all__ = [
    # High-level API
    "extract_document",
    "detect_language",
    # Core classes
    "DocumentOCRService",
    "ExtractionPipeline",
    "PipelineState",
    "ProviderClient",
    "ProviderDescriptor",
    "PayloadShape",
    # Helpers
    "sniff_content_type",
    "plain_to_markdown",
    "markdown_to_plain",
    "clean_ocr_text",
    "extract_metadata",
    "setup_logging",
    # Data models
    "ContentType",
    "ExtractionRequest",
    "ExtractionSuccess",
    "ExtractionFailure",
    "ExtractionResult",
    "ErrorCategory",
    "LanguageScore",
    "DocumentMetadata",
    "DocumentType",
    # Configuration
    "ProviderConfig",
    "PipelineConfig",
    "OCRConfig",
    # Exceptions
    "DocumentOCRError",
    "ConfigurationError",
    "ProviderError",
    "AuthenticationError",
    "ModelNotFoundError",
    "ProviderWarmingUpError",
    "ProviderTimeoutError",
    "ProviderTransportError",
    "MalformedResponseError",
]
