"""Custom exceptions for document OCR.

Provider errors never leave the package: the provider client raises them
from its response checks and turns them into ``ExtractionFailure`` values.
"""

from document_ocr.models import ErrorCategory


class DocumentOCRError(Exception):
    """Base exception for document OCR errors."""

    pass


class ConfigurationError(DocumentOCRError):
    """Raised when a configuration value is invalid."""

    pass


class ProviderError(DocumentOCRError):
    """Base exception for a failed provider call."""

    category = ErrorCategory.TRANSPORT_ERROR


class AuthenticationError(ProviderError):
    """Raised when the provider rejects (or we lack) credentials."""

    category = ErrorCategory.AUTH_FAILURE


class ModelNotFoundError(ProviderError):
    """Raised when the provider endpoint or model does not exist."""

    category = ErrorCategory.NOT_FOUND


class ProviderWarmingUpError(ProviderError):
    """Raised when the model is still loading on the provider side."""

    category = ErrorCategory.PROVIDER_WARMING_UP


class ProviderTimeoutError(ProviderError):
    """Raised when the call exceeds its deadline."""

    category = ErrorCategory.TIMEOUT


class ProviderTransportError(ProviderError):
    """Raised on network failures and unexpected HTTP statuses."""

    category = ErrorCategory.TRANSPORT_ERROR


class MalformedResponseError(ProviderError):
    """Raised when the response body has no recognisable text."""

    category = ErrorCategory.MALFORMED_RESPONSE
