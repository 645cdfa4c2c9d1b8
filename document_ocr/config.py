"""Configuration classes for document OCR."""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from document_ocr.exceptions import ConfigurationError

TOKEN_ENV_VARS = ("HUGGING_FACE_TOKEN", "HUGGINGFACE_TOKEN")
PRIMARY_ENDPOINT_ENV_VAR = "DOCUMENT_OCR_PRIMARY_ENDPOINT"
FALLBACK_ENDPOINT_ENV_VAR = "DOCUMENT_OCR_FALLBACK_ENDPOINT"


@dataclass
class ProviderConfig:
    """Endpoints, credentials and time limits for the remote providers.

    Examples:
        >>> # Token and endpoint overrides from the environment
        >>> config = ProviderConfig.from_env()

        >>> # Tighter deadline for interactive use
        >>> config = ProviderConfig(token="hf_...", primary_deadline_seconds=20)
    """

    primary_endpoint: str = (
        "https://api-inference.huggingface.co/models/microsoft/trocr-base-printed"
    )
    """Inference endpoint tried first. Requires a bearer token."""

    fallback_endpoint: str = "https://prithivmlmods-multimodal-ocr.hf.space/api/predict"
    """Gradio-style endpoint tried when the primary fails. No auth."""

    token: Optional[str] = field(default=None, repr=False)
    """Bearer token for the primary endpoint. Never logged."""

    primary_deadline_seconds: float = 45.0
    """Hard deadline for the primary call. Expiry cancels the request."""

    transport_timeout_seconds: float = 120.0
    """Socket-level timeout applied to every HTTP call, fallback included."""

    probe_timeout_seconds: float = 5.0
    """Timeout for the reachability probe used by connection tests."""

    fallback_instruction: str = "Extract the full page."
    """Instruction string sent alongside the payload to the fallback."""

    fallback_model_tag: str = "olmOCR-7B-0725"
    """Model selector understood by the fallback endpoint."""

    max_new_tokens: int = 4096
    """Maximum tokens the primary provider may generate."""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ProviderConfig":
        """Build a config from process environment variables.

        The token is read from the first of ``TOKEN_ENV_VARS`` that is set.
        Keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict = {}

        token = next((env[name] for name in TOKEN_ENV_VARS if env.get(name)), None)
        if token:
            values["token"] = token
        if env.get(PRIMARY_ENDPOINT_ENV_VAR):
            values["primary_endpoint"] = env[PRIMARY_ENDPOINT_ENV_VAR]
        if env.get(FALLBACK_ENDPOINT_ENV_VAR):
            values["fallback_endpoint"] = env[FALLBACK_ENDPOINT_ENV_VAR]

        values.update(overrides)
        return cls(**values)

    def validate(self) -> "ProviderConfig":
        """Raise ``ConfigurationError`` for unusable values; return self."""
        for name in ("primary_endpoint", "fallback_endpoint"):
            if not getattr(self, name):
                raise ConfigurationError(f"{name} must not be empty")
        for name in (
            "primary_deadline_seconds",
            "transport_timeout_seconds",
            "probe_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")
        if self.max_new_tokens <= 0:
            raise ConfigurationError("max_new_tokens must be positive")
        return self


@dataclass
class PipelineConfig:
    """Behaviour switches for the extraction pipeline."""

    default_language: str = "en"
    """Language code reported on degraded results."""

    clean_ocr_text: bool = False
    """Run OCR cleanup (whitespace and boundary spacing) on provider text."""

    substitute_characters: bool = False
    """Also replace 0/1/5 with O/I/S during cleanup.

    Lossy for invoice numbers and dates, so it stays off unless asked for.
    Has no effect while ``clean_ocr_text`` is False.
    """

    enable_local_ocr: bool = False
    """Try local Tesseract OCR after both remote providers fail."""


@dataclass
class OCRConfig:
    """Configuration for local Tesseract OCR.

    Examples:
        >>> # Default configuration
        >>> config = OCRConfig()

        >>> # Higher quality on a bigger machine
        >>> config = OCRConfig(dpi=300, max_workers=7)
    """

    tesseract_cmd: str = "tesseract"
    """Path to tesseract binary. Default assumes it is on PATH."""

    tessdata_prefix: Optional[str] = None
    """Optional path to tessdata directory. If None, uses system default."""

    languages: str = "eng+mkd+rus+fra"
    """OCR languages in Tesseract format."""

    dpi: int = 150
    """Render DPI for scanned PDF pages."""

    psm_mode: int = 6
    """Page segmentation mode (0-13). 6 treats the page as one text block."""

    max_workers: int = 3
    """Parallel workers for page OCR."""

    pdf_ocr_min_chars: int = 500
    """Native PDF text shorter than this triggers OCR on large files."""

    pdf_ocr_min_chars_per_page: int = 150
    """Average native characters per page below which OCR is triggered."""

    pdf_ocr_min_file_size_bytes: int = 200_000
    """Files smaller than this are trusted to be text-based PDFs."""

    enable_image_preprocessing: bool = True
    """Convert images to grayscale and boost contrast before OCR."""

    contrast_enhancement: float = 1.2
    """Contrast factor used when preprocessing is enabled (1.0 = none)."""
