"""Provider chain orchestration and the public extraction service."""

import base64
from enum import Enum
from typing import Any, Optional, Protocol, Union

from document_ocr.config import OCRConfig, PipelineConfig, ProviderConfig
from document_ocr.language import detect_language
from document_ocr.logger import Timer, get_logger, set_request_id
from document_ocr.metadata import extract_metadata
from document_ocr.models import (
    ErrorCategory,
    ExtractionFailure,
    ExtractionRequest,
    ExtractionResult,
    ExtractionSuccess,
    LanguageScore,
    ProviderOutcome,
)
from document_ocr.normalizer import clean_ocr_text, markdown_to_plain, plain_to_markdown
from document_ocr.providers import (
    ProviderClient,
    ProviderDescriptor,
    fallback_descriptor,
    primary_descriptor,
)

logger = get_logger(__name__)

SUPPORTED_LANGUAGES = ("en", "fr", "de", "es", "it", "mk", "sr", "bg", "ru", "zh", "ar", "ja")

# 1x1 transparent PNG used by connection tests.
PROBE_IMAGE = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChAI9jU77yQAAAABJRU5ErkJggg=="
)


class PipelineState(str, Enum):
    IDLE = "idle"
    PRIMARY_ATTEMPT = "primary_attempt"
    FALLBACK_ATTEMPT = "fallback_attempt"
    LOCAL_ATTEMPT = "local_attempt"
    SUCCESS = "success"
    DEGRADED = "degraded"
    DONE = "done"


class LocalExtractor(Protocol):
    async def extract(self, request: ExtractionRequest) -> ProviderOutcome: ...


class ExtractionPipeline:
    """Runs one request through primary, fallback and (optionally) local OCR.

    Every failure moves to the next tier regardless of its category. When
    no tier succeeds the result is the degraded sentinel; nothing is raised.
    """

    def __init__(
        self,
        client: ProviderClient,
        primary: ProviderDescriptor,
        fallback: ProviderDescriptor,
        config: Optional[PipelineConfig] = None,
        local_extractor: Optional[LocalExtractor] = None,
    ) -> None:
        self.client = client
        self.primary = primary
        self.fallback = fallback
        self.config = config or PipelineConfig()
        self.local_extractor = local_extractor

    @property
    def local_enabled(self) -> bool:
        return self.config.enable_local_ocr and self.local_extractor is not None

    def next_state(self, state: PipelineState) -> PipelineState:
        """State following ``state``; an attempt state is left only on failure."""
        if state is PipelineState.IDLE:
            return PipelineState.PRIMARY_ATTEMPT
        if state is PipelineState.PRIMARY_ATTEMPT:
            return PipelineState.FALLBACK_ATTEMPT
        if state is PipelineState.FALLBACK_ATTEMPT and self.local_enabled:
            return PipelineState.LOCAL_ATTEMPT
        if state in (PipelineState.SUCCESS, PipelineState.DEGRADED, PipelineState.DONE):
            return PipelineState.DONE
        return PipelineState.DEGRADED

    async def run(self, data: bytes) -> ExtractionResult:
        """Extract, normalize and enrich ``data``. Never raises for provider failures."""
        with Timer("extraction") as timer:
            request = ExtractionRequest.from_bytes(data)
            attempts: list[ExtractionFailure] = []
            result: Optional[ExtractionResult] = None
            state = self.next_state(PipelineState.IDLE)

            while state not in (PipelineState.SUCCESS, PipelineState.DEGRADED):
                outcome = await self._attempt(state, request)
                if isinstance(outcome, ExtractionSuccess):
                    outcome = self._build_result(outcome, attempts, timer.get_elapsed_ms())

                if isinstance(outcome, ExtractionResult):
                    result = outcome
                    state = PipelineState.SUCCESS
                    logger.info(
                        "Extraction succeeded",
                        extra_data={
                            "state": state.value,
                            "provider": result.provider,
                            "characters": len(result.text),
                            "language": result.language_code,
                            "confidence": result.confidence,
                            "failed_attempts": len(attempts),
                            "processing_time_ms": result.processing_time_ms,
                        },
                    )
                    continue

                attempts.append(outcome)
                next_state = self.next_state(state)
                logger.warning(
                    "Extraction attempt failed",
                    extra_data={
                        "state": state.value,
                        "next_state": next_state.value,
                        "provider": outcome.provider,
                        "category": outcome.category.value,
                    },
                )
                state = next_state

            if result is None:
                logger.warning(
                    "All providers failed, returning degraded result",
                    extra_data={
                        "state": state.value,
                        "categories": ",".join(attempt.category.value for attempt in attempts),
                        "processing_time_ms": timer.get_elapsed_ms(),
                    },
                )
                result = ExtractionResult.degraded(
                    processing_time_ms=timer.get_elapsed_ms(),
                    attempts=attempts,
                    language_code=self.config.default_language,
                )

        logger.debug(
            "Extraction finished",
            extra_data={"state": self.next_state(state).value, "elapsed_ms": timer.get_elapsed_ms()},
        )
        return result

    async def _attempt(self, state: PipelineState, request: ExtractionRequest) -> ProviderOutcome:
        if state is PipelineState.PRIMARY_ATTEMPT:
            name, call = self.primary.name, self.client.extract(request, self.primary)
        elif state is PipelineState.FALLBACK_ATTEMPT:
            name, call = self.fallback.name, self.client.extract(request, self.fallback)
        elif state is PipelineState.LOCAL_ATTEMPT and self.local_extractor is not None:
            name, call = "tesseract", self.local_extractor.extract(request)
        else:
            raise ValueError(f"No attempt defined for state {state.value}")

        try:
            return await call
        except Exception as exc:
            # Bugs in a tier count as that tier failing.
            logger.exception(
                "Unexpected error during extraction attempt",
                extra_data={"state": state.value, "error_type": type(exc).__name__},
            )
            return ExtractionFailure(
                category=ErrorCategory.TRANSPORT_ERROR,
                message=f"{type(exc).__name__}: {exc}",
                provider=name,
            )

    def _build_result(
        self,
        outcome: ExtractionSuccess,
        attempts: list[ExtractionFailure],
        elapsed_ms: int,
    ) -> Union[ExtractionResult, ExtractionFailure]:
        """Normalize and enrich provider text.

        Text that is nothing but markup, such as a lone ``---`` rule, has
        no content left after stripping and counts as a malformed response.
        """
        raw_text = outcome.raw_text
        if self.config.clean_ocr_text:
            raw_text = clean_ocr_text(raw_text, substitute_characters=self.config.substitute_characters)

        markdown = plain_to_markdown(raw_text)
        text = markdown_to_plain(markdown)
        if not text.strip():
            return ExtractionFailure(
                category=ErrorCategory.MALFORMED_RESPONSE,
                message="Response contained only markup",
                provider=outcome.provider,
            )

        score = detect_language(text)

        return ExtractionResult(
            text=text,
            markdown=markdown,
            language_code=score.language_code,
            language_confidence=score.confidence,
            confidence=score.confidence,
            processing_time_ms=elapsed_ms,
            metadata=extract_metadata(text, markdown),
            provider=outcome.provider,
            attempts=list(attempts),
        )


class DocumentOCRService:
    """Public entry point: extraction, language detection and capabilities.

    Collaborators are passed in rather than looked up globally; a single
    service (and its provider client) can be shared by concurrent tasks.

    Examples:
        >>> async with DocumentOCRService() as service:
        ...     result = await service.extract_from_image(image_bytes)
        ...     if result.is_degraded:
        ...         ...
    """

    def __init__(
        self,
        client: Optional[ProviderClient] = None,
        provider_config: Optional[ProviderConfig] = None,
        pipeline_config: Optional[PipelineConfig] = None,
        local_extractor: Optional[LocalExtractor] = None,
        ocr_config: Optional[OCRConfig] = None,
    ) -> None:
        """Initialize the service.

        Args:
            client: Provider client. If None, built from provider_config.
            provider_config: Endpoints and credentials. If None, read from the environment.
            pipeline_config: Pipeline switches. If None, uses defaults.
            local_extractor: Local OCR tier. If None and local OCR is enabled,
                a TesseractExtractor is created with ocr_config.
            ocr_config: Tesseract settings. Only used if local_extractor is None.
        """
        self.provider_config = (provider_config or ProviderConfig.from_env()).validate()
        self.pipeline_config = pipeline_config or PipelineConfig()
        self.client = client or ProviderClient.from_config(self.provider_config)

        if self.pipeline_config.enable_local_ocr and local_extractor is None:
            from document_ocr.local_ocr import TesseractExtractor

            local_extractor = TesseractExtractor(ocr_config)

        self.pipeline = ExtractionPipeline(
            client=self.client,
            primary=primary_descriptor(self.provider_config),
            fallback=fallback_descriptor(self.provider_config),
            config=self.pipeline_config,
            local_extractor=local_extractor,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "DocumentOCRService":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def extract_from_image(self, data: bytes) -> ExtractionResult:
        """Extract text, language and metadata from image bytes.

        Args:
            data: Raw image bytes (JPEG, PNG, GIF, BMP; unknown formats are sent as PNG)

        Returns:
            ExtractionResult; ``confidence == 0`` with empty text when every
            provider failed.
        """
        set_request_id()
        logger.info("Starting image extraction", extra_data={"size_bytes": len(data)})
        return await self.pipeline.run(data)

    async def extract_from_pdf(self, data: bytes) -> ExtractionResult:
        """Extract from PDF bytes. PDFs go through the same pipeline unsegmented."""
        set_request_id()
        logger.info("Starting PDF extraction", extra_data={"size_bytes": len(data)})
        return await self.pipeline.run(data)

    @staticmethod
    def detect_language(text: str) -> LanguageScore:
        return detect_language(text)

    def get_capabilities(self) -> dict[str, Any]:
        return {
            "supported_languages": list(SUPPORTED_LANGUAGES),
            "features": {
                "ocr": True,
                "language_detection": True,
                "markdown_output": True,
                "multi_page": True,
                "equations": True,
                "tables": True,
                "local_ocr": self.pipeline.local_enabled,
            },
        }

    async def probe_providers(self) -> dict[str, bool]:
        """Reachability of each remote provider host."""
        return {
            descriptor.name: await self.client.probe(descriptor)
            for descriptor in (self.pipeline.primary, self.pipeline.fallback)
        }

    async def test_connection(self) -> bool:
        """Run a tiny image through the pipeline; True if any tier answered."""
        result = await self.extract_from_image(PROBE_IMAGE)
        ok = not result.is_degraded
        if ok:
            logger.info("Connection test succeeded", extra_data={"provider": result.provider})
        else:
            logger.warning(
                "Connection test failed",
                extra_data={"categories": ",".join(a.category.value for a in result.attempts)},
            )
        return ok
