"""Synchronous high-level API for document extraction."""

import asyncio
from pathlib import Path
from typing import Optional

from document_ocr.config import OCRConfig, PipelineConfig, ProviderConfig
from document_ocr.models import ContentType, ExtractionResult
from document_ocr.pipeline import DocumentOCRService
from document_ocr.sniffer import sniff_content_type


def extract_document(
    file_path: Optional[str] = None,
    file_bytes: Optional[bytes] = None,
    provider_config: Optional[ProviderConfig] = None,
    pipeline_config: Optional[PipelineConfig] = None,
    ocr_config: Optional[OCRConfig] = None,
) -> ExtractionResult:
    """Extract text from a document in one blocking call.

    Convenience wrapper for scripts; async applications should keep a
    ``DocumentOCRService`` around instead. Must not be called from inside a
    running event loop.

    Args:
        file_path: Path to an image or PDF (alternative to file_bytes)
        file_bytes: Raw document bytes (alternative to file_path)
        provider_config: Endpoints and credentials (defaults to environment)
        pipeline_config: Pipeline switches (optional)
        ocr_config: Local Tesseract settings (optional)

    Returns:
        ExtractionResult, degraded if no provider produced text

    Raises:
        ValueError: If neither or both of file_path and file_bytes are given,
            or the file does not exist

    Examples:
        >>> result = extract_document(file_path="diploma.jpg")
        >>> print(result.language_code, result.confidence)
    """
    if file_path and file_bytes:
        raise ValueError("Provide either file_path or file_bytes, not both")

    if file_path:
        path = Path(file_path)
        if not path.is_file():
            raise ValueError(f"File not found: {file_path}")
        file_bytes = path.read_bytes()

    if file_bytes is None:
        raise ValueError("Must provide either file_path or file_bytes")

    return asyncio.run(
        _extract(file_bytes, provider_config, pipeline_config, ocr_config)
    )


async def _extract(
    file_bytes: bytes,
    provider_config: Optional[ProviderConfig],
    pipeline_config: Optional[PipelineConfig],
    ocr_config: Optional[OCRConfig],
) -> ExtractionResult:
    async with DocumentOCRService(
        provider_config=provider_config,
        pipeline_config=pipeline_config,
        ocr_config=ocr_config,
    ) as service:
        if sniff_content_type(file_bytes) is ContentType.PDF:
            return await service.extract_from_pdf(file_bytes)
        return await service.extract_from_image(file_bytes)
