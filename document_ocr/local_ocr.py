"""Local Tesseract OCR, used as an opt-in last resort before degrading."""

import asyncio
import io
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF
import pymupdf4llm
import pytesseract
from PIL import Image, ImageEnhance, ImageOps

from document_ocr.config import OCRConfig
from document_ocr.logger import Timer, get_logger
from document_ocr.models import (
    ContentType,
    ErrorCategory,
    ExtractionFailure,
    ExtractionRequest,
    ExtractionSuccess,
    ProviderOutcome,
)

logger = get_logger(__name__)

PROVIDER_NAME = "tesseract"


class TesseractExtractor:
    """OCR documents on this machine with Tesseract.

    Images are OCR'd directly. PDFs first go through PyMuPDF4LLM for their
    native text layer; pages are rendered and OCR'd only when that layer is
    too thin to be a real text PDF.
    """

    def __init__(self, config: Optional[OCRConfig] = None):
        self.config = config or OCRConfig()

        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd
        if self.config.tessdata_prefix:
            os.environ["TESSDATA_PREFIX"] = self.config.tessdata_prefix

        logger.info(
            "Initializing TesseractExtractor",
            extra_data={
                "tesseract_cmd": self.config.tesseract_cmd,
                "languages": self.config.languages,
                "dpi": self.config.dpi,
            },
        )

    async def extract(self, request: ExtractionRequest) -> ProviderOutcome:
        """Run OCR in a worker thread and wrap the result as an outcome."""
        try:
            text = await asyncio.to_thread(self.extract_text, request)
        except Exception as exc:
            logger.exception(
                "Local OCR failed",
                extra_data={
                    "content_type": request.content_type.value,
                    "error_type": type(exc).__name__,
                },
            )
            return ExtractionFailure(
                category=ErrorCategory.TRANSPORT_ERROR,
                message=f"Local OCR failed: {exc}",
                provider=PROVIDER_NAME,
            )

        if not text.strip():
            return ExtractionFailure(
                category=ErrorCategory.MALFORMED_RESPONSE,
                message="Local OCR produced no text",
                provider=PROVIDER_NAME,
            )
        return ExtractionSuccess(raw_text=text, provider=PROVIDER_NAME)

    def extract_text(self, request: ExtractionRequest) -> str:
        if request.content_type is ContentType.PDF:
            return self._extract_pdf(request.payload)
        return self._extract_image(request.payload)

    def _preprocess(self, image: Image.Image) -> Image.Image:
        if not self.config.enable_image_preprocessing:
            return image
        image = ImageOps.grayscale(image)
        if self.config.contrast_enhancement != 1.0:
            image = ImageEnhance.Contrast(image).enhance(self.config.contrast_enhancement)
        return image

    def _ocr_image(self, image: Image.Image) -> str:
        return pytesseract.image_to_string(
            self._preprocess(image),
            lang=self.config.languages,
            config=f"--psm {self.config.psm_mode}",
        ).strip()

    def _extract_image(self, file_bytes: bytes) -> str:
        with Image.open(io.BytesIO(file_bytes)) as image:
            with Timer("image_ocr") as timer:
                text = self._ocr_image(image)

            logger.info(
                "Image OCR completed",
                extra_data={
                    "image_format": image.format,
                    "image_dimensions": f"{image.size[0]}x{image.size[1]}",
                    "characters_extracted": len(text),
                    "ocr_time_ms": timer.get_elapsed_ms(),
                },
            )
        return text

    def _extract_pdf(self, file_bytes: bytes) -> str:
        # pymupdf4llm wants a path
        with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as tmp_file:
            tmp_file.write(file_bytes)
            tmp_path = tmp_file.name

        try:
            with fitz.open(tmp_path) as pdf_document:
                page_count = len(pdf_document)

            with Timer("pdf_native_extraction") as native_timer:
                text = pymupdf4llm.to_markdown(
                    tmp_path,
                    table_strategy="lines_strict",
                    force_text=True,
                    write_images=False,
                    ignore_images=True,
                    fontsize_limit=3,
                ).strip()

            logger.debug(
                "PDF native text extraction completed",
                extra_data={
                    "characters_extracted": len(text),
                    "page_count": page_count,
                    "extraction_time_ms": native_timer.get_elapsed_ms(),
                },
            )

            if self.should_ocr_pdf(len(text), page_count, len(file_bytes)):
                with Timer("pdf_ocr") as ocr_timer:
                    ocr_text = self._ocr_pdf(tmp_path, page_count)
                logger.info(
                    "PDF OCR completed",
                    extra_data={
                        "native_characters": len(text),
                        "ocr_characters": len(ocr_text),
                        "ocr_time_ms": ocr_timer.get_elapsed_ms(),
                    },
                )
                if len(ocr_text) > len(text):
                    text = ocr_text

            return text
        finally:
            Path(tmp_path).unlink(missing_ok=True)

    def should_ocr_pdf(self, native_char_count: int, page_count: int, file_size_bytes: int) -> bool:
        """Decide whether the native text layer is too thin to trust."""
        if native_char_count == 0:
            return True
        if page_count > 0 and native_char_count / page_count < self.config.pdf_ocr_min_chars_per_page:
            return True
        return (
            native_char_count < self.config.pdf_ocr_min_chars
            and file_size_bytes >= self.config.pdf_ocr_min_file_size_bytes
        )

    def _ocr_page(self, pdf_path: str, page_num: int) -> str:
        with fitz.open(pdf_path) as pdf_document:
            pix = pdf_document[page_num].get_pixmap(dpi=self.config.dpi)
            with Image.open(io.BytesIO(pix.tobytes("png"))) as image:
                return self._ocr_image(image)

    def _ocr_pdf(self, pdf_path: str, page_count: int) -> str:
        """OCR every page in parallel and join them in page order."""
        page_results: dict[int, str] = {}
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            future_to_page = {
                executor.submit(self._ocr_page, pdf_path, page_num): page_num
                for page_num in range(page_count)
            }
            for future in as_completed(future_to_page):
                page_num = future_to_page[future]
                try:
                    page_results[page_num] = future.result()
                except Exception as exc:
                    # A failed page contributes no text.
                    logger.error(
                        f"OCR failed for page {page_num + 1}",
                        extra_data={"error_type": type(exc).__name__, "error": str(exc)},
                    )
                    page_results[page_num] = ""

        pages = [page_results[i] for i in range(page_count) if page_results[i]]
        return "\n\n".join(pages)
