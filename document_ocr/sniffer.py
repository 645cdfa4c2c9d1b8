"""Content-type sniffing from leading magic bytes."""

from document_ocr.logger import get_logger
from document_ocr.models import ContentType

logger = get_logger(__name__)

# Two-byte prefixes are enough to tell these formats apart.
SIGNATURES: tuple[tuple[bytes, ContentType], ...] = (
    (b"\xff\xd8", ContentType.JPEG),
    (b"\x89P", ContentType.PNG),
    (b"GI", ContentType.GIF),
    (b"BM", ContentType.BMP),
    (b"%P", ContentType.PDF),
)

MIN_SIGNATURE_LENGTH = 4

# The primary provider accepts PNG losslessly for unknown raster input.
DEFAULT_CONTENT_TYPE = ContentType.PNG


def sniff_content_type(data: bytes) -> ContentType:
    """Classify raw bytes by their signature.

    Inputs shorter than four bytes, or matching no known signature, map to
    ``DEFAULT_CONTENT_TYPE``.
    """
    if len(data) < MIN_SIGNATURE_LENGTH:
        logger.debug(
            "Payload too short to sniff, using default content type",
            extra_data={"size_bytes": len(data), "content_type": DEFAULT_CONTENT_TYPE.value},
        )
        return DEFAULT_CONTENT_TYPE

    head = data[:MIN_SIGNATURE_LENGTH]
    for signature, content_type in SIGNATURES:
        if head.startswith(signature):
            logger.debug(
                "Detected content type from file signature",
                extra_data={"content_type": content_type.value, "signature": head.hex()},
            )
            return content_type

    logger.debug(
        "Unknown file signature, using default content type",
        extra_data={"signature": head.hex(), "content_type": DEFAULT_CONTENT_TYPE.value},
    )
    return DEFAULT_CONTENT_TYPE
