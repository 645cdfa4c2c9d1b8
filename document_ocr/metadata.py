"""Content metadata and document-type classification."""

import math
import re

from document_ocr.models import DocumentMetadata, DocumentType

CHARS_PER_PAGE = 2000

EQUATION_PATTERN = re.compile(
    r"\$.*\$|\\\(.*\\\)|\\\[.*\\\]|[∫∑∏√≤≥≠±∞πθαβγδ]"
)
TABLE_PATTERN = re.compile(r"\|.*\|.*\n.*\|.*-.*\|")

# First bucket with a hit wins.
KEYWORD_BUCKETS: tuple[tuple[DocumentType, tuple[str, ...]], ...] = (
    (DocumentType.CERTIFICATE, ("certificate", "attestation", "уверение")),
    (DocumentType.FINANCIAL, ("invoice", "bill", "payment")),
    (DocumentType.LEGAL, ("contract", "agreement")),
)


def has_equations(markdown: str) -> bool:
    return bool(EQUATION_PATTERN.search(markdown or ""))


def has_tables(markdown: str) -> bool:
    """True when a pipe row is followed by a separator row."""
    return bool(TABLE_PATTERN.search(markdown or ""))


def estimate_page_count(text: str) -> int:
    return max(1, math.ceil(len(text or "") / CHARS_PER_PAGE))


def classify_document_type(text: str, equations: bool, tables: bool) -> DocumentType:
    """Pick a document type from keyword buckets, then structural hints.

    Keyword buckets take precedence over equations (academic) and tables
    (report); with no signal at all the type is the generic ``document``.
    """
    lowered = (text or "").lower()
    for document_type, keywords in KEYWORD_BUCKETS:
        if any(keyword in lowered for keyword in keywords):
            return document_type
    if equations:
        return DocumentType.ACADEMIC
    if tables:
        return DocumentType.REPORT
    return DocumentType.DOCUMENT


def extract_metadata(text: str, markdown: str) -> DocumentMetadata:
    equations = has_equations(markdown)
    tables = has_tables(markdown)
    return DocumentMetadata(
        estimated_page_count=estimate_page_count(text),
        has_equations=equations,
        has_tables=tables,
        document_type=classify_document_type(text, equations, tables),
    )
