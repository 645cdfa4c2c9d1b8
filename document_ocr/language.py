"""Heuristic language detection for extracted text.

Detection is a priority chain, not a vote: a script check on Cyrillic
characters runs first, then lexical checks in a fixed language order. The
vocabularies overlap (``универзитет`` is both Macedonian and Serbian, ``la``
is both Spanish and Italian), so reordering the tables changes results.
"""

from dataclasses import dataclass
from enum import Enum

from document_ocr.models import LanguageScore

MIN_TEXT_LENGTH = 10
SHORT_TEXT_SCORE = LanguageScore("en", 0.5)

CYRILLIC_RATIO_THRESHOLD = 0.10
FRENCH_ACCENT_RATIO_THRESHOLD = 0.02
FRENCH_ACCENT_WEIGHT = 10.0

FRENCH_ACCENTS = frozenset("àâäéèêëïîôöùûüÿç" + "àâäéèêëïîôöùûüÿç".upper())


class MatchMode(str, Enum):
    SUBSTRING = "substring"
    """Term appears anywhere in the lowercased text."""

    TOKEN = "token"
    """Term equals a whitespace-separated token of the lowercased text."""


@dataclass(frozen=True)
class KeywordTable:
    """Vocabulary for one language plus its scoring rule.

    A table matches when the number of terms found exceeds ``threshold``;
    its confidence is ``min(cap, base + step * count)``.
    """

    language: str
    terms: tuple[str, ...]
    mode: MatchMode
    threshold: int
    base: float
    step: float
    cap: float

    def confidence(self, count: int, bonus: float = 0.0) -> float:
        return _clamp(min(self.cap, self.base + self.step * count + bonus))


MACEDONIAN = KeywordTable(
    language="mk",
    terms=(
        "уверение",
        "универзитет",
        "информатика",
        "контролен",
        "испит",
        "диплома",
        "сертификат",
        "институт",
        "факултет",
        "студент",
    ),
    mode=MatchMode.SUBSTRING,
    threshold=0,
    base=0.7,
    step=0.1,
    cap=0.9,
)

SERBIAN = KeywordTable(
    language="sr",
    terms=("српски", "београд", "новосад", "универзитет"),
    mode=MatchMode.SUBSTRING,
    threshold=0,
    base=0.8,
    step=0.0,
    cap=0.8,
)

FRENCH = KeywordTable(
    language="fr",
    terms=(
        "université",
        "attestation",
        "certificat",
        "formation",
        "continue",
        "informatique",
        "publique",
        "municipale",
        "français",
        "cours",
    ),
    mode=MatchMode.SUBSTRING,
    threshold=0,
    base=0.6,
    step=0.1,
    cap=0.9,
)

GERMAN = KeywordTable(
    language="de",
    terms=(
        "der", "die", "das", "und", "ist", "mit", "für", "von", "auf", "zu",
        "universität", "deutschland", "deutsch",
    ),
    mode=MatchMode.TOKEN,
    threshold=2,
    base=0.5,
    step=0.05,
    cap=0.8,
)

SPANISH = KeywordTable(
    language="es",
    terms=(
        "el", "la", "los", "las", "de", "del", "y", "es", "en", "con",
        "universidad", "español", "certificado",
    ),
    mode=MatchMode.TOKEN,
    threshold=2,
    base=0.5,
    step=0.05,
    cap=0.8,
)

ITALIAN = KeywordTable(
    language="it",
    terms=("il", "la", "le", "di", "da", "in", "con", "per", "università", "italiano"),
    mode=MatchMode.TOKEN,
    threshold=2,
    base=0.5,
    step=0.05,
    cap=0.8,
)

ENGLISH = KeywordTable(
    language="en",
    terms=("the", "and", "of", "to", "in", "is", "for", "with", "university", "certificate"),
    mode=MatchMode.TOKEN,
    threshold=-1,
    base=0.4,
    step=0.05,
    cap=0.8,
)

# Checked in order inside the Cyrillic branch; Russian is the fallback.
CYRILLIC_TABLES: tuple[KeywordTable, ...] = (MACEDONIAN, SERBIAN)
RUSSIAN_BASE = 0.5
RUSSIAN_CAP = 0.8

# Checked in order after French; English is the fallback.
LATIN_TABLES: tuple[KeywordTable, ...] = (GERMAN, SPANISH, ITALIAN)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _is_cyrillic(char: str) -> bool:
    return "\u0400" <= char <= "\u04ff"


def cyrillic_ratio(text: str) -> float:
    if not text:
        return 0.0
    return sum(1 for char in text if _is_cyrillic(char)) / len(text)


def french_accent_ratio(text: str) -> float:
    if not text:
        return 0.0
    return sum(1 for char in text if char in FRENCH_ACCENTS) / len(text)


def score_keywords(table: KeywordTable, lowered: str, tokens: frozenset[str]) -> int:
    """Count how many of the table's terms occur in the text."""
    if table.mode is MatchMode.SUBSTRING:
        return sum(1 for term in table.terms if term in lowered)
    return sum(1 for term in table.terms if term in tokens)


def detect_language(text: str) -> LanguageScore:
    """Guess the language of ``text``.

    Returns ``("en", 0.5)`` for text shorter than ten characters.
    Deterministic and free of I/O.
    """
    if not text or len(text) < MIN_TEXT_LENGTH:
        return SHORT_TEXT_SCORE

    lowered = text.lower()
    tokens = frozenset(lowered.split())

    ratio = cyrillic_ratio(text)
    if ratio > CYRILLIC_RATIO_THRESHOLD:
        for table in CYRILLIC_TABLES:
            count = score_keywords(table, lowered, tokens)
            if count > table.threshold:
                return LanguageScore(table.language, table.confidence(count))
        return LanguageScore("ru", _clamp(min(RUSSIAN_CAP, RUSSIAN_BASE + ratio)))

    french_count = score_keywords(FRENCH, lowered, tokens)
    accent_ratio = french_accent_ratio(text)
    if french_count > FRENCH.threshold or accent_ratio > FRENCH_ACCENT_RATIO_THRESHOLD:
        return LanguageScore(
            FRENCH.language,
            FRENCH.confidence(french_count, bonus=FRENCH_ACCENT_WEIGHT * accent_ratio),
        )

    for table in LATIN_TABLES:
        count = score_keywords(table, lowered, tokens)
        if count > table.threshold:
            return LanguageScore(table.language, table.confidence(count))

    return LanguageScore(ENGLISH.language, ENGLISH.confidence(score_keywords(ENGLISH, lowered, tokens)))
