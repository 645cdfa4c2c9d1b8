"""Plain text and markdown normalization for provider output."""

import re

_HEADER = re.compile(r"^#{1,6}[ \t]+", re.MULTILINE)
# Intraword markers (snake_case, 5*3) are not emphasis.
_BOLD_STAR = re.compile(r"(?<![A-Za-z0-9])\*\*([^*]+)\*\*(?![A-Za-z0-9])")
_ITALIC_STAR = re.compile(r"(?<![A-Za-z0-9])\*([^*]+)\*(?![A-Za-z0-9])")
_BOLD_UNDERSCORE = re.compile(r"(?<![A-Za-z0-9])__([^_]+)__(?![A-Za-z0-9])")
_ITALIC_UNDERSCORE = re.compile(r"(?<![A-Za-z0-9])_([^_]+)_(?![A-Za-z0-9])")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_FENCED_CODE = re.compile(r"```([^\n`]*)\n?([\s\S]*?)```")
_INLINE_CODE = re.compile(r"`([^`]+)`")
_HORIZONTAL_RULE = re.compile(r"^[ \t]*---+[ \t]*$", re.MULTILINE)
_UNORDERED_MARKER = re.compile(r"^[ \t]*[-*+][ \t]+", re.MULTILINE)
_ORDERED_MARKER = re.compile(r"^[ \t]*\d+\.[ \t]+", re.MULTILINE)
_BLANK_RUN = re.compile(r"\n\s*\n")

_WHITESPACE = re.compile(r"\s+")
_LOWER_UPPER = re.compile(r"([a-z])([A-Z])")
_DIGIT_LETTER = re.compile(r"([0-9])([a-zA-Z])")
_LETTER_DIGIT = re.compile(r"([a-zA-Z])([0-9])")
_SUBSTITUTIONS = str.maketrans({"0": "O", "1": "I", "5": "S"})


def _unfence(match: re.Match) -> str:
    info, body = match.group(1).strip(), match.group(2)
    return f"{info}\n{body}" if info else body


def plain_to_markdown(text: str) -> str:
    """Render provider text as markdown.

    Provider output is already close to prose, so line structure is kept
    as-is and nothing is escaped; only outer whitespace is trimmed.
    """
    if not text:
        return ""
    return text.strip()


def markdown_to_plain(markdown: str) -> str:
    """Strip markdown syntax while keeping the words it decorates.

    Steps run in a fixed order; emphasis has to go before blank-line
    collapsing or stray markers survive.
    """
    if not markdown:
        return ""

    text = _HEADER.sub("", markdown)
    text = _BOLD_STAR.sub(r"\1", text)
    text = _ITALIC_STAR.sub(r"\1", text)
    text = _BOLD_UNDERSCORE.sub(r"\1", text)
    text = _ITALIC_UNDERSCORE.sub(r"\1", text)
    text = _LINK.sub(r"\1", text)
    text = _FENCED_CODE.sub(_unfence, text)
    text = _INLINE_CODE.sub(r"\1", text)
    text = _HORIZONTAL_RULE.sub("", text)
    text = _UNORDERED_MARKER.sub("", text)
    text = _ORDERED_MARKER.sub("", text)
    text = _BLANK_RUN.sub("\n\n", text)
    return text.strip()


def clean_ocr_text(text: str, substitute_characters: bool = False) -> str:
    """Tidy common OCR artefacts.

    Collapses whitespace and separates glued words at lowercase/uppercase
    and digit/letter boundaries. With ``substitute_characters`` the digits
    0, 1 and 5 are rewritten as O, I and S, which corrupts numeric content
    and is therefore opt-in.
    """
    if not text:
        return ""

    cleaned = _WHITESPACE.sub(" ", text)
    cleaned = _LOWER_UPPER.sub(r"\1 \2", cleaned)
    cleaned = _DIGIT_LETTER.sub(r"\1 \2", cleaned)
    cleaned = _LETTER_DIGIT.sub(r"\1 \2", cleaned)
    if substitute_characters:
        cleaned = cleaned.translate(_SUBSTITUTIONS)
    return cleaned.strip()
