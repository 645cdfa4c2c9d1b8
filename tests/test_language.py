"""
Tests for heuristic language detection.
"""

import pytest

from document_ocr.language import (
    CYRILLIC_TABLES,
    LATIN_TABLES,
    MACEDONIAN,
    KeywordTable,
    MatchMode,
    cyrillic_ratio,
    detect_language,
    score_keywords,
)


class TestShortText:
    """Test the too-short-to-classify branch."""

    @pytest.mark.parametrize("text", ["", "hello", "123456789", "Привет"])
    def test_short_text_defaults_to_english(self, text):
        score = detect_language(text)

        assert score.language_code == "en"
        assert score.confidence == 0.5


class TestCyrillic:
    """Test script detection and the Macedonian/Serbian/Russian order."""

    def test_macedonian_keywords(self):
        score = detect_language("Универзитет Св. Кирил и Методиј, факултет за информатика")

        assert score.language_code == "mk"
        assert score.confidence >= 0.7
        assert score.confidence == pytest.approx(0.9)

    def test_single_macedonian_keyword(self):
        score = detect_language("Ова е уверение за положен курс")

        assert score.language_code == "mk"
        assert score.confidence == pytest.approx(0.8)

    def test_serbian_keywords(self):
        score = detect_language("Рођен је у граду Београд, српски језик")

        assert score.language_code == "sr"
        assert score.confidence == pytest.approx(0.8)

    def test_shared_keyword_resolves_to_macedonian(self):
        # "универзитет" is in both vocabularies; Macedonian is checked first.
        score = detect_language("Универзитет у Новом Саду, Београд")

        assert score.language_code == "mk"

    def test_cyrillic_without_keywords_is_russian(self):
        score = detect_language("Привет, как дела? Сегодня хорошая погода.")

        assert score.language_code == "ru"
        assert score.confidence == pytest.approx(0.8)

    def test_low_cyrillic_ratio_skips_script_branch(self):
        text = "This english sentence mentions one word: да"

        assert cyrillic_ratio(text) < 0.1
        assert detect_language(text).language_code == "en"


class TestLatinLanguages:
    """Test the lexical branches."""

    def test_french_keywords(self):
        score = detect_language("Attestation de formation professionnelle")

        assert score.language_code == "fr"
        assert score.confidence == pytest.approx(0.8)

    def test_french_accents(self):
        score = detect_language("L'été à côté")

        assert score.language_code == "fr"
        assert score.confidence == pytest.approx(0.9)

    def test_german(self):
        score = detect_language("Das ist der Hund und die Katze")

        assert score.language_code == "de"
        assert score.confidence == pytest.approx(0.75)

    def test_spanish(self):
        score = detect_language("el perro y la casa de los abuelos")

        assert score.language_code == "es"
        assert score.confidence == pytest.approx(0.75)

    def test_italian(self):
        score = detect_language("il gatto di Roma per le strade con amici")

        assert score.language_code == "it"
        assert score.confidence == pytest.approx(0.75)

    def test_two_markers_are_not_enough(self):
        score = detect_language("der Hund und eine Katze")

        assert score.language_code == "en"

    def test_english(self):
        score = detect_language("The quick brown fox jumps and runs to the university")

        assert score.language_code == "en"
        assert score.confidence == pytest.approx(0.6)

    def test_english_without_markers(self):
        score = detect_language("Lorem ipsum dolor sit amet")

        assert score.language_code == "en"
        assert score.confidence == pytest.approx(0.4)


class TestScoring:
    """Test the table-driven scorer."""

    def test_token_mode_requires_exact_tokens(self):
        table = KeywordTable("xx", ("der",), MatchMode.TOKEN, 0, 0.5, 0.1, 0.9)
        text = "border der"

        assert score_keywords(table, text, frozenset(text.split())) == 1
        assert score_keywords(table, "border", frozenset(["border"])) == 0

    def test_substring_mode(self):
        lowered = "факултетот"
        assert score_keywords(MACEDONIAN, lowered, frozenset([lowered])) == 1

    def test_confidence_is_capped(self):
        assert MACEDONIAN.confidence(10) == pytest.approx(0.9)

    def test_table_order(self):
        assert [t.language for t in CYRILLIC_TABLES] == ["mk", "sr"]
        assert [t.language for t in LATIN_TABLES] == ["de", "es", "it"]

    @pytest.mark.parametrize(
        "text",
        [
            "факултет " * 50,
            "é" * 40,
            "der die das und ist mit für von auf zu " * 5,
            "the and of to in is for with " * 10,
            "Привет " * 30,
        ],
    )
    def test_confidence_stays_in_unit_interval(self, text):
        score = detect_language(text)

        assert 0.0 <= score.confidence <= 1.0
