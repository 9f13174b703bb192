"""Tests for review language detection."""

import pytest
from langdetect import LangDetectException

from reviewflow.services import language
from reviewflow.services.language import DEFAULT_LANGUAGE, detect_language

pytestmark = pytest.mark.unit

SPANISH = (
    "La comida estaba deliciosa y el servicio fue excelente, "
    "volveremos muy pronto con amigos."
)
ARABIC = "كانت الخدمة ممتازة والطعام لذيذ جدا وسنعود مرة أخرى بالتأكيد مع العائلة"


class TestDetectLanguage:
    """Tests for detect_language."""

    @pytest.mark.parametrize("text", [None, "", "   ", "Great!", "Merci bcp"])
    def test_short_text_defaults_to_english(self, text):
        result = detect_language(text)

        assert result.language == DEFAULT_LANGUAGE
        assert result.confident is False

    def test_detects_spanish(self):
        result = detect_language(SPANISH)

        assert result.language == "Spanish"
        assert result.code == "es"
        assert result.confident is True
        assert result.is_rtl is False

    def test_rtl_language(self):
        result = detect_language(ARABIC)

        assert result.language == "Arabic"
        assert result.is_rtl is True

    def test_short_detection_is_not_confident(self, monkeypatch):
        monkeypatch.setattr(language, "detect", lambda text: "fr")

        result = detect_language("Très bon repas")

        assert result.language == "French"
        assert result.confident is False

    def test_undetermined_text_defaults_to_english(self, monkeypatch):
        def undetermined(text):
            raise LangDetectException(0, "No features in text.")

        monkeypatch.setattr(language, "detect", undetermined)

        assert detect_language("1234567890 ###").language == DEFAULT_LANGUAGE

    def test_unmapped_language_defaults_to_english(self, monkeypatch):
        monkeypatch.setattr(language, "detect", lambda text: "sw")

        result = detect_language("Huduma ilikuwa nzuri sana, asante")

        assert result.language == DEFAULT_LANGUAGE
        assert result.code == "en"
