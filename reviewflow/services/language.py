"""Review language detection.

Short or undetermined text is treated as English. Detected codes are mapped
to the language names used in prompts and stored on reviews; languages
outside the map also fall back to English.
"""

from __future__ import annotations

from dataclasses import dataclass

from langdetect import DetectorFactory, LangDetectException, detect

from ..logging.config import get_logger

logger = get_logger(__name__)

# langdetect is probabilistic; a fixed seed keeps results stable per text.
DetectorFactory.seed = 0

DEFAULT_LANGUAGE = "English"
DEFAULT_CODE = "en"
MIN_DETECTABLE_CHARS = 10
HIGH_CONFIDENCE_CHARS = 50

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "pl": "Polish",
    "ru": "Russian",
    "ja": "Japanese",
    "zh-cn": "Chinese (Simplified)",
    "zh-tw": "Chinese (Traditional)",
    "ko": "Korean",
    "ar": "Arabic",
    "he": "Hebrew",
    "hi": "Hindi",
    "tr": "Turkish",
    "vi": "Vietnamese",
    "th": "Thai",
    "id": "Indonesian",
    "tl": "Filipino",
    "sv": "Swedish",
    "da": "Danish",
    "fi": "Finnish",
    "no": "Norwegian",
    "cs": "Czech",
    "hu": "Hungarian",
    "ro": "Romanian",
    "uk": "Ukrainian",
    "ca": "Catalan",
    "hr": "Croatian",
    "sl": "Slovenian",
    "bg": "Bulgarian",
    "lt": "Lithuanian",
    "lv": "Latvian",
    "et": "Estonian",
    "bn": "Bengali",
    "ta": "Tamil",
    "te": "Telugu",
    "mr": "Marathi",
    "ur": "Urdu",
    "fa": "Persian",
}

RTL_LANGUAGES = frozenset({"Arabic", "Hebrew", "Persian", "Urdu"})


@dataclass(frozen=True)
class DetectedLanguage:
    language: str
    code: str
    confident: bool

    @property
    def is_rtl(self) -> bool:
        return self.language in RTL_LANGUAGES


_FALLBACK = DetectedLanguage(language=DEFAULT_LANGUAGE, code=DEFAULT_CODE, confident=False)


def detect_language(text: str | None) -> DetectedLanguage:
    """Detect the language a review is written in."""
    text = (text or "").strip()
    if len(text) < MIN_DETECTABLE_CHARS:
        return _FALLBACK

    try:
        code = detect(text)
    except LangDetectException:
        logger.debug("Language undetermined", length=len(text))
        return _FALLBACK

    language = LANGUAGE_NAMES.get(code)
    if language is None:
        return _FALLBACK
    return DetectedLanguage(
        language=language,
        code=code,
        confident=len(text) >= HIGH_CONFIDENCE_CHARS,
    )
