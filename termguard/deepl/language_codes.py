"""
DeepL language codes.
"""

# Local codes (lowercase) to DeepL codes. Unknown codes are upper-cased.
DEEPL_LANGUAGE_CODES = {
    "en": "EN",
    "en-us": "EN-US",
    "en-gb": "EN-GB",
    "de": "DE",
    "fr": "FR",
    "es": "ES",
    "it": "IT",
    "nl": "NL",
    "pl": "PL",
    "pt": "PT-BR",
    "pt-br": "PT-BR",
    "pt-pt": "PT-PT",
    "ru": "RU",
    "da": "DA",
    "fi": "FI",
    "sv": "SV",
    "nb": "NB",
    "bg": "BG",
    "cs": "CS",
    "et": "ET",
    "hu": "HU",
    "lv": "LV",
    "lt": "LT",
    "ro": "RO",
    "sk": "SK",
    "sl": "SL",
    "el": "EL",
    "uk": "UK",
    "tr": "TR",
    "ja": "JA",
    "zh": "ZH",
    "zh-hans": "ZH",
    "ko": "KO",
    "id": "ID",
    "ar": "AR",
}


def to_deepl_code(code: str) -> str:
    """Convert a local language code (e.g. "pt", "en_GB") to DeepL's form."""
    normalized = code.strip().lower().replace("_", "-")
    return DEEPL_LANGUAGE_CODES.get(normalized, normalized.upper())


def to_deepl_source_code(code: str) -> str:
    """
    DeepL code for the source side of a glossary.

    Glossary language pairs take base languages only ("EN", not "EN-GB").
    """
    normalized = code.strip().lower().replace("_", "-")
    return normalized.split("-")[0].upper()
