from __future__ import annotations

import re

_ACCENTS = str.maketrans(
    {
        "á": "a", "à": "a", "â": "a", "ä": "a",
        "é": "e", "è": "e", "ê": "e", "ë": "e",
        "í": "i", "ì": "i", "î": "i", "ï": "i",
        "ó": "o", "ò": "o", "ô": "o", "ö": "o",
        "ú": "u", "ù": "u", "û": "u", "ü": "u",
        "ñ": "n",
    }
)

_CITY_SUFFIX = re.compile(r"\s+city$", re.IGNORECASE)
_MUNICIPALITY_SUFFIX = re.compile(r"\s+municipality$", re.IGNORECASE)
_BARANGAY_PREFIX = re.compile(r"^(?:barangay|brgy\.?|bgy\.?)\s+", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def slugify(raw: str | None) -> str:
    text = str(raw or "").strip().casefold()
    text = _WHITESPACE.sub("-", text)
    return text.translate(_ACCENTS)


def _strip_suffixes(text: str) -> str:
    text = _CITY_SUFFIX.sub("", text)
    return _MUNICIPALITY_SUFFIX.sub("", text)


def normalize_city(raw: str | None) -> str:
    # Output carries no whitespace, so a second pass cannot strip anything more.
    text = str(raw or "").strip()
    return slugify(_strip_suffixes(text))


def normalize_barangay(raw: str | None) -> str:
    text = str(raw or "").strip()
    text = _BARANGAY_PREFIX.sub("", text)
    return slugify(_strip_suffixes(text))
