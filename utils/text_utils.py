"""
Text helpers for character-name matching.

Names are compared through normalize_name() only; the normalized form is
never shown to the user.
"""

import unicodedata
from typing import Optional


def normalize_name(name: Optional[str]) -> str:
    """
    Canonical form of a display name for equality comparison.

    Lower-cases, strips combining diacritical marks (NFD decomposition, then
    every ``Mn`` codepoint removed) and removes all whitespace.

    >>> normalize_name(" Nguyễn  Lan ")
    'nguyenlan'
    """
    if not name:
        return ""
    decomposed = unicodedata.normalize("NFD", str(name).lower())
    return "".join(
        ch for ch in decomposed
        if unicodedata.category(ch) != "Mn" and not ch.isspace()
    )


def has_letter(text: str) -> bool:
    """True if text contains at least one Unicode letter."""
    return any(ch.isalpha() for ch in text)


def leading_letters(text: str) -> str:
    """Longest run of Unicode letters at the very start of text."""
    end = 0
    for ch in text:
        if not ch.isalpha():
            break
        end += 1
    return text[:end]


def letters_only(text: str) -> str:
    """Drop everything but letters (roster names are stored this way)."""
    return "".join(ch for ch in unicodedata.normalize("NFC", text or "") if ch.isalpha())


def digits_only(text: str) -> str:
    return "".join(ch for ch in text if "0" <= ch <= "9")
