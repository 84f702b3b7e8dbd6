"""
Contact normalization.

Canonical forms used for every equality comparison between contact values:

    email    surrounding whitespace removed, lowercased
             "  A@X.com " -> "a@x.com"
    phone    every non-digit dropped
             "+92 (300) 123-4567" -> "923001234567"
    address  case-folded, punctuation replaced by spaces, whitespace collapsed
             "12, Main St.  #4" -> "12 main st 4"
    name     case-folded, whitespace collapsed
             "  Jane   DOE" -> "jane doe"

All functions are pure and idempotent and accept None (returning "").
An empty result means "no usable value" and never matches anything.
"""
import re
import unicodedata
from typing import Optional

_NON_DIGIT = re.compile(r"\D")
_ADDRESS_PUNCTUATION = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")


def _text(value: Optional[str]) -> str:
    if value is None:
        return ""
    return unicodedata.normalize("NFKC", str(value))


def normalize_email(value: Optional[str]) -> str:
    return _text(value).strip().lower()


def normalize_phone(value: Optional[str]) -> str:
    return _NON_DIGIT.sub("", _text(value))


def normalize_address(value: Optional[str]) -> str:
    text = _ADDRESS_PUNCTUATION.sub(" ", _text(value).casefold())
    return _WHITESPACE.sub(" ", text).strip()


def normalize_name(value: Optional[str]) -> str:
    return _WHITESPACE.sub(" ", _text(value).casefold()).strip()


def clean(value: Optional[str]) -> Optional[str]:
    """Trim a raw contact value; blank strings become None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None
