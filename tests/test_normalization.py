import pytest

from storefront.core.normalization import (
    clean, normalize_address, normalize_email, normalize_name, normalize_phone,
)


@pytest.mark.parametrize("raw,expected", [
    ("a@x.com", "a@x.com"),
    ("A@X.com ", "a@x.com"),
    ("  Ayesha@Example.COM\t", "ayesha@example.com"),
    (None, ""),
    ("   ", ""),
])
def test_normalize_email(raw, expected):
    assert normalize_email(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    ("0300-1234567", "03001234567"),
    ("+92 (300) 123 4567", "923001234567"),
    ("0300.123.4567", "03001234567"),
    ("no digits", ""),
    (None, ""),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    ("12, Main St.  #4", "12 main st 4"),
    ("12 MAIN ST 4", "12 main st 4"),
    ("House_5 - Block B", "house 5 block b"),
    (None, ""),
])
def test_normalize_address(raw, expected):
    assert normalize_address(raw) == expected


def test_normalize_name_collapses_whitespace_and_case():
    assert normalize_name("  Jane   DOE ") == "jane doe"


@pytest.mark.parametrize("normalize", [normalize_email, normalize_phone, normalize_address, normalize_name])
@pytest.mark.parametrize("raw", [
    "  Mixed CASE @ Example.com ",
    "+1 (555) 010-9999 ext. 12",
    "Flat #3, 2nd Floor; Gulberg-III, LAHORE",
    "ｆｕｌｌｗｉｄｔｈ　ＴＥＸＴ １２",
    "",
])
def test_normalizers_are_idempotent(normalize, raw):
    once = normalize(raw)
    assert normalize(once) == once


def test_clean_trims_and_blanks_to_none():
    assert clean("  value ") == "value"
    assert clean("   ") is None
    assert clean(None) is None
