"""Unit tests for core/utils/slug.py and core/utils/hashing.py"""

import pytest

from blockgen.core.utils.hashing import sha256
from blockgen.core.utils.slug import slugify


@pytest.mark.parametrize("text,expected", [
    ("Hero Banner", "hero-banner"),
    ("card_grid", "card-grid"),
    ("  Call To Action  ", "call-to-action"),
    ("multiple---hyphens", "multiple-hyphens"),
    ("Pricing! Table@", "pricing-table"),
])
def test_slugify_basic(text, expected):
    """slugify converts a title to a lowercase hyphenated slug."""
    assert slugify(text) == expected


def test_slugify_empty_uses_fallback():
    """An empty result falls back so the slug is always a usable directory name."""
    assert slugify("!!!") == "untitled"
    assert slugify("", fallback="block") == "block"


def test_sha256_is_stable():
    assert sha256("abc") == sha256("abc")
    assert len(sha256("abc")) == 64
    assert sha256("abc") != sha256("abd")
