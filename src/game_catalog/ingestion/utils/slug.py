"""Slug derivation for taxonomy entities."""

from slugify import slugify


def strict_slugify(name: str) -> str:
    """
    Lowercase ASCII slug with punctuation dropped and words hyphen-joined.

    >>> strict_slugify("The Witcher 3: Wild Hunt")
    'the-witcher-3-wild-hunt'
    """
    return slugify(name, lowercase=True)
