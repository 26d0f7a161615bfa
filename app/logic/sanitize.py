"""Canonical metafield keys derived from question titles."""

from __future__ import annotations

import re

_WHITESPACE = re.compile(r"\s+")


def sanitize_title(title: object) -> str:
    """Strip all whitespace and lowercase: `" My  Title "` -> `"mytitle"`.

    Stored question titles and incoming answer labels both pass through here
    so the two sides always address the same customer metafield.
    """
    return _WHITESPACE.sub("", str(title)).lower()


__all__ = ["sanitize_title"]
