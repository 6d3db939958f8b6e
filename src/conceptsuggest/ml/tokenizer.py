"""Text normalization for the classifier."""

from __future__ import annotations

import re

_TERM_RE = re.compile(r"[^\W_]+")


def tokenize(text: str) -> list[str]:
    """Split text on whitespace and punctuation into lowercase terms.

    Terms are returned in input order. Empty or blank text yields an empty list.
    """
    return [m.group().lower() for m in _TERM_RE.finditer(text)]
