"""Text preprocessing for keyword search and lexical overlap."""

from __future__ import annotations

import re

from grounding_engine.config.constants import STOPWORDS

_SPLIT_RE = re.compile(r"\W+")


def tokenize(text: str) -> list[str]:
    """Tokenize for keyword search: lowercase, split on non-word chars, drop tokens of 2 chars or fewer."""
    return [t for t in _SPLIT_RE.split(text.lower()) if len(t) > 2]


def extract_terms(text: str, min_length: int = 4) -> list[str]:
    """Distinct significant terms in order of first appearance, stopwords removed."""
    seen: set[str] = set()
    terms: list[str] = []
    for t in _SPLIT_RE.split(text.lower()):
        if len(t) >= min_length and t not in STOPWORDS and t not in seen:
            seen.add(t)
            terms.append(t)
    return terms
