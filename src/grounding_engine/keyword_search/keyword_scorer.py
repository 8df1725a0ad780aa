"""Keyword overlap scoring over raw collection records."""

from __future__ import annotations

from collections.abc import Iterable

from grounding_engine.keyword_search.tokenizer import tokenize
from grounding_engine.models.domain import Record

TERM_MATCH_SCORE = 0.2
PHRASE_BONUS = 0.4


def keyword_score(query_tokens: list[str], text: str) -> tuple[float, int]:
    """Score one text against pre-tokenized query terms.

    Each query token found as a substring adds 0.2, the whole token sequence
    found as a substring adds 0.4 once, and the sum is scaled by the share of
    query tokens matched. Returns (score, match_count).
    """
    if not query_tokens:
        return 0.0, 0
    content = text.lower()
    matches = sum(1 for t in query_tokens if t in content)
    if matches == 0:
        return 0.0, 0
    score = TERM_MATCH_SCORE * matches
    if " ".join(query_tokens) in content:
        score += PHRASE_BONUS
    return score * (matches / len(query_tokens)), matches


def search_records(query: str, records: Iterable[Record]) -> list[tuple[Record, float]]:
    """Score every record; records with no matching token are excluded. Sorted by descending score."""
    query_tokens = tokenize(query)
    if not query_tokens:
        return []
    results = []
    for record in records:
        score, matches = keyword_score(query_tokens, record.text)
        if matches > 0:
            results.append((record, score))
    results.sort(key=lambda pair: pair[1], reverse=True)
    return results
