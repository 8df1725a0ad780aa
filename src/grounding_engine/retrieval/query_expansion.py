"""Query expansion: significant terms, word variants, phrases, entities, topics and synonyms."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from grounding_engine.config.constants import MENTAL_HEALTH_SYNONYMS, STOPWORDS
from grounding_engine.keyword_search.tokenizer import extract_terms
from grounding_engine.observability.logger import get_logger

logger = get_logger("query_expansion")

MIN_TERM_LENGTH = 4

_ENTITY_RE = re.compile(r"\b[A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)*\b")
_WORD_RE = re.compile(r"[A-Za-z']+")


@dataclass
class ExpandedQuery:
    original: str
    terms: list[str]
    expansions: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        if not self.expansions:
            return self.original
        extra = [e for e in self.expansions if e not in self.original.lower()]
        return " ".join([self.original, *extra]) if extra else self.original


class QueryExpander:
    def __init__(self, max_terms: int = 8) -> None:
        self._max_terms = max_terms

    def expand(self, query: str, topics: list[str] | None = None) -> ExpandedQuery:
        terms = extract_terms(query, MIN_TERM_LENGTH)
        scored: dict[str, float] = {}

        def offer(term: str, score: float) -> None:
            term = term.strip().lower()
            if term and term not in scored:
                scored[term] = score

        for t in terms:
            offer(t, 1.0)
        for entity in _extract_entities(query):
            offer(entity, 0.95)
        for phrase in _extract_phrases(query):
            offer(phrase, min(1.0, 0.9 + 0.05 * len(phrase.split())))
        for topic in topics or []:
            if len(topic) >= MIN_TERM_LENGTH:
                offer(topic, 0.9)
        for t in terms:
            for variant in word_variants(t):
                offer(variant, 0.8)
            for synonym in MENTAL_HEALTH_SYNONYMS.get(t, [])[:2]:
                offer(synonym, 0.75)

        ranked = sorted(scored.items(), key=lambda kv: kv[1], reverse=True)
        expansions = [term for term, _ in ranked[: self._max_terms]]
        logger.debug("query_expanded", terms=len(terms), expansions=expansions)
        return ExpandedQuery(original=query, terms=terms, expansions=expansions)


def word_variants(word: str) -> list[str]:
    """Plural and verb-form variants of a lowercase word."""
    variants: list[str] = []
    if word.endswith("ies") and len(word) > 4:
        variants.append(word[:-3] + "y")
    elif word.endswith("s") and not word.endswith("ss"):
        if len(word) - 1 >= MIN_TERM_LENGTH:
            variants.append(word[:-1])
    else:
        variants.append(word + "es" if word.endswith(("s", "x", "ch", "sh")) else word + "s")

    if word.endswith("ing") and len(word) > 5:
        stem = word[:-3]
        variants.extend([stem, stem + "ed"])
    elif word.endswith("ed") and len(word) > 4:
        stem = word[:-2]
        variants.extend([stem, stem + "ing"])
    return [v for v in variants if len(v) >= MIN_TERM_LENGTH and v != word]


def _extract_phrases(query: str) -> list[str]:
    """Two and three word runs of non-stopwords."""
    words = [w.lower() for w in _WORD_RE.findall(query)]
    phrases: list[str] = []
    run: list[str] = []
    for w in [*words, ""]:
        if w and w not in STOPWORDS and len(w) > 2:
            run.append(w)
            continue
        for n in (3, 2):
            for i in range(len(run) - n + 1):
                phrases.append(" ".join(run[i : i + n]))
        run = []
    return phrases


def _extract_entities(query: str) -> list[str]:
    """Capitalised words or runs of them that are not stopwords."""
    entities = []
    for match in _ENTITY_RE.finditer(query):
        text = match.group(0)
        if text.lower() in STOPWORDS or text == "I":
            continue
        entities.append(text)
    return entities
