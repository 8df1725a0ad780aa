"""Sentence splitting, token similarity and lightweight entity extraction."""

from __future__ import annotations

import re

from grounding_engine.config.constants import STOPWORDS

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_WORD_RE = re.compile(r"[a-z0-9']+")
_CAPITALISED_RE = re.compile(r"\b[A-Z][a-zA-Z'-]*(?:\s+[A-Z][a-zA-Z'-]*)*")
_DATE_RE = re.compile(r"\b(?:\d{1,2}/\d{1,2}(?:/\d{2,4})?|(?:19|20)\d{2})\b")
_NUMBER_RE = re.compile(r"\b\d+(?:[.,]\d+)?\b")


def split_sentences(text: str) -> list[str]:
    """Split on whitespace following a terminator; terminators stay with their sentence."""
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text.strip()) if s.strip()]


def strip_terminators(sentence: str) -> str:
    return sentence.rstrip(".!? ").strip()


def words(text: str) -> list[str]:
    return _WORD_RE.findall(text.lower())


def jaccard_similarity(a: str, b: str) -> float:
    """Token-set overlap of two texts in [0, 1]."""
    sa, sb = set(words(a)), set(words(b))
    if not sa or not sb:
        return 0.0
    return len(sa & sb) / len(sa | sb)


def ngrams(text: str, n: int) -> list[str]:
    tokens = words(text)
    return [" ".join(tokens[i : i + n]) for i in range(len(tokens) - n + 1)]


def extract_entities(text: str) -> list[str]:
    """Capitalised phrases, dates and numbers, in order of first appearance.

    A lone capitalised word opening a sentence is ordinary capitalisation and
    is skipped, as are stopwords and first-person pronouns.
    """
    entities: list[str] = []
    for sentence in split_sentences(text):
        for match in _CAPITALISED_RE.finditer(sentence):
            phrase = match.group(0).strip()
            parts = phrase.split()
            while parts and (parts[0].lower() in STOPWORDS or _is_pronoun(parts[0])):
                parts = parts[1:]
            if not parts:
                continue
            if len(parts) == 1 and match.start() == 0 and phrase == parts[0]:
                continue
            entities.append(" ".join(parts))

    entities.extend(_DATE_RE.findall(text))
    entities.extend(_NUMBER_RE.findall(text))

    seen: set[str] = set()
    unique = []
    for e in entities:
        if e not in seen:
            seen.add(e)
            unique.append(e)
    return unique


def _is_pronoun(word: str) -> bool:
    return word == "I" or word.startswith("I'")
