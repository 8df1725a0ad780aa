"""Sentence-level and phrase-level de-duplication."""

from __future__ import annotations

import re

from grounding_engine.analysis.text import jaccard_similarity, split_sentences

# Lead-in phrases whose second occurrence is dropped, keeping the first.
_REPEATED_LEAD_IN_RES = (
    re.compile(r"(I hear (?:you'?re|you are) dealing with)(.*?)(I hear (?:you'?re|you are) dealing with\s*)", re.I),
    re.compile(r"(I remember (?:you|your|we)\b)(.*?)(I remember (?:you|your|we)\b\s*)", re.I),
    re.compile(r"(you (?:mentioned|said|told me)\b)(\s*)(you (?:mentioned|said|told me)\b\s*)", re.I),
    re.compile(
        r"((?:I hear|It sounds like) you(?:'re| are) (?:dealing with|feeling))(\s*)"
        r"((?:I hear|It sounds like) you(?:'re| are)\s*(?:dealing with|feeling)?\s*)",
        re.I,
    ),
    re.compile(r"(what you(?:'re| are) sharing,?)(\s*)(what you(?:'re| are) sharing,?\s*)", re.I),
)
_SPLICED_HEDGE_RE = re.compile(r"dealing with you may have indicated", re.I)


def deduplicate_sentences(text: str, threshold: float = 0.7) -> str:
    """Drop every sentence that is identical or near-identical to an earlier kept one."""
    kept: list[str] = []
    for sentence in split_sentences(text):
        if any(_same(sentence, k) or jaccard_similarity(sentence, k) >= threshold for k in kept):
            continue
        kept.append(sentence)
    return " ".join(kept)


def remove_repeated_lead_ins(text: str) -> str:
    text = _SPLICED_HEDGE_RE.sub("dealing with", text)
    for pattern in _REPEATED_LEAD_IN_RES:
        text = pattern.sub(lambda m: m.group(1) + m.group(2), text)
    return clean_artifacts(text)


def clean_artifacts(text: str) -> str:
    text = re.sub(r"\s{2,}", " ", text)
    text = re.sub(r"\s+([.,!?])", r"\1", text)
    text = re.sub(r"\.\s*\.", ".", text)
    text = re.sub(r",\s*\.", ".", text)
    return text.strip()


def _same(a: str, b: str) -> bool:
    return a.lower().rstrip(".!? ") == b.lower().rstrip(".!? ")
