"""False memory checks: is a claimed reference to earlier conversation backed by evidence?"""

from __future__ import annotations

import re
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from grounding_engine.analysis.text import words
from grounding_engine.keyword_search.tokenizer import extract_terms
from grounding_engine.models.domain import FlagType, HallucinationFlag, Severity

TOPIC_WEIGHT = 0.3
MEMORY_STORE_WEIGHT = 0.5
MESSAGE_SIMILARITY_WEIGHT = 0.7
RECENT_MEMORY_WEIGHT = 0.4

EARLY_CONVERSATION_PENALTY = 0.8
UNSUPPORTED_REFERENCE_PENALTY = 0.25

_REFERENCE_RE = re.compile(
    r"\b(?:I remember(?: that)?(?: you| your| we)?(?: (?:told me|mentioned|said|shared|talked|discussed))?"
    r"|you (?:mentioned|told me|said|shared|talked about)"
    r"|you've (?:told|said to) me"
    r"|we (?:discussed|talked about))"
    r"(?: about| that| how)?\s*([^.!?;,]*)",
    re.I,
)


class RecentResponseMemory:
    """Bounded window of the engine's most recent finalised replies."""

    def __init__(self, max_size: int = 5) -> None:
        self._responses: deque[str] = deque(maxlen=max_size)

    def add(self, response: str) -> None:
        if response.strip():
            self._responses.append(response)

    def items(self) -> list[str]:
        return list(self._responses)

    def contains(self, text: str) -> bool:
        needle = text.lower().strip()
        return bool(needle) and any(needle in r.lower() for r in self._responses)

    def __len__(self) -> int:
        return len(self._responses)


@dataclass
class MemoryReference:
    phrase: str
    content: str


def find_references(reply: str) -> list[MemoryReference]:
    return [
        MemoryReference(phrase=m.group(0).strip(), content=m.group(1).strip())
        for m in _REFERENCE_RE.finditer(reply)
    ]


def message_similarity(content: str, message: str) -> float:
    """1.0 for literal containment, otherwise the share of content words present in the message."""
    if not content:
        return 0.0
    if content.lower() in message.lower():
        return 1.0
    content_words = {w for w in words(content) if len(w) > 2}
    if not content_words:
        return 0.0
    return len(content_words & set(words(message))) / len(content_words)


class MemoryReferenceChecker:
    """Scores each memory reference in a reply against the evidence available to the engine.

    ``memory_texts`` supplies the texts of stored user messages; it is read, never written.
    """

    def __init__(
        self,
        early_turns: int = 2,
        evidence_threshold: float = 0.6,
        memory_texts: Callable[[], Iterable[str]] | None = None,
        recent: RecentResponseMemory | None = None,
    ) -> None:
        self._early_turns = early_turns
        self._threshold = evidence_threshold
        self._memory_texts = memory_texts or (lambda: ())
        self._recent = recent

    def check(
        self, reply: str, user_input: str, history: list[str]
    ) -> list[tuple[HallucinationFlag, float]]:
        """Flags with their confidence penalties."""
        references = find_references(reply)
        if not references:
            return []

        if len(history) <= self._early_turns:
            flag = HallucinationFlag(
                type=FlagType.FALSE_MEMORY,
                severity=Severity.CRITICAL,
                description=f'Memory reference "{references[0].phrase}" in a new conversation',
                confidence_score=0.95,
            )
            return [(flag, EARLY_CONVERSATION_PENALTY)]

        flags = []
        for ref in references:
            score = self.evidence_score(ref.content, user_input, history)
            if score >= self._threshold:
                continue
            flags.append(
                (
                    HallucinationFlag(
                        type=FlagType.FALSE_MEMORY,
                        severity=_severity_for(score),
                        description=f'Unsupported memory reference "{ref.phrase}" (evidence {score:.2f})',
                        confidence_score=round(1.0 - score, 4),
                    ),
                    UNSUPPORTED_REFERENCE_PENALTY,
                )
            )
        return flags

    def evidence_score(self, content: str, user_input: str, history: list[str]) -> float:
        if not content:
            return 0.0
        score = 0.0

        input_terms = set(extract_terms(user_input))
        if input_terms & set(extract_terms(content)):
            score += TOPIC_WEIGHT

        needle = content.lower()
        if any(needle in text.lower() for text in self._memory_texts()):
            score += MEMORY_STORE_WEIGHT

        best = max((message_similarity(content, m) for m in history), default=0.0)
        score += MESSAGE_SIMILARITY_WEIGHT * best

        if self._recent is not None and self._recent.contains(content):
            score += RECENT_MEMORY_WEIGHT

        return score


def _severity_for(score: float) -> Severity:
    if score < 0.2:
        return Severity.HIGH
    if score < 0.4:
        return Severity.MEDIUM
    return Severity.LOW
