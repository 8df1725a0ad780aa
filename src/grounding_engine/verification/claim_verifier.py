"""Claim-level verification of a draft reply against conversation evidence."""

from __future__ import annotations

import re

from grounding_engine.analysis.text import split_sentences, strip_terminators
from grounding_engine.models.domain import ReasoningStep, VerificationOutcome
from grounding_engine.observability.logger import get_logger

logger = get_logger("claim_verifier")

MIN_CLAIM_LENGTH = 15
RECENT_TURNS = 3

UNSUPPORTED_QUOTE_CONFIDENCE = 0.3
INFERRED_FEELING_CONFIDENCE = 0.6
DEFAULT_CONFIDENCE = 0.9

NO_QUOTE_EVIDENCE = "No supporting evidence found in conversation history"
NO_FEELING_EVIDENCE = "No direct evidence, appears to be an inference"
NO_CONTRADICTION = "No contradicting evidence found"

_USER_REFERENCE_RE = re.compile(
    r"\b(you|your|feel|feeling|experiencing|situation|issue|problem|concern|mentioned)\b", re.I
)
_QUOTE_RE = re.compile(r"\byou (?:said|mentioned|told|expressed|shared|indicated)[^\w]*([\w\s]+)", re.I)
_FEELING_RE = re.compile(r"\byou (?:feel|feeling|experiencing|are)[^\w]*([\w\s]+)", re.I)

_QUOTE_VERB_RE = re.compile(
    r"\byou (?:said|mentioned|told(?: me)?|expressed|shared(?: with me)?|indicated)", re.I
)
_FEELING_VERB_RE = re.compile(
    r"\byou (?:are feeling|are experiencing|feel|feeling|experiencing|are)", re.I
)


class ClaimVerifier:
    def __init__(self, threshold: float = 0.7) -> None:
        self._threshold = threshold

    def verify(
        self,
        reply: str,
        user_input: str,
        history: list[str],
        threshold: float | None = None,
    ) -> VerificationOutcome:
        """Check each claim; rewrite the unsupported ones. Never raises."""
        threshold = self._threshold if threshold is None else threshold
        try:
            steps = [
                self._verify_step(step, user_input, history)
                for step in extract_claims(reply)
            ]
            is_sound = not any(s.confidence < threshold for s in steps)
            verified = reply if is_sound else revise(reply, steps, threshold)
            logger.debug(
                "claims_verified",
                claims=len(steps),
                is_sound=is_sound,
                revised=verified != reply,
            )
            return VerificationOutcome(verified_text=verified, steps=steps, is_sound=is_sound)
        except Exception as e:
            logger.warning("claim_verification_failed", error=str(e))
            return VerificationOutcome(verified_text=reply, steps=[], is_sound=True)

    @staticmethod
    def _verify_step(step: ReasoningStep, user_input: str, history: list[str]) -> ReasoningStep:
        claim = step.claim
        evidence: list[str] = []

        quote = _QUOTE_RE.search(claim)
        if quote and quote.group(1).strip():
            alleged = quote.group(1).strip().lower()
            step.kind = "quote"
            source = next((m for m in history if alleged in m.lower()), None)
            if source is None:
                step.evidence = [NO_QUOTE_EVIDENCE]
                step.confidence = UNSUPPORTED_QUOTE_CONFIDENCE
                return step
            evidence.append(f'User message contains: "{alleged}"')

        feeling = _FEELING_RE.search(claim)
        if feeling and feeling.group(1).strip():
            alleged = feeling.group(1).strip().lower()
            if step.kind == "general":
                step.kind = "feeling"
            if alleged in user_input.lower():
                evidence.append(f'Current message contains: "{alleged}"')
            else:
                recent = next((m for m in history[-RECENT_TURNS:] if alleged in m.lower()), None)
                if recent is None:
                    step.evidence = [NO_FEELING_EVIDENCE]
                    step.confidence = INFERRED_FEELING_CONFIDENCE
                    return step
                evidence.append(f'Recent message contains: "{alleged}"')

        step.evidence = evidence or [NO_CONTRADICTION]
        step.confidence = DEFAULT_CONFIDENCE
        return step


def extract_claims(reply: str) -> list[ReasoningStep]:
    """Sentences over 15 characters that are not questions and refer to the user."""
    steps = []
    for sentence in split_sentences(reply):
        if sentence.endswith("?"):
            continue
        claim = strip_terminators(sentence)
        if len(claim) <= MIN_CLAIM_LENGTH:
            continue
        if _USER_REFERENCE_RE.search(claim):
            steps.append(ReasoningStep(claim=claim))
    return steps


def revise(reply: str, steps: list[ReasoningStep], threshold: float = 0.7) -> str:
    """Replace every claim below ``threshold`` with a hedged version."""
    revised = reply
    for step in steps:
        if step.confidence >= threshold:
            continue
        revised = revised.replace(step.claim, hedge(step), 1)
    return revised


def hedge(step: ReasoningStep) -> str:
    claim = step.claim
    if step.kind == "quote":
        return _sub_keep_case(_QUOTE_VERB_RE, "you may have indicated", claim)
    if step.kind == "feeling":
        return _sub_keep_case(_FEELING_VERB_RE, "you might be feeling", claim)
    first = claim[0].lower() if not claim.startswith(("I ", "I'")) else claim[0]
    return f"It seems like {first}{claim[1:]}"


def _sub_keep_case(pattern: re.Pattern, replacement: str, text: str) -> str:
    match = pattern.search(text)
    if match is None:
        return text
    if match.start() == 0:
        replacement = replacement[0].upper() + replacement[1:]
    return text[: match.start()] + replacement + text[match.end():]
