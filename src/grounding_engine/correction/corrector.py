"""Targeted rewrites for detected hallucinations.

Fixes are applied in a fixed priority order: safety protocol problems first
(which may replace the whole reply with a resource-bearing message), then
false memory phrasing, then repetition, then emotion attribution. Each fix is
a string substitution or sentence removal; nothing is regenerated.
"""

from __future__ import annotations

import re

from grounding_engine.analysis.text import split_sentences
from grounding_engine.config.constants import (
    EATING_DISORDER_SAFETY_MESSAGE,
    SUBSTANCE_SAFETY_MESSAGE,
    SUICIDE_SAFETY_MESSAGE,
)
from grounding_engine.correction.repetition import (
    clean_artifacts,
    deduplicate_sentences,
    remove_repeated_lead_ins,
)
from grounding_engine.detection import emotion
from grounding_engine.detection.patterns import (
    CASUAL_VOCAB_RE,
    EATING_DISORDER_INPUT_RE,
    SUBSTANCE_INPUT_RE,
    SUICIDE_INPUT_RE,
)
from grounding_engine.exceptions import CorrectionError
from grounding_engine.models.domain import CorrectionResult, DetectionReport, FlagType
from grounding_engine.observability.logger import get_logger

logger = get_logger("corrector")

SAFETY_FLAGS = (
    FlagType.CRITICAL_PROTOCOL_MIX,
    FlagType.CRISIS_TYPE_MISMATCH,
    FlagType.SUBSTANCE_USE_MISHANDLED,
    FlagType.MISSING_CRISIS_RESOURCES,
)
MEMORY_FLAGS = (FlagType.FALSE_MEMORY, FlagType.FALSE_CONTINUITY)
REPETITION_FLAGS = (FlagType.REPETITION, FlagType.CROSS_RESPONSE_REPETITION)
EMOTION_FLAGS = (
    FlagType.CRITICAL_EMOTION_MISIDENTIFICATION,
    FlagType.EMOTION_MISIDENTIFICATION,
    FlagType.EMOTION_CONTRADICTION,
)

_MEMORY_LEAD_IN_RE = re.compile(
    r"\bI remember(?: that)? you(?:'ve)? "
    r"(?:told me|mentioned|said|shared|talked|may have indicated|indicated)"
    r"(?: (?:about|that|how))?\s*",
    re.I,
)
_BARE_REMEMBER_RE = re.compile(r"\bI remember(?: that)?\s*", re.I)
_PRIOR_MENTION_RE = re.compile(
    r"\byou mentioned before|you told me earlier|when we talked about|as we discussed"
    r"|as you said|as you mentioned|you've told me",
    re.I,
)
_PRIOR_CONVERSATION_RE = re.compile(
    r"\bwe talked about|our previous conversation|earlier you said", re.I
)
_TIMELINE_RE = re.compile(
    r"\s*\b(?:last (?:week|time|session|night|month)|earlier|before|previously"
    r"|in our (?:previous|last|earlier) (?:session|conversation|chat))\b",
    re.I,
)
_SENTENCE_START_RE = re.compile(r"(^|[.!?]\s+)([a-z])")
_ACKNOWLEDGEMENT_RE = re.compile(r"^(I hear|I understand|It sounds like|Thank you for sharing)([^.]*)\.", re.I)

_NEUTRAL_CLAIM_RE = re.compile(r"you'?re feeling neutral|you seem neutral|neutral tone", re.I)
_NEUTRAL_OR_POSITIVE_CLAIM_RE = re.compile(r"you'?re feeling (?:neutral|fine|good|okay|alright|well)\b", re.I)
_NEGATIVE_CLAIM_RE = re.compile(r"you'?re feeling (?:sad|upset|down|depressed|anxious|worried)\b", re.I)
_SAD_INPUT_RE = re.compile(r"\b(sad|upset|hurt|down)\b", re.I)
_ANXIOUS_INPUT_RE = re.compile(r"\b(anxious|worried|nervous|stressed|anxiety|scared|afraid)\b", re.I)
_UNWELL_INPUT_RE = re.compile(r"\b(bad|terrible|awful|horrible|not (?:good|great|okay|well|fine))\b", re.I)


class Corrector:
    def __init__(self, duplicate_threshold: float = 0.7) -> None:
        self._duplicate_threshold = duplicate_threshold

    def correct(self, reply: str, user_input: str, report: DetectionReport) -> CorrectionResult:
        """Apply every fix the report calls for. Raises CorrectionError on internal failure."""
        try:
            return self._correct(reply, user_input, report)
        except Exception as e:
            raise CorrectionError(f"Correction failed: {e}") from e

    def _correct(self, reply: str, user_input: str, report: DetectionReport) -> CorrectionResult:
        text = reply
        applied: list[str] = []

        if report.has(*SAFETY_FLAGS):
            replacement = safety_message_for(user_input)
            if replacement is not None:
                logger.info("safety_reply_substituted", flags=[f.type.value for f in report.flags])
                return CorrectionResult(text=replacement, applied=["safety_replacement"])
            stripped = strip_casual_sentences(text)
            if stripped != text:
                text = stripped
                applied.append("casual_content_removed")

        if report.has(*MEMORY_FLAGS):
            fixed = fix_false_memory(text)
            if fixed != text:
                text = fixed
                applied.append("false_memory")

        if report.has(*REPETITION_FLAGS):
            fixed = deduplicate_sentences(remove_repeated_lead_ins(text), self._duplicate_threshold)
            if fixed != text:
                text = fixed
                applied.append("repetition")

        if report.has(*EMOTION_FLAGS):
            fixed = fix_emotion(text, user_input)
            if fixed != text:
                text = fixed
                applied.append("emotion")

        if not text.strip():
            text = reply
            applied = []
        logger.debug("correction_applied", fixes=applied)
        return CorrectionResult(text=text, applied=applied)


def safety_message_for(user_input: str) -> str | None:
    if SUICIDE_INPUT_RE.search(user_input):
        return SUICIDE_SAFETY_MESSAGE
    if SUBSTANCE_INPUT_RE.search(user_input):
        return SUBSTANCE_SAFETY_MESSAGE
    if EATING_DISORDER_INPUT_RE.search(user_input):
        return EATING_DISORDER_SAFETY_MESSAGE
    return None


def strip_casual_sentences(text: str) -> str:
    kept = [s for s in split_sentences(text) if not CASUAL_VOCAB_RE.search(s)]
    return " ".join(kept) if kept else text


def fix_false_memory(text: str) -> str:
    text = _MEMORY_LEAD_IN_RE.sub("It sounds like you're dealing with ", text)
    text = _BARE_REMEMBER_RE.sub("", text)
    text = _PRIOR_MENTION_RE.sub("based on what you're sharing", text)
    text = _PRIOR_CONVERSATION_RE.sub("from what I understand", text)
    text = _TIMELINE_RE.sub("", text)
    return capitalise_sentences(clean_artifacts(text))


def capitalise_sentences(text: str) -> str:
    return _SENTENCE_START_RE.sub(lambda m: m.group(1) + m.group(2).upper(), text)


def fix_emotion(text: str, user_input: str) -> str:
    """Re-align emotion attribution with what the user expressed."""
    if emotion.DEPRESSION_INDICATOR_RE.search(user_input):
        text = _NEUTRAL_OR_POSITIVE_CLAIM_RE.sub("you're feeling depressed", text, count=1)
        if not emotion.DEPRESSION_ACKNOWLEDGED_RE.search(text):
            if _ACKNOWLEDGEMENT_RE.search(text):
                text = _ACKNOWLEDGEMENT_RE.sub(r"\1 that you're feeling depressed.", text, count=1)
            else:
                text = f"I'm sorry to hear that you're feeling depressed. {text}"
        return text

    if _NEUTRAL_CLAIM_RE.search(text):
        if _SAD_INPUT_RE.search(user_input):
            return _NEUTRAL_CLAIM_RE.sub("you're feeling sad", text, count=1)
        if _ANXIOUS_INPUT_RE.search(user_input):
            return _NEUTRAL_CLAIM_RE.sub("you're feeling anxious", text, count=1)
        if _UNWELL_INPUT_RE.search(user_input):
            return _NEUTRAL_CLAIM_RE.sub("you're not feeling well", text, count=1)

    if (
        _NEGATIVE_CLAIM_RE.search(text)
        and emotion.POSITIVE_INPUT_RE.search(user_input)
        and not emotion.NEGATIVE_INPUT_RE.search(user_input)
    ):
        return _NEGATIVE_CLAIM_RE.sub("you're feeling positive", text, count=1)

    stated = emotion.stated_emotion(user_input)
    if stated and not emotion.acknowledges(text, stated):
        if _ACKNOWLEDGEMENT_RE.search(text):
            return _ACKNOWLEDGEMENT_RE.sub(rf"\1 that you're feeling {stated}.", text, count=1)
        return f"I hear that you're feeling {stated}. {text}"

    temporal = emotion.TEMPORAL_EMOTION_RE.search(user_input)
    if temporal and not emotion.TEMPORAL_ACKNOWLEDGED_RE.search(text):
        feeling, timeframe = temporal.group(1).lower(), temporal.group(2).lower()
        return f"I'm sorry to hear you're having a {feeling} {timeframe}. {text}"
    return text
