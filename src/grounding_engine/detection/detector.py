"""Hallucination detector: an ordered battery of independent checks over a draft reply.

Every check appends flags and subtracts its penalty from a running confidence
that starts at 1.0 and is clamped to [0, 1] at the end. The detector reads the
recent-response memory and the stored user messages but never writes to them,
so repeated calls with the same arguments give the same report.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from grounding_engine.analysis.text import extract_entities, jaccard_similarity, ngrams, split_sentences
from grounding_engine.config.constants import (
    EATING_DISORDER_SAFETY_MESSAGE,
    SUBSTANCE_SAFETY_MESSAGE,
    SUICIDE_SAFETY_MESSAGE,
)
from grounding_engine.config.settings import Settings
from grounding_engine.detection import emotion
from grounding_engine.detection.memory import MemoryReferenceChecker, RecentResponseMemory
from grounding_engine.detection.patterns import (
    CASUAL_VOCAB_RE,
    CRISIS_RESOURCE_RE,
    CRISIS_VOCAB_RE,
    EATING_DISORDER_RESOURCE_RE,
    FALSE_CONTINUITY_RULES,
    PROTOCOL_MIX_RULES,
    REPETITION_RULES,
    SELF_CONTRADICTION_RULES,
    SUBSTANCE_INPUT_RE,
    SUBSTANCE_RESPONSE_RE,
    SUICIDE_INPUT_RE,
    SUICIDE_RESPONSE_RE,
    match_rules,
)
from grounding_engine.models.domain import DetectionReport, FlagType, HallucinationFlag, Severity
from grounding_engine.observability.logger import get_logger
from grounding_engine.observability.metrics import log_detection_metrics

logger = get_logger("detector")

CRITICAL_EMOTION_PENALTY = 0.9
EMOTION_PENALTY = 0.7
PROTOCOL_MIX_PENALTY = 0.9
CRISIS_MISMATCH_PENALTY = 0.9
SUBSTANCE_MISMATCH_PENALTY = 0.7
MISSING_RESOURCES_PENALTY = 0.8
CONTRADICTION_PENALTY = 0.2
REPETITION_PENALTY = 0.35
CROSS_RESPONSE_PENALTY = 0.2
ENTITY_PENALTY = 0.15

REPEATED_NGRAM_SIZE = 4
MIN_SENTENCE_CHARS = 5
MIN_CROSS_RESPONSE_CHARS = 20

_RESOURCE_VOCAB = " ".join(
    [SUICIDE_SAFETY_MESSAGE, EATING_DISORDER_SAFETY_MESSAGE, SUBSTANCE_SAFETY_MESSAGE]
).lower()

Finding = tuple[HallucinationFlag, float]


class HallucinationDetector:
    def __init__(
        self,
        settings: Settings | None = None,
        recent_responses: RecentResponseMemory | None = None,
        memory_texts: Callable[[], Iterable[str]] | None = None,
    ) -> None:
        settings = settings or Settings()
        self._early_turns = settings.early_conversation_turns
        self._duplicate_threshold = settings.duplicate_sentence_threshold
        self._contradiction_threshold = settings.contradiction_similarity_threshold
        self._hallucination_threshold = settings.hallucination_confidence_threshold
        self._recent = recent_responses
        self._memory = MemoryReferenceChecker(
            early_turns=settings.early_conversation_turns,
            evidence_threshold=settings.memory_evidence_threshold,
            memory_texts=memory_texts,
            recent=recent_responses,
        )

    def detect(self, reply: str, user_input: str, history: list[str]) -> DetectionReport:
        """Run every check in order. A failing check contributes no flags."""
        history = list(history)
        checks: list[Callable[[], list[Finding]]] = [
            lambda: self.check_emotion(reply, user_input),
            lambda: self.check_protocol_safety(reply, user_input),
            lambda: self._memory.check(reply, user_input, history),
            lambda: self.check_false_continuity(reply, history),
            lambda: self.check_contradictions(reply),
            lambda: self.check_repetition(reply),
            lambda: self.check_entities(reply, user_input, history),
        ]

        flags: list[HallucinationFlag] = []
        confidence = 1.0
        for check in checks:
            try:
                findings = check()
            except Exception as e:
                logger.warning("detection_check_failed", error=str(e))
                continue
            for flag, penalty in findings:
                flags.append(flag)
                confidence -= penalty

        confidence = max(0.0, min(1.0, confidence))
        is_hallucination = confidence < self._hallucination_threshold or any(
            f.severity in (Severity.HIGH, Severity.CRITICAL) for f in flags
        )
        log_detection_metrics(
            confidence=confidence,
            is_hallucination=is_hallucination,
            flag_types=[f.type.value for f in flags],
            history_len=len(history),
        )
        return DetectionReport(flags=flags, confidence=confidence, is_hallucination=is_hallucination)

    # Individual checks

    @staticmethod
    def check_emotion(reply: str, user_input: str) -> list[Finding]:
        if emotion.depression_ignored(reply, user_input):
            return [
                (
                    HallucinationFlag(
                        type=FlagType.CRITICAL_EMOTION_MISIDENTIFICATION,
                        severity=Severity.CRITICAL,
                        description="Depression mentioned but not acknowledged or called neutral",
                        confidence_score=0.95,
                    ),
                    CRITICAL_EMOTION_PENALTY,
                )
            ]
        if emotion.emotion_misidentified(reply, user_input):
            return [
                (
                    HallucinationFlag(
                        type=FlagType.EMOTION_MISIDENTIFICATION,
                        severity=Severity.HIGH,
                        description="Reply misidentifies the user's emotional state",
                    ),
                    EMOTION_PENALTY,
                )
            ]
        return []

    @staticmethod
    def check_protocol_safety(reply: str, user_input: str) -> list[Finding]:
        findings: list[Finding] = []

        mixed = CRISIS_VOCAB_RE.search(reply) and CASUAL_VOCAB_RE.search(reply)
        table_hits = match_rules(PROTOCOL_MIX_RULES, reply, first_only=True)
        if mixed or table_hits:
            description = (
                table_hits[0].description if table_hits
                else "Crisis response mixed with casual or social content"
            )
            findings.append(
                (
                    HallucinationFlag(
                        type=FlagType.CRITICAL_PROTOCOL_MIX,
                        severity=Severity.CRITICAL,
                        description=description,
                        confidence_score=0.95,
                    ),
                    PROTOCOL_MIX_PENALTY,
                )
            )

        suicide_disclosed = bool(SUICIDE_INPUT_RE.search(user_input))
        if (
            suicide_disclosed
            and not SUICIDE_RESPONSE_RE.search(reply)
            and EATING_DISORDER_RESOURCE_RE.search(reply)
        ):
            findings.append(
                (
                    HallucinationFlag(
                        type=FlagType.CRISIS_TYPE_MISMATCH,
                        severity=Severity.CRITICAL,
                        description="Eating disorder resources given for a suicide disclosure",
                        confidence_score=0.95,
                    ),
                    CRISIS_MISMATCH_PENALTY,
                )
            )

        if (
            SUBSTANCE_INPUT_RE.search(user_input)
            and not SUBSTANCE_RESPONSE_RE.search(reply)
            and EATING_DISORDER_RESOURCE_RE.search(reply)
        ):
            findings.append(
                (
                    HallucinationFlag(
                        type=FlagType.SUBSTANCE_USE_MISHANDLED,
                        severity=Severity.HIGH,
                        description="Substance use concern addressed as an eating disorder",
                    ),
                    SUBSTANCE_MISMATCH_PENALTY,
                )
            )

        if suicide_disclosed and not CRISIS_RESOURCE_RE.search(reply):
            findings.append(
                (
                    HallucinationFlag(
                        type=FlagType.MISSING_CRISIS_RESOURCES,
                        severity=Severity.CRITICAL,
                        description="Reply to a suicide disclosure offers no crisis resources",
                        confidence_score=0.95,
                    ),
                    MISSING_RESOURCES_PENALTY,
                )
            )
        return findings

    def check_false_continuity(self, reply: str, history: list[str]) -> list[Finding]:
        if len(history) > self._early_turns:
            return []
        hits = match_rules(FALSE_CONTINUITY_RULES, reply, first_only=True)
        return [(r.to_flag(), r.penalty) for r in hits]

    def check_contradictions(self, reply: str) -> list[Finding]:
        findings: list[Finding] = [
            (r.to_flag(), r.penalty)
            for r in match_rules(SELF_CONTRADICTION_RULES, reply, first_only=True)
        ]

        sentences = split_sentences(reply)
        near_duplicate = False
        for i, a in enumerate(sentences):
            for b in sentences[i + 1 :]:
                if _normalise(a) == _normalise(b):
                    continue
                if jaccard_similarity(a, b) > self._contradiction_threshold:
                    near_duplicate = True
                    break
            if near_duplicate:
                break
        if near_duplicate:
            findings.append(
                (
                    HallucinationFlag(
                        type=FlagType.LOGICAL_CONTRADICTION,
                        severity=Severity.MEDIUM,
                        description="Two sentences restate each other with small changes",
                        confidence_score=0.8,
                    ),
                    CONTRADICTION_PENALTY,
                )
            )

        polarity = emotion.opposite_polarity_claims(reply)
        if polarity:
            findings.append(
                (
                    HallucinationFlag(
                        type=FlagType.EMOTION_CONTRADICTION,
                        severity=Severity.MEDIUM,
                        description=f"Reply calls the user both {polarity[0]} and {polarity[1]}",
                        confidence_score=0.85,
                    ),
                    CONTRADICTION_PENALTY,
                )
            )
        return findings

    def check_repetition(self, reply: str) -> list[Finding]:
        findings: list[Finding] = [
            (r.to_flag(), r.penalty) for r in match_rules(REPETITION_RULES, reply, first_only=True)
        ]

        sentences = [s for s in split_sentences(reply) if len(_normalise(s)) >= MIN_SENTENCE_CHARS]
        seen: set[str] = set()
        unique: list[str] = []
        duplicates = 0
        for s in sentences:
            key = _normalise(s)
            if key in seen:
                duplicates += 1
            else:
                seen.add(key)
                unique.append(s)
        if duplicates:
            findings.append(
                (
                    HallucinationFlag(
                        type=FlagType.REPETITION,
                        severity=Severity.HIGH if duplicates == 1 else Severity.CRITICAL,
                        description=f"{duplicates} repeated sentence(s) in reply",
                    ),
                    REPETITION_PENALTY,
                )
            )

        grams = ngrams(" ".join(unique), REPEATED_NGRAM_SIZE)
        repeated = len(grams) - len(set(grams))
        if repeated:
            findings.append(
                (
                    HallucinationFlag(
                        type=FlagType.REPETITION,
                        severity=_scaled_severity(repeated),
                        description=f"{repeated} repeated {REPEATED_NGRAM_SIZE}-word phrase(s) in reply",
                        confidence_score=0.7,
                    ),
                    REPETITION_PENALTY,
                )
            )

        if self._recent is not None and len(self._recent):
            prior = [p for r in self._recent.items() for p in split_sentences(r)]
            reused = sum(
                1
                for s in unique
                if len(s) >= MIN_CROSS_RESPONSE_CHARS
                and any(jaccard_similarity(s, p) >= self._duplicate_threshold for p in prior)
            )
            if reused:
                findings.append(
                    (
                        HallucinationFlag(
                            type=FlagType.CROSS_RESPONSE_REPETITION,
                            severity=_scaled_severity(reused),
                            description=f"{reused} sentence(s) repeated from recent replies",
                            confidence_score=0.75,
                        ),
                        CROSS_RESPONSE_PENALTY,
                    )
                )
        return findings

    @staticmethod
    def check_entities(reply: str, user_input: str, history: list[str]) -> list[Finding]:
        known = " ".join([user_input, *history]).lower()
        ungrounded = [
            e
            for e in extract_entities(reply)
            if e.lower() not in known and e.lower() not in _RESOURCE_VOCAB
        ]
        if not ungrounded:
            return []
        return [
            (
                HallucinationFlag(
                    type=FlagType.UNGROUNDED_ENTITY,
                    severity=Severity.LOW,
                    description="Names or figures not found in the conversation: " + ", ".join(ungrounded[:5]),
                    confidence_score=0.6,
                ),
                ENTITY_PENALTY,
            )
        ]


def _normalise(sentence: str) -> str:
    return " ".join(sentence.lower().rstrip(".!? ").split())


def _scaled_severity(count: int) -> Severity:
    if count >= 3:
        return Severity.HIGH
    if count == 2:
        return Severity.MEDIUM
    return Severity.LOW
