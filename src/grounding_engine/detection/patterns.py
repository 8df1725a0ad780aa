"""Pattern tables for rule-based hallucination checks and the generic matcher that evaluates them."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from grounding_engine.models.domain import FlagType, HallucinationFlag, Severity


@dataclass(frozen=True)
class PatternRule:
    pattern: re.Pattern
    flag_type: FlagType
    severity: Severity
    penalty: float
    description: str
    confidence_score: float = 0.9

    def to_flag(self) -> HallucinationFlag:
        return HallucinationFlag(
            type=self.flag_type,
            severity=self.severity,
            description=self.description,
            confidence_score=self.confidence_score,
        )


def rule(
    pattern: str,
    flag_type: FlagType,
    severity: Severity,
    penalty: float,
    description: str,
    confidence_score: float = 0.9,
) -> PatternRule:
    return PatternRule(
        pattern=re.compile(pattern, re.I),
        flag_type=flag_type,
        severity=severity,
        penalty=penalty,
        description=description,
        confidence_score=confidence_score,
    )


def match_rules(
    rules: Iterable[PatternRule], text: str, first_only: bool = False
) -> list[PatternRule]:
    """Rules whose pattern occurs in ``text``, in table order."""
    matched = []
    for r in rules:
        if r.pattern.search(text):
            matched.append(r)
            if first_only:
                break
    return matched


# Vocabulary shared by several checks.
CRISIS_VOCAB_RE = re.compile(
    r"eating disorder|suicid|crisis|self-harm|self harm|mental health|drinking|alcohol|substance", re.I
)
CASUAL_VOCAB_RE = re.compile(
    r"brewery|restaurant|\bpub\b|\bbar\b|craft beer|recipe|social gathering|concert|happy hour|pub fare",
    re.I,
)
SUICIDE_INPUT_RE = re.compile(
    r"suicid|kill (?:myself|me)|shoot myself|self.?harm|end my life|want to die", re.I
)
SUBSTANCE_INPUT_RE = re.compile(
    r"drinking|alcohol|\bdrunk\b|intoxicated|can't stop drinking|addicted|substance|\bbeers?\b|\bhigh on\b",
    re.I,
)
EATING_DISORDER_INPUT_RE = re.compile(
    r"eating disorder|binge|purg|anorexi|bulimi|starving myself|can't stop eating", re.I
)
EATING_DISORDER_RESOURCE_RE = re.compile(
    r"eating disorder|NEDA|National Eating Disorders Association", re.I
)
SUICIDE_RESPONSE_RE = re.compile(
    r"suicid|crisis|988|emergency|professional help|lifeline|\bkill\b|\bharm\b", re.I
)
SUBSTANCE_RESPONSE_RE = re.compile(r"drinking|alcohol|substance|SAMHSA|recovery|sober", re.I)
CRISIS_RESOURCE_RE = re.compile(r"988|crisis|professional|emergency|lifeline|\bhelp\b", re.I)


PROTOCOL_MIX_RULES: tuple[PatternRule, ...] = (
    rule(
        r"(eating disorder|binge eating|can't stop eating).+(brewing|restaurant|\bpub\b|craft beer)",
        FlagType.CRITICAL_PROTOCOL_MIX, Severity.CRITICAL, 0.9,
        "Eating disorder response mixed with food or venue small talk",
    ),
    rule(
        r"(brewing|restaurant|\bpub\b|craft beer).+(eating disorder|binge eating|can't stop eating)",
        FlagType.CRITICAL_PROTOCOL_MIX, Severity.CRITICAL, 0.9,
        "Food or venue small talk mixed into an eating disorder response",
    ),
    rule(
        r"binge eating.*pub fare|pub fare.*binge eating",
        FlagType.CRITICAL_PROTOCOL_MIX, Severity.CRITICAL, 0.9,
        "Eating disorder response mixed with food small talk",
    ),
    rule(
        r"You mentioned \w+ before when we",
        FlagType.CRITICAL_PROTOCOL_MIX, Severity.CRITICAL, 0.9,
        "Broken reference splicing a prior topic into a crisis reply",
    ),
)


REPETITION_RULES: tuple[PatternRule, ...] = (
    rule(
        r"I hear (?:you'?re|you are) dealing with.*I hear (?:you'?re|you are) dealing with",
        FlagType.REPETITION, Severity.HIGH, 0.35,
        "Repeated acknowledgement phrase",
    ),
    rule(
        r"I hear (?:you'?re|you are) dealing with you may have indicated|dealing with you may have indicated",
        FlagType.REPETITION, Severity.HIGH, 0.35,
        "Spliced acknowledgement and hedge phrases",
    ),
    rule(
        r"I remember (?:you|your|we)\b.*I remember (?:you|your|we)\b",
        FlagType.REPETITION, Severity.HIGH, 0.35,
        "Repeated memory lead-in",
    ),
    rule(
        r"\byou (?:mentioned|said|told me) you (?:mentioned|said|told me)\b",
        FlagType.REPETITION, Severity.HIGH, 0.35,
        "Stuttered attribution phrase",
    ),
    rule(
        r"(?:I hear|It sounds like) you(?:'re| are) (?:dealing with|feeling) (?:I hear|It sounds like) you(?:'re| are)",
        FlagType.REPETITION, Severity.HIGH, 0.35,
        "Stuttered acknowledgement phrase",
    ),
    rule(
        r"what you(?:'re| are) sharing,? what you(?:'re| are) sharing",
        FlagType.REPETITION, Severity.HIGH, 0.35,
        "Stuttered reflection phrase",
    ),
)


FALSE_CONTINUITY_RULES: tuple[PatternRule, ...] = (
    rule(
        r"we've been (?:discussing|talking about)|continuing our (?:discussion|conversation)|as we were saying",
        FlagType.FALSE_CONTINUITY, Severity.HIGH, 0.4,
        "False reference to an ongoing discussion in a new conversation",
    ),
    rule(
        r"\bas (?:we|I) (?:discussed|mentioned|talked about)\b|\bwe discussed\b|\bearlier you said\b",
        FlagType.FALSE_CONTINUITY, Severity.HIGH, 0.4,
        "False reference to an earlier exchange in a new conversation",
    ),
    rule(
        r"\b(?:last|previous|prior) (?:time|week|session|conversation|discussion)\b|\bin our (?:previous|earlier|last) \w+",
        FlagType.FALSE_CONTINUITY, Severity.HIGH, 0.4,
        "Reference to a previous session in a new conversation",
    ),
    rule(
        r"\bI remember\b|\byou(?:'ve)? (?:told|said to) me\b|\byou (?:said|mentioned) (?:before|earlier|previously)\b|\bpreviously\b",
        FlagType.FALSE_CONTINUITY, Severity.HIGH, 0.4,
        "Claimed shared history in a new conversation",
    ),
)


SELF_CONTRADICTION_RULES: tuple[PatternRule, ...] = (
    rule(
        r"I (?:don't|do not) think .{1,50}? I think\b|\bI think .{1,50}? I (?:don't|do not) think",
        FlagType.LOGICAL_CONTRADICTION, Severity.MEDIUM, 0.2,
        "Reply asserts and denies the same opinion", 0.85,
    ),
    rule(
        r"\bIt (?:isn't|is not) .{1,50}? It is\b|\bIt is .{1,50}? It (?:isn't|is not)\b",
        FlagType.LOGICAL_CONTRADICTION, Severity.MEDIUM, 0.2,
        "Reply asserts and denies the same statement", 0.85,
    ),
    rule(
        r"\bYou (?:aren't|are not) .{1,50}? You are\b|\bYou are .{1,50}? You (?:aren't|are not)\b",
        FlagType.LOGICAL_CONTRADICTION, Severity.MEDIUM, 0.2,
        "Reply asserts and denies the same thing about the user", 0.85,
    ),
)
