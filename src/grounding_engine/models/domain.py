"""Core domain objects used throughout the system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


@dataclass
class Record:
    id: str
    text: str
    vector: list[float]
    metadata: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class SimilarityMatch:
    record: Record
    score: float


@dataclass
class Candidate:
    content: str
    vector_score: float = 0.0
    keyword_score: float = 0.0
    combined_score: float = 0.0
    metadata: dict = field(default_factory=dict)
    final_score: float | None = None
    scores: dict[str, float] = field(default_factory=dict)

    @property
    def score(self) -> float:
        """Reranked score when available, otherwise the retrieval score."""
        return self.final_score if self.final_score is not None else self.combined_score


@dataclass
class ReasoningStep:
    claim: str
    evidence: list[str] = field(default_factory=list)
    confidence: float = 1.0
    kind: str = "general"  # "quote", "feeling" or "general"


@dataclass
class VerificationOutcome:
    verified_text: str
    steps: list[ReasoningStep]
    is_sound: bool


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FlagType(str, Enum):
    CRITICAL_EMOTION_MISIDENTIFICATION = "critical_emotion_misidentification"
    EMOTION_MISIDENTIFICATION = "emotion_misidentification"
    CRITICAL_PROTOCOL_MIX = "critical_protocol_mix"
    CRISIS_TYPE_MISMATCH = "crisis_type_mismatch"
    SUBSTANCE_USE_MISHANDLED = "substance_use_mishandled"
    MISSING_CRISIS_RESOURCES = "missing_crisis_resources"
    FALSE_MEMORY = "false_memory"
    FALSE_CONTINUITY = "false_continuity"
    LOGICAL_CONTRADICTION = "logical_contradiction"
    EMOTION_CONTRADICTION = "emotion_contradiction"
    REPETITION = "repetition"
    CROSS_RESPONSE_REPETITION = "cross_response_repetition"
    UNGROUNDED_ENTITY = "ungrounded_entity"


@dataclass
class HallucinationFlag:
    type: FlagType
    severity: Severity
    description: str
    confidence_score: float = 0.8

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "confidence_score": self.confidence_score,
        }


@dataclass
class DetectionReport:
    flags: list[HallucinationFlag]
    confidence: float
    is_hallucination: bool

    def has(self, *types: FlagType) -> bool:
        return any(f.type in types for f in self.flags)

    def to_dict(self) -> dict:
        return {
            "flags": [f.to_dict() for f in self.flags],
            "confidence": self.confidence,
            "is_hallucination": self.is_hallucination,
        }


@dataclass
class CorrectionResult:
    text: str
    applied: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied)
