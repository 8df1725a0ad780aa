"""Tests for the hallucination detector and its memory checks."""

from __future__ import annotations

import copy

import pytest

from grounding_engine.detection.detector import HallucinationDetector
from grounding_engine.detection.memory import MemoryReferenceChecker, RecentResponseMemory, find_references
from grounding_engine.models.domain import FlagType, Severity

ESTABLISHED = ["My job loss has been really hard", "I keep applying everywhere", "Nothing has worked"]


@pytest.fixture
def recent():
    return RecentResponseMemory(max_size=5)


@pytest.fixture
def detector(settings, recent):
    return HallucinationDetector(settings=settings, recent_responses=recent)


def _types(report) -> list[FlagType]:
    return [f.type for f in report.flags]


def test_job_loss_false_memory_in_new_conversation(detector):
    report = detector.detect("I remember you told me about your job loss last week.", "Hi there", [])

    memory = [f for f in report.flags if f.type == FlagType.FALSE_MEMORY]
    continuity = [f for f in report.flags if f.type == FlagType.FALSE_CONTINUITY]
    assert memory and memory[0].severity == Severity.CRITICAL
    assert continuity and continuity[0].severity == Severity.HIGH
    assert report.is_hallucination
    assert report.confidence == 0.0


@pytest.mark.parametrize("history", [[], ["hello"], ["hello", "hi"]])
def test_any_memory_reference_in_new_conversation_is_critical(detector, history):
    report = detector.detect("You mentioned your sister is visiting.", "ok", history)
    flags = [f for f in report.flags if f.type == FlagType.FALSE_MEMORY]
    assert flags[0].severity == Severity.CRITICAL
    assert report.is_hallucination


def test_clean_reply_has_no_flags(detector):
    report = detector.detect(
        "That sounds really hard. What has helped you cope so far?",
        "I've had a stressful week at work",
        ["hello", "hi", "how are you"],
    )
    assert report.flags == []
    assert report.confidence == 1.0
    assert not report.is_hallucination


def test_detection_is_idempotent_and_does_not_mutate(detector, recent):
    recent.add("Earlier reply about breathing exercises.")
    history = list(ESTABLISHED)
    before = copy.deepcopy(history)
    reply = "You mentioned your divorce, and that sounds painful. You mentioned your divorce, and that sounds painful."

    first = detector.detect(reply, "The job loss still hurts", history)
    second = detector.detect(reply, "The job loss still hurts", history)

    assert first.to_dict() == second.to_dict()
    assert history == before
    assert recent.items() == ["Earlier reply about breathing exercises."]


def test_supported_memory_reference_not_flagged(detector):
    report = detector.detect(
        "You mentioned your job loss, and that sounds painful.", "The job loss still hurts", ESTABLISHED
    )
    assert FlagType.FALSE_MEMORY not in _types(report)


def test_unsupported_memory_reference_flagged(detector):
    report = detector.detect(
        "You mentioned your divorce, and that sounds painful.", "The job loss still hurts", ESTABLISHED
    )
    flags = [f for f in report.flags if f.type == FlagType.FALSE_MEMORY]
    assert len(flags) == 1
    assert flags[0].severity == Severity.HIGH
    assert report.confidence == pytest.approx(0.75)
    assert report.is_hallucination


def test_depression_ignored_is_critical(detector):
    report = detector.detect(
        "You're feeling neutral today. Let's talk about your plans.",
        "I've been so depressed lately",
        ESTABLISHED,
    )
    assert _types(report).count(FlagType.CRITICAL_EMOTION_MISIDENTIFICATION) == 1
    assert FlagType.EMOTION_MISIDENTIFICATION not in _types(report)
    assert report.confidence == pytest.approx(0.1)


def test_stated_emotion_not_acknowledged(detector):
    report = detector.detect("Let's plan your week together.", "I'm lonely", ESTABLISHED)
    assert FlagType.EMOTION_MISIDENTIFICATION in _types(report)
    assert report.is_hallucination


def test_protocol_mix_flagged_once(detector):
    report = detector.detect(
        "If you're struggling with an eating disorder, try the craft beer restaurant downtown.",
        "I think I have an eating disorder",
        ESTABLISHED,
    )
    assert _types(report).count(FlagType.CRITICAL_PROTOCOL_MIX) == 1


def test_suicide_disclosure_without_resources(detector):
    report = detector.detect(
        "That sounds tough. Tell me more about your day.", "I want to end my life", ESTABLISHED
    )
    flags = [f for f in report.flags if f.type == FlagType.MISSING_CRISIS_RESOURCES]
    assert flags and flags[0].severity == Severity.CRITICAL


def test_eating_disorder_resources_for_suicide_disclosure(detector):
    report = detector.detect(
        "The National Eating Disorders Association can support you.",
        "I keep thinking about suicide",
        ESTABLISHED,
    )
    assert FlagType.CRISIS_TYPE_MISMATCH in _types(report)
    assert FlagType.MISSING_CRISIS_RESOURCES in _types(report)


def test_substance_use_answered_as_eating_disorder(detector):
    report = detector.detect(
        "Have you looked into eating disorder resources like NEDA?",
        "I can't stop drinking every night",
        ESTABLISHED,
    )
    flags = [f for f in report.flags if f.type == FlagType.SUBSTANCE_USE_MISHANDLED]
    assert flags and flags[0].severity == Severity.HIGH


def test_duplicate_sentences_flagged(detector):
    report = detector.detect("I hear you. I hear you. What's next?", "ok", ESTABLISHED)
    flags = [f for f in report.flags if f.type == FlagType.REPETITION]
    assert flags[0].severity == Severity.HIGH
    assert report.is_hallucination


def test_cross_response_repetition(detector, recent):
    recent.add("Have you tried writing down what worries you each evening?")
    report = detector.detect(
        "Have you tried writing down what worries you each evening?", "Not really", ESTABLISHED
    )
    flags = [f for f in report.flags if f.type == FlagType.CROSS_RESPONSE_REPETITION]
    assert flags and flags[0].severity == Severity.LOW


def test_opposite_polarity_claims(detector):
    report = detector.detect("You seem happy today, but you seem sad about work.", "hmm", ESTABLISHED)
    flags = [f for f in report.flags if f.type == FlagType.EMOTION_CONTRADICTION]
    assert flags and flags[0].severity == Severity.MEDIUM
    assert not report.is_hallucination


def test_ungrounded_entities_low_severity(detector):
    report = detector.detect(
        "You could talk to Dr Patel at Lakeside Clinic about this.", "I feel stuck", ["hi", "hello", "hey"]
    )
    flags = [f for f in report.flags if f.type == FlagType.UNGROUNDED_ENTITY]
    assert len(flags) == 1
    assert "Dr Patel" in flags[0].description
    assert report.confidence == pytest.approx(0.85)
    assert not report.is_hallucination


def test_false_continuity_only_early(detector):
    reply = "As we discussed, small steps matter."
    early = detector.detect(reply, "ok", ["hi"])
    later = detector.detect(reply, "ok", ESTABLISHED)
    assert FlagType.FALSE_CONTINUITY in _types(early)
    assert FlagType.FALSE_CONTINUITY not in _types(later)


def test_failing_check_is_treated_as_no_issue(detector, monkeypatch):
    def boom(*args):
        raise RuntimeError("check exploded")

    monkeypatch.setattr(detector, "check_entities", boom)
    report = detector.detect("That sounds hard.", "ok", ESTABLISHED)
    assert report.flags == []
    assert report.confidence == 1.0


@pytest.mark.parametrize(
    "reply",
    [
        "",
        "I remember last week. I remember last week. I remember last week.",
        "You seem happy. You seem sad. Try the brewery for your eating disorder.",
    ],
)
def test_confidence_always_bounded(detector, reply):
    report = detector.detect(reply, "I want to end my life and I'm depressed", [])
    assert 0.0 <= report.confidence <= 1.0


def test_find_references_captures_content():
    refs = find_references("I remember you told me about your job loss last week.")
    assert refs[0].content == "your job loss last week"


def test_evidence_from_memory_store_and_recent_responses():
    recent = RecentResponseMemory()
    checker = MemoryReferenceChecker(memory_texts=lambda: ["the divorce was finalised in May"], recent=recent)
    assert checker.evidence_score("the divorce", "ok", []) == pytest.approx(0.5)
    recent.add("It sounds like the divorce has been weighing on you.")
    assert checker.evidence_score("the divorce", "ok", []) == pytest.approx(0.9)


def test_recent_memory_is_bounded():
    memory = RecentResponseMemory(max_size=2)
    for text in ["one", "two", "three", "   "]:
        memory.add(text)
    assert memory.items() == ["two", "three"]
