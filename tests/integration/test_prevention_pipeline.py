"""Integration tests for the hallucination prevention pipeline."""

from __future__ import annotations

import pytest

from grounding_engine.engine import GroundingEngine
from grounding_engine.models.schemas import PreventionOptions

ESTABLISHED = ["My job loss has been really hard", "I keep applying everywhere", "Nothing has worked"]


@pytest.fixture
async def engine(settings, fake_embedder):
    engine = GroundingEngine(settings, embedder=fake_embedder)
    await engine.init()
    yield engine
    await engine.close()


async def test_job_loss_scenario(engine):
    result = await engine.prevent_hallucinations(
        "I remember you told me about your job loss last week.", "Hi there", []
    )
    assert "I remember" not in result.processed_response
    assert "last week" not in result.processed_response
    assert result.processed_response.startswith("It sounds like you're dealing with")
    assert result.was_revised
    assert result.confidence < 0.8
    assert any(d.startswith("false_memory") for d in result.issue_details)
    assert any(d.startswith("false_continuity") for d in result.issue_details)


async def test_repetition_scenario(engine):
    result = await engine.prevent_hallucinations("I hear you. I hear you. What's next?", "ok", ESTABLISHED)
    assert result.processed_response == "I hear you. What's next?"
    assert result.was_revised
    assert result.confidence == pytest.approx(0.65)


async def test_clean_reply_passes_through(engine):
    reply = "That sounds really hard. What has helped you cope so far?"
    result = await engine.prevent_hallucinations(reply, "I've had a stressful week at work", ESTABLISHED)
    assert result.processed_response == reply
    assert not result.was_revised
    assert result.confidence == 1.0
    assert result.issue_details == []
    assert [s.name for s in result.stages] == [
        "grounding_scheduled",
        "verification",
        "detection",
        "repetition_sweep",
    ]


async def test_verifier_revision_multiplier(engine):
    result = await engine.prevent_hallucinations(
        "You are feeling overwhelmed by work.", "Work has been busy lately", ESTABLISHED
    )
    assert result.processed_response == "You might be feeling overwhelmed by work."
    assert result.confidence == pytest.approx(0.8)
    assert result.reasoning_applied


async def test_medium_flag_alone_does_not_trigger_correction(engine):
    reply = "You seem happy today. You seem sad about it."
    result = await engine.prevent_hallucinations(
        reply, "hmm", ESTABLISHED, {"enableRAG": False, "enableReasoning": False}
    )
    assert result.processed_response == reply
    assert not result.was_revised
    assert result.confidence == 1.0
    assert any(d.startswith("emotion_contradiction") for d in result.issue_details)
    assert "correction" not in [s.name for s in result.stages]


async def test_final_sweep_only_when_stages_disabled(engine):
    options = PreventionOptions(enable_rag=False, enable_reasoning=False, enable_detection=False)
    result = await engine.prevent_hallucinations("I hear you. I hear you.", "ok", ESTABLISHED, options)
    assert result.processed_response == "I hear you."
    assert result.confidence == pytest.approx(0.9)
    assert not result.detection_applied
    assert result.issue_details == ["repetition: duplicate sentences removed in final sweep"]


async def test_fail_open_on_internal_error(engine, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("corrector crashed")

    monkeypatch.setattr(engine.corrector, "correct", explode)
    reply = "I remember you told me about your job loss last week."
    result = await engine.prevent_hallucinations(reply, "Hi there", [])

    assert result.processed_response == reply
    assert not result.was_revised
    assert result.confidence == 1.0


async def test_fail_open_when_detector_raises(engine, monkeypatch):
    def explode(*args, **kwargs):
        raise ValueError("detector crashed")

    monkeypatch.setattr(engine.detector, "detect", explode)
    result = await engine.prevent_hallucinations("Some reply.", "input", ESTABLISHED)
    assert result.processed_response == "Some reply."
    assert result.confidence == 1.0


async def test_fail_open_when_retriever_verifier_and_detector_all_raise(engine, monkeypatch):
    async def retrieval_down(*args, **kwargs):
        raise RuntimeError("retrieval backend down")

    def explode(*args, **kwargs):
        raise RuntimeError("stage crashed")

    monkeypatch.setattr(engine.enhanced_retriever, "retrieve_enhanced", retrieval_down)
    monkeypatch.setattr(engine.verifier, "verify", explode)
    monkeypatch.setattr(engine.detector, "detect", explode)

    reply = "I hear you. I hear you. What's next?"
    result = await engine.prevent_hallucinations(reply, "ok", ESTABLISHED)
    await engine.pipeline.drain()

    assert result.processed_response == reply
    assert result.was_revised is False
    assert result.confidence == 1.0
    assert engine.recent_responses.items() == []


async def test_background_grounding_warms_cache(engine):
    await engine.prevent_hallucinations("Tell me more.", "feeling anxious about exams", ESTABLISHED)
    await engine.pipeline.drain()
    cached = engine.pipeline.grounding_cache.get("feeling anxious about exams")
    assert cached is not None
    assert cached and "anxi" in cached[0].content.lower()


async def test_background_grounding_failure_is_isolated(engine, monkeypatch):
    async def explode(*args, **kwargs):
        raise RuntimeError("retrieval backend down")

    monkeypatch.setattr(engine.enhanced_retriever, "retrieve_enhanced", explode)
    result = await engine.prevent_hallucinations("Tell me more.", "anything", ESTABLISHED)
    await engine.pipeline.drain()
    assert result.processed_response == "Tell me more."
    assert engine.pipeline.grounding_cache.get("anything") is None


async def test_finalised_reply_recorded_in_recent_memory(engine):
    result = await engine.prevent_hallucinations("I hear you. I hear you. What's next?", "ok", ESTABLISHED)
    assert engine.recent_responses.items()[-1] == result.processed_response


async def test_camel_case_options_dict(engine):
    result = await engine.prevent_hallucinations(
        "That sounds hard.", "ok", ESTABLISHED, {"enableRAG": False, "enableReasoning": False}
    )
    assert not result.rag_applied
    assert not result.reasoning_applied
    assert result.detection_applied
