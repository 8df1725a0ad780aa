"""Integration tests for the engine facade and the command line entrypoint."""

from __future__ import annotations

import pytest

from grounding_engine.config.constants import ASSISTANT_RESPONSES, FACTS, KNOWLEDGE, USER_MESSAGES
from grounding_engine.engine import GroundingEngine, create_engine
from grounding_engine.knowledge.loader import BUILTIN_KNOWLEDGE
from grounding_engine.main import build_parser, run
from grounding_engine.models.domain import FlagType, Record
from grounding_engine.storage.snapshot_store import SQLiteSnapshotStore
from grounding_engine.vectorstore.memory_store import VectorStore


@pytest.fixture
async def engine(settings, fake_embedder):
    engine = GroundingEngine(settings, embedder=fake_embedder)
    await engine.init()
    yield engine
    await engine.close()


async def test_init_loads_builtin_knowledge(engine):
    stats = engine.vector_store.stats()
    assert stats[FACTS] > 0
    assert stats[KNOWLEDGE] > 0
    assert stats[FACTS] + stats[KNOWLEDGE] == len(BUILTIN_KNOWLEDGE)


async def test_second_init_does_not_duplicate(engine):
    before = engine.vector_store.total_records
    await engine.init()
    assert engine.vector_store.total_records == before


async def test_retrieve_enhanced_ranks_anxiety_first(engine):
    results = await engine.retrieve_enhanced("feeling anxious about exams")
    assert results
    assert "anxi" in results[0].content.lower()
    assert all(r.final_score is not None for r in results)
    assert [r.score for r in results] == sorted((r.score for r in results), reverse=True)


async def test_retrieve_enhanced_respects_limit_and_threshold(engine):
    limited = await engine.retrieve_enhanced("feeling anxious", options={"limit": 2})
    assert len(limited) <= 2
    strict = await engine.retrieve_enhanced("feeling anxious", options={"relevanceThreshold": 1.0})
    assert strict == []


async def test_add_conversation_exchange(engine):
    added = await engine.add_conversation_exchange("I started a new job", "Congratulations on the new job!")
    assert added
    assert engine.vector_store.collection(USER_MESSAGES).size == 1
    assert engine.vector_store.collection(ASSISTANT_RESPONSES).size == 1
    assert engine.recent_responses.items() == ["Congratulations on the new job!"]

    user = engine.vector_store.collection(USER_MESSAGES).get_all()[0]
    assert user.metadata["role"] == "user"
    assert user.id.endswith("-user")


async def test_exchange_after_pipeline_is_not_double_counted(engine):
    result = await engine.prevent_hallucinations("That sounds hard.", "ok", ["a", "b", "c"])
    await engine.add_conversation_exchange("ok", result.processed_response)
    assert engine.recent_responses.items() == [result.processed_response]


async def test_detect_hallucinations_facade(engine):
    report = engine.detect_hallucinations("I remember you told me about your job loss last week.", "Hi there")
    assert report.is_hallucination
    assert report.has(FlagType.FALSE_MEMORY)


async def test_snapshot_round_trip(settings, fake_embedder):
    snap_settings = settings.model_copy(update={"enable_snapshot": True})

    first = GroundingEngine(snap_settings, embedder=fake_embedder)
    await first.init()
    await first.add_conversation_exchange("My exams start soon", "That sounds like a lot of pressure.")
    saved = await first.save()
    assert saved == first.vector_store.total_records
    await first.close()

    second = GroundingEngine(snap_settings, embedder=fake_embedder)
    await second.init()
    assert second.vector_store.stats() == first.vector_store.stats()
    assert second.vector_store.collection(USER_MESSAGES).get_all()[0].text == "My exams start soon"
    await second.close()


async def test_save_without_snapshot_is_noop(engine):
    assert await engine.save() == 0


async def test_default_engine_uses_simulated_embeddings(settings):
    engine = await create_engine(settings)
    try:
        assert engine.embedder.using_fallback
        result = await engine.prevent_hallucinations(
            "I remember you told me about your job loss last week.", "Hi there", []
        )
        assert "I remember" not in result.processed_response
        assert result.was_revised
    finally:
        await engine.close()


async def test_cli_detect(settings):
    args = build_parser().parse_args(["detect", "I hear you. I hear you.", "--input", "ok"])
    output = await run(args, settings)
    assert output["is_hallucination"]
    assert any(f["type"] == "repetition" for f in output["flags"])


async def test_cli_check(settings):
    args = build_parser().parse_args(
        ["check", "I hear you. I hear you. What's next?", "--input", "ok", "--no-rag", "--history", "hi"]
    )
    output = await run(args, settings)
    assert output["processed_response"] == "I hear you. What's next?"
    assert output["rag_applied"] is False


async def test_cli_retrieve(settings):
    args = build_parser().parse_args(["retrieve", "crisis lifeline", "--limit", "3"])
    output = await run(args, settings)
    assert output["query"] == "crisis lifeline"
    assert len(output["candidates"]) <= 3


async def test_snapshot_from_another_embedder_is_rebuilt(settings, fake_embedder):
    snap_settings = settings.model_copy(update={"enable_snapshot": True})
    stale = VectorStore()
    await stale.collection(FACTS).insert(Record(id="old-fact", text="Stale fact", vector=[1.0, 0.0]))
    await SQLiteSnapshotStore(snap_settings.snapshot_db_path).save(stale)

    engine = GroundingEngine(snap_settings, embedder=fake_embedder)
    await engine.init()
    try:
        facts = engine.vector_store.collection(FACTS).get_all()
        assert "old-fact" not in [r.id for r in facts]
        assert len(facts) == sum(1 for e in BUILTIN_KNOWLEDGE if e.collection == FACTS)
        assert all(len(r.vector) == fake_embedder.dimensions for r in facts)
        results = await engine.retrieve_enhanced("feeling anxious about exams")
        assert results and "anxi" in results[0].content.lower()
    finally:
        await engine.close()
