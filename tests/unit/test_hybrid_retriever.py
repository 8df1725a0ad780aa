"""Tests for hybrid retrieval and result merging."""

from __future__ import annotations

import pytest

from grounding_engine.models.domain import Candidate
from grounding_engine.retrieval.hybrid_retriever import HybridRetrieverImpl, merge_results


def test_merge_weights_scores_for_shared_text():
    vector = [Candidate(content="shared", vector_score=0.8, combined_score=0.8)]
    keyword = [Candidate(content="shared", keyword_score=0.6, combined_score=0.6)]
    merged = merge_results(vector, keyword, 0.7, 0.3)
    assert len(merged) == 1
    assert merged[0].combined_score == pytest.approx(0.74)
    assert merged[0].vector_score == 0.8
    assert merged[0].keyword_score == 0.6


def test_merge_keeps_single_source_scores():
    vector = [Candidate(content="only vector", vector_score=0.5, combined_score=0.5)]
    keyword = [Candidate(content="only keyword", keyword_score=0.9, combined_score=0.9)]
    merged = merge_results(vector, keyword, 0.7, 0.3)
    assert [c.content for c in merged] == ["only keyword", "only vector"]
    assert merged[0].combined_score == 0.9
    assert merged[1].combined_score == 0.5


def test_merge_keeps_best_vector_duplicate():
    vector = [
        Candidate(content="dup", vector_score=0.4, combined_score=0.4),
        Candidate(content="dup", vector_score=0.9, combined_score=0.9),
    ]
    merged = merge_results(vector, [], 0.7, 0.3)
    assert len(merged) == 1
    assert merged[0].vector_score == 0.9


async def test_anxiety_record_ranked_first(seeded_store, fake_embedder):
    retriever = HybridRetrieverImpl(seeded_store, fake_embedder)
    results = await retriever.retrieve("feeling anxious about exams", ["facts"], limit=5)

    assert results
    top = results[0]
    assert top.content.startswith("Anxiety disorders are characterized by persistent worry")
    assert top.vector_score >= 0.3
    assert top.keyword_score > 0
    assert top.combined_score == pytest.approx(0.7 * top.vector_score + 0.3 * top.keyword_score)
    assert top.metadata["collection"] == "facts"
    assert seeded_store.collection("facts").get(top.metadata["record_id"]).metadata["access_count"] == 1


async def test_vector_failure_degrades_to_keyword(seeded_store, failing_embedder):
    retriever = HybridRetrieverImpl(seeded_store, failing_embedder)
    results = await retriever.retrieve("sleep hygiene", ["facts"])
    assert [c.content for c in results] == ["Good sleep hygiene means keeping a regular bedtime."]
    assert results[0].vector_score == 0.0


async def test_vector_only_when_keywords_disabled(seeded_store, fake_embedder):
    retriever = HybridRetrieverImpl(seeded_store, fake_embedder)
    results = await retriever.retrieve("stress", ["facts"], use_keywords=False)
    assert results
    assert all(c.keyword_score == 0.0 for c in results)


async def test_missing_collections_return_empty(vector_store, fake_embedder):
    retriever = HybridRetrieverImpl(vector_store, fake_embedder)
    assert await retriever.retrieve("anything at all", ["facts", "roger_knowledge"]) == []


async def test_limit_applied(seeded_store, fake_embedder):
    retriever = HybridRetrieverImpl(seeded_store, fake_embedder, score_threshold=0.0)
    results = await retriever.retrieve("persistent", ["facts"], limit=1)
    assert len(results) == 1
