"""Shared test fixtures."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from grounding_engine.config.settings import Settings
from grounding_engine.models.domain import Candidate, Record
from grounding_engine.vectorstore.memory_store import VectorStore

# Concept axes for FakeEmbedder; the last dimension is a constant bias.
_CONCEPTS = ("anxi", "depress", "stress", "sleep", "exam")


class FakeEmbedder:
    """Deterministic concept-presence embedder that tracks call counts."""

    def __init__(self) -> None:
        self.embed_texts_calls = 0
        self.embed_query_calls = 0

    @property
    def dimensions(self) -> int:
        return len(_CONCEPTS) + 1

    @property
    def namespace(self) -> str:
        return "fake"

    def vector(self, text: str) -> list[float]:
        lower = text.lower()
        return [1.0 if c in lower else 0.0 for c in _CONCEPTS] + [0.1]

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.embed_texts_calls += 1
        return [self.vector(t) for t in texts]

    async def embed_query(self, query: str) -> list[float]:
        self.embed_query_calls += 1
        return self.vector(query)


class FailingEmbedder:
    """Embedder whose every call raises."""

    dimensions = 6
    namespace = "failing"

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        raise RuntimeError("embedding backend unavailable")

    async def embed_query(self, query: str) -> list[float]:
        raise RuntimeError("embedding backend unavailable")


@pytest.fixture
def settings():
    """Test settings with temp paths and no model access."""
    tmp = tempfile.mkdtemp()
    return Settings(
        openai_api_key="",
        use_model_embeddings=False,
        embedding_cache_db_path=str(Path(tmp) / "embedding_cache.db"),
        snapshot_db_path=str(Path(tmp) / "collections.db"),
        log_json=False,
    )


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def failing_embedder():
    return FailingEmbedder()


@pytest.fixture
def vector_store():
    return VectorStore()


@pytest.fixture
async def seeded_store(fake_embedder):
    """Store with a handful of mental-health facts embedded by FakeEmbedder."""
    store = VectorStore()
    texts = [
        "Anxiety disorders are characterized by persistent worry; feeling anxious about exams is common.",
        "Depression is a serious mental health condition characterized by persistent sadness.",
        "Stress management techniques include exercise and setting healthy boundaries.",
        "Good sleep hygiene means keeping a regular bedtime.",
    ]
    vectors = await fake_embedder.embed_texts(texts)
    await store.collection("facts").insert_many(
        [
            Record(id=f"fact-{i}", text=t, vector=v, metadata={"importance": 0.6})
            for i, (t, v) in enumerate(zip(texts, vectors))
        ]
    )
    return store


@pytest.fixture
def sample_candidates():
    """Candidates with descending combined scores."""
    return [
        Candidate(
            content=f"Sample grounding passage number {i} about coping with stress.",
            vector_score=1.0 - i * 0.1,
            combined_score=1.0 - i * 0.1,
            metadata={"importance": 0.5, "record_id": f"r{i}"},
        )
        for i in range(5)
    ]


@pytest.fixture
def tmp_dir():
    """Create a temporary directory."""
    return tempfile.mkdtemp()
