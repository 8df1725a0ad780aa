"""Hybrid retriever combining vector similarity and keyword overlap with weighted merging."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from grounding_engine.keyword_search.keyword_scorer import search_records
from grounding_engine.models.domain import Candidate, Record
from grounding_engine.observability.logger import get_logger
from grounding_engine.protocols.embedder import Embedder
from grounding_engine.vectorstore.memory_store import VectorStore

logger = get_logger("hybrid_retriever")


class HybridRetrieverImpl:
    def __init__(
        self,
        vector_store: VectorStore,
        embedder: Embedder,
        score_threshold: float = 0.3,
        per_collection_limit: int = 20,
    ) -> None:
        self._vector_store = vector_store
        self._embedder = embedder
        self._score_threshold = score_threshold
        self._per_collection_limit = per_collection_limit

    async def retrieve(
        self,
        query: str,
        collections: Sequence[str],
        limit: int = 5,
        vector_weight: float = 0.7,
        keyword_weight: float = 0.3,
        use_keywords: bool = True,
    ) -> list[Candidate]:
        """Merged candidates for ``query``; never raises.

        A failing modality is dropped and the other one is returned on its own.
        """
        try:
            vector_results, keyword_results = await asyncio.gather(
                self._vector_search_safe(query, collections),
                self._keyword_search_safe(query, collections) if use_keywords else _empty(),
            )
            logger.info(
                "retrieval_results",
                vector_count=len(vector_results),
                keyword_count=len(keyword_results),
            )
            merged = merge_results(vector_results, keyword_results, vector_weight, keyword_weight)
            top = merged[:limit]
            self._touch(top)
            return top
        except Exception as e:
            logger.warning("hybrid_retrieval_failed", error=str(e))
            return []

    async def vector_search(self, query: str, collections: Sequence[str]) -> list[Candidate]:
        query_embedding = await self._embedder.embed_query(query)

        active = [name for name in collections if self._vector_store.collection(name).size > 0]
        per_collection = await asyncio.gather(
            *(
                asyncio.to_thread(
                    self._vector_store.collection(name).find_similar,
                    query_embedding,
                    self._per_collection_limit,
                    self._score_threshold,
                )
                for name in active
            )
        )

        results: list[Candidate] = []
        for name, matches in zip(active, per_collection):
            for m in matches:
                results.append(
                    Candidate(
                        content=m.record.text,
                        vector_score=m.score,
                        combined_score=m.score,
                        metadata=_candidate_metadata(name, m.record),
                    )
                )
        return results

    async def keyword_search(self, query: str, collections: Sequence[str]) -> list[Candidate]:
        results: list[Candidate] = []
        for name in collections:
            records = self._vector_store.collection(name).get_all()
            for record, score in search_records(query, records):
                results.append(
                    Candidate(
                        content=record.text,
                        keyword_score=score,
                        combined_score=score,
                        metadata=_candidate_metadata(name, record),
                    )
                )
        results.sort(key=lambda c: c.keyword_score, reverse=True)
        return results

    async def _vector_search_safe(self, query: str, collections: Sequence[str]) -> list[Candidate]:
        try:
            return await self.vector_search(query, collections)
        except Exception as e:
            logger.warning("vector_search_failed", error=str(e))
            return []

    async def _keyword_search_safe(self, query: str, collections: Sequence[str]) -> list[Candidate]:
        try:
            return await self.keyword_search(query, collections)
        except Exception as e:
            logger.warning("keyword_search_failed", error=str(e))
            return []

    def _touch(self, candidates: list[Candidate]) -> None:
        for c in candidates:
            name = c.metadata.get("collection")
            record_id = c.metadata.get("record_id")
            if name and record_id and self._vector_store.has_collection(name):
                self._vector_store.collection(name).touch(record_id)


def merge_results(
    vector_results: list[Candidate],
    keyword_results: list[Candidate],
    vector_weight: float,
    keyword_weight: float,
) -> list[Candidate]:
    """Merge two result sets on exact text equality.

    A text found by both searches scores ``vector_weight * vector + keyword_weight * keyword``;
    a text found by one search keeps that search's score. Weights are not normalised.
    """
    by_content: dict[str, Candidate] = {}

    for c in vector_results:
        existing = by_content.get(c.content)
        if existing is None or c.vector_score > existing.vector_score:
            by_content[c.content] = c

    for c in keyword_results:
        existing = by_content.get(c.content)
        if existing is None:
            by_content[c.content] = c
        elif existing.vector_score > 0 and existing.keyword_score == 0:
            existing.keyword_score = c.keyword_score
            existing.combined_score = (
                vector_weight * existing.vector_score + keyword_weight * c.keyword_score
            )

    return sorted(by_content.values(), key=lambda c: c.combined_score, reverse=True)


def _candidate_metadata(collection: str, record: Record) -> dict:
    return {
        **record.metadata,
        "collection": collection,
        "record_id": record.id,
    }


async def _empty() -> list[Candidate]:
    return []
