"""In-memory vector store of named collections with brute-force cosine search."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import numpy as np

from grounding_engine.embeddings.similarity import cosine_similarity_matrix
from grounding_engine.exceptions import VectorStoreError
from grounding_engine.models.domain import Record, SimilarityMatch
from grounding_engine.observability.logger import get_logger

logger = get_logger("vector_store")


class Collection:
    """Named set of records keyed by id.

    Records are append-only. Readers work on a snapshot of the insertion-ordered
    list and take no lock; writers are serialised by a per-collection lock.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._records: list[Record] = []
        self._by_id: dict[str, Record] = {}
        self._write_lock = asyncio.Lock()

    @property
    def size(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._by_id

    def get(self, record_id: str) -> Record | None:
        return self._by_id.get(record_id)

    def get_all(self) -> list[Record]:
        return self._records[:]

    async def insert(self, record: Record) -> None:
        async with self._write_lock:
            self._append(record)

    async def insert_many(self, records: list[Record]) -> None:
        if not records:
            return
        async with self._write_lock:
            seen: set[str] = set()
            for r in records:
                if r.id in self._by_id or r.id in seen:
                    raise VectorStoreError(f"Duplicate record id {r.id!r} in collection {self.name!r}")
                seen.add(r.id)
            for r in records:
                self._append(r)
        logger.debug("collection_insert_many", collection=self.name, count=len(records), total=self.size)

    def find_similar(
        self,
        vector: list[float],
        limit: int = 10,
        score_threshold: float = 0.0,
    ) -> list[SimilarityMatch]:
        """Top ``limit`` records by cosine similarity at or above ``score_threshold``.

        Ties keep insertion order.
        """
        records = self._records[:]
        if not records or limit <= 0:
            return []

        dims = len(vector)
        comparable = [r for r in records if len(r.vector) == dims]
        if not comparable:
            return []

        matrix = np.asarray([r.vector for r in comparable], dtype=np.float64)
        scores = cosine_similarity_matrix(vector, matrix)

        # Stable sort on negated scores keeps insertion order for ties.
        order = np.argsort(-scores, kind="stable")
        results: list[SimilarityMatch] = []
        for idx in order:
            score = float(scores[idx])
            if score < score_threshold:
                break
            results.append(SimilarityMatch(record=comparable[idx], score=score))
            if len(results) >= limit:
                break
        return results

    def touch(self, record_id: str) -> None:
        """Bump the access counters of a record."""
        record = self._by_id.get(record_id)
        if record is None:
            return
        record.metadata["access_count"] = record.metadata.get("access_count", 0) + 1
        record.metadata["last_accessed"] = datetime.now(timezone.utc).isoformat()

    def _append(self, record: Record) -> None:
        if record.id in self._by_id:
            raise VectorStoreError(f"Duplicate record id {record.id!r} in collection {self.name!r}")
        self._by_id[record.id] = record
        self._records.append(record)


class VectorStore:
    def __init__(self) -> None:
        self._collections: dict[str, Collection] = {}

    def collection(self, name: str) -> Collection:
        """Return the named collection, creating it on first reference."""
        col = self._collections.get(name)
        if col is None:
            col = Collection(name)
            self._collections[name] = col
            logger.debug("collection_created", collection=name)
        return col

    def has_collection(self, name: str) -> bool:
        return name in self._collections

    def list_collections(self) -> list[str]:
        return list(self._collections)

    def stats(self) -> dict[str, int]:
        return {name: col.size for name, col in self._collections.items()}

    @property
    def total_records(self) -> int:
        return sum(col.size for col in self._collections.values())
