"""SQLite-backed embedding cache to avoid re-embedding identical text."""

from __future__ import annotations

import hashlib
import json

import aiosqlite

CREATE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS embedding_cache (
    text_hash TEXT PRIMARY KEY,
    namespace TEXT NOT NULL,
    embedding TEXT NOT NULL
)
"""


class EmbeddingCache:
    """Vectors are keyed by namespace plus text so that model and fallback
    vectors never mix."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(CREATE_CACHE_TABLE)
            await db.commit()

    async def get(self, namespace: str, text: str) -> list[float] | None:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT embedding FROM embedding_cache WHERE text_hash = ?",
                (self._hash(namespace, text),),
            ) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return json.loads(row[0])

    async def get_batch(self, namespace: str, texts: list[str]) -> dict[int, list[float]]:
        """Return {index: embedding} for texts that are cached."""
        if not texts:
            return {}
        hash_to_indices: dict[str, list[int]] = {}
        for i, t in enumerate(texts):
            hash_to_indices.setdefault(self._hash(namespace, t), []).append(i)
        placeholders = ",".join("?" for _ in hash_to_indices)

        result: dict[int, list[float]] = {}
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                f"SELECT text_hash, embedding FROM embedding_cache WHERE text_hash IN ({placeholders})",
                list(hash_to_indices),
            ) as cursor:
                async for row in cursor:
                    vector = json.loads(row[1])
                    for idx in hash_to_indices.get(row[0], []):
                        result[idx] = vector
        return result

    async def put(self, namespace: str, text: str, embedding: list[float]) -> None:
        await self.put_batch(namespace, [text], [embedding])

    async def put_batch(
        self, namespace: str, texts: list[str], embeddings: list[list[float]]
    ) -> None:
        if not texts:
            return
        rows = [
            (self._hash(namespace, t), namespace, json.dumps(e))
            for t, e in zip(texts, embeddings)
        ]
        async with aiosqlite.connect(self._db_path) as db:
            await db.executemany(
                "INSERT OR REPLACE INTO embedding_cache (text_hash, namespace, embedding) "
                "VALUES (?, ?, ?)",
                rows,
            )
            await db.commit()

    @staticmethod
    def _hash(namespace: str, text: str) -> str:
        return hashlib.sha256(f"{namespace}\x00{text}".encode("utf-8")).hexdigest()
