"""SQLite-backed warm-start snapshot of vector collections.

The snapshot is a cache only: a missing or unreadable database restores
nothing and the engine rebuilds its collections from scratch.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from grounding_engine.exceptions import PersistenceError
from grounding_engine.models.domain import Record
from grounding_engine.observability.logger import get_logger
from grounding_engine.storage.migrations import initialize_snapshot_db
from grounding_engine.vectorstore.memory_store import VectorStore

logger = get_logger("snapshot_store")


class SQLiteSnapshotStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        await initialize_snapshot_db(self._db_path)

    async def save(self, store: VectorStore) -> int:
        """Replace the stored snapshot with the current contents of ``store``."""
        rows = []
        for name in store.list_collections():
            for position, r in enumerate(store.collection(name).get_all()):
                rows.append(
                    (
                        name,
                        r.id,
                        position,
                        r.text,
                        json.dumps(r.vector),
                        json.dumps(r.metadata, default=str),
                        r.created_at.isoformat(),
                    )
                )
        try:
            await self.initialize()
            async with aiosqlite.connect(self._db_path) as db:
                await db.execute("DELETE FROM records")
                await db.executemany(
                    "INSERT INTO records "
                    "(collection, record_id, position, text, vector, metadata, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    rows,
                )
                await db.commit()
        except Exception as e:
            raise PersistenceError(f"Failed to save snapshot to {self._db_path}: {e}") from e
        logger.info("snapshot_saved", path=self._db_path, records=len(rows))
        return len(rows)

    async def load(self) -> dict[str, list[Record]]:
        if not Path(self._db_path).exists():
            return {}
        result: dict[str, list[Record]] = {}
        try:
            async with aiosqlite.connect(self._db_path) as db:
                db.row_factory = aiosqlite.Row
                async with db.execute(
                    "SELECT * FROM records ORDER BY collection, position"
                ) as cursor:
                    async for row in cursor:
                        result.setdefault(row["collection"], []).append(self._row_to_record(row))
        except Exception as e:
            raise PersistenceError(f"Failed to load snapshot from {self._db_path}: {e}") from e
        return result

    async def restore(self, store: VectorStore, dimensions: int | None = None) -> int:
        """Load the snapshot into ``store``. Returns the number of records restored, 0 on failure.

        With ``dimensions`` set, records whose vectors have another length are
        skipped so their collection can be rebuilt with the active embedder.
        """
        try:
            snapshot = await self.load()
        except PersistenceError as e:
            logger.warning("snapshot_restore_failed", error=str(e))
            return 0

        restored = 0
        for name, records in snapshot.items():
            col = store.collection(name)
            if dimensions is not None:
                mismatched = [r for r in records if len(r.vector) != dimensions]
                if mismatched:
                    logger.warning(
                        "snapshot_dimension_mismatch",
                        collection=name,
                        skipped=len(mismatched),
                        expected=dimensions,
                        found=len(mismatched[0].vector),
                    )
                    records = [r for r in records if len(r.vector) == dimensions]
            fresh = [r for r in records if r.id not in col]
            await col.insert_many(fresh)
            restored += len(fresh)
        logger.info("snapshot_restored", path=self._db_path, records=restored)
        return restored

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> Record:
        return Record(
            id=row["record_id"],
            text=row["text"],
            vector=json.loads(row["vector"]),
            metadata=json.loads(row["metadata"]),
            created_at=datetime.fromisoformat(row["created_at"]).astimezone(timezone.utc),
        )
