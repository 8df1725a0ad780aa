"""Load the built-in knowledge into a fresh engine and write a warm-start snapshot.

Usage:
    python scripts/seed_data.py

The snapshot path comes from GROUNDING_SNAPSHOT_DB_PATH (default data/collections.db).
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from grounding_engine.config.settings import Settings
from grounding_engine.engine import GroundingEngine
from grounding_engine.observability.logger import setup_logging


async def main():
    settings = Settings(enable_snapshot=True)
    setup_logging(level=settings.log_level, json_output=False)

    engine = GroundingEngine(settings)
    await engine.init()

    for name, size in engine.vector_store.stats().items():
        print(f"{name}: {size} records")

    saved = await engine.save()
    print(f"\nSnapshot written to {settings.snapshot_db_path}: {saved} records")


if __name__ == "__main__":
    asyncio.run(main())
