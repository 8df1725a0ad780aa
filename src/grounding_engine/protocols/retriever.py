"""Protocol for retrieval providers."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from grounding_engine.models.domain import Candidate


class Retriever(Protocol):
    async def retrieve(
        self,
        query: str,
        collections: Sequence[str],
        limit: int = 5,
        vector_weight: float = 0.7,
        keyword_weight: float = 0.3,
        use_keywords: bool = True,
    ) -> list[Candidate]: ...
