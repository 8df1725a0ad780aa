"""Protocol for reranking providers."""

from __future__ import annotations

from typing import Protocol

from grounding_engine.models.domain import Candidate


class Reranker(Protocol):
    async def rerank(
        self,
        query: str,
        candidates: list[Candidate],
        top_k: int = 5,
        require_minimum_score: bool = False,
    ) -> list[Candidate]: ...
