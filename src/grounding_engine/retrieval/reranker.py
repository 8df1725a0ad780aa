"""Multi-signal reranker: semantic, lexical, recency and stored importance."""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from datetime import datetime, timezone

from grounding_engine.config.constants import DEFAULT_IMPORTANCE, IMPORTANCE_LEVELS
from grounding_engine.embeddings.similarity import cosine_similarity
from grounding_engine.keyword_search.tokenizer import tokenize
from grounding_engine.models.domain import Candidate
from grounding_engine.observability.logger import get_logger
from grounding_engine.protocols.embedder import Embedder

logger = get_logger("reranker")

NO_TIMESTAMP_RECENCY = 0.5


@dataclass
class RerankWeights:
    semantic: float = 0.6
    lexical: float = 0.2
    recency: float = 0.1
    importance: float = 0.1


class WeightedReranker:
    def __init__(
        self,
        embedder: Embedder,
        weights: RerankWeights | None = None,
        min_score: float = 0.3,
        recency_decay: float = 0.03,
    ) -> None:
        self._embedder = embedder
        self._weights = weights or RerankWeights()
        self._min_score = min_score
        self._decay = recency_decay

    async def rerank(
        self,
        query: str,
        candidates: list[Candidate],
        top_k: int = 5,
        require_minimum_score: bool = False,
    ) -> list[Candidate]:
        if not candidates:
            return []

        try:
            query_vec, *candidate_vecs = await asyncio.gather(
                self._embedder.embed_query(query),
                *(self._embedder.embed_query(c.content) for c in candidates),
            )
        except Exception as e:
            logger.warning("rerank_embedding_failed", error=str(e), count=len(candidates))
            return self._by_importance(candidates, top_k)

        now = datetime.now(timezone.utc)
        query_tokens = set(tokenize(query))
        w = self._weights

        for c, vec in zip(candidates, candidate_vecs):
            scores = {
                "semantic": max(0.0, cosine_similarity(query_vec, vec)),
                "lexical": lexical_overlap(query_tokens, c.content),
                "recency": recency_score(c.metadata, now, self._decay),
                "importance": importance_of(c.metadata),
            }
            final = (
                w.semantic * scores["semantic"]
                + w.lexical * scores["lexical"]
                + w.recency * scores["recency"]
                + w.importance * scores["importance"]
            )
            c.scores = scores
            c.final_score = max(0.0, min(1.0, final))

        ranked = candidates
        if require_minimum_score:
            ranked = [c for c in ranked if c.final_score >= self._min_score]
        ranked = sorted(ranked, key=lambda c: c.final_score, reverse=True)[:top_k]

        logger.info(
            "reranked",
            input_count=len(candidates),
            output_count=len(ranked),
            top_score=round(ranked[0].final_score, 4) if ranked else None,
        )
        return ranked

    @staticmethod
    def _by_importance(candidates: list[Candidate], top_k: int) -> list[Candidate]:
        for c in candidates:
            c.final_score = importance_of(c.metadata)
        return sorted(candidates, key=lambda c: c.final_score, reverse=True)[:top_k]


def lexical_overlap(query_tokens: set[str], content: str) -> float:
    if not query_tokens:
        return 0.0
    return len(query_tokens & set(tokenize(content))) / len(query_tokens)


def recency_score(metadata: dict, now: datetime, decay: float) -> float:
    ts = _parse_timestamp(metadata.get("timestamp"))
    if ts is None:
        return NO_TIMESTAMP_RECENCY
    age_hours = max(0.0, (now - ts).total_seconds() / 3600)
    return math.exp(-decay * age_hours)


def importance_of(metadata: dict) -> float:
    value = metadata.get("importance", DEFAULT_IMPORTANCE)
    if isinstance(value, str):
        value = IMPORTANCE_LEVELS.get(value.lower(), DEFAULT_IMPORTANCE)
    try:
        return max(0.0, min(1.0, float(value)))
    except (TypeError, ValueError):
        return DEFAULT_IMPORTANCE


def _parse_timestamp(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        # Millisecond epochs are common in exported transcripts.
        seconds = value / 1000 if value > 1e11 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None
