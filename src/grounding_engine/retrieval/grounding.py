"""Enhanced retrieval: query expansion, hybrid search, reranking and relevance filtering."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Sequence

from grounding_engine.config.constants import GROUNDING_COLLECTIONS
from grounding_engine.config.settings import Settings
from grounding_engine.models.domain import Candidate
from grounding_engine.models.schemas import PreventionOptions
from grounding_engine.observability.logger import get_logger
from grounding_engine.observability.metrics import log_retrieval_metrics
from grounding_engine.protocols.reranker import Reranker
from grounding_engine.protocols.retriever import Retriever
from grounding_engine.retrieval.query_expansion import QueryExpander

logger = get_logger("grounding")


class GroundingCache:
    """Bounded LRU of grounding candidates keyed by normalised query."""

    def __init__(self, max_entries: int = 128) -> None:
        self._max_entries = max_entries
        self._entries: OrderedDict[str, list[Candidate]] = OrderedDict()

    def get(self, query: str) -> list[Candidate] | None:
        key = self._key(query)
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, query: str, candidates: list[Candidate]) -> None:
        key = self._key(query)
        self._entries[key] = candidates
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def _key(query: str) -> str:
        return " ".join(query.lower().split())


class EnhancedRetriever:
    def __init__(
        self,
        retriever: Retriever,
        reranker: Reranker,
        expander: QueryExpander,
        settings: Settings,
    ) -> None:
        self._retriever = retriever
        self._reranker = reranker
        self._expander = expander
        self._settings = settings

    async def retrieve_enhanced(
        self,
        query: str,
        topics: list[str] | None = None,
        options: PreventionOptions | None = None,
        collections: Sequence[str] = GROUNDING_COLLECTIONS,
    ) -> list[Candidate]:
        """Ranked grounding candidates for ``query``. Returns [] on any failure."""
        options = options or PreventionOptions()
        try:
            search_query = query
            if options.use_query_expansion:
                search_query = self._expander.expand(query, topics).text

            candidates = await self._retriever.retrieve(
                search_query,
                collections,
                limit=options.limit * self._settings.retrieval_candidate_multiplier,
                vector_weight=self._settings.hybrid_vector_weight,
                keyword_weight=self._settings.hybrid_keyword_weight,
                use_keywords=options.use_hybrid_search,
            )

            if options.rerank and candidates:
                ranked = await self._reranker.rerank(query, candidates, top_k=options.limit)
            else:
                ranked = candidates[: options.limit]

            results = [c for c in ranked if c.score >= options.relevance_threshold]
            log_retrieval_metrics(
                query_len=len(query),
                expanded=search_query != query,
                top_scores=[c.score for c in results],
                num_candidates=len(candidates),
                num_returned=len(results),
            )
            return results
        except Exception as e:
            logger.warning("enhanced_retrieval_failed", error=str(e))
            return []
