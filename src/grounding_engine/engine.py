"""Engine facade: builds and owns every component of the grounding engine."""

from __future__ import annotations

from pathlib import Path

from grounding_engine.config.constants import GROUNDING_COLLECTIONS, USER_MESSAGES
from grounding_engine.config.settings import Settings
from grounding_engine.correction.corrector import Corrector
from grounding_engine.detection.detector import HallucinationDetector
from grounding_engine.detection.memory import RecentResponseMemory
from grounding_engine.embeddings.cache import EmbeddingCache
from grounding_engine.embeddings.cached_embedder import CachedEmbedder
from grounding_engine.embeddings.fallback_embedder import FallbackEmbedder
from grounding_engine.embeddings.openai_embedder import OpenAIEmbedder
from grounding_engine.embeddings.simulated_embedder import SimulatedEmbedder
from grounding_engine.knowledge.loader import KnowledgeLoader
from grounding_engine.models.domain import Candidate, DetectionReport
from grounding_engine.models.schemas import PipelineResult, PreventionOptions
from grounding_engine.observability.logger import get_logger
from grounding_engine.pipeline.prevention_pipeline import PreventionPipeline
from grounding_engine.retrieval.grounding import EnhancedRetriever, GroundingCache
from grounding_engine.retrieval.hybrid_retriever import HybridRetrieverImpl
from grounding_engine.retrieval.query_expansion import QueryExpander
from grounding_engine.retrieval.reranker import RerankWeights, WeightedReranker
from grounding_engine.storage.snapshot_store import SQLiteSnapshotStore
from grounding_engine.vectorstore.memory_store import VectorStore
from grounding_engine.verification.claim_verifier import ClaimVerifier

logger = get_logger("engine")


class GroundingEngine:
    """One explicitly constructed engine instance. Construction does no I/O; call ``init()``."""

    def __init__(
        self,
        settings: Settings | None = None,
        embedder=None,
        vector_store: VectorStore | None = None,
    ) -> None:
        self.settings = settings or Settings()
        s = self.settings

        self.vector_store = vector_store or VectorStore()
        self._embedding_cache: EmbeddingCache | None = None
        self.embedder = embedder or self._build_embedder()

        self.recent_responses = RecentResponseMemory(max_size=s.recent_response_window)
        self.retriever = HybridRetrieverImpl(
            vector_store=self.vector_store,
            embedder=self.embedder,
            score_threshold=s.vector_score_threshold,
            per_collection_limit=s.vector_per_collection_limit,
        )
        self.reranker = WeightedReranker(
            embedder=self.embedder,
            weights=RerankWeights(
                semantic=s.rerank_w_semantic,
                lexical=s.rerank_w_lexical,
                recency=s.rerank_w_recency,
                importance=s.rerank_w_importance,
            ),
            min_score=s.rerank_min_score,
            recency_decay=s.rerank_recency_decay,
        )
        self.enhanced_retriever = EnhancedRetriever(
            retriever=self.retriever,
            reranker=self.reranker,
            expander=QueryExpander(max_terms=s.query_expansion_max_terms),
            settings=s,
        )
        self.verifier = ClaimVerifier(threshold=s.reasoning_threshold)
        self.detector = HallucinationDetector(
            settings=s,
            recent_responses=self.recent_responses,
            memory_texts=self._user_message_texts,
        )
        self.corrector = Corrector(duplicate_threshold=s.duplicate_sentence_threshold)
        self.pipeline = PreventionPipeline(
            enhanced_retriever=self.enhanced_retriever,
            verifier=self.verifier,
            detector=self.detector,
            corrector=self.corrector,
            recent_responses=self.recent_responses,
            settings=s,
            grounding_cache=GroundingCache(),
        )
        self.knowledge = KnowledgeLoader(self.vector_store, self.embedder)
        self.snapshot_store = SQLiteSnapshotStore(s.snapshot_db_path) if s.enable_snapshot else None

    def _build_embedder(self):
        s = self.settings
        delegate = None
        if s.use_model_embeddings and s.openai_api_key:
            delegate = OpenAIEmbedder(
                api_key=s.openai_api_key,
                model=s.embedding_model,
                batch_size=s.embedding_batch_size,
                dimensions=s.embedding_dimensions,
            )
        embedder = FallbackEmbedder(
            delegate=delegate,
            fallback=SimulatedEmbedder(dimensions=s.fallback_embedding_dimensions),
        )
        if s.enable_embedding_cache:
            self._embedding_cache = EmbeddingCache(s.embedding_cache_db_path)
            return CachedEmbedder(delegate=embedder, cache=self._embedding_cache)
        return embedder

    async def init(self) -> None:
        """Warm-start from the snapshot when enabled, then load any missing built-in knowledge."""
        if self._embedding_cache is not None:
            Path(self.settings.embedding_cache_db_path).parent.mkdir(parents=True, exist_ok=True)
            await self._embedding_cache.initialize()

        restored = 0
        if self.snapshot_store is not None:
            restored = await self.snapshot_store.restore(
                self.vector_store, dimensions=self.embedder.dimensions
            )

        loaded = await self.knowledge.load_builtin()
        logger.info(
            "engine_initialized",
            restored=restored,
            loaded=loaded,
            collections=self.vector_store.stats(),
            using_fallback=getattr(self.embedder, "using_fallback", False),
        )

    async def save(self) -> int:
        """Persist a snapshot of every collection. Returns 0 when snapshots are disabled."""
        if self.snapshot_store is None:
            return 0
        return await self.snapshot_store.save(self.vector_store)

    async def close(self) -> None:
        await self.pipeline.drain()

    async def prevent_hallucinations(
        self,
        reply: str,
        user_input: str,
        history: list[str] | None = None,
        options: PreventionOptions | dict | None = None,
    ) -> PipelineResult:
        if isinstance(options, dict):
            options = PreventionOptions.model_validate(options)
        return await self.pipeline.prevent_hallucinations(reply, user_input, history, options)

    async def retrieve_enhanced(
        self,
        query: str,
        topics: list[str] | None = None,
        options: PreventionOptions | dict | None = None,
    ) -> list[Candidate]:
        if isinstance(options, dict):
            options = PreventionOptions.model_validate(options)
        return await self.enhanced_retriever.retrieve_enhanced(
            query, topics, options, collections=GROUNDING_COLLECTIONS
        )

    def detect_hallucinations(
        self, reply: str, user_input: str, history: list[str] | None = None
    ) -> DetectionReport:
        return self.detector.detect(reply, user_input, list(history or []))

    async def add_conversation_exchange(self, user_input: str, response: str) -> bool:
        added = await self.knowledge.add_conversation_exchange(user_input, response)
        recent = self.recent_responses.items()
        if not recent or recent[-1] != response:
            self.recent_responses.add(response)
        return added

    def _user_message_texts(self) -> list[str]:
        if not self.vector_store.has_collection(USER_MESSAGES):
            return []
        return [r.text for r in self.vector_store.collection(USER_MESSAGES).get_all()]


async def create_engine(settings: Settings | None = None) -> GroundingEngine:
    engine = GroundingEngine(settings)
    await engine.init()
    return engine
