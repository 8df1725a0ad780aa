"""Embedder that serves model vectors when it can and deterministic vectors otherwise."""

from __future__ import annotations

from grounding_engine.embeddings.similarity import cosine_similarity
from grounding_engine.embeddings.simulated_embedder import SimulatedEmbedder
from grounding_engine.observability.logger import get_logger

logger = get_logger("fallback_embedder")


class FallbackEmbedder:
    """Wraps an optional model-backed delegate with a SimulatedEmbedder.

    The first delegate failure switches the provider into fallback mode for
    the rest of its lifetime so that every vector in a collection comes from
    the same embedding space.
    """

    def __init__(self, delegate=None, fallback: SimulatedEmbedder | None = None) -> None:
        self._delegate = delegate
        self._fallback = fallback or SimulatedEmbedder()
        self._using_fallback = delegate is None
        if self._using_fallback:
            logger.info("embedder_fallback_mode", reason="no_model_configured")

    @property
    def dimensions(self) -> int:
        if self._using_fallback:
            return self._fallback.dimensions
        return self._delegate.dimensions

    @property
    def namespace(self) -> str:
        if self._using_fallback:
            return self._fallback.namespace
        return self._delegate.namespace

    @property
    def using_fallback(self) -> bool:
        return self._using_fallback

    @property
    def is_ready(self) -> bool:
        """True only while the model-backed delegate is serving vectors."""
        return not self._using_fallback

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        if not self._using_fallback:
            try:
                return await self._delegate.embed_texts(texts)
            except Exception as e:
                self._switch_to_fallback(e)
        return await self._fallback.embed_texts(texts)

    async def embed_query(self, query: str) -> list[float]:
        if not self._using_fallback:
            try:
                return await self._delegate.embed_query(query)
            except Exception as e:
                self._switch_to_fallback(e)
        return await self._fallback.embed_query(query)

    @staticmethod
    def similarity(v1: list[float], v2: list[float]) -> float:
        return cosine_similarity(v1, v2)

    def _switch_to_fallback(self, error: Exception) -> None:
        self._using_fallback = True
        logger.warning("embedder_fallback_mode", reason="model_error", error=str(error))
