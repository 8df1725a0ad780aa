"""Embedder wrapper that persists vectors in the SQLite embedding cache."""

from __future__ import annotations

from grounding_engine.embeddings.cache import EmbeddingCache
from grounding_engine.observability.logger import get_logger

logger = get_logger("cached_embedder")


class CachedEmbedder:
    """Serves vectors from ``EmbeddingCache`` and sends only unseen texts to the delegate.

    Texts repeated within one batch are embedded once. Cache keys include the
    delegate's namespace, so vectors from the simulated fallback are never
    served in place of model vectors.
    """

    def __init__(self, delegate, cache: EmbeddingCache) -> None:
        self._delegate = delegate
        self._cache = cache

    @property
    def dimensions(self) -> int:
        return self._delegate.dimensions

    @property
    def namespace(self) -> str:
        return getattr(self._delegate, "namespace", "default")

    @property
    def using_fallback(self) -> bool:
        return getattr(self._delegate, "using_fallback", False)

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        found = await self._cache.get_batch(self.namespace, texts)
        pending: dict[str, list[int]] = {}
        for i, text in enumerate(texts):
            if i not in found:
                pending.setdefault(text, []).append(i)

        if pending:
            unique = list(pending)
            fresh = await self._delegate.embed_texts(unique)
            # Read the namespace after the call: the delegate may have just fallen back.
            await self._cache.put_batch(self.namespace, unique, fresh)
            for text, vector in zip(unique, fresh):
                for i in pending[text]:
                    found[i] = vector

        logger.debug(
            "embedding_cache_lookup",
            total=len(texts),
            hits=len(texts) - sum(len(v) for v in pending.values()),
            embedded=len(pending),
        )
        return [found[i] for i in range(len(texts))]

    async def embed_query(self, query: str) -> list[float]:
        vector = await self._cache.get(self.namespace, query)
        if vector is None:
            vector = await self._delegate.embed_query(query)
            await self._cache.put(self.namespace, query, vector)
        return vector
