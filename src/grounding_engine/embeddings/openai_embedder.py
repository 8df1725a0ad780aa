"""Model-backed embedder calling the OpenAI embeddings endpoint."""

from __future__ import annotations

from openai import AsyncOpenAI

from grounding_engine.exceptions import EmbeddingError
from grounding_engine.observability.logger import get_logger

logger = get_logger("embeddings")

# The endpoint rejects empty strings; blank replies and messages still need a vector.
_BLANK_PLACEHOLDER = " "


class OpenAIEmbedder:
    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        batch_size: int = 100,
        dimensions: int = 1536,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key)
        self._model = model
        self._batch_size = batch_size
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def namespace(self) -> str:
        return f"{self._model}:{self._dimensions}"

    async def _create(self, inputs: list[str]) -> list[list[float]]:
        response = await self._client.embeddings.create(
            input=[t if t.strip() else _BLANK_PLACEHOLDER for t in inputs],
            model=self._model,
            dimensions=self._dimensions,
        )
        ordered = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in ordered]

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        vectors: list[list[float]] = []
        try:
            for start in range(0, len(texts), self._batch_size):
                vectors.extend(await self._create(texts[start : start + self._batch_size]))
        except Exception as e:
            raise EmbeddingError(f"OpenAI embedding of {len(texts)} texts failed: {e}") from e
        logger.debug("embedded_texts", count=len(texts), model=self._model)
        return vectors

    async def embed_query(self, query: str) -> list[float]:
        try:
            (vector,) = await self._create([query])
        except Exception as e:
            raise EmbeddingError(f"OpenAI query embedding failed: {e}") from e
        return vector
