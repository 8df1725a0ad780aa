"""Deterministic embedding derived from character-code and hashed-token frequencies.

Used whenever the model-backed embedder is unavailable. Vectors are stable
across processes, so a snapshot written with simulated vectors stays
comparable after a restart.
"""

from __future__ import annotations

import hashlib
import re

import numpy as np

_TOKEN_RE = re.compile(r"\w+")

# Tokens carry more signal than raw characters.
_TOKEN_WEIGHT = 2.0


class SimulatedEmbedder:
    def __init__(self, dimensions: int = 128) -> None:
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def namespace(self) -> str:
        return f"simulated:{self._dimensions}"

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_sync(t) for t in texts]

    async def embed_query(self, query: str) -> list[float]:
        return self.embed_sync(query)

    def embed_sync(self, text: str) -> list[float]:
        vector = np.zeros(self._dimensions, dtype=np.float64)
        normalized = text.lower().strip()
        if not normalized:
            return vector.tolist()

        for ch in normalized:
            if not ch.isspace():
                vector[ord(ch) % self._dimensions] += 1.0

        for token in _TOKEN_RE.findall(normalized):
            vector[self._bucket(token)] += _TOKEN_WEIGHT

        magnitude = np.linalg.norm(vector)
        if magnitude > 0:
            vector /= magnitude
        return vector.tolist()

    def _bucket(self, token: str) -> int:
        digest = hashlib.md5(token.encode("utf-8")).digest()
        return int.from_bytes(digest[:4], "little") % self._dimensions
