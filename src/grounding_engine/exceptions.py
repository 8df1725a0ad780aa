"""Custom exception hierarchy for the grounding engine."""


class GroundingEngineError(Exception):
    """Base exception for all grounding engine errors."""


class EmbeddingError(GroundingEngineError):
    """Error generating embeddings."""


class VectorStoreError(GroundingEngineError):
    """Error reading or writing a vector collection."""


class CorrectionError(GroundingEngineError):
    """Error while rewriting a flagged reply."""


class PersistenceError(GroundingEngineError):
    """Error loading or saving a collection snapshot."""
