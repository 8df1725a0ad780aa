"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str = ""

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 100
    fallback_embedding_dimensions: int = 128
    use_model_embeddings: bool = True

    # Vector search
    vector_score_threshold: float = 0.3
    vector_per_collection_limit: int = 20

    # Hybrid retrieval
    hybrid_vector_weight: float = 0.7
    hybrid_keyword_weight: float = 0.3
    retrieval_candidate_multiplier: int = 3

    # Reranker weights
    rerank_w_semantic: float = 0.6
    rerank_w_lexical: float = 0.2
    rerank_w_recency: float = 0.1
    rerank_w_importance: float = 0.1
    rerank_min_score: float = 0.3
    rerank_recency_decay: float = 0.03

    # Query expansion
    query_expansion_max_terms: int = 8

    # Claim verification
    reasoning_threshold: float = 0.7

    # Detection
    early_conversation_turns: int = 2
    memory_evidence_threshold: float = 0.6
    duplicate_sentence_threshold: float = 0.7
    contradiction_similarity_threshold: float = 0.75
    hallucination_confidence_threshold: float = 0.6
    recent_response_window: int = 5

    # Pipeline confidence multipliers
    verifier_revision_multiplier: float = 0.8
    repetition_fix_multiplier: float = 0.9

    # Storage paths
    embedding_cache_db_path: str = "data/embedding_cache.db"
    snapshot_db_path: str = "data/collections.db"
    enable_embedding_cache: bool = False
    enable_snapshot: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {"env_file": ".env", "env_prefix": "GROUNDING_"}
