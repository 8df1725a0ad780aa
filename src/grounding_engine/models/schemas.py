"""Pydantic models for caller-facing options and results."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PreventionOptions(BaseModel):
    """Per-call toggles. Accepts both snake_case and the camelCase caller names."""

    model_config = ConfigDict(populate_by_name=True)

    enable_rag: bool = Field(default=True, alias="enableRAG")
    enable_reasoning: bool = Field(default=True, alias="enableReasoning")
    enable_detection: bool = Field(default=True, alias="enableDetection")
    reasoning_threshold: float = Field(default=0.7, alias="reasoningThreshold", ge=0.0, le=1.0)
    rerank: bool = True
    use_hybrid_search: bool = Field(default=True, alias="useHybridSearch")
    use_query_expansion: bool = Field(default=True, alias="useQueryExpansion")
    relevance_threshold: float = Field(default=0.0, alias="relevanceThreshold", ge=0.0, le=1.0)
    limit: int = Field(default=5, ge=1)


class StageTiming(BaseModel):
    name: str
    duration_ms: float
    metadata: dict = Field(default_factory=dict)


class PipelineResult(BaseModel):
    processed_response: str
    was_revised: bool = False
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    issue_details: list[str] = Field(default_factory=list)
    reasoning_applied: bool = False
    detection_applied: bool = False
    rag_applied: bool = False
    processing_time_ms: float = 0.0
    stages: list[StageTiming] = Field(default_factory=list)
