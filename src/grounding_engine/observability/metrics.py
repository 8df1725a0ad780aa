"""Metric recording helpers emitted as structured log events."""

from __future__ import annotations

from grounding_engine.observability.logger import get_logger

logger = get_logger("metrics")


def log_retrieval_metrics(
    query_len: int,
    expanded: bool,
    top_scores: list[float],
    num_candidates: int,
    num_returned: int,
) -> None:
    logger.info(
        "retrieval_metrics",
        query_len=query_len,
        expanded=expanded,
        top_scores=[round(s, 4) for s in top_scores[:5]],
        num_candidates=num_candidates,
        num_returned=num_returned,
    )


def log_detection_metrics(
    confidence: float,
    is_hallucination: bool,
    flag_types: list[str],
    history_len: int,
) -> None:
    logger.info(
        "detection_metrics",
        confidence=round(confidence, 4),
        is_hallucination=is_hallucination,
        flag_types=flag_types,
        history_len=history_len,
    )


def log_pipeline_metrics(
    trace_id: str,
    confidence: float,
    was_revised: bool,
    issue_count: int,
    latency_ms: float,
) -> None:
    logger.info(
        "pipeline_metrics",
        trace_id=trace_id,
        confidence=round(confidence, 4),
        was_revised=was_revised,
        issue_count=issue_count,
        latency_ms=round(latency_ms, 2),
    )
