"""Hallucination prevention pipeline: the orchestrator that turns a draft reply into a final one."""

from __future__ import annotations

import asyncio

from grounding_engine.config.settings import Settings
from grounding_engine.correction.corrector import Corrector
from grounding_engine.correction.repetition import deduplicate_sentences
from grounding_engine.detection.detector import HallucinationDetector
from grounding_engine.detection.memory import RecentResponseMemory
from grounding_engine.models.schemas import PipelineResult, PreventionOptions
from grounding_engine.observability.logger import get_logger
from grounding_engine.observability.metrics import log_pipeline_metrics
from grounding_engine.observability.tracing import TraceContext
from grounding_engine.retrieval.grounding import EnhancedRetriever, GroundingCache
from grounding_engine.verification.claim_verifier import ClaimVerifier

logger = get_logger("prevention_pipeline")


class PreventionPipeline:
    def __init__(
        self,
        enhanced_retriever: EnhancedRetriever,
        verifier: ClaimVerifier,
        detector: HallucinationDetector,
        corrector: Corrector,
        recent_responses: RecentResponseMemory,
        settings: Settings,
        grounding_cache: GroundingCache | None = None,
    ) -> None:
        self._retriever = enhanced_retriever
        self._verifier = verifier
        self._detector = detector
        self._corrector = corrector
        self._recent = recent_responses
        self._settings = settings
        self.grounding_cache = grounding_cache or GroundingCache()
        self._background: set[asyncio.Task] = set()

    async def prevent_hallucinations(
        self,
        reply: str,
        user_input: str,
        history: list[str] | None = None,
        options: PreventionOptions | None = None,
    ) -> PipelineResult:
        """Verify, detect and correct ``reply``. Never raises; on failure returns the reply unchanged."""
        trace = TraceContext()
        try:
            return self._run(trace, reply, user_input, list(history or []), options or PreventionOptions())
        except Exception as e:
            logger.error(
                "prevention_pipeline_failed",
                trace_id=trace.trace_id,
                stage=trace.failed_stage,
                error=str(e),
                error_type=type(e).__name__,
            )
            return PipelineResult(
                processed_response=reply,
                was_revised=False,
                confidence=1.0,
                processing_time_ms=round(trace.elapsed_ms, 2),
            )

    def _run(
        self,
        trace: TraceContext,
        reply: str,
        user_input: str,
        history: list[str],
        options: PreventionOptions,
    ) -> PipelineResult:
        text = reply
        confidence = 1.0
        issues: list[str] = []

        # STEP 1: Background grounding lookup
        if options.enable_rag:
            with trace.span("grounding_scheduled"):
                self._schedule_grounding(user_input, options)

        # STEP 2: Claim verification
        if options.enable_reasoning:
            with trace.span("verification") as span:
                outcome = self._verifier.verify(text, user_input, history, options.reasoning_threshold)
                span.metadata["claims"] = len(outcome.steps)
                if outcome.verified_text != text:
                    text = outcome.verified_text
                    confidence *= self._settings.verifier_revision_multiplier
                    weak = [s for s in outcome.steps if s.confidence < options.reasoning_threshold]
                    issues.extend(f"unsupported_claim: {s.claim}" for s in weak)

        # STEPS 3-4: Detection and correction
        if options.enable_detection:
            with trace.span("detection") as span:
                report = self._detector.detect(text, user_input, history)
                span.metadata["flags"] = len(report.flags)
            issues.extend(f"{f.type.value}: {f.description}" for f in report.flags)

            if report.is_hallucination:
                with trace.span("correction") as span:
                    correction = self._corrector.correct(text, user_input, report)
                    span.metadata["applied"] = correction.applied
                if correction.text != text:
                    text = correction.text
                    confidence *= report.confidence

        # STEP 5: Final repetition sweep
        with trace.span("repetition_sweep"):
            swept = deduplicate_sentences(text, self._settings.duplicate_sentence_threshold)
            if swept and swept != text:
                text = swept
                confidence *= self._settings.repetition_fix_multiplier
                issues.append("repetition: duplicate sentences removed in final sweep")

        if not text.strip():
            raise ValueError("pipeline produced an empty reply")

        self._recent.add(text)
        confidence = max(0.0, min(1.0, confidence))
        was_revised = text != reply

        log_pipeline_metrics(
            trace_id=trace.trace_id,
            confidence=confidence,
            was_revised=was_revised,
            issue_count=len(issues),
            latency_ms=trace.elapsed_ms,
        )
        return PipelineResult(
            processed_response=text,
            was_revised=was_revised,
            confidence=round(confidence, 4),
            issue_details=issues,
            reasoning_applied=options.enable_reasoning,
            detection_applied=options.enable_detection,
            rag_applied=options.enable_rag,
            processing_time_ms=round(trace.elapsed_ms, 2),
            stages=trace.stage_timings(),
        )

    def _schedule_grounding(self, user_input: str, options: PreventionOptions) -> None:
        task = asyncio.create_task(self._ground(user_input, options))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _ground(self, user_input: str, options: PreventionOptions) -> None:
        try:
            candidates = await self._retriever.retrieve_enhanced(user_input, options=options)
            self.grounding_cache.put(user_input, candidates)
            logger.debug("grounding_cached", query_len=len(user_input), candidates=len(candidates))
        except Exception as e:
            logger.warning("background_grounding_failed", error=str(e))

    async def drain(self) -> None:
        """Wait for outstanding background grounding tasks."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
