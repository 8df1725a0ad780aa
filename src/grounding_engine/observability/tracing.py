"""Per-invocation stage timing for the prevention pipeline."""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from uuid import uuid4

from grounding_engine.models.schemas import StageTiming


@dataclass
class Span:
    name: str
    start_ms: float
    end_ms: float = 0.0
    error: str | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        return self.end_ms - self.start_ms


class TraceContext:
    """Collects one span per pipeline stage; a stage that raises is recorded before the error propagates."""

    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or uuid4().hex[:12]
        self.spans: list[Span] = []
        self._t0 = time.monotonic()

    def _now_ms(self) -> float:
        return (time.monotonic() - self._t0) * 1000

    @contextmanager
    def span(self, stage: str, **metadata):
        s = Span(name=stage, start_ms=self._now_ms(), metadata=metadata)
        try:
            yield s
        except Exception as e:
            s.error = type(e).__name__
            raise
        finally:
            s.end_ms = self._now_ms()
            self.spans.append(s)

    @property
    def elapsed_ms(self) -> float:
        return self._now_ms()

    @property
    def failed_stage(self) -> str | None:
        for s in self.spans:
            if s.error:
                return s.name
        return None

    def stage_timings(self) -> list[StageTiming]:
        return [
            StageTiming(
                name=s.name,
                duration_ms=round(s.duration_ms, 3),
                metadata={**s.metadata, "error": s.error} if s.error else s.metadata,
            )
            for s in self.spans
        ]
