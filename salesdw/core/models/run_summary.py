"""
RunSummary model describing one full conformance run.
"""

from datetime import datetime
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from .conformance_result import ConformanceResult


class RunSummary(BaseModel):
    """
    Outcome of a full-refresh conformance run.

    Attributes:
        run_id: Unique run identifier
        processed_at: Processing timestamp stamped on every conformed row
        finished_at: When the run committed or aborted
        status: "running", "committed" or "failed"
        results: Per-entity conformance counts
        error_message: Failure reason for aborted runs
    """

    run_id: str = Field(default_factory=lambda: uuid4().hex)
    processed_at: datetime
    finished_at: datetime | None = None
    status: Literal["running", "committed", "failed"] = "running"
    results: list[ConformanceResult] = Field(default_factory=list)
    error_message: str | None = None

    @property
    def total_dropped(self) -> int:
        return sum(r.dropped_count for r in self.results)

    @property
    def total_output(self) -> int:
        return sum(r.output_count for r in self.results)

    def result_for(self, entity: str) -> ConformanceResult | None:
        """Look up the result for one entity."""
        for result in self.results:
            if result.entity == entity:
                return result
        return None
