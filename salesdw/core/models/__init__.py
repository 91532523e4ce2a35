"""
Core data models for the conformance pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .conformance_result import ConformanceResult
from .quality_result import QualityCheckResult, QualityReport
from .run_summary import RunSummary

__all__ = [
    "ConformanceResult",
    "QualityCheckResult",
    "QualityReport",
    "RunSummary",
]
