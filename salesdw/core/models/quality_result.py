"""
Quality check result models (ephemeral, produced by diagnostic checks).
"""

from pydantic import BaseModel, Field, field_validator


class QualityCheckResult(BaseModel):
    """
    Outcome of one diagnostic check.

    Attributes:
        check_name: Check identifier (e.g. "unique_key")
        table: Table or read model the check ran against
        passed: True when no violations were found
        violations: Number of offending rows or keys
        detail: Human readable summary
    """

    check_name: str = Field(..., min_length=1)
    table: str = Field(..., min_length=1)
    passed: bool
    violations: int = Field(0, ge=0)
    detail: str = ""

    @field_validator("violations")
    @classmethod
    def check_passed_consistency(cls, v, info):
        """passed=True implies zero violations."""
        if info.data.get("passed") and v > 0:
            raise ValueError("passed=True but violations > 0")
        return v


class QualityReport(BaseModel):
    """Collection of check results for one snapshot."""

    results: list[QualityCheckResult] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def failures(self) -> list[QualityCheckResult]:
        return [r for r in self.results if not r.passed]

    def add(self, result: QualityCheckResult) -> None:
        self.results.append(result)
