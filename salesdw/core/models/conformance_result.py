"""
ConformanceResult model summarizing one entity's conformance step (ephemeral).
"""

from pydantic import BaseModel, Field, model_validator


class ConformanceResult(BaseModel):
    """
    Counts produced while conforming one raw entity batch.

    Attributes:
        entity: Entity name (e.g. "crm_cust_info")
        input_count: Raw rows read
        output_count: Conformed rows produced
        dropped_count: Rows excluded because a required key was absent
        duplicate_count: Rows removed by deduplication
    """

    entity: str = Field(..., min_length=1)
    input_count: int = Field(..., ge=0)
    output_count: int = Field(..., ge=0)
    dropped_count: int = Field(0, ge=0)
    duplicate_count: int = Field(0, ge=0)

    @model_validator(mode="after")
    def check_counts_balance(self) -> "ConformanceResult":
        """Every raw row is either kept, dropped or deduplicated away."""
        removed = self.dropped_count + self.duplicate_count
        if self.input_count != self.output_count + removed:
            raise ValueError(
                f"{self.entity}: input_count ({self.input_count}) != output_count "
                f"({self.output_count}) + dropped ({self.dropped_count}) "
                f"+ duplicates ({self.duplicate_count})"
            )
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "entity": "crm_cust_info",
                "input_count": 18494,
                "output_count": 18484,
                "dropped_count": 4,
                "duplicate_count": 6,
            }
        }
