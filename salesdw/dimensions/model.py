"""
Read-time dimensional model over one conformed snapshot.

Nothing is materialized: each read model is recomputed from the snapshot on
every call. Surrogate keys are stable across reads of the same snapshot.
"""

from pyspark.sql import DataFrame, SparkSession

from salesdw.core.rules import ConformanceRules
from salesdw.core.schema import (
    CATEGORIES,
    CUSTOMER_ATTRIBUTES,
    CUSTOMERS,
    ENTITIES,
    LOCATIONS,
    PRODUCTS,
    SALES,
)
from salesdw.observability.logger import get_logger
from salesdw.observability.metrics import record_unresolved_references

from .customers import compose_customers
from .products import compose_products
from .sales import compose_sales, unresolved_references

logger = get_logger(__name__)


class DimensionalModel:
    """
    Customer dimension, product dimension and sales fact over a snapshot.

    Usage:
        model = DimensionalModel(snapshot)
        model.sales().show()
    """

    def __init__(self, snapshot: dict[str, DataFrame], rules: ConformanceRules | None = None):
        """
        Args:
            snapshot: Mapping of entity name -> conformed DataFrame
            rules: Conformance rules (defaults to the built-in rules)
        """
        missing = [entity for entity in ENTITIES if entity not in snapshot]
        if missing:
            raise ValueError(f"Snapshot is missing entities: {', '.join(missing)}")
        self.snapshot = snapshot
        self.rules = rules or ConformanceRules()

    @classmethod
    def from_store(cls, store, spark: SparkSession, rules: ConformanceRules | None = None):
        """Build the model over the snapshot currently held by a ConformedStore."""
        return cls(store.load_snapshot(spark), rules)

    def customers(self) -> DataFrame:
        return compose_customers(
            self.snapshot[CUSTOMERS],
            self.snapshot[CUSTOMER_ATTRIBUTES],
            self.snapshot[LOCATIONS],
            self.rules,
        )

    def products(self) -> DataFrame:
        return compose_products(self.snapshot[PRODUCTS], self.snapshot[CATEGORIES])

    def sales(self) -> DataFrame:
        return compose_sales(self.snapshot[SALES], self.customers(), self.products())

    def unresolved_references(self) -> dict[str, int]:
        """
        Count unresolved fact references and publish them as a gauge.

        Unresolved references are reported, never fatal.
        """
        counts = unresolved_references(self.sales())
        record_unresolved_references(counts)
        if any(counts.values()):
            logger.warning(
                "Sales lines with unresolved dimension references",
                extra={"unresolved": counts},
            )
        return counts
