"""
Surrogate key assignment and per-key row selection.
"""

from collections.abc import Sequence

from pyspark.sql import Column, DataFrame, Window
from pyspark.sql.functions import col, row_number


def _ordering(columns: Sequence[str | Column]) -> list[Column]:
    return [col(c).asc_nulls_last() if isinstance(c, str) else c for c in columns]


def assign_surrogate_key(
    df: DataFrame,
    key_column: str,
    order_columns: Sequence[str | Column],
) -> DataFrame:
    """
    Number rows 1..n over a total, explicit ordering.

    The same snapshot always yields the same keys as long as order_columns
    identify each row uniquely.

    Args:
        df: Dimension rows
        key_column: Name of the surrogate key column to add
        order_columns: Columns (or ordered Column expressions) defining the order

    Returns:
        DataFrame with the key column first

    Example:
        >>> dim = assign_surrogate_key(customers, "customer_key", ["customer_id"])
    """
    numbered = df.withColumn(key_column, row_number().over(Window.orderBy(*_ordering(order_columns))))
    return numbered.select(key_column, *[c for c in df.columns if c != key_column])


def first_per_key(
    df: DataFrame,
    key_column: str,
    order_columns: Sequence[str | Column],
) -> DataFrame:
    """
    Keep exactly one row per key value, the first under order_columns.

    Enrichment sources go through this before being joined so that a
    duplicated id cannot fan out the dimension.
    """
    ranked = Window.partitionBy(key_column).orderBy(*_ordering(order_columns))
    return (
        df
        .withColumn("_key_rank", row_number().over(ranked))
        .filter(col("_key_rank") == 1)
        .drop("_key_rank")
    )
