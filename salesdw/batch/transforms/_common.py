"""
Column helpers shared by the entity conformance steps.
"""

from datetime import datetime

from pyspark.sql import Column, DataFrame
from pyspark.sql.functions import col, lit, monotonically_increasing_id, trim, upper, when

from salesdw.core.schema import CONFORMED_SCHEMAS, INGEST_SEQ_COLUMN, PROVENANCE_COLUMN


def map_codes(column: Column, mapping: dict[str, str], unknown: str) -> Column:
    """
    Translate a code column through a lookup table.

    The input is trimmed and upper-cased before lookup; blank, null and
    unmapped values become the unknown sentinel.

    Args:
        column: Raw code column
        mapping: Normalized code -> label table
        unknown: Sentinel label for anything unmapped

    Returns:
        Label column
    """
    key = upper(trim(column))
    expr = None
    for code in sorted(mapping):
        condition = key == lit(code)
        label = lit(mapping[code])
        expr = when(condition, label) if expr is None else expr.when(condition, label)
    if expr is None:
        return lit(unknown)
    return expr.otherwise(lit(unknown))


def with_ingest_seq(df: DataFrame) -> DataFrame:
    """Ensure the frame carries a read-order ordinal."""
    if INGEST_SEQ_COLUMN in df.columns:
        return df
    return df.withColumn(INGEST_SEQ_COLUMN, monotonically_increasing_id())


def conform_to(df: DataFrame, entity: str, processed_at: datetime) -> DataFrame:
    """
    Project a frame onto the conformed layout of an entity.

    Stamps the provenance timestamp and casts every column to its
    conformed type, in storage order.
    """
    stamped = df.withColumn(PROVENANCE_COLUMN, lit(processed_at).cast("timestamp"))
    return stamped.select(
        *[col(field.name).cast(field.dataType).alias(field.name)
          for field in CONFORMED_SCHEMAS[entity].fields]
    )
