"""
Temporal versioning of product records (SCD Type 2).

Each product version's validity interval is recomputed from the start dates
of its siblings; the raw end date is never trusted.
"""

from datetime import datetime

from pyspark.sql import DataFrame, Window
from pyspark.sql.functions import coalesce, col, date_sub, lead, length, lit, regexp_replace, when

from salesdw.core.models import ConformanceResult
from salesdw.core.rules import ConformanceRules
from salesdw.core.schema import PRODUCTS

from ._common import conform_to, map_codes


def split_product_key(df: DataFrame, prefix_length: int) -> DataFrame:
    """
    Derive the category id and the cleaned product key from the raw composite key.

    The first prefix_length characters (with '-' replaced by '_') form the
    category id; everything after the separator that follows them is the
    product business key.

    Example:
        "CO-RF-FR-R92B-58" -> cat_id "CO_RF", prd_key "FR-R92B-58"
    """
    raw_key = col("prd_key")
    return (
        df
        .withColumn("cat_id", regexp_replace(raw_key.substr(1, prefix_length), "-", "_"))
        .withColumn("prd_key", raw_key.substr(lit(prefix_length + 2), length(raw_key)))
    )


def assign_validity_intervals(
    df: DataFrame,
    key_column: str = "prd_key",
    start_column: str = "prd_start_dt",
    end_column: str = "prd_end_dt",
    tiebreak_column: str = "prd_id",
) -> DataFrame:
    """
    Recompute validity interval end dates per natural key.

    Within each key, versions are ordered by start date and every version
    ends the day before its successor starts. The latest version gets a null
    end date and is therefore the current one.

    Versions sharing a start date are ordered by tiebreak_column; all but the
    last of them get an inverted interval (end = start - 1 day), which
    check_validity_intervals reports.

    Args:
        df: Frame with one row per version
        key_column: Natural key grouping the versions
        start_column: Version start date
        end_column: Column receiving the recomputed end date
        tiebreak_column: Orders versions sharing a start date

    Returns:
        Frame with end_column replaced
    """
    by_start = Window.partitionBy(key_column).orderBy(
        col(start_column).asc_nulls_first(),
        col(tiebreak_column).asc_nulls_last(),
    )
    next_start = lead(col(start_column)).over(by_start)
    return df.withColumn(end_column, date_sub(next_start, 1))


def conform_products(
    raw: DataFrame,
    rules: ConformanceRules,
    processed_at: datetime,
) -> tuple[DataFrame, ConformanceResult]:
    """
    Conform the CRM product master.

    Splits the composite key, defaults missing or negative cost to zero,
    standardizes the product line and assigns validity intervals.

    Args:
        raw: Raw product master frame
        rules: Conformance rule tables
        processed_at: Run timestamp stamped on every row

    Returns:
        Tuple of (conformed frame, conformance counts)
    """
    input_count = raw.count()

    cost = col("prd_cost")
    cleaned = (
        split_product_key(raw, rules.category_prefix_length)
        .withColumn("prd_cost", when(cost < 0, lit(0)).otherwise(coalesce(cost, lit(0))))
        .withColumn("prd_line", map_codes(col("prd_line"), rules.product_line, rules.unknown_label))
        .withColumn("prd_start_dt", col("prd_start_dt").cast("date"))
    )
    versioned = assign_validity_intervals(cleaned)
    conformed = conform_to(versioned, PRODUCTS, processed_at)

    result = ConformanceResult(
        entity=PRODUCTS, input_count=input_count, output_count=input_count
    )
    return conformed, result
