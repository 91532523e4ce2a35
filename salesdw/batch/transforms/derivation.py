"""
Validation and derivation of sales-line dates and measures.

Sales lines are never rejected: invalid dates become null and inconsistent
measures are recomputed from their siblings.
"""

from datetime import date, datetime

from pyspark.sql import Column, DataFrame
from pyspark.sql.functions import abs as spark_abs
from pyspark.sql.functions import col, udf, when
from pyspark.sql.types import DateType

from salesdw.core.models import ConformanceResult
from salesdw.core.rules import ConformanceRules
from salesdw.core.schema import SALES

from ._common import conform_to

DATE_COLUMNS = ("sls_order_dt", "sls_ship_dt", "sls_due_dt")


def parse_date_key(
    value: int | None,
    min_key: int = 19000101,
    max_key: int = 20500101,
) -> date | None:
    """
    Parse a YYYYMMDD integer into a date.

    Args:
        value: Raw integer date
        min_key: Lowest accepted value (inclusive)
        max_key: Highest accepted value (inclusive)

    Returns:
        The calendar date, or None when the value is non-positive, not
        exactly 8 digits, outside the bounds or not a real day

    Examples:
        >>> parse_date_key(20230615)
        datetime.date(2023, 6, 15)
        >>> parse_date_key(20230230) is None
        True
    """
    if value is None or value <= 0:
        return None
    text = str(value)
    if len(text) != 8 or not (min_key <= value <= max_key):
        return None
    try:
        return datetime.strptime(text, "%Y%m%d").date()
    except ValueError:
        return None


def date_key_udf(rules: ConformanceRules):
    """
    Create a Spark UDF applying parse_date_key with the configured bounds.

    Example:
        >>> to_date_key = date_key_udf(ConformanceRules())
        >>> df = df.withColumn("sls_order_dt", to_date_key(col("sls_order_dt")))
    """
    min_key, max_key = rules.min_date_key, rules.max_date_key

    def _parse(value):
        return parse_date_key(value, min_key, max_key)

    return udf(_parse, DateType())


def repair_measures(
    df: DataFrame,
    sales_column: str = "sls_sales",
    quantity_column: str = "sls_quantity",
    price_column: str = "sls_price",
) -> DataFrame:
    """
    Recompute inconsistent sales amounts and prices.

    Applied in a fixed order:
    1. sales amount that is null, non-positive or different from
       quantity * |price| becomes quantity * |price| (using the raw price)
    2. price that is null or non-positive becomes sales amount / quantity
       (using the amount from step 1), null when quantity is zero

    Comparisons against unknown values follow SQL null semantics, so a known
    amount is kept when the price needed to check it is missing.
    """
    quantity = col(quantity_column)
    price = col(price_column).cast("double")
    amount = col(sales_column).cast("double")

    expected_amount = quantity * spark_abs(price)
    amount_invalid = amount.isNull() | (amount <= 0) | (amount != expected_amount)

    with_amount = df.withColumn(
        sales_column, when(amount_invalid, expected_amount).otherwise(amount)
    )

    nonzero_quantity: Column = when(quantity != 0, quantity)
    price_invalid = price.isNull() | (price <= 0)
    return with_amount.withColumn(
        price_column,
        when(price_invalid, col(sales_column) / nonzero_quantity).otherwise(price),
    )


def conform_sales(
    raw: DataFrame,
    rules: ConformanceRules,
    processed_at: datetime,
) -> tuple[DataFrame, ConformanceResult]:
    """
    Conform CRM sales lines.

    Args:
        raw: Raw sales detail frame
        rules: Conformance rule tables
        processed_at: Run timestamp stamped on every row

    Returns:
        Tuple of (conformed frame, conformance counts)
    """
    input_count = raw.count()

    to_date_key = date_key_udf(rules)
    dated = raw
    for column_name in DATE_COLUMNS:
        dated = dated.withColumn(column_name, to_date_key(col(column_name)))

    conformed = conform_to(repair_measures(dated), SALES, processed_at)

    result = ConformanceResult(entity=SALES, input_count=input_count, output_count=input_count)
    return conformed, result
