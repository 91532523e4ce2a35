"""
Diagnostic quality checks over the conformed store and the dimensional model.

Checks never modify data and never fail a run. Each one counts offending rows
(or keys), logs failures and increments the failure counter.
"""

from collections.abc import Iterable
from datetime import date

from pyspark.sql import DataFrame, Window
from pyspark.sql.functions import abs as spark_abs
from pyspark.sql.functions import col, count, date_add, lead, lit, sum as spark_sum, trim, when

from salesdw.core.models import QualityCheckResult, QualityReport
from salesdw.core.rules import ConformanceRules
from salesdw.core.schema import (
    CATEGORIES,
    CUSTOMER_ATTRIBUTES,
    CUSTOMERS,
    PRODUCTS,
    SALES,
)
from salesdw.observability.logger import get_logger
from salesdw.observability.metrics import record_quality_failure

logger = get_logger(__name__)

# Tolerance for sales_amount = quantity * price on recomputed doubles
MEASURE_TOLERANCE = 1e-6


def _result(check_name: str, table: str, violations: int, detail: str) -> QualityCheckResult:
    result = QualityCheckResult(
        check_name=check_name,
        table=table,
        passed=violations == 0,
        violations=violations,
        detail=detail,
    )
    if not result.passed:
        logger.warning(
            f"Quality check failed: {check_name} on {table}",
            extra={"check": check_name, "table": table, "violations": violations},
        )
        record_quality_failure(check_name)
    return result


def check_unique_key(df: DataFrame, table: str, key_columns: Iterable[str]) -> QualityCheckResult:
    """Keys that are null or appear more than once."""
    keys = list(key_columns)
    any_null = None
    for key in keys:
        condition = col(key).isNull()
        any_null = condition if any_null is None else any_null | condition
    violations = (
        df.groupBy(*keys)
        .agg(count(lit(1)).alias("_rows"))
        .filter((col("_rows") > 1) | any_null)
        .count()
    )
    return _result(
        "unique_key", table, violations, f"{violations} null or duplicate {', '.join(keys)} values"
    )


def check_trimmed(df: DataFrame, table: str, columns: Iterable[str]) -> QualityCheckResult:
    """Rows with leading or trailing spaces in any of the given text columns."""
    names = list(columns)
    untrimmed = None
    for name in names:
        condition = col(name) != trim(col(name))
        untrimmed = condition if untrimmed is None else untrimmed | condition
    violations = df.filter(untrimmed).count()
    return _result(
        "trimmed", table, violations, f"{violations} rows with untrimmed {', '.join(names)}"
    )


def check_non_negative(df: DataFrame, table: str, column: str) -> QualityCheckResult:
    """Rows where a numeric column is null or negative."""
    violations = df.filter(col(column).isNull() | (col(column) < 0)).count()
    return _result(
        "non_negative", table, violations, f"{violations} null or negative {column} values"
    )


def check_validity_intervals(
    df: DataFrame,
    table: str = PRODUCTS,
    key_column: str = "prd_key",
    start_column: str = "prd_start_dt",
    end_column: str = "prd_end_dt",
    tiebreak_column: str = "prd_id",
) -> QualityCheckResult:
    """
    Validity intervals must partition time per key.

    Counts versions whose end date is not the day before their successor's
    start, versions that end before they start, plus keys that do not have
    exactly one open interval.
    """
    by_start = Window.partitionBy(key_column).orderBy(
        col(start_column).asc_nulls_first(), col(tiebreak_column).asc_nulls_last()
    )
    next_start = lead(col(start_column)).over(by_start)
    with_next = df.withColumn("_next_start", next_start)

    gaps = with_next.filter(
        col("_next_start").isNotNull()
        & (col(end_column).isNull() | (date_add(col(end_column), 1) != col("_next_start")))
    ).count()

    inverted = df.filter(col(end_column) < col(start_column)).count()

    open_counts = df.groupBy(key_column).agg(
        spark_sum(when(col(end_column).isNull(), 1).otherwise(0)).alias("_open")
    )
    bad_keys = open_counts.filter(col("_open") != 1).count()

    violations = gaps + inverted + bad_keys
    return _result(
        "validity_intervals",
        table,
        violations,
        f"{gaps} non-contiguous versions, {inverted} inverted intervals, "
        f"{bad_keys} keys without exactly one current version",
    )


def check_measure_consistency(
    df: DataFrame,
    table: str = SALES,
    sales_column: str = "sls_sales",
    quantity_column: str = "sls_quantity",
    price_column: str = "sls_price",
) -> QualityCheckResult:
    """Rows with non-zero quantity where sales != quantity * price (nulls count)."""
    quantity = col(quantity_column)
    amount = col(sales_column)
    price = col(price_column)
    violations = df.filter(
        quantity.isNotNull()
        & (quantity != 0)
        & (
            amount.isNull()
            | price.isNull()
            | (amount <= 0)
            | (price <= 0)
            | (spark_abs(amount - quantity * price) > MEASURE_TOLERANCE)
        )
    ).count()
    return _result(
        "measure_consistency", table, violations, f"{violations} rows where sales != quantity * price"
    )


def check_date_order(
    df: DataFrame,
    table: str = SALES,
    order_column: str = "sls_order_dt",
    ship_column: str = "sls_ship_dt",
    due_column: str = "sls_due_dt",
) -> QualityCheckResult:
    """Rows ordered after they were shipped or due."""
    order = col(order_column)
    violations = df.filter((order > col(ship_column)) | (order > col(due_column))).count()
    return _result(
        "date_order", table, violations, f"{violations} rows with order date after ship or due date"
    )


def check_birthdate_range(
    df: DataFrame,
    min_date: date,
    max_date: date | None = None,
    table: str = CUSTOMER_ATTRIBUTES,
    column: str = "bdate",
) -> QualityCheckResult:
    """Birthdates before min_date or after max_date (today when omitted)."""
    max_date = max_date or date.today()
    birthdate = col(column)
    violations = df.filter((birthdate < lit(min_date)) | (birthdate > lit(max_date))).count()
    return _result(
        "birthdate_range",
        table,
        violations,
        f"{violations} {column} values outside {min_date.isoformat()}..{max_date.isoformat()}",
    )


def check_standardized_domain(
    df: DataFrame, table: str, column: str, allowed: Iterable[str]
) -> QualityCheckResult:
    """Rows whose label column holds a value outside the allowed set."""
    labels = sorted(allowed)
    violations = df.filter(col(column).isNull() | ~col(column).isin(labels)).count()
    return _result(
        "standardized_domain",
        table,
        violations,
        f"{violations} {column} values outside {{{', '.join(labels)}}}",
    )


def check_unresolved_references(counts: dict[str, int], table: str = "fact_sales") -> QualityCheckResult:
    """Fact rows whose product or customer key is null."""
    violations = sum(counts.values())
    detail = ", ".join(f"{dimension}: {n}" for dimension, n in sorted(counts.items()))
    return _result("unresolved_references", table, violations, f"unresolved keys ({detail})")


def run_conformed_checks(
    snapshot: dict[str, DataFrame], rules: ConformanceRules | None = None
) -> QualityReport:
    """
    Run every conformed-store check.

    Args:
        snapshot: Mapping of entity name -> conformed DataFrame
        rules: Conformance rules supplying the allowed label sets

    Returns:
        QualityReport with one result per check
    """
    rules = rules or ConformanceRules()
    customers = snapshot[CUSTOMERS]
    products = snapshot[PRODUCTS]
    sales = snapshot[SALES]

    report = QualityReport()
    report.add(check_unique_key(customers, CUSTOMERS, ["cst_id"]))
    report.add(check_trimmed(customers, CUSTOMERS, ["cst_firstname", "cst_lastname"]))
    report.add(check_standardized_domain(
        customers, CUSTOMERS, "cst_marital_status", rules.labels("marital_status")
    ))
    report.add(check_standardized_domain(customers, CUSTOMERS, "cst_gndr", rules.labels("gender")))

    report.add(check_unique_key(products, PRODUCTS, ["prd_id"]))
    report.add(check_trimmed(products, PRODUCTS, ["prd_nm"]))
    report.add(check_non_negative(products, PRODUCTS, "prd_cost"))
    report.add(check_standardized_domain(products, PRODUCTS, "prd_line", rules.labels("product_line")))
    report.add(check_validity_intervals(products))

    report.add(check_measure_consistency(sales))
    report.add(check_date_order(sales))

    attributes = snapshot[CUSTOMER_ATTRIBUTES]
    report.add(check_unique_key(attributes, CUSTOMER_ATTRIBUTES, ["cid"]))
    report.add(check_birthdate_range(attributes, rules.min_birthdate))
    report.add(check_standardized_domain(
        attributes, CUSTOMER_ATTRIBUTES, "gen", rules.labels("supplementary_gender")
    ))
    report.add(check_trimmed(snapshot[CATEGORIES], CATEGORIES, ["cat", "subcat", "maintenance"]))
    return report


def run_dimensional_checks(model) -> QualityReport:
    """
    Run the dimensional model checks.

    Args:
        model: DimensionalModel over a snapshot

    Returns:
        QualityReport with one result per check
    """
    report = QualityReport()
    report.add(check_unique_key(model.customers(), "dim_customers", ["customer_key"]))
    report.add(check_unique_key(model.products(), "dim_products", ["product_key"]))
    report.add(check_unresolved_references(model.unresolved_references()))
    return report
