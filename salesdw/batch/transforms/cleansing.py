"""
Cleansing and conformance rules for customer, location, supplementary
attribute and category records.

Every anomaly is corrected in place. The only drop condition is a customer
master row without its numeric id.
"""

from datetime import datetime

from pyspark.sql import DataFrame, Window
from pyspark.sql.functions import col, length, lit, regexp_replace, row_number, trim, upper, when

from salesdw.core.models import ConformanceResult
from salesdw.core.rules import ConformanceRules
from salesdw.core.schema import (
    CATEGORIES,
    CUSTOMER_ATTRIBUTES,
    CUSTOMERS,
    INGEST_SEQ_COLUMN,
    LOCATIONS,
)
from salesdw.observability.logger import get_logger

from ._common import conform_to, map_codes, with_ingest_seq

logger = get_logger(__name__)


def conform_customers(
    raw: DataFrame,
    rules: ConformanceRules,
    processed_at: datetime,
) -> tuple[DataFrame, ConformanceResult]:
    """
    Conform the CRM customer master.

    Keeps the most recently created record per numeric id (ties go to the
    record read last), drops rows without a numeric id, trims names and
    standardizes marital status and gender codes.

    Args:
        raw: Raw customer master frame
        rules: Conformance rule tables
        processed_at: Run timestamp stamped on every row

    Returns:
        Tuple of (conformed frame, conformance counts)
    """
    raw = with_ingest_seq(raw)
    input_count = raw.count()

    keyed = raw.filter(col("cst_id").isNotNull())
    keyed_count = keyed.count()
    dropped_count = input_count - keyed_count
    if dropped_count:
        logger.warning(
            f"Dropped {dropped_count} customer rows without a numeric id",
            extra={"entity": CUSTOMERS, "dropped_count": dropped_count},
        )

    latest_first = Window.partitionBy("cst_id").orderBy(
        col("cst_create_date").desc_nulls_last(),
        col(INGEST_SEQ_COLUMN).desc(),
    )
    latest = (
        keyed
        .withColumn("_version_rank", row_number().over(latest_first))
        .filter(col("_version_rank") == 1)
        .drop("_version_rank")
    )

    cleaned = (
        latest
        .withColumn("cst_firstname", trim(col("cst_firstname")))
        .withColumn("cst_lastname", trim(col("cst_lastname")))
        .withColumn(
            "cst_marital_status",
            map_codes(col("cst_marital_status"), rules.marital_status, rules.unknown_label),
        )
        .withColumn("cst_gndr", map_codes(col("cst_gndr"), rules.gender, rules.unknown_label))
    )
    conformed = conform_to(cleaned, CUSTOMERS, processed_at)

    output_count = conformed.count()
    result = ConformanceResult(
        entity=CUSTOMERS,
        input_count=input_count,
        output_count=output_count,
        dropped_count=dropped_count,
        duplicate_count=keyed_count - output_count,
    )
    return conformed, result


def conform_locations(
    raw: DataFrame,
    rules: ConformanceRules,
    processed_at: datetime,
) -> tuple[DataFrame, ConformanceResult]:
    """
    Conform ERP customer locations.

    Separator characters are stripped from the customer id so it matches the
    customer master's business key; country codes become full names.
    """
    input_count = raw.count()

    blank = col("cntry").isNull() | (trim(col("cntry")) == "")
    country = when(blank, lit(rules.unknown_label))
    for code in sorted(rules.country):
        country = country.when(upper(trim(col("cntry"))) == lit(code), lit(rules.country[code]))

    cleaned = (
        raw
        .withColumn("cid", regexp_replace(col("cid"), "[^A-Za-z0-9]", ""))
        .withColumn("cntry", country.otherwise(trim(col("cntry"))))
    )
    conformed = conform_to(cleaned, LOCATIONS, processed_at)

    result = ConformanceResult(
        entity=LOCATIONS, input_count=input_count, output_count=input_count
    )
    return conformed, result


def strip_id_prefix(column_name: str, prefix: str):
    """Remove a known literal prefix from an identifier column."""
    if not prefix:
        return col(column_name)
    source = col(column_name)
    return when(
        source.startswith(prefix),
        source.substr(lit(len(prefix) + 1), length(source)),
    ).otherwise(source)


def conform_customer_attributes(
    raw: DataFrame,
    rules: ConformanceRules,
    processed_at: datetime,
) -> tuple[DataFrame, ConformanceResult]:
    """
    Conform ERP supplementary customer attributes.

    The id prefix is stripped, birthdates later than the processing time are
    nulled and gender free text is standardized.
    """
    input_count = raw.count()

    cleaned = (
        raw
        .withColumn("cid", strip_id_prefix("cid", rules.customer_id_prefix))
        .withColumn(
            "bdate",
            when(col("bdate") > lit(processed_at.date()), lit(None).cast("date"))
            .otherwise(col("bdate")),
        )
        .withColumn(
            "gen", map_codes(col("gen"), rules.supplementary_gender, rules.unknown_label)
        )
    )
    conformed = conform_to(cleaned, CUSTOMER_ATTRIBUTES, processed_at)

    result = ConformanceResult(
        entity=CUSTOMER_ATTRIBUTES, input_count=input_count, output_count=input_count
    )
    return conformed, result


def conform_categories(
    raw: DataFrame,
    rules: ConformanceRules,
    processed_at: datetime,
) -> tuple[DataFrame, ConformanceResult]:
    """Product categories are already conformed at the source."""
    input_count = raw.count()
    conformed = conform_to(raw, CATEGORIES, processed_at)
    result = ConformanceResult(
        entity=CATEGORIES, input_count=input_count, output_count=input_count
    )
    return conformed, result
