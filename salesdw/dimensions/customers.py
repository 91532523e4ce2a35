"""
Customer dimension: customer master consolidated with ERP attributes and location.
"""

from pyspark.sql import DataFrame
from pyspark.sql.functions import coalesce, col, lit, when

from salesdw.core.rules import ConformanceRules

from .keys import assign_surrogate_key, first_per_key

DIM_CUSTOMER_COLUMNS = [
    "customer_key",
    "customer_id",
    "customer_number",
    "first_name",
    "last_name",
    "country",
    "marital_status",
    "gender",
    "birthdate",
    "create_date",
]


def consolidate_gender(master: str, supplementary: str, unknown: str):
    """
    The customer master is authoritative for gender; the ERP value only
    fills in where the master says unknown.
    """
    return (
        when(col(master).isNotNull() & (col(master) != lit(unknown)), col(master))
        .otherwise(coalesce(col(supplementary), lit(unknown)))
    )


def compose_customers(
    customers: DataFrame,
    attributes: DataFrame,
    locations: DataFrame,
    rules: ConformanceRules,
) -> DataFrame:
    """
    Build the customer dimension.

    Args:
        customers: Conformed customer master
        attributes: Conformed supplementary customer attributes
        locations: Conformed customer locations
        rules: Conformance rules (for the unknown sentinel)

    Returns:
        One row per customer id with a surrogate key ordered by customer id
    """
    ca = first_per_key(
        attributes, "cid", [col("bdate").desc_nulls_last(), col("gen").asc_nulls_last()]
    ).select(col("cid").alias("ca_cid"), col("bdate").alias("ca_bdate"), col("gen").alias("ca_gen"))
    la = first_per_key(
        locations, "cid", [col("cntry").asc_nulls_last()]
    ).select(col("cid").alias("la_cid"), col("cntry").alias("la_cntry"))

    joined = (
        customers
        .join(ca, customers["cst_key"] == ca["ca_cid"], "left")
        .join(la, customers["cst_key"] == la["la_cid"], "left")
    )

    dim = joined.select(
        col("cst_id").alias("customer_id"),
        col("cst_key").alias("customer_number"),
        col("cst_firstname").alias("first_name"),
        col("cst_lastname").alias("last_name"),
        col("la_cntry").alias("country"),
        col("cst_marital_status").alias("marital_status"),
        consolidate_gender("cst_gndr", "ca_gen", rules.unknown_label).alias("gender"),
        col("ca_bdate").alias("birthdate"),
        col("cst_create_date").alias("create_date"),
    )
    return assign_surrogate_key(dim, "customer_key", ["customer_id"]).select(*DIM_CUSTOMER_COLUMNS)
