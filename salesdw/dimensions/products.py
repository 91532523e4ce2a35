"""
Product dimension: current product versions enriched with their category.
"""

from pyspark.sql import DataFrame
from pyspark.sql.functions import col

from .keys import assign_surrogate_key, first_per_key

DIM_PRODUCT_COLUMNS = [
    "product_key",
    "product_id",
    "product_number",
    "product_name",
    "category_id",
    "category",
    "subcategory",
    "maintenance",
    "cost",
    "product_line",
    "start_date",
]


def current_versions(products: DataFrame) -> DataFrame:
    """Product versions whose validity interval is still open."""
    return products.filter(col("prd_end_dt").isNull())


def compose_products(products: DataFrame, categories: DataFrame) -> DataFrame:
    """
    Build the product dimension.

    Historical versions are filtered out. Keys follow start date, then
    product number, then product id.

    Args:
        products: Conformed product versions
        categories: Conformed product categories

    Returns:
        One row per current product version
    """
    pc = first_per_key(categories, "id", ["cat", "subcat"]).select(
        col("id").alias("pc_id"),
        col("cat").alias("pc_cat"),
        col("subcat").alias("pc_subcat"),
        col("maintenance").alias("pc_maintenance"),
    )

    current = current_versions(products)
    dim = current.join(pc, current["cat_id"] == pc["pc_id"], "left").select(
        col("prd_id").alias("product_id"),
        col("prd_key").alias("product_number"),
        col("prd_nm").alias("product_name"),
        col("cat_id").alias("category_id"),
        col("pc_cat").alias("category"),
        col("pc_subcat").alias("subcategory"),
        col("pc_maintenance").alias("maintenance"),
        col("prd_cost").alias("cost"),
        col("prd_line").alias("product_line"),
        col("prd_start_dt").alias("start_date"),
    )
    return assign_surrogate_key(
        dim, "product_key", ["start_date", "product_number", "product_id"]
    ).select(*DIM_PRODUCT_COLUMNS)
