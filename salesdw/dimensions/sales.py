"""
Sales fact: sales lines with natural keys replaced by dimension surrogate keys.
"""

from pyspark.sql import DataFrame
from pyspark.sql.functions import col, sum as spark_sum, when

FACT_SALES_COLUMNS = [
    "order_number",
    "product_key",
    "customer_key",
    "order_date",
    "shipping_date",
    "due_date",
    "sales_amount",
    "quantity",
    "price",
]


def compose_sales(
    sales: DataFrame,
    dim_customers: DataFrame,
    dim_products: DataFrame,
) -> DataFrame:
    """
    Build the sales fact.

    Every sales line is kept. A product number or customer id with no
    dimension row leaves the corresponding surrogate key null.

    Args:
        sales: Conformed sales lines
        dim_customers: Customer dimension
        dim_products: Product dimension (current versions only)

    Returns:
        One row per sales line
    """
    pr = dim_products.select(
        col("product_number").alias("pr_number"), col("product_key")
    )
    cu = dim_customers.select(
        col("customer_id").alias("cu_id"), col("customer_key")
    )

    joined = (
        sales
        .join(pr, sales["sls_prd_key"] == pr["pr_number"], "left")
        .join(cu, sales["sls_cust_id"] == cu["cu_id"], "left")
    )
    return joined.select(
        col("sls_ord_num").alias("order_number"),
        col("product_key"),
        col("customer_key"),
        col("sls_order_dt").alias("order_date"),
        col("sls_ship_dt").alias("shipping_date"),
        col("sls_due_dt").alias("due_date"),
        col("sls_sales").alias("sales_amount"),
        col("sls_quantity").alias("quantity"),
        col("sls_price").alias("price"),
    )


def unresolved_references(fact: DataFrame) -> dict[str, int]:
    """
    Count fact rows whose surrogate keys did not resolve.

    Returns:
        {"customers": rows with a null customer_key,
         "products": rows with a null product_key}
    """
    row = fact.agg(
        spark_sum(when(col("customer_key").isNull(), 1).otherwise(0)).alias("customers"),
        spark_sum(when(col("product_key").isNull(), 1).otherwise(0)).alias("products"),
    ).first()
    return {
        "customers": int(row["customers"] or 0),
        "products": int(row["products"] or 0),
    }
