"""
Fixed field layouts for raw and conformed entities.

Raw layouts describe what the CRM and ERP exports contain; conformed layouts
describe what the conformed store persists. Both are explicit Spark schemas so
that malformed source values become nulls instead of changing column types.
"""

from pyspark.sql.types import (
    DateType,
    DoubleType,
    IntegerType,
    StringType,
    StructField,
    StructType,
    TimestampType,
)

CUSTOMERS = "crm_cust_info"
PRODUCTS = "crm_prd_info"
SALES = "crm_sales_details"
LOCATIONS = "erp_loc_a101"
CUSTOMER_ATTRIBUTES = "erp_cust_az12"
CATEGORIES = "erp_px_cat_g1v2"

ENTITIES = (CUSTOMERS, PRODUCTS, SALES, LOCATIONS, CUSTOMER_ATTRIBUTES, CATEGORIES)

# Provenance column stamped on every conformed row
PROVENANCE_COLUMN = "dwh_create_date"

# Read-order ordinal added by the raw source, never persisted
INGEST_SEQ_COLUMN = "_ingest_seq"


def _fields(*specs: tuple) -> StructType:
    return StructType([StructField(name, data_type, True) for name, data_type in specs])


RAW_SCHEMAS: dict[str, StructType] = {
    CUSTOMERS: _fields(
        ("cst_id", IntegerType()),
        ("cst_key", StringType()),
        ("cst_firstname", StringType()),
        ("cst_lastname", StringType()),
        ("cst_marital_status", StringType()),
        ("cst_gndr", StringType()),
        ("cst_create_date", DateType()),
    ),
    PRODUCTS: _fields(
        ("prd_id", IntegerType()),
        ("prd_key", StringType()),
        ("prd_nm", StringType()),
        ("prd_cost", IntegerType()),
        ("prd_line", StringType()),
        ("prd_start_dt", DateType()),
        ("prd_end_dt", DateType()),
    ),
    SALES: _fields(
        ("sls_ord_num", StringType()),
        ("sls_prd_key", StringType()),
        ("sls_cust_id", IntegerType()),
        ("sls_order_dt", IntegerType()),
        ("sls_ship_dt", IntegerType()),
        ("sls_due_dt", IntegerType()),
        ("sls_sales", IntegerType()),
        ("sls_quantity", IntegerType()),
        ("sls_price", IntegerType()),
    ),
    LOCATIONS: _fields(
        ("cid", StringType()),
        ("cntry", StringType()),
    ),
    CUSTOMER_ATTRIBUTES: _fields(
        ("cid", StringType()),
        ("bdate", DateType()),
        ("gen", StringType()),
    ),
    CATEGORIES: _fields(
        ("id", StringType()),
        ("cat", StringType()),
        ("subcat", StringType()),
        ("maintenance", StringType()),
    ),
}

CONFORMED_SCHEMAS: dict[str, StructType] = {
    CUSTOMERS: _fields(
        ("cst_id", IntegerType()),
        ("cst_key", StringType()),
        ("cst_firstname", StringType()),
        ("cst_lastname", StringType()),
        ("cst_marital_status", StringType()),
        ("cst_gndr", StringType()),
        ("cst_create_date", DateType()),
        (PROVENANCE_COLUMN, TimestampType()),
    ),
    PRODUCTS: _fields(
        ("prd_id", IntegerType()),
        ("cat_id", StringType()),
        ("prd_key", StringType()),
        ("prd_nm", StringType()),
        ("prd_cost", IntegerType()),
        ("prd_line", StringType()),
        ("prd_start_dt", DateType()),
        ("prd_end_dt", DateType()),
        (PROVENANCE_COLUMN, TimestampType()),
    ),
    SALES: _fields(
        ("sls_ord_num", StringType()),
        ("sls_prd_key", StringType()),
        ("sls_cust_id", IntegerType()),
        ("sls_order_dt", DateType()),
        ("sls_ship_dt", DateType()),
        ("sls_due_dt", DateType()),
        ("sls_sales", DoubleType()),
        ("sls_quantity", IntegerType()),
        ("sls_price", DoubleType()),
        (PROVENANCE_COLUMN, TimestampType()),
    ),
    LOCATIONS: _fields(
        ("cid", StringType()),
        ("cntry", StringType()),
        (PROVENANCE_COLUMN, TimestampType()),
    ),
    CUSTOMER_ATTRIBUTES: _fields(
        ("cid", StringType()),
        ("bdate", DateType()),
        ("gen", StringType()),
        (PROVENANCE_COLUMN, TimestampType()),
    ),
    CATEGORIES: _fields(
        ("id", StringType()),
        ("cat", StringType()),
        ("subcat", StringType()),
        ("maintenance", StringType()),
        (PROVENANCE_COLUMN, TimestampType()),
    ),
}

# Raw file locations relative to the source directory
SOURCE_FILES: dict[str, str] = {
    CUSTOMERS: "source_crm/cust_info.csv",
    PRODUCTS: "source_crm/prd_info.csv",
    SALES: "source_crm/sales_details.csv",
    LOCATIONS: "source_erp/LOC_A101.csv",
    CUSTOMER_ATTRIBUTES: "source_erp/CUST_AZ12.csv",
    CATEGORIES: "source_erp/PX_CAT_G1V2.csv",
}

# Stable row order used when a snapshot is read back from the store
SORT_KEYS: dict[str, tuple[str, ...]] = {
    CUSTOMERS: ("cst_id",),
    PRODUCTS: ("prd_key", "prd_start_dt", "prd_id"),
    SALES: ("sls_ord_num", "sls_prd_key", "sls_cust_id"),
    LOCATIONS: ("cid", "cntry"),
    CUSTOMER_ATTRIBUTES: ("cid", "bdate", "gen"),
    CATEGORIES: ("id",),
}


def conformed_columns(entity: str) -> list[str]:
    """Column names of a conformed entity in storage order."""
    return [field.name for field in CONFORMED_SCHEMAS[entity].fields]
