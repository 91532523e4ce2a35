"""
Entity layouts for raw and conformed records.
"""

from .layouts import (
    CATEGORIES,
    CONFORMED_SCHEMAS,
    CUSTOMER_ATTRIBUTES,
    CUSTOMERS,
    ENTITIES,
    INGEST_SEQ_COLUMN,
    LOCATIONS,
    PRODUCTS,
    PROVENANCE_COLUMN,
    RAW_SCHEMAS,
    SALES,
    SORT_KEYS,
    SOURCE_FILES,
    conformed_columns,
)

__all__ = [
    "CATEGORIES",
    "CONFORMED_SCHEMAS",
    "CUSTOMER_ATTRIBUTES",
    "CUSTOMERS",
    "ENTITIES",
    "INGEST_SEQ_COLUMN",
    "LOCATIONS",
    "PRODUCTS",
    "PROVENANCE_COLUMN",
    "RAW_SCHEMAS",
    "SALES",
    "SORT_KEYS",
    "SOURCE_FILES",
    "conformed_columns",
]
