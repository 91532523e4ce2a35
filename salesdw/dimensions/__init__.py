"""
Dimensional composition over the conformed store.
"""

from .customers import DIM_CUSTOMER_COLUMNS, compose_customers, consolidate_gender
from .keys import assign_surrogate_key, first_per_key
from .model import DimensionalModel
from .products import DIM_PRODUCT_COLUMNS, compose_products, current_versions
from .sales import FACT_SALES_COLUMNS, compose_sales, unresolved_references

__all__ = [
    "DIM_CUSTOMER_COLUMNS",
    "DIM_PRODUCT_COLUMNS",
    "FACT_SALES_COLUMNS",
    "DimensionalModel",
    "assign_surrogate_key",
    "compose_customers",
    "compose_products",
    "compose_sales",
    "consolidate_gender",
    "current_versions",
    "first_per_key",
    "unresolved_references",
]
