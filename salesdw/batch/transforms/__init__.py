"""
Per-entity conformance transforms.

Every conformer takes (raw frame, rules, processed_at) and returns the
conformed frame together with its ConformanceResult.
"""

from salesdw.core.schema import (
    CATEGORIES,
    CUSTOMER_ATTRIBUTES,
    CUSTOMERS,
    LOCATIONS,
    PRODUCTS,
    SALES,
)

from .cleansing import (
    conform_categories,
    conform_customer_attributes,
    conform_customers,
    conform_locations,
)
from .derivation import conform_sales, parse_date_key, repair_measures
from .versioning import assign_validity_intervals, conform_products, split_product_key

CONFORMERS = {
    CUSTOMERS: conform_customers,
    PRODUCTS: conform_products,
    SALES: conform_sales,
    LOCATIONS: conform_locations,
    CUSTOMER_ATTRIBUTES: conform_customer_attributes,
    CATEGORIES: conform_categories,
}

__all__ = [
    "CONFORMERS",
    "assign_validity_intervals",
    "conform_categories",
    "conform_customer_attributes",
    "conform_customers",
    "conform_locations",
    "conform_products",
    "conform_sales",
    "parse_date_key",
    "repair_measures",
    "split_product_key",
]
