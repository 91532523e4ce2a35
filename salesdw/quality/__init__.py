"""
Diagnostic quality checks.
"""

from .checks import (
    check_birthdate_range,
    check_date_order,
    check_measure_consistency,
    check_non_negative,
    check_standardized_domain,
    check_trimmed,
    check_unique_key,
    check_unresolved_references,
    check_validity_intervals,
    run_conformed_checks,
    run_dimensional_checks,
)

__all__ = [
    "check_birthdate_range",
    "check_date_order",
    "check_measure_consistency",
    "check_non_negative",
    "check_standardized_domain",
    "check_trimmed",
    "check_unique_key",
    "check_unresolved_references",
    "check_validity_intervals",
    "run_conformed_checks",
    "run_dimensional_checks",
]
