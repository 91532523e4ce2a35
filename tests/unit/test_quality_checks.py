"""
Unit tests for the diagnostic quality checks.
"""

from datetime import date

import pytest

from salesdw.batch.transforms import conform_products
from salesdw.core.schema import CUSTOMER_ATTRIBUTES, CUSTOMERS, PRODUCTS, SALES
from salesdw.dimensions import DimensionalModel
from salesdw.observability.metrics import REGISTRY
from salesdw.quality import (
    check_birthdate_range,
    check_date_order,
    check_measure_consistency,
    check_standardized_domain,
    check_trimmed,
    check_unique_key,
    check_unresolved_references,
    check_validity_intervals,
    run_conformed_checks,
    run_dimensional_checks,
)


def _failure_count(check_name: str) -> float:
    value = REGISTRY.get_sample_value(
        "salesdw_quality_check_failures_total", {"check": check_name}
    )
    return value or 0.0


@pytest.mark.unit
class TestColumnChecks:
    """Tests for key, text and domain checks"""

    def test_unique_key_flags_duplicates_and_nulls(self, spark_session):
        df = spark_session.createDataFrame(
            [(1,), (1,), (2,), (None,)], "cst_id int"
        )

        result = check_unique_key(df, CUSTOMERS, ["cst_id"])

        assert not result.passed
        assert result.violations == 2

    def test_unique_key_passes(self, spark_session):
        df = spark_session.createDataFrame([(1,), (2,)], "cst_id int")
        assert check_unique_key(df, CUSTOMERS, ["cst_id"]).passed

    def test_trimmed(self, spark_session):
        df = spark_session.createDataFrame(
            [("Jon", "Yang"), (" Jon", "Yang"), ("Jon", None)], "first string, last string"
        )

        result = check_trimmed(df, CUSTOMERS, ["first", "last"])

        assert result.violations == 1

    def test_standardized_domain(self, spark_session, rules):
        df = spark_session.createDataFrame(
            [("Male",), ("Female",), ("n/a",), ("M",), (None,)], "cst_gndr string"
        )

        result = check_standardized_domain(df, CUSTOMERS, "cst_gndr", rules.labels("gender"))

        assert result.violations == 2

    def test_failed_check_is_counted(self, spark_session):
        before = _failure_count("trimmed")
        df = spark_session.createDataFrame([(" x ",)], "name string")

        check_trimmed(df, CUSTOMERS, ["name"])

        assert _failure_count("trimmed") == before + 1


@pytest.mark.unit
class TestIntervalCheck:
    """Tests for the validity interval check"""

    def test_conformed_products_pass(self, raw_frame, rules, processed_at):
        raw = raw_frame(PRODUCTS, [
            (1, "CO-RF-P1", "Frame", 1, "R", date(2021, 1, 1), None),
            (2, "CO-RF-P1", "Frame", 1, "R", date(2022, 6, 1), None),
            (3, "CO-RF-P1", "Frame", 1, "R", date(2023, 3, 1), None),
            (4, "CO-RF-P2", "Frame", 1, "R", date(2021, 1, 1), date(2021, 2, 1)),
        ])
        products, _ = conform_products(raw, rules, processed_at)

        assert check_validity_intervals(products).passed

    def test_gap_and_missing_current_version(self, conformed_snapshot):
        products = conformed_snapshot({PRODUCTS: [
            (1, "CO_RF", "P1", "Frame", 1, "Road", date(2021, 1, 1), date(2021, 6, 1)),
            (2, "CO_RF", "P1", "Frame", 1, "Road", date(2022, 1, 1), None),
            (3, "CO_RF", "P2", "Frame", 1, "Road", date(2021, 1, 1), date(2021, 12, 31)),
        ]})[PRODUCTS]

        result = check_validity_intervals(products)

        assert result.violations == 2
        assert "1 non-contiguous" in result.detail

    def test_versions_sharing_a_start_date_are_inverted(self, conformed_snapshot):
        products = conformed_snapshot({PRODUCTS: [
            (1, "CO_RF", "P1", "Frame", 1, "Road", date(2021, 1, 1), date(2020, 12, 31)),
            (2, "CO_RF", "P1", "Frame", 1, "Road", date(2021, 1, 1), None),
        ]})[PRODUCTS]

        result = check_validity_intervals(products)

        assert not result.passed
        assert "1 inverted" in result.detail

    def test_same_start_date_from_raw_rows_is_flagged(self, raw_frame, rules, processed_at):
        raw = raw_frame(PRODUCTS, [
            (1, "CO-RF-P1", "Frame", 1, "R", date(2021, 1, 1), None),
            (2, "CO-RF-P1", "Frame v2", 1, "R", date(2021, 1, 1), None),
        ])
        products, _ = conform_products(raw, rules, processed_at)

        result = check_validity_intervals(products)

        assert not result.passed
        assert "1 inverted" in result.detail


@pytest.mark.unit
class TestSalesChecks:
    """Tests for measure and date order checks"""

    def test_measure_consistency(self, conformed_snapshot):
        sales = conformed_snapshot({SALES: [
            ("SO1", "P1", 1, None, None, None, 30.0, 3, 10.0),
            ("SO2", "P1", 1, None, None, None, 31.0, 3, 10.0),
            ("SO3", "P1", 1, None, None, None, 50.0, 0, None),
            ("SO4", "P1", 1, None, None, None, 50.0, 3, 50.0 / 3),
        ]})[SALES]

        result = check_measure_consistency(sales)

        assert result.violations == 1

    def test_date_order(self, conformed_snapshot):
        sales = conformed_snapshot({SALES: [
            ("SO1", "P1", 1, date(2023, 1, 1), date(2023, 1, 8), date(2023, 1, 13), 1.0, 1, 1.0),
            ("SO2", "P1", 1, date(2023, 1, 9), date(2023, 1, 8), date(2023, 1, 13), 1.0, 1, 1.0),
            ("SO3", "P1", 1, date(2023, 1, 1), None, None, 1.0, 1, 1.0),
        ]})[SALES]

        assert check_date_order(sales).violations == 1

    def test_unresolved_references(self):
        result = check_unresolved_references({"customers": 2, "products": 0})
        assert result.violations == 2
        assert "customers: 2" in result.detail

    def test_duplicate_customer_attribute_ids(self, conformed_snapshot, rules):
        snapshot = conformed_snapshot({CUSTOMER_ATTRIBUTES: [
            ("AW1", date(1971, 10, 6), "Male"),
            ("AW1", date(1976, 5, 10), "Female"),
            ("AW2", None, "n/a"),
        ]})

        report = run_conformed_checks(snapshot, rules)
        failed = {(r.check_name, r.table) for r in report.failures}

        assert ("unique_key", CUSTOMER_ATTRIBUTES) in failed

    def test_birthdate_range(self, conformed_snapshot):
        attributes = conformed_snapshot({CUSTOMER_ATTRIBUTES: [
            ("AW1", date(1900, 1, 1), "Male"),
            ("AW2", date(1971, 10, 6), "Female"),
            ("AW3", date(2999, 1, 1), "Female"),
            ("AW4", None, "n/a"),
        ]})[CUSTOMER_ATTRIBUTES]

        result = check_birthdate_range(attributes, date(1924, 1, 1), max_date=date(2026, 1, 1))

        assert result.violations == 2
        assert result.check_name == "birthdate_range"

    def test_birthdate_lower_bound_comes_from_rules(self, conformed_snapshot, rules):
        snapshot = conformed_snapshot({CUSTOMER_ATTRIBUTES: [("AW1", date(1950, 1, 1), "Male")]})

        default = run_conformed_checks(snapshot, rules)
        stricter = run_conformed_checks(
            snapshot, rules.model_copy(update={"min_birthdate": date(1960, 1, 1)})
        )

        assert "birthdate_range" not in {r.check_name for r in default.failures}
        assert "birthdate_range" in {r.check_name for r in stricter.failures}


@pytest.mark.unit
def test_report_over_clean_snapshot_passes(conformed_snapshot, rules):
    snapshot = conformed_snapshot({
        CUSTOMERS: [(1, "AW1", "Jon", "Yang", "Single", "Male", date(2024, 1, 1))],
        PRODUCTS: [(1, "CO_RF", "P1", "Frame", 10, "Road", date(2021, 1, 1), None)],
        SALES: [("SO1", "P1", 1, date(2023, 1, 1), date(2023, 1, 8), date(2023, 1, 13), 20.0, 2, 10.0)],
    })

    conformed = run_conformed_checks(snapshot, rules)
    dimensional = run_dimensional_checks(DimensionalModel(snapshot, rules))

    assert conformed.passed, [r.detail for r in conformed.failures]
    assert dimensional.passed, [r.detail for r in dimensional.failures]
    assert len(conformed.results) == 15
