"""
Unit tests for product key splitting and validity interval assignment.
"""

from datetime import date, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from pyspark.sql.types import DateType, IntegerType, StringType, StructField, StructType

from salesdw.batch.transforms import assign_validity_intervals, conform_products, split_product_key
from salesdw.core.schema import PRODUCTS

VERSION_SCHEMA = StructType([
    StructField("prd_key", StringType(), True),
    StructField("prd_start_dt", DateType(), True),
    StructField("prd_end_dt", DateType(), True),
    StructField("prd_id", IntegerType(), True),
])


@pytest.mark.unit
class TestSplitProductKey:
    """Tests for category id / business key derivation"""

    def test_splits_composite_key(self, spark_session):
        df = spark_session.createDataFrame([("CO-RF-FR-R92B-58",)], ["prd_key"])

        row = split_product_key(df, 5).first()

        assert row["cat_id"] == "CO_RF"
        assert row["prd_key"] == "FR-R92B-58"

    def test_short_key_yields_empty_remainder(self, spark_session):
        df = spark_session.createDataFrame([("AC-HE",)], ["prd_key"])

        row = split_product_key(df, 5).first()

        assert row["cat_id"] == "AC_HE"
        assert row["prd_key"] == ""


@pytest.mark.unit
class TestConformProducts:
    """Tests for the product master rules"""

    def test_two_versions_get_contiguous_intervals(self, raw_frame, rules, processed_at):
        raw = raw_frame(PRODUCTS, [
            (210, "CO-RF-P1", "Frame", 100, "R", date(2022, 6, 1), None),
            (211, "CO-RF-P1", "Frame", 90, "R", date(2021, 1, 1), date(2099, 1, 1)),
        ])

        df, result = conform_products(raw, rules, processed_at)
        rows = sorted(df.collect(), key=lambda r: r["prd_start_dt"])

        assert [r["prd_start_dt"] for r in rows] == [date(2021, 1, 1), date(2022, 6, 1)]
        assert rows[0]["prd_end_dt"] == date(2022, 5, 31)
        assert rows[1]["prd_end_dt"] is None
        assert result.output_count == 2

    def test_single_version_is_current(self, raw_frame, rules, processed_at):
        raw = raw_frame(PRODUCTS, [
            (1, "BI-RB-BK-R93R-62", "Road-150 Red- 62", 2171, "R", date(2011, 7, 1), date(2011, 12, 28)),
        ])

        df, _ = conform_products(raw, rules, processed_at)

        assert df.first()["prd_end_dt"] is None

    def test_cost_defaults_and_product_line_labels(self, raw_frame, rules, processed_at):
        raw = raw_frame(PRODUCTS, [
            (1, "AC-HE-A", "Helmet", None, "m ", date(2020, 1, 1), None),
            (2, "AC-HE-B", "Helmet", -5, " s", date(2020, 1, 1), None),
            (3, "AC-HE-C", "Helmet", 12, "T", date(2020, 1, 1), None),
            (4, "AC-HE-D", "Helmet", 7, None, date(2020, 1, 1), None),
            (5, "AC-HE-E", "Helmet", 7, "X", date(2020, 1, 1), None),
        ])

        df, _ = conform_products(raw, rules, processed_at)
        rows = {row["prd_id"]: row for row in df.collect()}

        assert [rows[i]["prd_cost"] for i in range(1, 6)] == [0, 0, 12, 7, 7]
        assert [rows[i]["prd_line"] for i in range(1, 6)] == [
            "Mountain", "Other Sales", "Touring", "n/a", "n/a"
        ]
        assert {row["cat_id"] for row in rows.values()} == {"AC_HE"}

    def test_versions_sharing_start_date_ordered_by_id(self, raw_frame, rules, processed_at):
        raw = raw_frame(PRODUCTS, [
            (8, "CO-RF-P2", "Frame", 1, "R", date(2021, 1, 1), None),
            (7, "CO-RF-P2", "Frame", 1, "R", date(2021, 1, 1), None),
        ])

        df, _ = conform_products(raw, rules, processed_at)
        ends = {row["prd_id"]: row["prd_end_dt"] for row in df.collect()}

        assert ends[7] == date(2020, 12, 31)
        assert ends[8] is None


@pytest.mark.unit
@settings(max_examples=15, deadline=None)
@given(
    offsets=st.lists(st.integers(min_value=0, max_value=3650), min_size=1, max_size=6, unique=True)
)
def test_intervals_partition_time(spark_session, offsets):
    """Any set of distinct start dates yields contiguous intervals with one open end"""
    base = date(2015, 1, 1)
    rows = [
        ("P", base + timedelta(days=offset), date(2099, 1, 1), i)
        for i, offset in enumerate(offsets)
    ]
    df = spark_session.createDataFrame(rows, schema=VERSION_SCHEMA)

    result = sorted(assign_validity_intervals(df).collect(), key=lambda r: r["prd_start_dt"])

    for current, following in zip(result, result[1:]):
        assert current["prd_end_dt"] + timedelta(days=1) == following["prd_start_dt"]
    assert [r["prd_end_dt"] for r in result].count(None) == 1
    assert result[-1]["prd_end_dt"] is None
