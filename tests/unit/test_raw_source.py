"""
Unit tests for the CSV raw record source.
"""

import shutil
from datetime import date

import pytest

from salesdw.batch.readers import CSVReader, RawRecordSource
from salesdw.core.errors import SourceUnavailableError
from salesdw.core.schema import (
    CUSTOMER_ATTRIBUTES,
    CUSTOMERS,
    ENTITIES,
    INGEST_SEQ_COLUMN,
    LOCATIONS,
    RAW_SCHEMAS,
    SALES,
)


@pytest.mark.unit
class TestRawRecordSource:
    """Tests for reading the six raw entity files"""

    def test_reads_every_entity(self, spark_session, test_data_dir):
        frames = RawRecordSource(spark_session, test_data_dir).read_all()

        assert set(frames) == set(ENTITIES)
        assert frames[CUSTOMERS].count() == 6
        assert frames[SALES].count() == 5

    def test_applies_raw_layout(self, spark_session, test_data_dir):
        df = RawRecordSource(spark_session, test_data_dir).read(CUSTOMER_ATTRIBUTES)

        assert df.columns == ["cid", "bdate", "gen", INGEST_SEQ_COLUMN]
        first = df.orderBy(INGEST_SEQ_COLUMN).first()
        assert first["cid"] == "NASAW00011000"
        assert first["bdate"] == date(1971, 10, 6)

    def test_malformed_values_become_null(self, spark_session, test_data_dir):
        df = RawRecordSource(spark_session, test_data_dir).read(CUSTOMERS)

        assert df.filter(df.cst_id.isNull()).count() == 1

    def test_ingest_order_follows_file_order(self, spark_session, test_data_dir):
        df = RawRecordSource(spark_session, test_data_dir).read(SALES)

        ordered = [row["sls_ord_num"] for row in df.orderBy(INGEST_SEQ_COLUMN).collect()]
        assert ordered == ["SO43697", "SO43698", "SO43699", "SO43700", "SO43701"]

    def test_missing_file(self, spark_session, test_data_dir, tmp_path):
        shutil.copytree(test_data_dir, tmp_path / "source")
        (tmp_path / "source" / "source_crm" / "sales_details.csv").unlink()

        source = RawRecordSource(spark_session, tmp_path / "source")

        with pytest.raises(SourceUnavailableError) as exc_info:
            source.read_all()
        assert exc_info.value.entity == SALES
        assert "sales_details.csv" in str(exc_info.value)

    def test_unknown_entity(self, spark_session, test_data_dir):
        with pytest.raises(ValueError, match="Unknown entity"):
            RawRecordSource(spark_session, test_data_dir).read("gold_dim_customers")


@pytest.mark.unit
class TestCSVReader:

    def test_header_strips_bom_and_spaces(self, spark_session, tmp_path):
        path = tmp_path / "LOC_A101.csv"
        path.write_text("\ufeffCID , CNTRY\nAW-00011000,DE\n", encoding="utf-8")

        assert CSVReader(spark_session).header(path) == ["CID", "CNTRY"]

    def test_columns_map_by_position(self, spark_session, tmp_path):
        path = tmp_path / "LOC_A101.csv"
        path.write_text("customer,country_code\nAW-00011000, DE\n", encoding="utf-8")

        row = CSVReader(spark_session).read(path, RAW_SCHEMAS[LOCATIONS]).first()

        assert (row["cid"], row["cntry"]) == ("AW-00011000", " DE")
