"""
Positional CSV reader for the raw CRM/ERP exports.
"""

from pathlib import Path

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.types import StructType

from salesdw.observability.logger import get_logger

logger = get_logger(__name__)


class CSVReader:
    """
    Reads an export with a fixed layout.

    Header names are ignored and columns are mapped to the layout by
    position. Values that do not parse into their declared type become
    null (PERMISSIVE mode), so a malformed field never rejects the row.
    """

    def __init__(self, spark: SparkSession, delimiter: str = ",", date_format: str = "yyyy-MM-dd"):
        self.spark = spark
        self.delimiter = delimiter
        self.date_format = date_format

    def header(self, file_path: str | Path) -> list[str]:
        """Column names from the first line of the file."""
        with open(file_path, encoding="utf-8-sig") as f:
            first_line = f.readline().rstrip("\r\n")
        return [name.strip() for name in first_line.split(self.delimiter)] if first_line else []

    def read(self, file_path: str | Path, layout: StructType) -> DataFrame:
        """
        Read an export into a DataFrame with the given layout.

        Args:
            file_path: Path to the CSV export
            layout: Positional schema for the file

        Returns:
            Spark DataFrame with the layout's column names and types
        """
        columns = self.header(file_path)
        if len(columns) != len(layout.fields):
            logger.warning(
                f"{file_path} has {len(columns)} header columns, layout expects {len(layout.fields)}",
                extra={"file": str(file_path), "header": columns},
            )

        return self.spark.read \
            .schema(layout) \
            .option("header", "true") \
            .option("enforceSchema", "true") \
            .option("delimiter", self.delimiter) \
            .option("dateFormat", self.date_format) \
            .option("ignoreLeadingWhiteSpace", "false") \
            .option("ignoreTrailingWhiteSpace", "false") \
            .option("mode", "PERMISSIVE") \
            .csv(str(file_path))
