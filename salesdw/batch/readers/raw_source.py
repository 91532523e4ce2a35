"""
Raw record source for the six CRM/ERP entity exports.
"""

from pathlib import Path

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.functions import monotonically_increasing_id
from pyspark.errors import AnalysisException

from salesdw.core.errors import SourceUnavailableError
from salesdw.core.schema import ENTITIES, INGEST_SEQ_COLUMN, RAW_SCHEMAS, SOURCE_FILES
from salesdw.observability.logger import get_logger

from .csv_reader import CSVReader

logger = get_logger(__name__)


class RawRecordSource:
    """
    Supplies a complete raw snapshot per entity from a source directory.

    Layout:
        <source_dir>/source_crm/cust_info.csv, prd_info.csv, sales_details.csv
        <source_dir>/source_erp/LOC_A101.csv, CUST_AZ12.csv, PX_CAT_G1V2.csv
    """

    def __init__(self, spark: SparkSession, source_dir: str | Path):
        """
        Initialize raw record source.

        Args:
            spark: Active Spark session
            source_dir: Directory holding the source_crm/ and source_erp/ exports
        """
        self.spark = spark
        self.source_dir = Path(source_dir)
        self.csv_reader = CSVReader(spark)

    def path_for(self, entity: str) -> Path:
        return self.source_dir / SOURCE_FILES[entity]

    def read(self, entity: str) -> DataFrame:
        """
        Read one entity snapshot.

        The frame carries an ingest ordinal that increases in file order.

        Args:
            entity: Entity name (see salesdw.core.schema.ENTITIES)

        Returns:
            Raw DataFrame with the entity's raw layout plus the ingest ordinal

        Raises:
            SourceUnavailableError: If the file is missing or unreadable
        """
        if entity not in RAW_SCHEMAS:
            raise ValueError(f"Unknown entity: {entity}")

        path = self.path_for(entity)
        if not path.exists():
            raise SourceUnavailableError(entity, str(path))

        try:
            df = self.csv_reader.read(path, RAW_SCHEMAS[entity])
        except (AnalysisException, OSError) as e:
            raise SourceUnavailableError(entity, str(path), str(e)) from e

        logger.debug(f"Loaded raw source for {entity} from {path}")
        return df.withColumn(INGEST_SEQ_COLUMN, monotonically_increasing_id())

    def read_all(self) -> dict[str, DataFrame]:
        """
        Read every entity snapshot.

        Returns:
            Mapping of entity name -> raw DataFrame

        Raises:
            SourceUnavailableError: If any file is missing or unreadable
        """
        return {entity: self.read(entity) for entity in ENTITIES}
