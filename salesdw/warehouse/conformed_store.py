"""
PostgreSQL-backed conformed store.

Each run fully replaces the store. All six entities are staged and swapped
inside a single transaction, so readers see either the previous snapshot or
the new one, never a mix.
"""

import psycopg
from psycopg import sql
from psycopg.errors import UndefinedTable
from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.types import (
    DataType,
    DateType,
    DoubleType,
    IntegerType,
    LongType,
    StringType,
    TimestampType,
)

from salesdw.core.errors import StoreError
from salesdw.core.models import ConformanceResult, RunSummary
from salesdw.core.schema import CONFORMED_SCHEMAS, ENTITIES, SORT_KEYS, conformed_columns
from salesdw.observability.logger import get_logger
from salesdw.observability.metrics import store_swap_duration_seconds, track_duration
from salesdw.utils.validation import sanitize_sql_identifier

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)

RUN_LOG_TABLE = "conformance_run_log"
STAGING_SUFFIX = "__staging"

# Spark type -> PostgreSQL column type
_PG_TYPES: dict[type[DataType], str] = {
    IntegerType: "INTEGER",
    LongType: "BIGINT",
    StringType: "TEXT",
    DateType: "DATE",
    DoubleType: "DOUBLE PRECISION",
    TimestampType: "TIMESTAMP",
}


def pg_type(data_type: DataType) -> str:
    """Map a Spark column type to its PostgreSQL column type."""
    try:
        return _PG_TYPES[type(data_type)]
    except KeyError:
        raise StoreError(f"No PostgreSQL type for Spark type {data_type.simpleString()}") from None


class ConformedStore:
    """
    Full-refresh store for conformed entity snapshots.

    Tables live in one schema, named after their entity. A run log table
    records the per-entity counts of every committed snapshot.
    """

    def __init__(self, pool: DatabaseConnectionPool, schema: str = "silver"):
        """
        Initialize the conformed store.

        Args:
            pool: Open database connection pool
            schema: PostgreSQL schema holding the conformed tables
        """
        self.pool = pool
        self.schema = sanitize_sql_identifier(schema, "schema")

    def _table(self, name: str) -> sql.Composed:
        return sql.SQL("{}.{}").format(
            sql.Identifier(self.schema), sql.Identifier(sanitize_sql_identifier(name, "table"))
        )

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def replace_snapshot(self, frames: dict[str, DataFrame], summary: RunSummary) -> None:
        """
        Replace every conformed table with a new snapshot.

        Rows are collected from Spark before the transaction starts, so a
        failing transformation never touches the database.

        Args:
            frames: Mapping of entity name -> conformed DataFrame (all entities)
            summary: Run summary appended to the run log with the snapshot

        Raises:
            ValueError: If an entity frame is missing
            StoreError: If staging or swapping fails; the previous snapshot is kept
        """
        missing = [entity for entity in ENTITIES if entity not in frames]
        if missing:
            raise ValueError(f"Snapshot is missing entities: {', '.join(missing)}")

        rows_by_entity = {
            entity: [tuple(row) for row in frames[entity].select(*conformed_columns(entity)).collect()]
            for entity in ENTITIES
        }

        try:
            with track_duration(store_swap_duration_seconds):
                with self.pool.transaction() as conn:
                    with conn.cursor() as cur:
                        self._ensure_schema(cur)
                        for entity, rows in rows_by_entity.items():
                            self._stage(cur, entity, rows)
                        for entity in ENTITIES:
                            self._swap(cur, entity)
                        self._append_run_log(cur, summary)
        except psycopg.Error as e:
            logger.error(
                "Snapshot swap failed, previous snapshot kept",
                extra={"run_id": summary.run_id, "error": str(e)},
            )
            raise StoreError(f"Snapshot swap failed: {e}") from e

        logger.info(
            f"Swapped conformed snapshot into schema {self.schema}",
            extra={
                "run_id": summary.run_id,
                "row_counts": {entity: len(rows) for entity, rows in rows_by_entity.items()},
            },
        )

    def _ensure_schema(self, cur) -> None:
        cur.execute(
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(self.schema))
        )
        cur.execute(
            sql.SQL(
                """
                CREATE TABLE IF NOT EXISTS {} (
                    run_id TEXT NOT NULL,
                    entity TEXT NOT NULL,
                    processed_at TIMESTAMP NOT NULL,
                    finished_at TIMESTAMP,
                    status TEXT NOT NULL,
                    input_count INTEGER NOT NULL,
                    output_count INTEGER NOT NULL,
                    dropped_count INTEGER NOT NULL,
                    duplicate_count INTEGER NOT NULL,
                    PRIMARY KEY (run_id, entity)
                )
                """
            ).format(self._table(RUN_LOG_TABLE))
        )

    def _stage(self, cur, entity: str, rows: list[tuple]) -> None:
        staging = self._table(entity + STAGING_SUFFIX)
        columns = [
            sql.SQL("{} {}").format(sql.Identifier(field.name), sql.SQL(pg_type(field.dataType)))
            for field in CONFORMED_SCHEMAS[entity].fields
        ]
        cur.execute(sql.SQL("DROP TABLE IF EXISTS {}").format(staging))
        cur.execute(
            sql.SQL("CREATE TABLE {} ({})").format(staging, sql.SQL(", ").join(columns))
        )

        if rows:
            names = conformed_columns(entity)
            insert = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
                staging,
                sql.SQL(", ").join(map(sql.Identifier, names)),
                sql.SQL(", ").join([sql.Placeholder()] * len(names)),
            )
            cur.executemany(insert, rows)

        logger.debug(f"Staged {len(rows)} rows for {entity}")

    def _swap(self, cur, entity: str) -> None:
        cur.execute(sql.SQL("DROP TABLE IF EXISTS {}").format(self._table(entity)))
        cur.execute(
            sql.SQL("ALTER TABLE {} RENAME TO {}").format(
                self._table(entity + STAGING_SUFFIX), sql.Identifier(entity)
            )
        )

    def _append_run_log(self, cur, summary: RunSummary) -> None:
        insert = sql.SQL(
            """
            INSERT INTO {} (
                run_id, entity, processed_at, finished_at, status,
                input_count, output_count, dropped_count, duplicate_count
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            """
        ).format(self._table(RUN_LOG_TABLE))
        cur.executemany(
            insert,
            [
                (
                    summary.run_id,
                    result.entity,
                    summary.processed_at,
                    summary.finished_at,
                    summary.status,
                    result.input_count,
                    result.output_count,
                    result.dropped_count,
                    result.duplicate_count,
                )
                for result in summary.results
            ],
        )

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def load_entity(self, spark: SparkSession, entity: str) -> DataFrame:
        """
        Read one entity of the current snapshot.

        Args:
            spark: Active Spark session
            entity: Entity name

        Returns:
            DataFrame with the conformed layout, in stable key order

        Raises:
            StoreError: If no snapshot has been committed or the read fails
        """
        if entity not in CONFORMED_SCHEMAS:
            raise ValueError(f"Unknown entity: {entity}")

        names = conformed_columns(entity)
        query = sql.SQL("SELECT {} FROM {} ORDER BY {}").format(
            sql.SQL(", ").join(map(sql.Identifier, names)),
            self._table(entity),
            sql.SQL(", ").join(map(sql.Identifier, SORT_KEYS[entity])),
        )
        try:
            rows = self.pool.fetch_all(query)
        except UndefinedTable as e:
            raise StoreError(f"No conformed snapshot found for {entity} in schema {self.schema}") from e
        except psycopg.Error as e:
            raise StoreError(f"Failed to read {entity}: {e}") from e

        return spark.createDataFrame(
            [tuple(row[name] for name in names) for row in rows],
            schema=CONFORMED_SCHEMAS[entity],
        )

    def load_snapshot(self, spark: SparkSession) -> dict[str, DataFrame]:
        """Read every entity of the current snapshot."""
        return {entity: self.load_entity(spark, entity) for entity in ENTITIES}

    def latest_run(self) -> RunSummary | None:
        """
        Rebuild the summary of the most recently committed run.

        Returns:
            RunSummary, or None when no run has been logged yet
        """
        query = sql.SQL(
            """
            SELECT run_id, entity, processed_at, finished_at, status,
                   input_count, output_count, dropped_count, duplicate_count
            FROM {log}
            WHERE run_id = (
                SELECT run_id FROM {log} ORDER BY finished_at DESC NULLS LAST LIMIT 1
            )
            ORDER BY entity
            """
        ).format(log=self._table(RUN_LOG_TABLE))
        try:
            rows = self.pool.fetch_all(query)
        except UndefinedTable:
            return None
        except psycopg.Error as e:
            raise StoreError(f"Failed to read run log: {e}") from e

        if not rows:
            return None

        first = rows[0]
        return RunSummary(
            run_id=first["run_id"],
            processed_at=first["processed_at"],
            finished_at=first["finished_at"],
            status=first["status"],
            results=[
                ConformanceResult(
                    entity=row["entity"],
                    input_count=row["input_count"],
                    output_count=row["output_count"],
                    dropped_count=row["dropped_count"],
                    duplicate_count=row["duplicate_count"],
                )
                for row in rows
            ],
        )
