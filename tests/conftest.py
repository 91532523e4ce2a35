"""
Pytest configuration and fixtures for salesdw tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import os
from datetime import datetime
from typing import Generator

import pytest
from pyspark.sql import DataFrame, SparkSession
from testcontainers.postgres import PostgresContainer

from salesdw.core.errors import StoreError
from salesdw.core.rules import ConformanceRules
from salesdw.core.schema import CONFORMED_SCHEMAS, ENTITIES, RAW_SCHEMAS
from salesdw.warehouse.connection import DatabaseConnectionPool


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that run the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# SPARK FIXTURES
# =======================

@pytest.fixture(scope="session")
def spark_session() -> Generator[SparkSession, None, None]:
    """
    Create a Spark session for testing with local mode

    Yields:
        SparkSession configured for local testing
    """
    spark = (
        SparkSession.builder
        .appName("salesdw-test")
        .master("local[2]")
        .config("spark.sql.shuffle.partitions", "2")
        .config("spark.sql.adaptive.enabled", "true")
        .config("spark.sql.session.timeZone", "UTC")
        .config("spark.driver.memory", "1g")
        .config("spark.ui.enabled", "false")  # Disable UI for tests
        .config("spark.sql.warehouse.dir", "/tmp/spark-warehouse")
        .getOrCreate()
    )

    # Set log level to WARN to reduce test output noise
    spark.sparkContext.setLogLevel("WARN")

    yield spark

    spark.stop()


# =======================
# RAW DATA FIXTURES
# =======================

@pytest.fixture(scope="session")
def processed_at() -> datetime:
    """Fixed processing timestamp so conformed output is reproducible"""
    return datetime(2024, 1, 15, 12, 0, 0)


@pytest.fixture(scope="session")
def rules() -> ConformanceRules:
    """Built-in conformance rules"""
    return ConformanceRules()


@pytest.fixture
def raw_frame(spark_session):
    """
    Factory building a raw entity frame from row tuples in raw layout order

    Usage:
        df = raw_frame(CUSTOMERS, [(1, "AW1", ...)])
    """
    def _build(entity: str, rows: list[tuple]) -> DataFrame:
        return spark_session.createDataFrame(rows, schema=RAW_SCHEMAS[entity])

    return _build


@pytest.fixture
def raw_snapshot(raw_frame):
    """
    Factory building a complete raw snapshot; entities not given are empty

    Usage:
        snapshot = raw_snapshot({CUSTOMERS: [...], SALES: [...]})
    """
    def _build(rows_by_entity: dict[str, list[tuple]]) -> dict[str, DataFrame]:
        return {entity: raw_frame(entity, rows_by_entity.get(entity, [])) for entity in ENTITIES}

    return _build


@pytest.fixture
def conformed_snapshot(spark_session, processed_at):
    """
    Factory building a conformed snapshot from row tuples without the
    provenance column; entities not given are empty

    Usage:
        snapshot = conformed_snapshot({CUSTOMERS: [(1, "AW1", ...)]})
    """
    def _build(rows_by_entity: dict[str, list[tuple]]) -> dict[str, DataFrame]:
        return {
            entity: spark_session.createDataFrame(
                [tuple(row) + (processed_at,) for row in rows_by_entity.get(entity, [])],
                schema=CONFORMED_SCHEMAS[entity],
            )
            for entity in ENTITIES
        }

    return _build


class InMemoryStore:
    """Conformed store double that keeps the last committed snapshot in memory"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.snapshots: list[dict[str, list]] = []
        self.summaries = []

    def replace_snapshot(self, frames, summary):
        rows = {entity: df.collect() for entity, df in frames.items()}
        if self.fail:
            raise StoreError("simulated swap failure")
        self.snapshots.append(rows)
        self.summaries.append(summary)

    @property
    def current(self):
        return self.snapshots[-1] if self.snapshots else None


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def failing_store() -> InMemoryStore:
    return InMemoryStore(fail=True)


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_salesdw",
        password="test_password",
        dbname="test_datawarehouse"
    ) as postgres:
        yield postgres


@pytest.fixture
def db_pool(postgres_container) -> Generator[DatabaseConnectionPool, None, None]:
    """
    Open a connection pool against the test container

    Yields:
        Open DatabaseConnectionPool
    """
    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_datawarehouse",
        user="test_salesdw",
        password="test_password",
    )
    pool.open()
    yield pool
    pool.close()


# =======================
# FILE FIXTURES
# =======================

@pytest.fixture(scope="session")
def test_data_dir() -> str:
    """
    Get path to test data fixtures directory

    Returns:
        Path to tests/fixtures directory (holds source_crm/ and source_erp/)
    """
    return os.path.join(os.path.dirname(__file__), "fixtures")


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture(scope="session")
def test_env_vars():
    """
    Set test environment variables

    This fixture loads config/test.env and sets environment variables
    """
    from dotenv import load_dotenv

    env_path = os.path.join(
        os.path.dirname(os.path.dirname(__file__)),
        "config",
        "test.env"
    )

    if os.path.exists(env_path):
        load_dotenv(env_path, override=True)
