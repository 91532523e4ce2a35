"""
Command-line interface for the conformance pipeline.

Usage:
    python -m salesdw.cli.conform_cli run --source-dir <dir> [options]
    python -m salesdw.cli.conform_cli check [options]
    python -m salesdw.cli.conform_cli show {customers,products,sales} [--limit N]
"""

import argparse
import os
import sys

from dotenv import load_dotenv
from pyspark.sql import SparkSession

from salesdw.batch import ConformancePipeline, RawRecordSource
from salesdw.core.errors import SalesDwError
from salesdw.core.rules import load_rules
from salesdw.dimensions import DimensionalModel
from salesdw.observability.logger import get_logger
from salesdw.observability.metrics import start_metrics_server
from salesdw.quality import run_conformed_checks, run_dimensional_checks
from salesdw.utils.validation import (
    ValidationError,
    sanitize_sql_identifier,
    validate_limit,
    validate_source_dir,
)
from salesdw.warehouse.conformed_store import ConformedStore
from salesdw.warehouse.connection import DatabaseConnectionPool

logger = get_logger(__name__)

DEFAULT_RULES_PATH = "config/conformance_rules.yaml"


def create_spark_session(app_name: str = "SalesDwConformance") -> SparkSession:
    """
    Create Spark session for conformance runs.

    Args:
        app_name: Application name

    Returns:
        SparkSession
    """
    spark = SparkSession.builder \
        .appName(app_name) \
        .master("local[*]") \
        .config("spark.sql.adaptive.enabled", "true") \
        .config("spark.sql.adaptive.coalescePartitions.enabled", "true") \
        .config("spark.sql.session.timeZone", "UTC") \
        .getOrCreate()

    return spark


def _open_store(args) -> tuple[DatabaseConnectionPool, ConformedStore]:
    pool = DatabaseConnectionPool(
        host=args.db_host,
        port=args.db_port,
        database=args.db_name,
        user=args.db_user,
        password=args.db_password,
    )
    pool.open()
    return pool, ConformedStore(pool, schema=args.db_schema)


def _rules_path(args) -> str | None:
    if args.rules:
        return args.rules
    return DEFAULT_RULES_PATH if os.path.exists(DEFAULT_RULES_PATH) else None


def run_command(args) -> int:
    """
    Execute a full conformance run.

    Returns:
        Process exit code
    """
    source_dir = args.source_dir or os.getenv("SALESDW_SOURCE_DIR")
    if not source_dir:
        logger.error("No source directory given (use --source-dir or SALESDW_SOURCE_DIR)")
        return 1

    try:
        source_dir = validate_source_dir(source_dir)
        rules = load_rules(_rules_path(args))
    except (ValidationError, SalesDwError) as e:
        logger.error(f"Invalid run configuration: {e}")
        return 1

    if args.metrics:
        start_metrics_server()

    spark = create_spark_session()
    pool = None
    try:
        pool, store = _open_store(args)
        pipeline = ConformancePipeline(spark, store, rules)
        summary = pipeline.run(RawRecordSource(spark, source_dir))

        logger.info("=" * 60)
        logger.info(f"RUN {summary.run_id} COMMITTED")
        logger.info("=" * 60)
        for result in summary.results:
            logger.info(
                f"{result.entity}: {result.input_count} read, {result.output_count} conformed, "
                f"{result.dropped_count} dropped, {result.duplicate_count} duplicates"
            )
        logger.info("=" * 60)
        return 0
    except (ValidationError, SalesDwError) as e:
        logger.error(f"Conformance run aborted: {e}", exc_info=True)
        return 1
    finally:
        if pool is not None:
            pool.close()
        spark.stop()


def check_command(args) -> int:
    """
    Run quality checks over the stored snapshot and its dimensional model.

    Returns:
        Process exit code (1 when any check fails)
    """
    spark = create_spark_session("SalesDwQualityChecks")
    pool = None
    try:
        rules = load_rules(_rules_path(args))
        pool, store = _open_store(args)
        snapshot = store.load_snapshot(spark)

        conformed = run_conformed_checks(snapshot, rules)
        dimensional = run_dimensional_checks(DimensionalModel(snapshot, rules))

        for result in conformed.results + dimensional.results:
            status = "PASS" if result.passed else "FAIL"
            print(f"[{status}] {result.table}.{result.check_name}: {result.detail}")

        return 0 if conformed.passed and dimensional.passed else 1
    except (ValidationError, SalesDwError) as e:
        logger.error(f"Quality checks aborted: {e}", exc_info=True)
        return 1
    finally:
        if pool is not None:
            pool.close()
        spark.stop()


def show_command(args) -> int:
    """
    Print rows of one dimensional read model.

    Returns:
        Process exit code
    """
    try:
        limit = validate_limit(args.limit)
    except ValidationError as e:
        logger.error(str(e))
        return 1

    spark = create_spark_session("SalesDwShow")
    pool = None
    try:
        rules = load_rules(_rules_path(args))
        pool, store = _open_store(args)
        model = DimensionalModel.from_store(store, spark, rules)
        read_model = {
            "customers": model.customers,
            "products": model.products,
            "sales": model.sales,
        }[args.model]
        read_model().show(n=limit, truncate=False)
        return 0
    except (ValidationError, SalesDwError) as e:
        logger.error(f"Failed to read {args.model}: {e}", exc_info=True)
        return 1
    finally:
        if pool is not None:
            pool.close()
        spark.stop()


def _add_db_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--db-host", default=None, help="Database host (default: $DB_HOST)")
    parser.add_argument("--db-port", type=int, default=None, help="Database port (default: $DB_PORT)")
    parser.add_argument("--db-name", default=None, help="Database name (default: $DB_NAME)")
    parser.add_argument("--db-user", default=None, help="Database user (default: $DB_USER)")
    parser.add_argument("--db-password", default=None, help="Database password (default: $DB_PASSWORD)")
    parser.add_argument("--db-schema", default="silver", help="Conformed store schema (default: silver)")
    parser.add_argument(
        "--rules",
        default=None,
        help=f"Conformance rules YAML file (default: {DEFAULT_RULES_PATH} when present)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CRM/ERP sales warehouse conformance pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full refresh from the raw exports
  python -m salesdw.cli.conform_cli run --source-dir datasets

  # Quality checks over the current snapshot
  python -m salesdw.cli.conform_cli check

  # First 20 rows of the sales fact
  python -m salesdw.cli.conform_cli show sales --limit 20
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run a full conformance refresh")
    run_parser.add_argument(
        "--source-dir",
        default=None,
        help="Directory holding source_crm/ and source_erp/ (default: $SALESDW_SOURCE_DIR)",
    )
    run_parser.add_argument(
        "--metrics",
        action="store_true",
        help="Expose Prometheus metrics on $METRICS_PORT during the run",
    )
    _add_db_arguments(run_parser)

    check_parser = subparsers.add_parser("check", help="Run quality checks on the stored snapshot")
    _add_db_arguments(check_parser)

    show_parser = subparsers.add_parser("show", help="Print a dimensional read model")
    show_parser.add_argument("model", choices=["customers", "products", "sales"])
    show_parser.add_argument("--limit", type=int, default=20, help="Rows to print (default: 20)")
    _add_db_arguments(show_parser)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        args.db_schema = sanitize_sql_identifier(args.db_schema, "schema")
    except ValidationError as e:
        logger.error(f"Invalid --db-schema: {e}")
        return 1

    commands = {
        "run": run_command,
        "check": check_command,
        "show": show_command,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
