"""
Conformance pipeline orchestration.

Coordinates the flow: read raw snapshot → conform each entity → swap the
conformed store → report unresolved fact references
"""

import time
from datetime import datetime

from pyspark.sql import DataFrame, SparkSession

from salesdw.core.models import ConformanceResult, RunSummary
from salesdw.core.rules import ConformanceRules
from salesdw.core.schema import ENTITIES
from salesdw.dimensions import DimensionalModel
from salesdw.observability.logger import get_logger, log_operation, run_context
from salesdw.observability.metrics import record_conformance, record_run

from .readers import RawRecordSource
from .transforms import CONFORMERS

logger = get_logger(__name__)


class ConformancePipeline:
    """
    Orchestrates one full-refresh conformance run.

    Flow:
    1. Read the six raw entity snapshots
    2. Conform every entity (cleansing, versioning, derivation)
    3. Replace the conformed store in one transaction
    4. Report unresolved fact references over the new snapshot

    Record-level defects never abort a run. A failure while reading or
    swapping aborts it and leaves the previous snapshot in place.
    Reporting runs after the commit, so a failure there is logged and the
    run stays committed.
    """

    def __init__(
        self,
        spark: SparkSession,
        store,
        rules: ConformanceRules | None = None,
    ):
        """
        Initialize conformance pipeline.

        Args:
            spark: Active Spark session
            store: Conformed store (see salesdw.warehouse.ConformedStore)
            rules: Conformance rules (defaults to the built-in rules)
        """
        self.spark = spark
        self.store = store
        self.rules = rules or ConformanceRules()
        self.last_summary: RunSummary | None = None

    def conform(
        self,
        raw_frames: dict[str, DataFrame],
        processed_at: datetime,
    ) -> tuple[dict[str, DataFrame], list[ConformanceResult]]:
        """
        Conform every entity of a raw snapshot.

        Args:
            raw_frames: Mapping of entity name -> raw DataFrame
            processed_at: Timestamp stamped on every conformed row

        Returns:
            Tuple of (entity -> conformed DataFrame, per-entity results)
        """
        missing = [entity for entity in ENTITIES if entity not in raw_frames]
        if missing:
            raise ValueError(f"Raw snapshot is missing entities: {', '.join(missing)}")

        frames: dict[str, DataFrame] = {}
        results: list[ConformanceResult] = []
        for entity in ENTITIES:
            with log_operation(f"Conforming {entity}", logger=logger, entity=entity):
                conformed, result = CONFORMERS[entity](raw_frames[entity], self.rules, processed_at)
            logger.info(
                f"Conformed {result.output_count}/{result.input_count} {entity} records",
                extra=result.model_dump(),
            )
            record_conformance(result)
            frames[entity] = conformed
            results.append(result)
        return frames, results

    def run(
        self,
        source: RawRecordSource | dict[str, DataFrame],
        processed_at: datetime | None = None,
    ) -> RunSummary:
        """
        Execute a full conformance run.

        Passing the same processed_at over the same raw snapshot reproduces
        the same conformed output.

        Args:
            source: Raw record source, or an already loaded raw snapshot
            processed_at: Processing timestamp (defaults to now, second precision)

        Returns:
            The committed RunSummary

        Raises:
            SourceUnavailableError: If a raw file is missing or unreadable
            StoreError: If the snapshot swap fails
        """
        processed_at = processed_at or datetime.now().replace(microsecond=0)
        summary = RunSummary(processed_at=processed_at)
        self.last_summary = summary

        with run_context(summary.run_id):
            start_time = time.time()
            frames: dict[str, DataFrame] = {}
            try:
                with log_operation("Conformance run", logger=logger):
                    raw_frames = source.read_all() if isinstance(source, RawRecordSource) else source
                    conformed, results = self.conform(raw_frames, processed_at)
                    # The swap and the reporting below read the same rows
                    frames = {entity: df.cache() for entity, df in conformed.items()}

                    summary = summary.model_copy(update={
                        "status": "committed",
                        "finished_at": datetime.now(),
                        "results": results,
                    })
                    self.store.replace_snapshot(frames, summary)
            except Exception as e:
                self.last_summary = summary.model_copy(update={
                    "status": "failed",
                    "finished_at": datetime.now(),
                    "error_message": str(e),
                })
                record_run("failed", time.time() - start_time)
                self._release(frames)
                raise

            self.last_summary = summary
            record_run("committed", time.time() - start_time)
            logger.info(
                f"Run {summary.run_id} committed: {summary.total_output} conformed, "
                f"{summary.total_dropped} dropped",
                extra={"processed_at": processed_at.isoformat()},
            )

            try:
                self._report_unresolved(frames)
            finally:
                self._release(frames)
        return summary

    def _report_unresolved(self, frames: dict[str, DataFrame]) -> None:
        """Log unresolved fact references; the run is already committed."""
        try:
            DimensionalModel(frames, self.rules).unresolved_references()
        except Exception as e:
            logger.warning(
                f"Unresolved reference report failed after commit: {e}",
                extra={"error_type": type(e).__name__},
                exc_info=True,
            )

    @staticmethod
    def _release(frames: dict[str, DataFrame]) -> None:
        for df in frames.values():
            df.unpersist()
