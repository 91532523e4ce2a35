"""
Prometheus metrics collection for the sales warehouse pipeline

Counts conformed and dropped records per entity, run outcomes and durations,
unresolved fact references and failed quality checks.
"""
import os

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from salesdw.core.models import ConformanceResult

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# CONFORMANCE METRICS
# =======================

records_conformed_total = Counter(
    name="salesdw_records_conformed_total",
    documentation="Total number of conformed records produced",
    labelnames=["entity"],
    registry=REGISTRY,
)

records_dropped_total = Counter(
    name="salesdw_records_dropped_total",
    documentation="Total number of raw records dropped as irrecoverable",
    labelnames=["entity", "reason"],
    registry=REGISTRY,
)

duplicates_removed_total = Counter(
    name="salesdw_duplicates_removed_total",
    documentation="Total number of raw records removed by deduplication",
    labelnames=["entity"],
    registry=REGISTRY,
)

# =======================
# RUN METRICS
# =======================

runs_total = Counter(
    name="salesdw_runs_total",
    documentation="Total number of conformance runs",
    labelnames=["status"],  # status: committed, failed
    registry=REGISTRY,
)

run_duration_seconds = Histogram(
    name="salesdw_run_duration_seconds",
    documentation="Duration of full conformance runs in seconds",
    buckets=[1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0],
    registry=REGISTRY,
)

store_swap_duration_seconds = Histogram(
    name="salesdw_store_swap_duration_seconds",
    documentation="Time spent staging and swapping the conformed snapshot",
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0],
    registry=REGISTRY,
)

# =======================
# DIMENSIONAL / QUALITY METRICS
# =======================

unresolved_references = Gauge(
    name="salesdw_unresolved_references",
    documentation="Fact rows whose natural key has no dimension row",
    labelnames=["dimension"],
    registry=REGISTRY,
)

quality_check_failures_total = Counter(
    name="salesdw_quality_check_failures_total",
    documentation="Total number of failed quality checks",
    labelnames=["check"],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def start_metrics_server(port: int | None = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    # Lazy import
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


class track_duration:
    """
    Context manager for tracking operation duration

    Usage:
        with track_duration(store_swap_duration_seconds):
            ...
    """

    def __init__(self, histogram: Histogram, **labels):
        self.histogram = histogram
        self.labels = labels
        self.timer = None

    def __enter__(self):
        metric = self.histogram.labels(**self.labels) if self.labels else self.histogram
        self.timer = metric.time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        return False


def record_conformance(result: ConformanceResult) -> None:
    """
    Record one entity's conformance counts.

    Args:
        result: Entity conformance result
    """
    records_conformed_total.labels(entity=result.entity).inc(result.output_count)
    if result.dropped_count:
        records_dropped_total.labels(
            entity=result.entity, reason="missing_required_key"
        ).inc(result.dropped_count)
    if result.duplicate_count:
        duplicates_removed_total.labels(entity=result.entity).inc(result.duplicate_count)


def record_run(status: str, duration_seconds: float) -> None:
    """
    Record a finished conformance run.

    Args:
        status: "committed" or "failed"
        duration_seconds: Run duration in seconds
    """
    runs_total.labels(status=status).inc()
    run_duration_seconds.observe(duration_seconds)


def record_unresolved_references(counts: dict[str, int]) -> None:
    """
    Publish unresolved fact reference counts.

    Args:
        counts: Mapping of dimension name -> unresolved fact rows
    """
    for dimension, count in counts.items():
        unresolved_references.labels(dimension=dimension).set(count)


def record_quality_failure(check_name: str) -> None:
    """Count one failed quality check."""
    quality_check_failures_total.labels(check=check_name).inc()
