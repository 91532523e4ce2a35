"""
Exception hierarchy for the sales warehouse conformance pipeline.

Record-level defects are never raised: they are corrected in place or counted
as dropped rows. These exceptions cover the run-fatal abort path only.
"""


class SalesDwError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(SalesDwError):
    """Raised when a rule configuration file is missing or malformed."""


class SourceUnavailableError(SalesDwError):
    """Raised when a raw source file cannot be found or read."""

    def __init__(self, entity: str, path: str, reason: str = "file not found"):
        self.entity = entity
        self.path = path
        self.reason = reason
        super().__init__(f"[{entity}] {path}: {reason}")


class StoreError(SalesDwError):
    """Raised when the conformed store cannot be swapped or read."""
