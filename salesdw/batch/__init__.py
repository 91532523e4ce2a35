"""
Spark batch conformance module.
"""

from .pipeline import ConformancePipeline
from .readers import CSVReader, RawRecordSource

__all__ = [
    "ConformancePipeline",
    "CSVReader",
    "RawRecordSource",
]
