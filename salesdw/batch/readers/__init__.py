"""
Raw record readers.
"""

from .csv_reader import CSVReader
from .raw_source import RawRecordSource

__all__ = [
    "CSVReader",
    "RawRecordSource",
]
