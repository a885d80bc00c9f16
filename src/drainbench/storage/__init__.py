"""
Storage module for experiment results.

- Append-only detail and summary text logs (ResultSink)
- Trace, residency and summary tables through a common backend interface,
  Parquet by default with JSON as a readable alternative
- A high-level manager laying the tables out in the experiment directory
"""

from .base import DataStorage
from .data_manager import DataStorageManager
from .factory import create_storage
from .parquet_storage import JsonStorage, ParquetStorage
from .result_sink import ResultSink

__all__ = [
    "DataStorage",
    "DataStorageManager",
    "JsonStorage",
    "ParquetStorage",
    "ResultSink",
    "create_storage",
]
