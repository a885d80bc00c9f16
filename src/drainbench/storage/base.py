"""
Abstract base class for table storage backends.

Experiment tables (per-poll traces, residency reports and the run summary
table) are polars DataFrames; the backend decides the file format.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import polars as pl


class DataStorage(ABC):
    """Interface every storage backend implements."""

    # File extension, without the dot, of tables written by this backend.
    extension: str = ""

    @abstractmethod
    def save_dataframe(self, df: pl.DataFrame, path: str) -> None:
        """Write `df` to `path`, creating parent directories."""

    @abstractmethod
    def load_dataframe(
        self, path: str, columns: Optional[List[str]] = None
    ) -> pl.DataFrame:
        """
        Read a table back.

        Args:
            path: File path to load from
            columns: Optional list of columns to load
        """

    @abstractmethod
    def save_dict(self, data: Dict[str, Any], path: str) -> None:
        """Write a small metadata mapping as JSON."""

    @abstractmethod
    def load_dict(self, path: str) -> Dict[str, Any]:
        pass

    def append_dataframe(self, df: pl.DataFrame, path: str) -> None:
        """Append rows to an existing table, or create it."""
        if self.file_exists(path):
            df = pl.concat([self.load_dataframe(path), df], how="diagonal_relaxed")
        self.save_dataframe(df, path)

    def file_exists(self, path: str) -> bool:
        return Path(path).exists()
