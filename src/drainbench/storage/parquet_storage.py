"""
Storage backends using Polars: Parquet tables and JSON tables.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import polars as pl

from .base import DataStorage

logger = logging.getLogger(__name__)


class ParquetStorage(DataStorage):
    """
    Columnar Parquet storage with compression.

    Metadata mappings are still written as indented JSON, which is easier to
    inspect by hand than a one-row table.
    """

    extension = "parquet"

    def __init__(self, compression: Literal["snappy", "gzip", "brotli", "lz4", "zstd"] = "snappy"):
        self.compression = compression
        logger.debug(f"Initialized ParquetStorage with compression: {compression}")

    def save_dataframe(self, df: pl.DataFrame, path: str) -> None:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            df.write_parquet(path, compression=self.compression)
            logger.debug(f"Saved DataFrame with {len(df)} rows to {path}")
        except Exception as e:
            logger.error(f"Failed to save DataFrame to {path}: {e}")
            raise

    def load_dataframe(self, path: str, columns: Optional[List[str]] = None) -> pl.DataFrame:
        try:
            df = pl.read_parquet(path, columns=columns)
            logger.debug(f"Loaded DataFrame with {len(df)} rows from {path}")
            return df
        except Exception as e:
            logger.error(f"Failed to load DataFrame from {path}: {e}")
            raise

    def save_dict(self, data: Dict[str, Any], path: str) -> None:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            logger.debug(f"Saved dictionary data to {path}")
        except Exception as e:
            logger.error(f"Failed to save dictionary to {path}: {e}")
            raise

    def load_dict(self, path: str) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except Exception as e:
            logger.error(f"Failed to load dictionary from {path}: {e}")
            raise


class JsonStorage(ParquetStorage):
    """
    Row-oriented JSON tables, readable without any Parquet tooling.

    Intended for short experiments; traces of multi-hour runs are much larger
    than their Parquet equivalent.
    """

    extension = "json"

    def save_dataframe(self, df: pl.DataFrame, path: str) -> None:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            df.write_json(path)
            logger.debug(f"Saved DataFrame with {len(df)} rows to {path}")
        except Exception as e:
            logger.error(f"Failed to save DataFrame to {path}: {e}")
            raise

    def load_dataframe(self, path: str, columns: Optional[List[str]] = None) -> pl.DataFrame:
        try:
            df = pl.read_json(path)
            if columns:
                df = df.select(columns)
            logger.debug(f"Loaded DataFrame with {len(df)} rows from {path}")
            return df
        except Exception as e:
            logger.error(f"Failed to load DataFrame from {path}: {e}")
            raise
