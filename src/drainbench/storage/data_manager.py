"""
Data storage manager for experiment tables.

This module provides a high-level interface for saving and loading the
tables of one experiment directory using the configured storage format:

- traces/<label>.<ext>: one row per poll of a run
- residency/<label>.<ext>: one row per processor and state of a run
- summaries.<ext>: one row per completed run (plus summaries.csv on request)
- experiment_metadata.json: platform description and run matrix
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import polars as pl

from ..config.storage_config import StorageConfig
from ..models.results import ResidencyReport, RunSummary
from .factory import create_storage

logger = logging.getLogger(__name__)

TRACES_DIR = "traces"
RESIDENCY_DIR = "residency"
SUMMARIES_NAME = "summaries"
METADATA_FILE = "experiment_metadata.json"


class DataStorageManager:
    """
    High-level storage of everything tabular an experiment produces.

    Args:
        output_dir: The experiment's powertest_<timestamp> directory
        storage_config: Format, compression and legacy CSV settings
    """

    def __init__(self, output_dir: Path, storage_config: Optional[StorageConfig] = None):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        storage_config = storage_config or StorageConfig()
        self.storage_format = storage_config.format
        self.compression = storage_config.compression
        self.generate_legacy = storage_config.generate_legacy_formats
        self.storage = create_storage(self.storage_format, self.compression)

        logger.debug(f"Initialized DataStorageManager with format: {self.storage_format}")

    def _table_path(self, *parts: str) -> Path:
        return self.output_dir.joinpath(*parts[:-1]) / f"{parts[-1]}.{self.storage.extension}"

    def trace_path(self, label: str) -> Path:
        return self._table_path(TRACES_DIR, label)

    def residency_path(self, label: str) -> Path:
        return self._table_path(RESIDENCY_DIR, label)

    def summaries_path(self) -> Path:
        return self._table_path(SUMMARIES_NAME)

    def save_trace(self, label: str, trace: List[Dict[str, Any]]) -> Optional[Path]:
        """Persist the per-poll records of one run; returns None if there are none."""
        if not trace:
            logger.warning(f"No trace records to save for {label}")
            return None
        path = self.trace_path(label)
        self.storage.save_dataframe(pl.DataFrame(trace), str(path))
        logger.info(f"Saved {len(trace)} trace records to: {path}")
        return path

    def save_residency(self, label: str, report: ResidencyReport) -> Optional[Path]:
        rows = report.to_rows(label)
        if not rows:
            logger.warning(f"No residency data to save for {label}")
            return None
        path = self.residency_path(label)
        self.storage.save_dataframe(pl.DataFrame(rows), str(path))
        logger.debug(f"Saved residency report to: {path}")
        return path

    def append_summary(self, summary: RunSummary, timestamp: str) -> Path:
        """
        Add one completed run to the experiment summary table.

        The table is rewritten on every call so that a crash mid-experiment
        still leaves the summaries of all finished runs on disk.
        """
        row = {"timestamp": timestamp, **summary.to_dict()}
        path = self.summaries_path()
        self.storage.append_dataframe(pl.DataFrame([row]), str(path))
        logger.debug(f"Appended summary of {summary.configuration_label} to: {path}")

        if self.generate_legacy:
            legacy_path = self.output_dir / f"{SUMMARIES_NAME}.csv"
            self.load_summaries().write_csv(legacy_path)
            logger.debug(f"Saved legacy CSV format to: {legacy_path}")
        return path

    def save_metadata(self, metadata: Dict[str, Any]) -> Path:
        path = self.output_dir / METADATA_FILE
        self.storage.save_dict(metadata, str(path))
        logger.debug(f"Saved metadata to: {path}")
        return path

    def load_summaries(self, columns: Optional[List[str]] = None) -> pl.DataFrame:
        """
        Load the experiment summary table.

        Raises:
            FileNotFoundError: If no run has completed yet
        """
        path = self.summaries_path()
        if not self.storage.file_exists(str(path)):
            raise FileNotFoundError(f"No run summaries found in {self.output_dir}")
        return self.storage.load_dataframe(str(path), columns)

    def load_trace(self, label: str) -> pl.DataFrame:
        path = self.trace_path(label)
        if not self.storage.file_exists(str(path)):
            raise FileNotFoundError(f"No trace found for {label} in {self.output_dir}")
        return self.storage.load_dataframe(str(path))

    def list_trace_labels(self) -> List[str]:
        traces_dir = self.output_dir / TRACES_DIR
        if not traces_dir.is_dir():
            return []
        return sorted(p.stem for p in traces_dir.glob(f"*.{self.storage.extension}"))

    def get_storage_info(self) -> Dict[str, Any]:
        """Storage settings and the size of every table written so far."""
        info: Dict[str, Any] = {
            "storage_format": self.storage_format,
            "compression": self.compression,
            "output_dir": str(self.output_dir),
            "files": {},
        }
        for path in sorted(self.output_dir.rglob(f"*.{self.storage.extension}")):
            info["files"][str(path.relative_to(self.output_dir))] = path.stat().st_size
        return info
