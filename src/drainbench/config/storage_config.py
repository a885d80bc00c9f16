"""
Storage configuration model.

Defines where and how the per-run trace tables, residency tables and the
experiment summary table are written.
"""

from dataclasses import dataclass
from typing import Any, Dict, Literal

from ..validation import validate_boolean, validate_enum_choice

SUPPORTED_FORMATS = ["parquet", "json"]
SUPPORTED_COMPRESSIONS = ["snappy", "gzip", "brotli", "lz4", "zstd"]


@dataclass
class StorageConfig:
    """
    Configuration model for experiment table storage, `[storage]` table.

    Attributes:
        format: 'parquet' for columnar tables, 'json' for small human-readable dumps
        compression: Parquet compression codec; ignored for JSON
        generate_legacy_formats: Also write a CSV copy of the summary table
            so it can be opened in a spreadsheet
    """

    format: Literal["parquet", "json"] = "parquet"
    compression: Literal["snappy", "gzip", "brotli", "lz4", "zstd"] = "snappy"
    generate_legacy_formats: bool = False

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "StorageConfig":
        """
        Create a StorageConfig from the raw `[storage]` table.

        Raises:
            ValidationError: If an unsupported format or codec is given
        """
        format_type = validate_enum_choice(
            config_dict.get("format", "parquet"),
            valid_choices=SUPPORTED_FORMATS,
            field_name="storage.format",
        )
        compression = config_dict.get("compression", "snappy")
        if format_type == "parquet":
            compression = validate_enum_choice(
                compression,
                valid_choices=SUPPORTED_COMPRESSIONS,
                field_name="storage.compression",
            )
        generate_legacy = validate_boolean(
            config_dict.get("generate_legacy_formats", False),
            field_name="storage.generate_legacy_formats",
        )

        return cls(
            format=format_type,
            compression=compression,
            generate_legacy_formats=generate_legacy,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": self.format,
            "compression": self.compression,
            "generate_legacy_formats": self.generate_legacy_formats,
        }
