"""
Run configuration for the incident ETL.

Defaults live here as module constants; the CLI exposes them as argparse
defaults and bundles the parsed values into a PipelineConfig.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path

# Directories (relative to the working directory)
DEFAULT_INPUT_DIR = "data"
DEFAULT_OUTPUT_DIR = "processed"
DEFAULT_LOG_DIR = "logs"
LOG_FILENAME = "preprocess.log"

# Empty prefix keeps every supported file; exports are usually "sinistros*"
DEFAULT_FILE_PREFIX = ""

# Output modes
MODE_UNIFIED = "unified"
MODE_NDJSON = "ndjson"
OUTPUT_MODES = (MODE_UNIFIED, MODE_NDJSON)

# Schema-unified output
OUTPUT_DELIMITER = ";"
OUTPUT_ENCODING = "utf-8"

# Geocoding
NOMINATIM_API_URL = "https://nominatim.openstreetmap.org/search"
GEOCODER_USER_AGENT = "incident-etl/0.1 (traffic incident geocoding)"
GEOCODE_TIMEOUT = 10.0  # seconds
GEOCODE_SAMPLE_SIZE = 30


@dataclass
class PipelineConfig:
    """Settings for one batch run."""
    input_dir: Path = Path(DEFAULT_INPUT_DIR)
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    log_dir: Path | None = Path(DEFAULT_LOG_DIR)
    mode: str = MODE_UNIFIED
    file_prefix: str = DEFAULT_FILE_PREFIX
    show_progress: bool = True
    geocode: bool = False

    def __post_init__(self) -> None:
        if self.mode not in OUTPUT_MODES:
            raise ValueError(
                f"Unsupported mode '{self.mode}'. Supported modes: {', '.join(OUTPUT_MODES)}"
            )

    @classmethod
    def from_args(cls, args: argparse.Namespace, mode: str) -> "PipelineConfig":
        """Build a config from parsed CLI arguments."""
        return cls(
            input_dir=Path(args.input_dir),
            output_dir=Path(args.output_dir),
            log_dir=Path(args.log_dir) if args.log_dir else None,
            mode=mode,
            file_prefix=args.prefix,
            show_progress=not args.no_progress,
            geocode=getattr(args, "geocode", False),
        )
