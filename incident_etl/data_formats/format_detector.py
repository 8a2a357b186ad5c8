"""
Format detection utilities for delimited incident files.

This module decides the file kind (csv/tsv) and the field delimiter of an
input file, and hands out the matching loader.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from incident_etl.data_formats.base import DataLoader

logger = logging.getLogger(__name__)


# Mapping of file extensions to format names
EXTENSION_MAP: dict[str, str] = {
    ".csv": "csv",
    ".tsv": "tsv",
    ".txt": "tsv",
}

# Supported format names
SUPPORTED_FORMATS = frozenset(["csv", "tsv"])

# Checked in this order; the first one present on line 1 wins
DELIMITER_PRIORITY = ("\t", ";", ",")
DEFAULT_DELIMITER = ","


def detect_file_format(filename: str) -> str:
    """Detect file kind from the extension only.

    Anything that is not ``.csv`` is treated as ``tsv``.

    Args:
        filename: File name or path.

    Returns:
        Format name: "csv" or "tsv".

    Examples:
        >>> detect_file_format("sinistros_2024.csv")
        'csv'
        >>> detect_file_format("sinistros_2019.txt")
        'tsv'
    """
    return "csv" if Path(filename).suffix.lower() == ".csv" else "tsv"


def detect_delimiter(filename: str, log: logging.Logger | None = None) -> str:
    """Detect the field delimiter by inspecting the header line of the file.

    Tab, semicolon and comma are checked in that order and the first one
    found on the first non-blank line is returned. Nothing beyond that line
    is read.

    Args:
        filename: Path to the file.
        log: Logger used to report the default being applied.

    Returns:
        The delimiter character. Comma when none of the candidates is found,
        including for an empty file.

    Raises:
        OSError: If the file cannot be opened.
    """
    with open(filename, "r", encoding="utf-8", errors="replace", newline="") as f:
        first_line = next((line for line in f if line.strip()), "")

    for candidate in DELIMITER_PRIORITY:
        if candidate in first_line:
            return candidate

    (log or logger).warning(
        f"Could not detect delimiter in file: {filename}. Defaulting to '{DEFAULT_DELIMITER}'"
    )
    return DEFAULT_DELIMITER


def get_loader(filename: str) -> "DataLoader":
    """Factory function to get the appropriate loader for a file.

    Args:
        filename: Path to the file.

    Returns:
        A DataLoader instance for the file's format.
    """
    # Import here to avoid circular imports
    from incident_etl.data_formats.delimited_loader import DelimitedLoader

    return DelimitedLoader(detect_file_format(filename))
