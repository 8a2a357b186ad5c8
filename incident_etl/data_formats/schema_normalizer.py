"""
Schema normalization utilities for delimited incident files.

Exports from different years label the same column differently ("Data",
" DATA ", "data"). Every label is reduced to a canonical key, and the keys of
all files in a batch are merged into one sorted schema so every output row
carries every column.
"""

from __future__ import annotations

import csv
import logging
import re
from pathlib import Path
from typing import Iterable

from incident_etl.data_formats.format_detector import detect_delimiter, get_loader

logger = logging.getLogger(__name__)

_WHITESPACE_RUN = re.compile(r"\s+")
_NON_KEY_CHARS = re.compile(r"[^a-z0-9_]")


def standardize_header(label: str) -> str:
    """Map a raw column label to its canonical key.

    Trims surrounding whitespace, lowercases, replaces each run of whitespace
    with a single underscore, then drops every character outside
    ``[a-z0-9_]``. The result is idempotent: standardizing a canonical key
    returns it unchanged.

    Args:
        label: Raw column label as found in the header line.

    Returns:
        The canonical key. May be an empty string.

    Examples:
        >>> standardize_header("  Natureza do Acidente ")
        'natureza_do_acidente'
        >>> standardize_header("Situação")
        'situao'
    """
    key = label.strip().lower()
    key = _WHITESPACE_RUN.sub("_", key)
    return _NON_KEY_CHARS.sub("", key)


def collect_unified_schema(
    files: Iterable[str | Path], log: logging.Logger | None = None
) -> list[str]:
    """Build the unified schema for a batch of files.

    Only the header line of each file is parsed. A file whose header cannot
    be read is logged and left out of the schema; the batch goes on.

    Args:
        files: Paths of the files in the batch.
        log: Logger for header-read failures.

    Returns:
        The sorted union of canonical headers across all readable files.
        Empty when no header could be read.
    """
    log = log or logger
    headers: set[str] = set()

    for path in files:
        filename = str(path)
        try:
            delimiter = detect_delimiter(filename, log)
            labels = get_loader(filename).read_header(filename, delimiter)
        except (OSError, csv.Error, UnicodeError) as e:
            log.error(f"Could not read header of {filename}, skipping it for the schema: {e}")
            continue

        headers.update(standardize_header(label) for label in labels)
        log.debug(f"Header of {filename}: {labels}")

    return sorted(headers)
