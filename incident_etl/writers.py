"""
Output writers for normalized incident records.

Records are written as soon as they are produced; nothing is buffered
beyond the file object's own buffer.

Supported Output Formats:
    - unified: semicolon-delimited UTF-8 text, header = unified schema
    - ndjson: one JSON object per line
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Sequence, TextIO

from incident_etl.config import MODE_NDJSON, MODE_UNIFIED, OUTPUT_DELIMITER, OUTPUT_ENCODING

OUTPUT_SUFFIXES: dict[str, str] = {
    MODE_UNIFIED: "_processed.csv",
    MODE_NDJSON: "_processed.ndjson",
}


def output_filename(input_name: str, mode: str) -> str:
    """Name of the output file for an input file.

    Examples:
        >>> output_filename("sinistros_2024.csv", "ndjson")
        'sinistros_2024_processed.ndjson'
    """
    return Path(input_name).stem + OUTPUT_SUFFIXES[mode]


def unique_output_filename(input_name: str, mode: str, taken: set[str]) -> str:
    """Output name for an input file that does not clash with ``taken``.

    Inputs sharing a stem ("x.csv", "x.tsv") would otherwise write to the
    same file. The first keeps the plain name; later ones get their source
    extension folded into the stem, then a counter if that is taken too.
    The returned name is added to ``taken``.

    Examples:
        >>> taken = set()
        >>> unique_output_filename("x.csv", "unified", taken)
        'x_processed.csv'
        >>> unique_output_filename("x.tsv", "unified", taken)
        'x_tsv_processed.csv'
    """
    name = output_filename(input_name, mode)
    if name in taken:
        path = Path(input_name)
        base = f"{path.stem}_{path.suffix.lstrip('.').lower()}"
        name = base + OUTPUT_SUFFIXES[mode]
        counter = 2
        while name in taken:
            name = f"{base}_{counter}" + OUTPUT_SUFFIXES[mode]
            counter += 1
    taken.add(name)
    return name


def format_cell(value: Any) -> str:
    """Render a record value as delimited-text cell.

    Whole floats are written without a decimal part ("3", not "3.0").
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_jsonl(record: dict[str, Any]) -> str:
    """Format record as single JSONL line."""
    return json.dumps(record, ensure_ascii=False)


class UnifiedCsvWriter:
    """Writes records in schema order, header first."""

    def __init__(self, stream: TextIO, schema: Sequence[str]) -> None:
        self.schema = list(schema)
        self._writer = csv.writer(stream, delimiter=OUTPUT_DELIMITER, lineterminator="\n")
        self._writer.writerow(self.schema)

    def write(self, record: dict[str, Any]) -> None:
        self._writer.writerow([format_cell(record[key]) for key in self.schema])


class NdjsonWriter:
    """Writes one JSON object per line."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def write(self, record: dict[str, Any]) -> None:
        self._stream.write(format_jsonl(record) + "\n")


def open_output(path: str | Path) -> TextIO:
    """Open an output file for writing, replacing any previous run's output."""
    return open(path, "w", encoding=OUTPUT_ENCODING, newline="")


def get_writer(stream: TextIO, mode: str, schema: Sequence[str] = ()) -> UnifiedCsvWriter | NdjsonWriter:
    """Factory function to get the writer for an output mode.

    Raises:
        ValueError: If the mode is not supported.
    """
    if mode == MODE_UNIFIED:
        return UnifiedCsvWriter(stream, schema)
    if mode == MODE_NDJSON:
        return NdjsonWriter(stream)
    raise ValueError(
        f"Unsupported mode '{mode}'. Supported modes: {', '.join(sorted(OUTPUT_SUFFIXES))}"
    )
