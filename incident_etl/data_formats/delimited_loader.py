"""
Delimited text data loader.

This module provides the DelimitedLoader class for streaming CSV/TSV incident
exports whose separator and header labels vary from file to file.
"""

from __future__ import annotations

import csv
from typing import Iterator

from incident_etl.data_formats.base import DataLoader
from incident_etl.data_formats.format_detector import SUPPORTED_FORMATS, detect_delimiter
from incident_etl.data_formats.schema_normalizer import standardize_header

# Bytes that are not valid UTF-8 survive decoding as lone surrogates so the
# row holding them can be rejected on its own instead of aborting the file.
INPUT_ENCODING = "utf-8-sig"
INPUT_ERRORS = "surrogateescape"

# csv.DictReader stores values beyond the header under this key
EXTRA_VALUES_KEY = None


def _first_non_blank(reader: Iterator[list[str]]) -> list[str] | None:
    """Return the first row holding a non-whitespace cell, or None at EOF."""
    for row in reader:
        if any(cell.strip() for cell in row):
            return row
    return None


def _is_blank(row: dict) -> bool:
    """Return True for rows made only of empty fields."""
    if row.get(EXTRA_VALUES_KEY):
        return False
    return all(not (value or "").strip() for key, value in row.items() if key is not EXTRA_VALUES_KEY)


class DelimitedLoader(DataLoader):
    """Data loader for delimited text (CSV and TSV).

    The delimiter is not inferred from the extension: it is detected from the
    first line unless given explicitly. Header labels are mapped to canonical
    keys with ``standardize_header`` before rows are handed out.

    Attributes:
        format_name: 'csv' or 'tsv', as given at construction.
        supported_extensions: Extensions that map to this format.
    """

    def __init__(self, format_name: str = "csv") -> None:
        if format_name not in SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format '{format_name}'. "
                f"Supported formats: {', '.join(sorted(SUPPORTED_FORMATS))}"
            )
        self._format_name = format_name

    @property
    def format_name(self) -> str:
        """Return the format name."""
        return self._format_name

    @property
    def supported_extensions(self) -> list[str]:
        """Return supported file extensions."""
        if self._format_name == "csv":
            return [".csv"]
        return [".tsv", ".txt"]

    def load(
        self, filename: str, delimiter: str | None = None
    ) -> Iterator[tuple[int, dict[str, str]]]:
        """Lazily load rows from a delimited file.

        Rows are read one at a time; the next row is only parsed once the
        caller asks for it. Blank rows are skipped and not numbered; the first
        non-blank row is the header. Rows
        shorter than the header are padded with empty strings; values beyond
        the header are kept in a list under the ``None`` key.

        Args:
            filename: Path to the file.
            delimiter: Field separator. Detected from the header line if None.

        Yields:
            Tuples of (1-based row number, row keyed by canonical header).

        Raises:
            FileNotFoundError: If the file does not exist.
            csv.Error: If the parser hits an unrecoverable fault.

        Examples:
            >>> loader = DelimitedLoader("csv")
            >>> for number, row in loader.load("sinistros_2024.csv"):
            ...     print(number, row["data"])
        """
        if delimiter is None:
            delimiter = detect_delimiter(filename)

        with open(filename, "r", encoding=INPUT_ENCODING, errors=INPUT_ERRORS, newline="") as f:
            header = _first_non_blank(csv.reader(f, delimiter=delimiter))
            if header is None:
                return
            reader = csv.DictReader(
                f,
                fieldnames=[standardize_header(label) for label in header],
                delimiter=delimiter,
                restval="",
            )

            row_number = 0
            for row in reader:
                if _is_blank(row):
                    continue
                row_number += 1
                yield row_number, row

    def read_header(self, filename: str, delimiter: str | None = None) -> list[str]:
        """Read only the header line of a delimited file.

        Blank lines before the header are skipped.

        Args:
            filename: Path to the file.
            delimiter: Field separator. Detected from the header line if None.

        Returns:
            The raw header labels, or an empty list for an empty file.

        Raises:
            FileNotFoundError: If the file does not exist.
            csv.Error: If the header line cannot be parsed.
        """
        if delimiter is None:
            delimiter = detect_delimiter(filename)

        with open(filename, "r", encoding=INPUT_ENCODING, errors=INPUT_ERRORS, newline="") as f:
            header = _first_non_blank(csv.reader(f, delimiter=delimiter))
        return header or []

    def get_record_count(self, filename: str, delimiter: str | None = None) -> int:
        """Count data rows without keeping them.

        This streams through the whole file once.

        Args:
            filename: Path to the file.
            delimiter: Field separator. Detected from the header line if None.

        Returns:
            The number of non-blank data rows.
        """
        return sum(1 for _ in self.load(filename, delimiter))
