"""
Abstract base class for data loaders.

This module defines the DataLoader interface that all format-specific
loaders must implement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator


class DataLoader(ABC):
    """Abstract base class for loading delimited incident files.

    Loaders stream rows lazily so a file is never held in memory as a whole.
    """

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Return the format name (e.g., 'csv', 'tsv')."""
        pass

    @property
    @abstractmethod
    def supported_extensions(self) -> list[str]:
        """Return supported file extensions (e.g., ['.csv'])."""
        pass

    @abstractmethod
    def load(
        self, filename: str, delimiter: str | None = None
    ) -> Iterator[tuple[int, dict[str, str]]]:
        """Lazily load rows from file.

        Args:
            filename: Path to the file.
            delimiter: Field separator. Detected from the header line if None.

        Yields:
            Tuples of (1-based row number, row keyed by canonical header).

        Raises:
            FileNotFoundError: If the file does not exist.
            csv.Error: If the parser hits an unrecoverable fault.
        """
        pass

    @abstractmethod
    def read_header(self, filename: str, delimiter: str | None = None) -> list[str]:
        """Read only the header line and return its raw labels.

        Args:
            filename: Path to the file.
            delimiter: Field separator. Detected from the header line if None.

        Returns:
            The raw header labels, or an empty list for an empty file.
        """
        pass

    @abstractmethod
    def get_record_count(self, filename: str, delimiter: str | None = None) -> int:
        """Count data rows without keeping them.

        Args:
            filename: Path to the file.
            delimiter: Field separator. Detected from the header line if None.

        Returns:
            The number of non-blank data rows.
        """
        pass
