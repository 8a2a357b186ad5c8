"""
Data formats module for delimited incident files.

This module provides a unified interface for sniffing, loading and
schema-unifying CSV/TSV incident exports.

Usage:
    from incident_etl.data_formats import collect_unified_schema, get_loader

    schema = collect_unified_schema(["a.csv", "b.tsv"])
    loader = get_loader("a.csv")
    for number, row in loader.load("a.csv"):
        print(number, row)
"""

from incident_etl.data_formats.base import DataLoader
from incident_etl.data_formats.delimited_loader import DelimitedLoader
from incident_etl.data_formats.directory_loader import (
    SUPPORTED_EXTENSIONS,
    discover_data_files,
    format_file_size,
)
from incident_etl.data_formats.format_detector import (
    DEFAULT_DELIMITER,
    DELIMITER_PRIORITY,
    EXTENSION_MAP,
    SUPPORTED_FORMATS,
    detect_delimiter,
    detect_file_format,
    get_loader,
)
from incident_etl.data_formats.schema_normalizer import (
    collect_unified_schema,
    standardize_header,
)

__all__ = [
    # Base class
    "DataLoader",
    # Format detection
    "detect_file_format",
    "detect_delimiter",
    "get_loader",
    "EXTENSION_MAP",
    "SUPPORTED_FORMATS",
    "DELIMITER_PRIORITY",
    "DEFAULT_DELIMITER",
    # Schema normalization
    "standardize_header",
    "collect_unified_schema",
    # Directory scanning
    "discover_data_files",
    "format_file_size",
    "SUPPORTED_EXTENSIONS",
    # Loaders
    "DelimitedLoader",
]
