"""
Directory scanning utilities for discovering incident files.

This module provides functions for discovering supported delimited files
within an input directory.
"""

from __future__ import annotations

from pathlib import Path

from incident_etl.data_formats.format_detector import EXTENSION_MAP, detect_file_format

# Supported file extensions (derived from EXTENSION_MAP)
SUPPORTED_EXTENSIONS = frozenset(EXTENSION_MAP.keys())


def discover_data_files(directory: str | Path, prefix: str = "") -> list[dict]:
    """
    Discover all supported data files in a directory.

    Args:
        directory: Path to the directory to scan.
        prefix: Only keep files whose name starts with this (empty = all).

    Returns:
        List of dicts with:
        - path: absolute path to file
        - name: filename
        - format: detected format (csv, tsv)
        - size: file size in bytes
    """
    dir_path = Path(directory)
    files = []

    # Iterate all files and check extension case-insensitively
    # (glob patterns are case-sensitive on Linux)
    try:
        for file_path in dir_path.iterdir():
            if not file_path.is_file():
                continue

            if file_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
                continue

            if prefix and not file_path.name.startswith(prefix):
                continue

            try:
                files.append({
                    "path": str(file_path.absolute()),
                    "name": file_path.name,
                    "format": detect_file_format(file_path.name),
                    "size": file_path.stat().st_size,
                })
            except (OSError, PermissionError):
                # Skip files we can't access
                continue
    except (OSError, PermissionError):
        # Can't read directory
        return []

    # Sort by name for consistent ordering
    return sorted(files, key=lambda f: f["name"].lower())


def format_file_size(size_bytes: int) -> str:
    """Format file size for display (e.g., '1.2 MB').

    Args:
        size_bytes: Size in bytes.

    Returns:
        Human-readable size string.
    """
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"
