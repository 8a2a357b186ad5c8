"""
Traffic-incident ETL.

Normalizes heterogeneous delimited incident exports (CSV/TSV with varying
separators and headers) into one schema-unified delimited file or one
NDJSON file per input, with optional geocoding of incident addresses.
"""

__version__ = "0.1.0"
