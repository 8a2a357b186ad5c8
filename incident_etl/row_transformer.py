"""
Row transformation for incident records.

Turns one raw row (already keyed by canonical header) into one normalized
record. Two shapes are produced:

- schema-unified: every key of the batch schema, with ``data``/``hora`` and
  count columns normalized. Bad fields fall back to "" or 0 and the row is
  still emitted.
- NDJSON: the fixed ``tipo``/``situacao``/``datahora``/``meta`` shape. Any
  failure while building it rejects the row.

Transformers return a RowResult instead of raising, so the pipeline can
count failures without unwinding the file.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from incident_etl.data_formats.delimited_loader import EXTRA_VALUES_KEY
from incident_etl.field_normalizers import (
    combine_date_time,
    is_numeric_field,
    normalize_date,
    normalize_time,
    parse_numeric_field,
)

logger = logging.getLogger(__name__)

DATE_FIELD = "data"
TIME_FIELD = "hora"
STATUS_FIELD = "situacao"

# Legacy names for the incident type, first non-empty wins
TYPE_SYNONYMS = ("natureza_acidente", "natureza", "tipo")

# Raw keys folded into the named NDJSON fields and left out of meta
CONSUMED_KEYS = frozenset(TYPE_SYNONYMS + (STATUS_FIELD, DATE_FIELD, TIME_FIELD))

NDJSON_FIELDS = ("tipo", "situacao", "datahora", "meta")


class RowValidationError(ValueError):
    """Raised when a raw row cannot be trusted as a whole."""


@dataclass
class RowError:
    """Why a row was rejected."""
    line_number: int
    message: str
    row: dict[str, Any]


@dataclass
class RowResult:
    """Outcome of transforming one row: a record or an error, never both."""
    line_number: int
    record: dict[str, Any] | None = None
    error: RowError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _escape(value: str) -> str:
    return value.encode("utf-8", "backslashreplace").decode("utf-8")


def _printable_row(row: dict) -> dict[str, Any]:
    """Return the row with undecodable bytes escaped so it can be logged."""
    printable: dict[str, Any] = {}
    for key, value in row.items():
        if isinstance(value, str):
            value = _escape(value)
        elif isinstance(value, list):
            value = [_escape(item) for item in value]
        printable[str(key)] = value
    return printable


def validate_row(row: dict) -> None:
    """Reject rows the parser could not map cleanly.

    Raises:
        RowValidationError: If the row has more values than the header has
            columns, or holds bytes that are not valid UTF-8.
    """
    extra = row.get(EXTRA_VALUES_KEY)
    if extra:
        raise RowValidationError(f"{len(extra)} value(s) beyond the header columns")

    for key, value in row.items():
        if key is EXTRA_VALUES_KEY or not isinstance(value, str):
            continue
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            raise RowValidationError(f"invalid UTF-8 in column '{key}'") from None


def _normalize_field(
    record: dict[str, Any],
    key: str,
    normalizer: Callable[..., Any],
    fallback: Any,
    log: logging.Logger,
) -> None:
    try:
        record[key] = normalizer(record[key], log=log)
    except Exception as e:
        log.warning(f"Could not normalize field '{key}' ({e}), using {fallback!r}.")
        record[key] = fallback


def transform_row(
    row: dict,
    unified_schema: Sequence[str],
    line_number: int = 0,
    log: logging.Logger | None = None,
) -> RowResult:
    """Spread a raw row into the unified schema and normalize its fields.

    Columns this file lacks default to "". ``data`` is normalized to
    ``YYYY-MM-DD``, ``hora`` to ``HH:mm:ss`` and every count column to a
    number. A field that cannot be normalized takes its neutral default; it
    never discards the row.

    Args:
        row: Raw row keyed by canonical header.
        unified_schema: Sorted canonical headers of the batch.
        line_number: 1-based row number, for reporting.
        log: Logger for fallbacks.

    Returns:
        A RowResult whose record has exactly the keys of ``unified_schema``,
        or an error when the row itself is malformed.

    Examples:
        >>> result = transform_row({"data": "01/03/2024"}, ["data", "hora"])
        >>> result.record
        {'data': '2024-03-01', 'hora': ''}
    """
    log = log or logger
    try:
        validate_row(row)
    except RowValidationError as e:
        printable = _printable_row(row)
        log.error(
            f"Malformed row at line {line_number}: {e}\n"
            f"Row: {json.dumps(printable, ensure_ascii=False)}"
        )
        return RowResult(line_number, error=RowError(line_number, str(e), printable))

    record: dict[str, Any] = {}
    for key in unified_schema:
        value = row.get(key)
        record[key] = value if value is not None else ""

    if DATE_FIELD in record:
        _normalize_field(record, DATE_FIELD, normalize_date, "", log)
    if TIME_FIELD in record:
        _normalize_field(record, TIME_FIELD, normalize_time, "", log)
    for key in unified_schema:
        if is_numeric_field(key):
            _normalize_field(record, key, parse_numeric_field, 0.0, log)

    return RowResult(line_number, record=record)


def transform_ndjson_row(
    row: dict,
    line_number: int = 0,
    log: logging.Logger | None = None,
) -> RowResult:
    """Build the four-field NDJSON record from a raw row.

    ``tipo`` is the first non-empty of the legacy type columns, ``datahora``
    combines ``data`` and ``hora`` at UTC-3, and ``meta`` is the JSON text of
    every other column. A row without any type column is logged but kept.
    Any failure rejects the row and is logged with its line number and
    content.

    Args:
        row: Raw row keyed by canonical header.
        line_number: 1-based row number, for reporting.
        log: Logger for warnings and rejected rows.

    Returns:
        A RowResult holding the record or the error.
    """
    log = log or logger
    try:
        validate_row(row)

        tipo = next((row[key] for key in TYPE_SYNONYMS if row.get(key)), "")
        if not tipo:
            log.warning(
                f"Missing {', '.join(repr(k) for k in TYPE_SYNONYMS)} in row at line {line_number}."
            )

        situacao = row.get(STATUS_FIELD) or ""
        datahora = combine_date_time(row.get(DATE_FIELD) or "", row.get(TIME_FIELD) or "", log=log)
        meta = json.dumps(
            {key: value for key, value in row.items() if key not in CONSUMED_KEYS},
            ensure_ascii=False,
        )
    except Exception as e:
        printable = _printable_row(row)
        log.error(
            f"Row transformation error at line {line_number}: {e}\n"
            f"Row: {json.dumps(printable, ensure_ascii=False)}"
        )
        return RowResult(line_number, error=RowError(line_number, str(e), printable))

    return RowResult(line_number, record=dict(zip(NDJSON_FIELDS, (tipo, situacao, datahora, meta))))
