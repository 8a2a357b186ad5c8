"""
Streaming pipeline and batch runner.

Each file goes through ``START -> HEADER_SCAN -> OPEN -> STREAMING -> FLUSH
-> DONE``. Rows are pulled from the loader one at a time and the next row is
only read after the current one has been transformed and written, so memory
stays flat on large exports. An unreadable input, an unwritable output or a
parser fault moves the file to ``FAILED``; the batch then goes on with the
next file. Row-level problems only increment the file's error counter.

Files are processed sequentially. The unified schema is computed once, before
the first row is read, and is only read afterwards.
"""

from __future__ import annotations

import csv
import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Sequence

import psutil
from tqdm import tqdm

from incident_etl.config import MODE_NDJSON, MODE_UNIFIED
from incident_etl.data_formats import collect_unified_schema, detect_delimiter, format_file_size, get_loader
from incident_etl.geocoding import Coordinates, extract_address
from incident_etl.row_transformer import RowResult, transform_ndjson_row, transform_row
from incident_etl.writers import get_writer, open_output, output_filename, unique_output_filename

logger = logging.getLogger(__name__)

Geocoder = Callable[[str], Coordinates]


class FileState(Enum):
    START = "start"
    HEADER_SCAN = "header_scan"
    OPEN = "open"
    STREAMING = "streaming"
    FLUSH = "flush"
    DONE = "done"
    FAILED = "failed"


@dataclass
class FileMetrics:
    """Counters for one input file."""
    file_name: str
    row_count: int = 0
    error_count: int = 0
    row_processing_time: float = 0.0  # seconds, summed over rows
    elapsed: float = 0.0  # seconds, whole file
    state: FileState = FileState.START
    error: str | None = None
    output_path: str | None = None

    @property
    def failed(self) -> bool:
        return self.state is FileState.FAILED

    @property
    def rows_written(self) -> int:
        return self.row_count - self.error_count


@dataclass
class RunMetrics:
    """Totals for a batch, folded in from each file once it completes."""
    total_files: int = 0
    total_rows: int = 0
    total_errors: int = 0
    total_row_time: float = 0.0
    elapsed: float = 0.0
    memory_rss: int = 0  # bytes, resident set size at the end of the run
    schema: list[str] = field(default_factory=list)
    files: list[FileMetrics] = field(default_factory=list)

    def add(self, metrics: FileMetrics) -> None:
        self.files.append(metrics)
        self.total_files += 1
        self.total_rows += metrics.row_count
        self.total_errors += metrics.error_count
        self.total_row_time += metrics.row_processing_time

    @property
    def failed_files(self) -> list[str]:
        return [m.file_name for m in self.files if m.failed]

    @property
    def average_row_time(self) -> float:
        return self.total_row_time / self.total_rows if self.total_rows else 0.0

    @property
    def rows_per_second(self) -> float:
        return self.total_rows / self.elapsed if self.elapsed > 0 else 0.0


def _transform(
    row: dict,
    line_number: int,
    mode: str,
    schema: Sequence[str],
    geocoder: Geocoder | None,
    log: logging.Logger,
) -> RowResult:
    if mode == MODE_UNIFIED:
        return transform_row(row, schema, line_number, log=log)

    result = transform_ndjson_row(row, line_number, log=log)
    if result.ok and geocoder is not None:
        address = extract_address(row)
        try:
            coordinates = geocoder(address)
        except Exception as e:
            log.warning(f'Geocoder failed at line {line_number} for "{address}": {e}')
            coordinates = Coordinates()
        result.record["latitude"] = coordinates.latitude
        result.record["longitude"] = coordinates.longitude
    return result


def process_file(
    filename: str | Path,
    output_dir: str | Path,
    mode: str = MODE_UNIFIED,
    schema: Sequence[str] = (),
    geocoder: Geocoder | None = None,
    show_progress: bool = False,
    log: logging.Logger | None = None,
    output_name: str | None = None,
) -> FileMetrics:
    """Normalize one input file into one output file.

    Args:
        filename: Input file path.
        output_dir: Directory for the output file (must exist).
        mode: "unified" (delimited, full schema) or "ndjson".
        schema: Unified schema of the batch; used in unified mode only.
        geocoder: Optional ``address -> Coordinates`` used to add
            latitude/longitude to NDJSON records.
        show_progress: Count rows first and show a progress bar.
        log: Logger for fallbacks and failures.
        output_name: Output file name; derived from the input name if None.

    Returns:
        The file's metrics. A fatal error is reported through
        ``state == FileState.FAILED`` and ``error``, never raised.
    """
    log = log or logger
    filename = str(filename)
    name = Path(filename).name
    metrics = FileMetrics(file_name=name)
    start_time = time.perf_counter()

    try:
        metrics.state = FileState.HEADER_SCAN
        delimiter = detect_delimiter(filename, log)
        loader = get_loader(filename)

        metrics.state = FileState.OPEN
        total = loader.get_record_count(filename, delimiter) if show_progress else None
        output_path = Path(output_dir) / (output_name or output_filename(name, mode))
        metrics.output_path = str(output_path)
        log.info(f"Processing file: {name} -> {output_path.name}")

        with open_output(output_path) as out, tqdm(
            total=total,
            desc=name,
            unit="row",
            disable=not show_progress,
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} rows [{elapsed}<{remaining}]",
        ) as pbar:
            writer = get_writer(out, mode, schema)
            metrics.state = FileState.STREAMING

            for line_number, row in loader.load(filename, delimiter):
                row_start = time.perf_counter()
                result = _transform(row, line_number, mode, schema, geocoder, log)
                if result.ok:
                    writer.write(result.record)
                else:
                    metrics.error_count += 1
                metrics.row_processing_time += time.perf_counter() - row_start
                metrics.row_count += 1
                pbar.update(1)

            metrics.state = FileState.FLUSH

        metrics.state = FileState.DONE
        log.info(
            f"Successfully processed file: {name} "
            f"({metrics.rows_written} rows written, {metrics.error_count} errors)"
        )
    except (OSError, csv.Error) as e:
        log.error(f"Error processing file {name} during {metrics.state.value}: {e}")
        metrics.state = FileState.FAILED
        metrics.error = str(e)
    finally:
        metrics.elapsed = time.perf_counter() - start_time

    return metrics


def run_batch(
    files: Iterable[str | Path],
    output_dir: str | Path,
    mode: str = MODE_UNIFIED,
    geocoder: Geocoder | None = None,
    show_progress: bool = False,
    log: logging.Logger | None = None,
) -> RunMetrics:
    """Process a batch of files one after the other.

    In unified mode the schema is collected over all files before the first
    row is transformed. A failed file is recorded and the next one is still
    attempted. Inputs sharing a stem get distinct output names.

    Args:
        files: Input file paths, processed in the given order.
        output_dir: Directory for output files (created if missing).
        mode: "unified" or "ndjson".
        geocoder: Optional geocoder for NDJSON enrichment.
        show_progress: Show a progress bar per file.
        log: Logger for the whole run.

    Returns:
        Run-level totals plus each file's metrics.
    """
    log = log or logger
    files = [str(f) for f in files]
    run = RunMetrics()
    start_time = time.perf_counter()

    try:
        Path(output_dir).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        # Every file will then fail on its own when opening its output
        log.error(f"Could not create output directory {output_dir}: {e}")

    if mode == MODE_UNIFIED:
        run.schema = collect_unified_schema(files, log)
        log.info(f"Unified schema ({len(run.schema)} columns): {', '.join(run.schema)}")

    taken: set[str] = set()
    for index, filename in enumerate(files, start=1):
        name = Path(filename).name
        log.info(f"File {index}/{len(files)}: {name}")
        output_name = unique_output_filename(name, mode, taken)
        if output_name != output_filename(name, mode):
            log.warning(f"Output name for {name} already used in this batch, writing {output_name}")
        run.add(
            process_file(
                filename,
                output_dir,
                mode=mode,
                schema=run.schema,
                geocoder=geocoder if mode == MODE_NDJSON else None,
                show_progress=show_progress,
                log=log,
                output_name=output_name,
            )
        )

    run.elapsed = time.perf_counter() - start_time
    run.memory_rss = psutil.Process().memory_info().rss
    return run


def format_time(seconds: float) -> str:
    """Format a duration for the summary (e.g., '1.250 seconds')."""
    return f"{seconds:.3f} seconds"


def format_summary(run: RunMetrics) -> str:
    """Render the end-of-run summary."""
    lines: list[str] = []
    lines.append("=" * 60)
    lines.append("ETL PROCESSING SUMMARY")
    lines.append("=" * 60)
    lines.append(f"  Total files processed:   {run.total_files:,}")
    lines.append(f"  Failed files:            {len(run.failed_files):,}")
    for metrics in run.files:
        if metrics.failed:
            lines.append(f"    - {metrics.file_name}: {metrics.error}")
    lines.append(f"  Total rows processed:    {run.total_rows:,}")
    lines.append(f"  Total errors:            {run.total_errors:,}")
    lines.append(f"  Total processing time:   {format_time(run.elapsed)}")
    lines.append(f"  Average time per row:    {format_time(run.average_row_time)}")
    lines.append(f"  Processing speed:        {run.rows_per_second:.2f} rows/second")
    lines.append(f"  Memory usage:            {format_file_size(run.memory_rss)}")
    lines.append("=" * 60)
    return "\n".join(lines)


def summary_as_dict(run: RunMetrics) -> dict:
    """Machine-readable form of the summary."""
    return {
        "total_files": run.total_files,
        "failed_files": run.failed_files,
        "total_rows": run.total_rows,
        "total_errors": run.total_errors,
        "elapsed": run.elapsed,
        "average_row_time": run.average_row_time,
        "rows_per_second": run.rows_per_second,
        "memory_rss": run.memory_rss,
        "schema": run.schema,
    }


def summary_as_json(run: RunMetrics) -> str:
    return json.dumps(summary_as_dict(run), indent=2, ensure_ascii=False)
