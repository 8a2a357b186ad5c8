#!/usr/bin/env python3
"""
Incident ETL

Normalizes traffic-incident exports (CSV/TSV with varying separators and
headers) found in an input directory.

Usage:
    python -m incident_etl.main unify                 One semicolon file per input, unified schema
    python -m incident_etl.main ndjson [--geocode]    One NDJSON file per input (tipo/situacao/datahora/meta)
    python -m incident_etl.main schema                Print the unified schema of the input files
    python -m incident_etl.main geocode-test          Geocode a random sample of NDJSON output

Supported Inputs:
    - .csv, .tsv, .txt files with a header line
    - Delimiter detected from the first line (tab, then semicolon, then comma)
"""

import argparse
import functools
import sys
from pathlib import Path

import requests

from incident_etl.config import (
    DEFAULT_FILE_PREFIX,
    DEFAULT_INPUT_DIR,
    DEFAULT_LOG_DIR,
    DEFAULT_OUTPUT_DIR,
    GEOCODE_SAMPLE_SIZE,
    MODE_NDJSON,
    MODE_UNIFIED,
    PipelineConfig,
)
from incident_etl.data_formats import collect_unified_schema, discover_data_files, format_file_size
from incident_etl.geocoding import geocode_address, run_geocode_test
from incident_etl.logging_setup import get_logger, setup_logging
from incident_etl.pipeline import format_summary, run_batch, summary_as_json

logger = get_logger("incident_etl")


def find_input_files(config: PipelineConfig) -> list[dict]:
    """Discover input files, exiting when the input directory is missing."""
    if not config.input_dir.is_dir():
        print(f"Error: Input directory not found: {config.input_dir}", file=sys.stderr)
        sys.exit(1)

    files = discover_data_files(config.input_dir, config.file_prefix)
    for info in files:
        logger.debug(f"Found {info['name']} ({info['format']}, {format_file_size(info['size'])})")
    return files


# ============== Commands ==============

def cmd_run(args, mode: str):
    """Run the batch in the given output mode."""
    config = PipelineConfig.from_args(args, mode)
    setup_logging(verbose=args.verbose, log_dir=config.log_dir)

    files = find_input_files(config)
    if not files:
        print("No files to process.")
        return

    session = None
    geocoder = None
    if config.geocode:
        session = requests.Session()
        geocoder = functools.partial(geocode_address, session=session)

    try:
        run = run_batch(
            [info["path"] for info in files],
            config.output_dir,
            mode=config.mode,
            geocoder=geocoder,
            show_progress=config.show_progress,
        )
    finally:
        if session is not None:
            session.close()

    if args.json:
        print(summary_as_json(run))
    else:
        print(format_summary(run))


def cmd_unify(args):
    """Write one schema-unified semicolon file per input file."""
    cmd_run(args, MODE_UNIFIED)


def cmd_ndjson(args):
    """Write one NDJSON file per input file."""
    cmd_run(args, MODE_NDJSON)


def cmd_schema(args):
    """Print the unified schema, one column per line."""
    config = PipelineConfig.from_args(args, MODE_UNIFIED)
    setup_logging(verbose=args.verbose, log_dir=None)

    files = find_input_files(config)
    for column in collect_unified_schema([info["path"] for info in files]):
        print(column)


def cmd_geocode_test(args):
    """Geocode a random sample of processed records."""
    setup_logging(verbose=args.verbose, log_dir=None)

    output_dir = Path(args.output_dir)
    if not output_dir.is_dir():
        print(f"Error: Output directory not found: {output_dir}", file=sys.stderr)
        sys.exit(1)

    with requests.Session() as session:
        success_count, tried = run_geocode_test(
            output_dir,
            sample_size=args.sample_size,
            geocoder=functools.partial(geocode_address, session=session),
        )

    rate = 100 * success_count / tried if tried else 0.0
    print(f"Success rate: {rate:.2f}% ({success_count}/{tried})")


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '-i', '--input-dir',
        default=DEFAULT_INPUT_DIR,
        help=f'Directory with input files (default: {DEFAULT_INPUT_DIR})'
    )
    parser.add_argument(
        '-o', '--output-dir',
        default=DEFAULT_OUTPUT_DIR,
        help=f'Directory for output files (default: {DEFAULT_OUTPUT_DIR})'
    )
    parser.add_argument(
        '--log-dir',
        default=DEFAULT_LOG_DIR,
        help=f'Directory for preprocess.log; empty to disable (default: {DEFAULT_LOG_DIR})'
    )
    parser.add_argument(
        '-p', '--prefix',
        default=DEFAULT_FILE_PREFIX,
        help='Only process files whose name starts with this prefix'
    )
    parser.add_argument('--no-progress', action='store_true', help='Disable progress bars')
    parser.add_argument('--json', action='store_true', help='Print the summary as JSON')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')


def main():
    parser = argparse.ArgumentParser(
        description="Incident ETL - normalize traffic-incident CSV/TSV exports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Unify command
    unify_parser = subparsers.add_parser('unify', help='Schema-unified semicolon output')
    add_common_arguments(unify_parser)
    unify_parser.set_defaults(func=cmd_unify)

    # NDJSON command
    ndjson_parser = subparsers.add_parser('ndjson', help='NDJSON output (tipo/situacao/datahora/meta)')
    add_common_arguments(ndjson_parser)
    ndjson_parser.add_argument('--geocode', action='store_true', help='Add latitude/longitude via Nominatim')
    ndjson_parser.set_defaults(func=cmd_ndjson)

    # Schema command
    schema_parser = subparsers.add_parser('schema', help='Print the unified schema')
    add_common_arguments(schema_parser)
    schema_parser.set_defaults(func=cmd_schema)

    # Geocode test command
    geocode_parser = subparsers.add_parser('geocode-test', help='Geocode a random sample of NDJSON output')
    geocode_parser.add_argument(
        '-o', '--output-dir',
        default=DEFAULT_OUTPUT_DIR,
        help=f'Directory with NDJSON output (default: {DEFAULT_OUTPUT_DIR})'
    )
    geocode_parser.add_argument(
        '-n', '--sample-size',
        type=int,
        default=GEOCODE_SAMPLE_SIZE,
        help=f'Number of records to geocode (default: {GEOCODE_SAMPLE_SIZE})'
    )
    geocode_parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    geocode_parser.set_defaults(func=cmd_geocode_test)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
