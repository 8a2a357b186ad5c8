"""Pytest configuration and shared fixtures for incident ETL tests."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Sequence

import pytest


def write_delimited(
    path: Path,
    header: Sequence[str],
    rows: Sequence[Sequence[str]],
    delimiter: str = ",",
) -> Path:
    """Helper to write a delimited file with a header line."""
    with open(path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.writer(f, delimiter=delimiter, lineterminator='\n')
        writer.writerow(header)
        writer.writerows(rows)
    return path


def read_delimited(path: Path, delimiter: str = ";") -> list[list[str]]:
    """Helper to read every line of a delimited file, header included."""
    with open(path, 'r', encoding='utf-8', newline='') as f:
        return list(csv.reader(f, delimiter=delimiter))


def read_jsonl(path: Path) -> list[dict[str, Any]]:
    """Helper to read records from a JSONL file."""
    records = []
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line:
                records.append(json.loads(line))
    return records


@pytest.fixture
def two_file_batch(tmp_path) -> Path:
    """Input directory with two files whose headers and delimiters differ."""
    input_dir = tmp_path / "data"
    input_dir.mkdir()
    write_delimited(
        input_dir / "a.csv",
        ["Data", "Hora", "Tipo"],
        [["01/03/2024", "14:5", "Colisão"]],
    )
    write_delimited(
        input_dir / "b.csv",
        ["data", "situacao"],
        [["2024-03-02", "Resolvido"]],
        delimiter=";",
    )
    return input_dir


@pytest.fixture
def incident_file(tmp_path) -> Path:
    """A tab-separated export with address and count columns."""
    return write_delimited(
        tmp_path / "sinistros_2023.tsv",
        [
            "DATA", "HORA", "natureza_acidente", "situacao", "bairro",
            "endereco", "numero", "auto", "moto", "vitimas", "num_semaforo",
        ],
        [
            ["2023-05-10", "08:15:00", "SEM VÍTIMA", "FINALIZADA", "BOA VIAGEM",
             "AV BOA VIAGEM", "500", "2", "0", "0", "1"],
            ["11/05/2023", "17:40", "COM VÍTIMA", "FINALIZADA", "DERBY",
             "RUA DO PRINCIPE", "", "1", "1", "1,0", ""],
        ],
        delimiter="\t",
    )


@pytest.fixture
def output_dir(tmp_path) -> Path:
    """Return an (existing) directory for pipeline output."""
    path = tmp_path / "processed"
    path.mkdir()
    return path
