"""Tests for schema normalization in incident_etl/data_formats/schema_normalizer.py."""

from __future__ import annotations

import logging

import pytest

from conftest import write_delimited
from incident_etl.data_formats import collect_unified_schema, standardize_header


class TestStandardizeHeader:
    """Tests for standardize_header()."""

    @pytest.mark.parametrize("label, expected", [
        ("Data", "data"),
        ("  HORA  ", "hora"),
        ("Natureza Acidente", "natureza_acidente"),
        ("natureza \t  acidente", "natureza_acidente"),
        ("Situação", "situao"),
        ("nº vítimas", "n_vtimas"),
        ("endereco-cruzamento", "enderecocruzamento"),
        ("Num_Semaforo", "num_semaforo"),
        ("", ""),
        ("   ", ""),
        ("!!!", ""),
    ])
    def test_standardize(self, label, expected):
        """Labels reduce to lowercase [a-z0-9_] keys."""
        assert standardize_header(label) == expected

    @pytest.mark.parametrize("label", [
        "Data", " Tipo de  Acidente ", "Situação", "a b", "__x__", "ÇÃO 123", "", "İstanbul",
    ])
    def test_idempotent(self, label):
        """Standardizing a canonical key returns it unchanged."""
        once = standardize_header(label)
        assert standardize_header(once) == once

    def test_output_alphabet(self):
        """Only lowercase letters, digits and underscores survive."""
        key = standardize_header(" Hora/Minuto (local) ")
        assert set(key) <= set("abcdefghijklmnopqrstuvwxyz0123456789_")


class TestCollectUnifiedSchema:
    """Tests for collect_unified_schema()."""

    def test_sorted_union(self, two_file_batch):
        """Two files with different headers merge into one sorted schema."""
        files = sorted(two_file_batch.iterdir())
        assert collect_unified_schema(files) == ["data", "hora", "situacao", "tipo"]

    def test_union_matches_standardized_headers(self, tmp_path):
        """Schema is the set of standardized labels over all files."""
        headers = [["Data", "Hora", "Tipo"], ["DATA", "Bairro"], ["bairro", "Auto", "Moto"]]
        files = []
        for i, header in enumerate(headers):
            files.append(write_delimited(tmp_path / f"f{i}.csv", header, [["x"] * len(header)]))

        expected = sorted({standardize_header(h) for header in headers for h in header})
        assert collect_unified_schema(files) == expected

    def test_no_duplicates(self, tmp_path):
        """Labels that standardize to the same key appear once."""
        a = write_delimited(tmp_path / "a.csv", ["Data"], [])
        b = write_delimited(tmp_path / "b.tsv", [" data "], [], delimiter="\t")
        assert collect_unified_schema([a, b]) == ["data"]

    def test_unreadable_file_skipped(self, tmp_path, caplog):
        """A missing file is logged and left out of the schema."""
        good = write_delimited(tmp_path / "good.csv", ["a", "b"], [["1", "2"]])
        with caplog.at_level(logging.ERROR):
            schema = collect_unified_schema([tmp_path / "missing.csv", good])
        assert schema == ["a", "b"]
        assert "missing.csv" in caplog.text

    def test_empty_batch(self):
        """No files give an empty schema."""
        assert collect_unified_schema([]) == []

    def test_only_empty_files(self, tmp_path):
        """Empty files contribute no columns."""
        empty = tmp_path / "empty.csv"
        empty.write_text("")
        assert collect_unified_schema([empty]) == []

    def test_reads_only_header(self, tmp_path):
        """Rows after the header do not contribute columns."""
        filepath = tmp_path / "a.csv"
        filepath.write_text("a,b\n1,2,3,4\n")
        assert collect_unified_schema([filepath]) == ["a", "b"]

    def test_leading_blank_lines_before_header(self, tmp_path):
        """Blank lines before the header do not hide its columns."""
        filepath = tmp_path / "a.csv"
        filepath.write_text("\n  \nData;Tipo\n01/03/2024;Colisao\n")
        assert collect_unified_schema([filepath]) == ["data", "tipo"]
