"""Tests for address extraction and geocoding in incident_etl/geocoding.py."""

from __future__ import annotations

import json
import logging
import random

import requests

from incident_etl.geocoding import (
    Coordinates,
    collect_all_rows,
    extract_address,
    geocode_address,
    pick_random_rows,
    run_geocode_test,
)


class FakeResponse:
    def __init__(self, payload=None, status_code=200, error=None):
        self._payload = payload
        self.status_code = status_code
        self._error = error

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if self._error is not None:
            raise self._error
        return self._payload


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response


class TestExtractAddress:
    """Address precedence rules."""

    def test_street_and_number(self):
        """Street and number take precedence."""
        meta = {"endereco": "AV NORTE", "numero": "100", "complemento": "LOJA 2", "bairro": "ENCRUZILHADA"}
        assert extract_address(meta) == "AV NORTE, 100, ENCRUZILHADA"

    def test_street_and_complement(self):
        """Complement stands in for a missing number."""
        meta = {"endereco": "AV NORTE", "numero": "", "complemento": "LOJA 2", "bairro": "ENCRUZILHADA"}
        assert extract_address(meta) == "AV NORTE, LOJA 2, ENCRUZILHADA"

    def test_cross_street_uses_cross_neighborhood(self):
        """Cross streets use the cross-street neighborhood."""
        meta = {
            "endereco": "RUA A",
            "endereco_cruzamento": "RUA B",
            "bairro": "BOA VISTA",
            "bairro_cruzamento": "SANTO AMARO",
        }
        assert extract_address(meta) == "RUA A com RUA B, SANTO AMARO"

    def test_cross_street_falls_back_to_neighborhood(self):
        """Without a cross-street neighborhood the main one is used."""
        meta = {"endereco": "RUA A", "endereco_cruzamento": "RUA B", "bairro": "BOA VISTA"}
        assert extract_address(meta) == "RUA A com RUA B, BOA VISTA"

    def test_street_only(self):
        """Street and neighborhood alone."""
        assert extract_address({"endereco": "RUA A", "bairro": "DERBY"}) == "RUA A, DERBY"

    def test_none_values(self):
        """None values count as empty."""
        assert extract_address({"endereco": None, "numero": None, "bairro": "DERBY"}) == ", DERBY"


class TestGeocodeAddress:
    """Nominatim lookups through an injected session."""

    def test_first_hit(self):
        """The first hit is returned and the request is well formed."""
        session = FakeSession(FakeResponse([{"lat": "-8.05", "lon": "-34.9"}, {"lat": "0", "lon": "0"}]))
        coordinates = geocode_address("AV NORTE, 100, ENCRUZILHADA", session=session)

        assert coordinates == Coordinates(-8.05, -34.9)
        assert coordinates.resolved
        call = session.calls[0]
        assert call["params"] == {"q": "AV NORTE, 100, ENCRUZILHADA", "format": "json"}
        assert "User-Agent" in call["headers"]
        assert call["timeout"] > 0

    def test_no_results(self, caplog):
        """No hits give empty coordinates and a warning."""
        session = FakeSession(FakeResponse([]))
        with caplog.at_level(logging.WARNING):
            coordinates = geocode_address("nowhere", session=session)
        assert coordinates == Coordinates()
        assert not coordinates.resolved
        assert "nowhere" in caplog.text

    def test_http_error(self):
        """HTTP errors give empty coordinates."""
        session = FakeSession(FakeResponse(status_code=503))
        assert geocode_address("x", session=session) == Coordinates()

    def test_network_error(self):
        """Connection errors give empty coordinates."""
        session = FakeSession(exc=requests.ConnectionError("unreachable"))
        assert geocode_address("x", session=session) == Coordinates()

    def test_malformed_json(self):
        """Unparseable responses give empty coordinates."""
        session = FakeSession(FakeResponse(error=ValueError("not json")))
        assert geocode_address("x", session=session) == Coordinates()

    def test_missing_keys(self):
        """Hits without lat/lon give empty coordinates."""
        session = FakeSession(FakeResponse([{"display_name": "Recife"}]))
        assert geocode_address("x", session=session) == Coordinates()

    def test_module_level_requests(self, monkeypatch):
        """Without a session the requests module is used."""
        session = FakeSession(FakeResponse([{"lat": "1", "lon": "2"}]))
        monkeypatch.setattr(requests, "get", session.get)
        assert geocode_address("x") == Coordinates(1.0, 2.0)


def write_ndjson(path, records):
    path.write_text("".join(json.dumps(r) + "\n" for r in records), encoding="utf-8")


class TestGeocodeSample:
    """Sampling NDJSON output and measuring the hit rate."""

    def test_collect_all_rows(self, tmp_path):
        """Every record of every NDJSON file is read."""
        write_ndjson(tmp_path / "a_processed.ndjson", [{"tipo": "A"}, {"tipo": "B"}])
        write_ndjson(tmp_path / "b_processed.ndjson", [{"tipo": "C"}])
        (tmp_path / "a_processed.csv").write_text("tipo\nX\n")

        assert [r["tipo"] for r in collect_all_rows(tmp_path)] == ["A", "B", "C"]

    def test_pick_random_rows(self):
        """Sampling picks distinct rows."""
        rows = [{"n": i} for i in range(10)]
        sample = pick_random_rows(rows, 3, random.Random(1))
        assert len(sample) == 3
        assert len({r["n"] for r in sample}) == 3

    def test_pick_more_than_available(self):
        """Sample size is capped at the row count."""
        rows = [{"n": 1}, {"n": 2}]
        assert len(pick_random_rows(rows, 30)) == 2

    def test_success_rate(self, tmp_path):
        """Only resolved addresses count as successes."""
        records = [
            {"meta": json.dumps({"endereco": "RUA A", "numero": "1", "bairro": "DERBY"})},
            {"meta": json.dumps({"endereco": "RUA B", "numero": "2", "bairro": "DERBY"})},
            {"meta": json.dumps({"endereco": "RUA C", "bairro": "DERBY"})},
        ]
        write_ndjson(tmp_path / "a_processed.ndjson", records)

        def geocoder(address):
            return Coordinates(1.0, 2.0) if "RUA A" in address else Coordinates()

        success, tried = run_geocode_test(tmp_path, sample_size=10, geocoder=geocoder)
        assert (success, tried) == (1, 3)

    def test_bad_meta_counted_as_failure(self, tmp_path, caplog):
        """Records without meta are tried but not counted as hits."""
        write_ndjson(tmp_path / "a_processed.ndjson", [{"tipo": "A"}])

        with caplog.at_level(logging.ERROR):
            success, tried = run_geocode_test(tmp_path, geocoder=lambda address: Coordinates(1.0, 2.0))
        assert (success, tried) == (0, 1)
        assert "Error processing row" in caplog.text

    def test_empty_directory(self, tmp_path):
        """No NDJSON files give 0/0."""
        assert run_geocode_test(tmp_path, geocoder=lambda address: Coordinates()) == (0, 0)
