"""
Geocoding of incident addresses.

Builds a free-text search string from the structured address columns of an
incident and resolves it through the Nominatim search API. Failures of any
kind resolve to ``Coordinates(None, None)``; there is no retry.

Usage:
    python -m incident_etl.main geocode-test --output-dir processed -n 30
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

import requests

from incident_etl.config import (
    GEOCODE_SAMPLE_SIZE,
    GEOCODE_TIMEOUT,
    GEOCODER_USER_AGENT,
    NOMINATIM_API_URL,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coordinates:
    latitude: float | None = None
    longitude: float | None = None

    @property
    def resolved(self) -> bool:
        return self.latitude is not None and self.longitude is not None


def extract_address(meta: Mapping[str, Any]) -> str:
    """Assemble a search string from the address columns of an incident.

    Precedence:
        1. street, number, neighborhood
        2. street, complement, neighborhood
        3. street "com" cross street, cross-street neighborhood (or neighborhood)
        4. street, neighborhood

    Examples:
        >>> extract_address({"endereco": "AV NORTE", "numero": "100", "bairro": "ENCRUZILHADA"})
        'AV NORTE, 100, ENCRUZILHADA'
        >>> extract_address({"endereco": "RUA A", "endereco_cruzamento": "RUA B", "bairro": "BOA VISTA"})
        'RUA A com RUA B, BOA VISTA'
    """
    endereco = meta.get("endereco") or ""
    numero = meta.get("numero") or ""
    bairro = meta.get("bairro") or ""
    complemento = meta.get("complemento") or ""
    endereco_cruzamento = meta.get("endereco_cruzamento") or ""
    bairro_cruzamento = meta.get("bairro_cruzamento") or ""

    if endereco and numero:
        return f"{endereco}, {numero}, {bairro}"
    if endereco and complemento:
        return f"{endereco}, {complemento}, {bairro}"
    if endereco and endereco_cruzamento:
        return f"{endereco} com {endereco_cruzamento}, {bairro_cruzamento or bairro}"
    return f"{endereco}, {bairro}".strip()


def geocode_address(
    address: str,
    session: requests.Session | None = None,
    api_url: str = NOMINATIM_API_URL,
    timeout: float = GEOCODE_TIMEOUT,
    log: logging.Logger | None = None,
) -> Coordinates:
    """Resolve an address to coordinates with Nominatim.

    Args:
        address: Free-text address.
        session: Optional requests session to reuse connections.
        api_url: Search endpoint.
        timeout: Request timeout in seconds.
        log: Logger for failures.

    Returns:
        Coordinates of the first hit, or ``Coordinates(None, None)`` on any
        failure (network error, HTTP error, no results, malformed response).
    """
    http = session or requests
    params = {"q": address, "format": "json"}
    headers = {"User-Agent": GEOCODER_USER_AGENT}

    try:
        resp = http.get(api_url, params=params, headers=headers, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
        if not data:
            raise ValueError("No results found")
        return Coordinates(latitude=float(data[0]["lat"]), longitude=float(data[0]["lon"]))
    except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as e:
        (log or logger).warning(f'Geocoding failed for "{address}": {e}')
        return Coordinates()


def collect_all_rows(directory: str | Path) -> list[dict[str, Any]]:
    """Read every record of every ``*.ndjson`` file in a directory."""
    rows: list[dict[str, Any]] = []
    for path in sorted(Path(directory).glob("*.ndjson")):
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    rows.append(json.loads(line))
    return rows


def pick_random_rows(
    rows: list[dict[str, Any]],
    sample_size: int = GEOCODE_SAMPLE_SIZE,
    rng: random.Random | None = None,
) -> list[dict[str, Any]]:
    """Pick up to ``sample_size`` distinct rows at random."""
    rng = rng or random.Random()
    return rng.sample(rows, min(sample_size, len(rows)))


def run_geocode_test(
    directory: str | Path,
    sample_size: int = GEOCODE_SAMPLE_SIZE,
    geocoder: Callable[[str], Coordinates] = geocode_address,
    rng: random.Random | None = None,
    log: logging.Logger | None = None,
) -> tuple[int, int]:
    """Geocode a random sample of NDJSON records and report the hit rate.

    Args:
        directory: Directory holding ``*.ndjson`` output.
        sample_size: Number of records to try.
        geocoder: ``address -> Coordinates`` function.
        rng: Random source, for reproducible samples.
        log: Logger for per-row problems.

    Returns:
        Tuple of (successful geocodes, records tried).
    """
    log = log or logger
    sample = pick_random_rows(collect_all_rows(directory), sample_size, rng)

    success_count = 0
    for row in sample:
        try:
            meta = json.loads(row["meta"])
        except (KeyError, TypeError, ValueError) as e:
            log.error(f"Error processing row: {e}")
            continue

        address = extract_address(meta)
        coordinates = geocoder(address)
        log.info(f"Address: {address} -> {coordinates.latitude}, {coordinates.longitude}")
        if coordinates.resolved:
            success_count += 1

    return success_count, len(sample)
