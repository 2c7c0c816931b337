"""Shared test fixtures for fareview."""

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import pytest
import yaml

from fareview.models import NormalizedFlight, SegmentDetail

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def load_fixture():
    """Return a function that loads a JSON or YAML fixture file."""

    def _load(name: str) -> dict:
        path = FIXTURES_DIR / name
        with open(path) as f:
            if path.suffix == ".json":
                return json.load(f)
            return yaml.safe_load(f)

    return _load


@pytest.fixture
def jfk_lhr_response(load_fixture):
    """Five JFK-LHR offers: nonstops, a 1-stop and a 2-stop."""
    return load_fixture("jfk_lhr.json")


@pytest.fixture
def malformed_response(load_fixture):
    """Three offers, none of which can be normalized."""
    return load_fixture("malformed_offers.yaml")


@pytest.fixture
def make_flight():
    """Return a factory for NormalizedFlight records with consistent segments."""

    def _make(
        id: str = "1",
        price: float = 100.0,
        airline: str = "Test Air",
        stops: int = 0,
        departure: str = "08:00",
        arrival: str = "12:00",
        duration_minutes: Optional[int] = 240,
        duration_label: Optional[str] = None,
        currency: str = "USD",
    ) -> NormalizedFlight:
        start = datetime.fromisoformat(f"2025-09-01T{departure}:00")
        segments = []
        for i in range(stops + 1):
            dep = start + timedelta(hours=3 * i)
            segments.append(
                SegmentDetail(
                    departure_airport=f"A{i:02d}",
                    departure_at=dep,
                    arrival_airport=f"A{i + 1:02d}",
                    arrival_at=dep + timedelta(hours=2),
                    carrier_code="TA",
                    carrier_name=airline,
                    flight_number=str(100 + i),
                )
            )
        if duration_label is None:
            if duration_minutes is None:
                duration_label = "PT"
            else:
                hours, minutes = divmod(duration_minutes, 60)
                duration_label = f"{hours}h {minutes}m"
        return NormalizedFlight(
            id=id,
            airline=airline,
            airline_code="TA",
            departure_time=departure,
            arrival_time=arrival,
            departure_airport="A00",
            arrival_airport=f"A{stops + 1:02d}",
            duration_label=duration_label,
            duration_minutes=duration_minutes,
            stop_count=stops,
            price=price,
            currency=currency,
            segments=tuple(segments),
            layovers=tuple(f"A{i + 1:02d} (1h 0m)" for i in range(stops)),
        )

    return _make
