"""Stable, ascending sorting of normalized flights."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from fareview.durations import parse_duration_label
from fareview.models import NormalizedFlight
from fareview.view.models import SortKey


def duration_sort_minutes(flight: NormalizedFlight) -> int:
    """Minutes used to order by duration.

    Uses the machine-readable duration when the offer had one, otherwise
    parses the display label (unparseable labels count as 0).
    """
    if flight.duration_minutes is not None:
        return flight.duration_minutes
    return parse_duration_label(flight.duration_label)


# "HH:mm" labels sort lexicographically in chronological order within a day
_SORT_KEYS: dict[SortKey, Callable[[NormalizedFlight], object]] = {
    SortKey.PRICE: lambda f: f.price,
    SortKey.DURATION: duration_sort_minutes,
    SortKey.DEPARTURE: lambda f: f.departure_time,
    SortKey.ARRIVAL: lambda f: f.arrival_time,
}


def sort_flights(flights: Iterable[NormalizedFlight], key: SortKey = SortKey.PRICE) -> list[NormalizedFlight]:
    """Sort ascending by one key. Equal keys keep their input order."""
    return sorted(flights, key=_SORT_KEYS[SortKey(key)])
