"""Filter predicates for the results view.

Each predicate looks at one flight; filter_flights() AND-combines them in
order: price, stops, airlines.
"""

from __future__ import annotations

from collections.abc import Iterable

from fareview.models import NormalizedFlight
from fareview.view.models import FilterSpec, PriceRange

# Bucket value that means "this many stops or more"
MULTI_STOP_BUCKET = 2


def matches_price(flight: NormalizedFlight, price_range: PriceRange) -> bool:
    """Inclusive on both ends."""
    return price_range.contains(flight.price)


def matches_stops(flight: NormalizedFlight, stops: frozenset[int]) -> bool:
    """True if any selected bucket matches. No buckets -> everything passes."""
    if not stops:
        return True
    for bucket in stops:
        if bucket == MULTI_STOP_BUCKET:
            if flight.stop_count >= MULTI_STOP_BUCKET:
                return True
        elif flight.stop_count == bucket:
            return True
    return False


def matches_airlines(flight: NormalizedFlight, airlines: frozenset[str]) -> bool:
    if not airlines:
        return True
    return flight.airline in airlines


def matches(flight: NormalizedFlight, spec: FilterSpec) -> bool:
    return (
        matches_price(flight, spec.price_range)
        and matches_stops(flight, spec.stops)
        and matches_airlines(flight, spec.airlines)
    )


def filter_flights(flights: Iterable[NormalizedFlight], spec: FilterSpec) -> list[NormalizedFlight]:
    """Flights passing every predicate, in their original order."""
    return [f for f in flights if matches(f, spec)]
