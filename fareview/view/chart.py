"""Price chart projection and aggregation."""

from __future__ import annotations

from collections.abc import Iterable

from fareview.models import NormalizedFlight
from fareview.view.models import ChartPoint, PriceSummary


def project_chart(flights: Iterable[NormalizedFlight]) -> tuple[ChartPoint, ...]:
    """One point per flight, in the order given."""
    return tuple(
        ChartPoint(
            time=f.departure_time,
            price=f.price,
            flight_id=f.id,
            stop_count=f.stop_count,
            airline=f.airline,
        )
        for f in flights
    )


def lowest_price_by_time(points: Iterable[ChartPoint]) -> list[ChartPoint]:
    """Collapse points sharing a departure time to the cheapest one.

    The first point seen wins ties. Result is ordered by time.
    """
    best: dict[str, ChartPoint] = {}
    for point in points:
        current = best.get(point.time)
        if current is None or point.price < current.price:
            best[point.time] = point
    return sorted(best.values(), key=lambda p: p.time)


def summarize_prices(points: Iterable[ChartPoint]) -> PriceSummary:
    """Lowest, highest and average price. All zero when there are no points."""
    prices = [p.price for p in points]
    if not prices:
        return PriceSummary()
    return PriceSummary(
        lowest=min(prices),
        highest=max(prices),
        average=sum(prices) / len(prices),
        count=len(prices),
    )
