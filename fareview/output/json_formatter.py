"""JSON output formatter -- valid JSON suitable for piping to jq."""

from __future__ import annotations

import json

from fareview.provider.amadeus import Location
from fareview.view.chart import lowest_price_by_time, summarize_prices
from fareview.view.models import FilterSpec, ViewSnapshot


def _filter_data(spec: FilterSpec) -> dict:
    return {
        "price_range": spec.price_range.model_dump(mode="json"),
        "stops": sorted(spec.stops),
        "airlines": sorted(spec.airlines),
        "sort_key": spec.sort_key.value,
    }


class JsonFormatter:
    """Format view snapshots as pretty-printed JSON."""

    def format_view(self, snapshot: ViewSnapshot) -> str:
        """Format the current view as JSON."""
        data = {
            "type": "flight_view",
            "summary": {
                "status": snapshot.status.value,
                "total_count": snapshot.total_count,
                "visible_count": snapshot.visible_count,
                "dropped_count": snapshot.dropped_count,
            },
            "filter": _filter_data(snapshot.filter),
            "bounds": snapshot.bounds.model_dump(mode="json"),
            "available_airlines": list(snapshot.available_airlines),
            "flights": [f.model_dump(mode="json") for f in snapshot.current_view],
        }
        return json.dumps(data, indent=2)

    def format_chart(self, snapshot: ViewSnapshot) -> str:
        """Format the chart series, grouped series and price summary as JSON."""
        data = {
            "type": "price_chart",
            "summary": summarize_prices(snapshot.chart_series).model_dump(mode="json"),
            "points": [p.model_dump(mode="json") for p in snapshot.chart_series],
            "lowest_by_time": [
                p.model_dump(mode="json") for p in lowest_price_by_time(snapshot.chart_series)
            ],
        }
        return json.dumps(data, indent=2)

    def format_airlines(self, snapshot: ViewSnapshot) -> str:
        """Format the available airlines as JSON."""
        data = {
            "type": "available_airlines",
            "count": len(snapshot.available_airlines),
            "airlines": list(snapshot.available_airlines),
        }
        return json.dumps(data, indent=2)

    def format_locations(self, locations: list[Location]) -> str:
        """Format airport search results as JSON."""
        data = {
            "type": "locations",
            "count": len(locations),
            "locations": [loc.model_dump(mode="json") for loc in locations],
        }
        return json.dumps(data, indent=2)
