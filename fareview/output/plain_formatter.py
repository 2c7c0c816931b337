"""Plain text output formatter -- no ANSI escapes."""

from __future__ import annotations

from fareview.output import stops_label
from fareview.provider.amadeus import Location
from fareview.view.chart import lowest_price_by_time, summarize_prices
from fareview.view.models import ViewSnapshot


def _header(title: str) -> str:
    """Create a plain text section header."""
    return f"\n{'=' * 60}\n  {title}\n{'=' * 60}\n"


def _subheader(title: str) -> str:
    """Create a plain text sub-header."""
    return f"\n--- {title} ---\n"


def _currency(snapshot: ViewSnapshot) -> str:
    flights = snapshot.current_view or snapshot.working_set
    return flights[0].currency if flights else ""


class PlainFormatter:
    """Format view snapshots as plain text without ANSI escapes."""

    def format_view(self, snapshot: ViewSnapshot) -> str:
        """Format the current view as a plain text table."""
        lines: list[str] = []
        spec = snapshot.filter
        currency = _currency(snapshot)

        lines.append(_header("Flight Results"))
        lines.append(f"  Showing:    {snapshot.visible_count} of {snapshot.total_count} flights")
        lines.append(f"  Sorted by:  {spec.sort_key.label}")
        lines.append(
            f"  Price:      {spec.price_range.min:,.0f} - {spec.price_range.max:,.0f} {currency}".rstrip()
        )
        if spec.stops:
            lines.append(f"  Stops:      {', '.join(str(s) for s in sorted(spec.stops))}")
        if spec.airlines:
            lines.append(f"  Airlines:   {', '.join(sorted(spec.airlines))}")
        if snapshot.dropped_count:
            lines.append(f"  Dropped:    {snapshot.dropped_count} malformed offer(s)")

        if not snapshot.current_view:
            lines.append("\n  No flights match the current filters.")
            return "\n".join(lines)

        lines.append(_subheader("Flights"))
        lines.append(
            f"  {'#':>3}  {'Airline':<22} {'Depart':<6} {'Arrive':<6} "
            f"{'Route':<8} {'Duration':<9} {'Stops':<9} {'Price':>12}"
        )
        lines.append(
            f"  {'-' * 3}  {'-' * 22} {'-' * 6} {'-' * 6} "
            f"{'-' * 8} {'-' * 9} {'-' * 9} {'-' * 12}"
        )
        for i, f in enumerate(snapshot.current_view, 1):
            price = f"{f.currency} {f.price:,.2f}"
            lines.append(
                f"  {i:>3}  {f.airline[:22]:<22} {f.departure_time:<6} {f.arrival_time:<6} "
                f"{f.route:<8} {f.duration_label:<9} {stops_label(f.stop_count):<9} {price:>12}"
            )
            if f.layovers:
                lines.append(f"  {'':>3}  via {', '.join(f.layovers)}")

        return "\n".join(lines)

    def format_chart(self, snapshot: ViewSnapshot) -> str:
        """Format the lowest price per departure time plus a summary."""
        lines: list[str] = []
        lines.append(_header("Price Trend"))

        if not snapshot.chart_series:
            lines.append("  No flights to chart.")
            return "\n".join(lines)

        summary = summarize_prices(snapshot.chart_series)
        lines.append(f"  Lowest:   {summary.lowest:,.2f}")
        lines.append(f"  Highest:  {summary.highest:,.2f}")
        lines.append(f"  Average:  {summary.average:,.0f}")
        lines.append(f"  Flights:  {summary.count}")

        lines.append(_subheader("Lowest price by departure time"))
        lines.append(f"  {'Time':<6} {'Price':>12}  {'Airline':<22} Stops")
        lines.append(f"  {'-' * 6} {'-' * 12}  {'-' * 22} {'-' * 9}")
        for p in lowest_price_by_time(snapshot.chart_series):
            lines.append(
                f"  {p.time:<6} {p.price:>12,.2f}  {p.airline[:22]:<22} {stops_label(p.stop_count)}"
            )
        return "\n".join(lines)

    def format_airlines(self, snapshot: ViewSnapshot) -> str:
        """Format the available airlines as a plain list."""
        lines: list[str] = []
        lines.append(_header("Airlines"))
        if not snapshot.available_airlines:
            lines.append("  No airlines.")
        for name in snapshot.available_airlines:
            lines.append(f"  {name}")
        return "\n".join(lines)

    def format_locations(self, locations: list[Location]) -> str:
        """Format airport search results as a plain list."""
        lines: list[str] = []
        lines.append(_header("Airports"))
        if not locations:
            lines.append("  No matching airports.")
        for loc in locations:
            lines.append(f"  {loc.display}")
        return "\n".join(lines)
