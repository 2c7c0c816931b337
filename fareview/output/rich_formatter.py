"""Rich-based output formatter with colored tables and panels."""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from fareview.output import stops_label
from fareview.provider.amadeus import Location
from fareview.view.chart import lowest_price_by_time, summarize_prices
from fareview.view.models import ViewSnapshot

# Stop count -> Rich style mapping (2 and above share the last style)
_STOP_STYLES = {
    0: "bold green",
    1: "yellow",
    2: "red",
}


def _render(renderable) -> str:
    """Render a Rich object to a string."""
    buf = StringIO()
    console = Console(file=buf, force_terminal=True, width=120)
    console.print(renderable)
    return buf.getvalue()


def _stops_text(stop_count: int) -> Text:
    return Text(stops_label(stop_count), style=_STOP_STYLES[min(stop_count, 2)])


class RichFormatter:
    """Format view snapshots using Rich tables and panels."""

    def format_view(self, snapshot: ViewSnapshot) -> str:
        """Format the current view with a summary panel and a flights table."""
        parts: list[str] = []
        spec = snapshot.filter

        summary = Text()
        summary.append(f"Showing:   {snapshot.visible_count} of {snapshot.total_count} flights\n")
        summary.append(f"Sorted by: {spec.sort_key.label}\n")
        summary.append(f"Price:     {spec.price_range.min:,.0f} - {spec.price_range.max:,.0f}\n")
        if spec.stops:
            summary.append(f"Stops:     {', '.join(str(s) for s in sorted(spec.stops))}\n")
        if spec.airlines:
            summary.append(f"Airlines:  {', '.join(sorted(spec.airlines))}\n")
        if snapshot.dropped_count:
            summary.append(
                f"Dropped:   {snapshot.dropped_count} malformed offer(s)\n", style="yellow"
            )
        parts.append(_render(Panel(summary, title="Flight Results", border_style="cyan")))

        if not snapshot.current_view:
            parts.append(_render(Text("No flights match the current filters.", style="yellow")))
            return "\n".join(parts)

        table = Table(title="Flights", show_lines=True)
        table.add_column("#", style="dim", justify="right")
        table.add_column("Airline", style="cyan")
        table.add_column("Depart")
        table.add_column("Arrive")
        table.add_column("Route")
        table.add_column("Duration")
        table.add_column("Stops")
        table.add_column("Layovers")
        table.add_column("Price", justify="right", style="bold")

        for i, f in enumerate(snapshot.current_view, 1):
            table.add_row(
                str(i),
                f.airline,
                f.departure_time,
                f.arrival_time,
                f.route,
                f.duration_label,
                _stops_text(f.stop_count),
                "\n".join(f.layovers),
                f"{f.currency} {f.price:,.2f}",
            )

        parts.append(_render(table))
        return "\n".join(parts)

    def format_chart(self, snapshot: ViewSnapshot) -> str:
        """Format the price trend as a table of lowest prices per time slot."""
        if not snapshot.chart_series:
            return _render(Text("No flights to chart.", style="yellow"))

        parts: list[str] = []
        summary = summarize_prices(snapshot.chart_series)
        text = Text()
        text.append("Lowest:  ")
        text.append(f"{summary.lowest:,.2f}\n", style="bold green")
        text.append("Highest: ")
        text.append(f"{summary.highest:,.2f}\n", style="bold red")
        text.append("Average: ")
        text.append(f"{summary.average:,.0f}\n", style="bold blue")
        text.append(f"Flights: {summary.count}")
        parts.append(_render(Panel(text, title="Price Trend", border_style="cyan")))

        grouped = lowest_price_by_time(snapshot.chart_series)
        top = max(p.price for p in grouped) or 1.0
        table = Table(title="Lowest price by departure time")
        table.add_column("Time", style="cyan")
        table.add_column("Price", justify="right")
        table.add_column("")
        table.add_column("Airline")
        table.add_column("Stops")
        for p in grouped:
            bar = "#" * max(1, round(30 * p.price / top))
            table.add_row(p.time, f"{p.price:,.2f}", Text(bar, style="blue"), p.airline, _stops_text(p.stop_count))
        parts.append(_render(table))
        return "\n".join(parts)

    def format_airlines(self, snapshot: ViewSnapshot) -> str:
        """Format the available airlines as a single-column table."""
        table = Table(title="Airlines")
        table.add_column("Airline", style="cyan")
        for name in snapshot.available_airlines:
            table.add_row(name)
        return _render(table)

    def format_locations(self, locations: list[Location]) -> str:
        """Format airport search results as a table."""
        table = Table(title="Airports")
        table.add_column("Code", style="cyan")
        table.add_column("Name")
        table.add_column("City")
        table.add_column("Country")
        for loc in locations:
            table.add_row(loc.iata_code, loc.name, loc.city, loc.country)
        return _render(table)
