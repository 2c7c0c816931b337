"""Output formatters for fareview.

Provides a Formatter protocol and three implementations:
- RichFormatter: colored Rich tables and panels
- PlainFormatter: plain text without ANSI escapes
- JsonFormatter: valid JSON for piping to jq
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from fareview.provider.amadeus import Location
    from fareview.view.models import ViewSnapshot


class Formatter(Protocol):
    """Protocol for formatting view snapshots."""

    def format_view(self, snapshot: ViewSnapshot) -> str:
        """Format the current view as a flight list."""
        ...

    def format_chart(self, snapshot: ViewSnapshot) -> str:
        """Format the price trend of the current view."""
        ...

    def format_airlines(self, snapshot: ViewSnapshot) -> str:
        """Format the airlines present in the working set."""
        ...

    def format_locations(self, locations: list[Location]) -> str:
        """Format airport search results."""
        ...


def stops_label(stop_count: int) -> str:
    """'Non-stop', '1 stop', '2 stops'."""
    if stop_count == 0:
        return "Non-stop"
    return f"{stop_count} stop{'s' if stop_count > 1 else ''}"


def get_formatter(name: str = "rich") -> Formatter:
    """Get a formatter by name.

    Args:
        name: One of "rich", "plain", "json".

    Returns:
        A Formatter instance.

    Raises:
        ValueError: If the name is not recognized.
    """
    if name == "rich":
        from fareview.output.rich_formatter import RichFormatter

        return RichFormatter()
    elif name == "plain":
        from fareview.output.plain_formatter import PlainFormatter

        return PlainFormatter()
    elif name == "json":
        from fareview.output.json_formatter import JsonFormatter

        return JsonFormatter()
    else:
        raise ValueError(f"Unknown formatter: {name!r}. Use 'rich', 'plain', or 'json'.")
