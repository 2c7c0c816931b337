"""fareview CLI -- search, normalize and filter flight offers.

Provides commands for viewing saved provider responses, live Amadeus
searches, price trends, airline lists, airport lookup, and credential
configuration.
"""

import difflib
import json as json_mod
import logging
import sys
from datetime import date as Date
from pathlib import Path
from collections.abc import Callable
from typing import Annotated, Any, Optional, Union

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel

from fareview.output import Formatter
from fareview.view.models import SortKey, ViewSnapshot

logger = logging.getLogger(__name__)

_stderr = Console(stderr=True)

# ---------------------------------------------------------------------------
# App and sub-apps
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="fareview",
    help="Flight offer viewer -- normalize, filter and sort provider search results.",
    no_args_is_help=True,
)

config_app = typer.Typer(
    name="config",
    help="Manage fareview configuration.",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global option types
# ---------------------------------------------------------------------------

JsonFlag = Annotated[bool, typer.Option("--json", help="Output as JSON.")]
PlainFlag = Annotated[bool, typer.Option("--plain", help="Output as plain text (no color).")]
VerboseFlag = Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output.")]
QuietFlag = Annotated[bool, typer.Option("--quiet", "-q", help="Suppress non-essential output.")]

SortOption = Annotated[SortKey, typer.Option("--sort", "-s", help="Sort key.")]
MinPriceOption = Annotated[Optional[float], typer.Option("--min-price", help="Lowest price to show.")]
MaxPriceOption = Annotated[Optional[float], typer.Option("--max-price", help="Highest price to show.")]
StopsOption = Annotated[
    str, typer.Option("--stops", help="Comma-separated stop buckets: 0, 1, 2 (2 = two or more).")
]
AirlineOption = Annotated[
    Optional[list[str]], typer.Option("--airline", "-a", help="Airline name to include (repeatable).")
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_format(json_flag: bool = False, plain_flag: bool = False) -> str:
    """--json wins over --plain; otherwise rich on a terminal, plain when piped."""
    if json_flag:
        return "json"
    if plain_flag or not sys.stdout.isatty():
        return "plain"
    return "rich"


def _setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route fareview's loggers to stderr at the level the flags ask for."""
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _known_airport_codes() -> frozenset[str]:
    """IATA airport codes from airportsdata, or nothing if it cannot load."""
    try:
        import airportsdata

        return frozenset(airportsdata.load("IATA"))
    except Exception as exc:
        logger.debug("Airport table unavailable: %s", exc)
        return frozenset()


def _warn_unknown_airport(code: str, label: str) -> None:
    """Warn when a code is not a known airport.

    City codes (NYC, LON) are valid search locations but are not in the
    airport table, so the search still goes ahead and the provider has the
    final say.
    """
    known = _known_airport_codes()
    code = code.upper()
    if not known or code in known:
        return
    msg = f"{code} is not a known {label} airport; searching it as a city code."
    matches = difflib.get_close_matches(code, sorted(known), n=3, cutoff=0.6)
    if matches:
        msg += f" Did you mean: {', '.join(matches)}?"
    _stderr.print(f"[yellow]Warning:[/yellow] {msg}", soft_wrap=True)


def _validation_lines(header: str, exc: ValidationError) -> str:
    lines = [header]
    for err in exc.errors():
        loc = " -> ".join(str(x) for x in err["loc"])
        lines.append(f"  {loc}: {err['msg']}" if loc else f"  {err['msg']}")
    return "\n".join(lines)


def _load_response(file: str) -> dict:
    """Load a saved provider response (JSON or YAML).

    Provides helpful error messages for missing files, parse errors and
    payloads that are not a mapping.
    """
    path = Path(file)

    if not path.exists():
        hint = ""
        if not path.is_absolute():
            hint = f" (looked in {Path.cwd()})"
        raise typer.BadParameter(
            f"File not found: {file}{hint}\n  Hint: Check the file path and try again."
        )

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            raw = json_mod.loads(text)
        except json_mod.JSONDecodeError as exc:
            raise typer.BadParameter(
                f"JSON parse error in {file} at line {exc.lineno}, column {exc.colno}: {exc.msg}"
            )
    else:
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            msg = f"YAML parse error in {file}"
            if hasattr(exc, "problem_mark") and exc.problem_mark is not None:
                mark = exc.problem_mark
                msg += f" at line {mark.line + 1}, column {mark.column + 1}"
            if hasattr(exc, "problem") and exc.problem:
                msg += f": {exc.problem}"
            raise typer.BadParameter(msg)

    if not isinstance(raw, dict):
        raise typer.BadParameter(
            f"Expected a mapping with a 'data' list in {file}, got {type(raw).__name__}"
        )
    return raw


def _parse_stops(stops: str) -> set[int]:
    """Parse '0,1,2' into a set of stop buckets."""
    buckets = set()
    for part in stops.split(","):
        part = part.strip()
        if not part:
            continue
        if part.endswith("+"):
            part = part[:-1]
        try:
            value = int(part)
        except ValueError:
            raise typer.BadParameter(f"Invalid stop bucket {part!r}. Use 0, 1 or 2.")
        if value < 0:
            raise typer.BadParameter(f"Invalid stop bucket {value}. Use 0, 1 or 2.")
        buckets.add(value)
    return buckets


def _build_snapshot(
    payload: dict,
    sort: SortKey,
    min_price: Optional[float],
    max_price: Optional[float],
    stops: str,
    airlines: Optional[list[str]],
) -> ViewSnapshot:
    """Normalize a response and apply the command-line filters."""
    from fareview.normalizer import normalize_offers
    from fareview.view.engine import ViewEngine

    try:
        result = normalize_offers(payload)
    except ValidationError as exc:
        raise typer.BadParameter(_validation_lines("Invalid provider response:", exc))

    if result.all_malformed:
        _error_panel(
            f"All {result.dropped} offers in the response were malformed.\n"
            "Run with --verbose to see why each offer was dropped."
        )
        raise typer.Exit(code=1)

    engine = ViewEngine()
    engine.load(result)

    changes: dict[str, Any] = {"sort_key": sort}
    if min_price is not None or max_price is not None:
        bounds = engine.bounds
        changes["price_range"] = {
            "min": bounds.min if min_price is None else min_price,
            "max": bounds.max if max_price is None else max_price,
        }
    if stops:
        changes["stops"] = _parse_stops(stops)
    if airlines:
        changes["airlines"] = set(airlines)

    try:
        return engine.update_filter(**changes)
    except ValidationError as exc:
        raise typer.BadParameter(_validation_lines("Invalid filter:", exc))


def _error_panel(message: str) -> None:
    _stderr.print(Panel(message, title="Error", border_style="red"))


def _show_snapshot(
    source: Union[str, dict],
    render: Callable[[Formatter, ViewSnapshot], str],
    sort: SortKey = SortKey.PRICE,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    stops: str = "",
    airlines: Optional[list[str]] = None,
    json_flag: bool = False,
    plain_flag: bool = False,
) -> None:
    """Filter a response and print one rendering of the view.

    ``source`` is a path to a saved response or an already fetched payload.

    Usage errors propagate to Typer (exit 2). Anything else is shown in an
    error panel and exits 2.
    """
    from fareview.output import get_formatter

    try:
        payload = _load_response(source) if isinstance(source, str) else source
        snapshot = _build_snapshot(payload, sort, min_price, max_price, stops, airlines)
        typer.echo(render(get_formatter(_get_format(json_flag, plain_flag)), snapshot))
    except (typer.Exit, typer.BadParameter):
        raise
    except Exception as exc:
        logger.debug("Rendering the view failed", exc_info=True)
        _error_panel(str(exc))
        raise typer.Exit(code=2)


# ---------------------------------------------------------------------------
# Result commands
# ---------------------------------------------------------------------------


@app.command()
def view(
    file: str = typer.Argument(help="Path to a saved flight-offers response (JSON or YAML)"),
    sort: SortOption = SortKey.PRICE,
    min_price: MinPriceOption = None,
    max_price: MaxPriceOption = None,
    stops: StopsOption = "",
    airline: AirlineOption = None,
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Show the filtered, sorted flights of a saved search response."""
    _setup_logging(verbose, quiet)
    _show_snapshot(
        file, lambda fmt, snap: fmt.format_view(snap),
        sort, min_price, max_price, stops, airline, json, plain,
    )


@app.command()
def chart(
    file: str = typer.Argument(help="Path to a saved flight-offers response (JSON or YAML)"),
    min_price: MinPriceOption = None,
    max_price: MaxPriceOption = None,
    stops: StopsOption = "",
    airline: AirlineOption = None,
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Show the price trend by departure time."""
    _setup_logging(verbose, quiet)
    _show_snapshot(
        file, lambda fmt, snap: fmt.format_chart(snap),
        SortKey.DEPARTURE, min_price, max_price, stops, airline, json, plain,
    )


@app.command()
def airlines(
    file: str = typer.Argument(help="Path to a saved flight-offers response (JSON or YAML)"),
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """List the airlines present in a saved search response."""
    _setup_logging(verbose, quiet)
    _show_snapshot(file, lambda fmt, snap: fmt.format_airlines(snap), json_flag=json, plain_flag=plain)


# ---------------------------------------------------------------------------
# Provider commands
# ---------------------------------------------------------------------------


@app.command()
def search(
    origin: Annotated[str, typer.Option("--origin", "-o", help="Origin airport or city IATA code")] = "",
    destination: Annotated[str, typer.Option("--destination", "-d", help="Destination airport or city IATA code")] = "",
    departure_date: Annotated[str, typer.Option("--date", help="Departure date (YYYY-MM-DD)")] = "",
    return_date: Annotated[str, typer.Option("--return-date", help="Return date (YYYY-MM-DD)")] = "",
    adults: Annotated[int, typer.Option("--adults", help="Adult passengers")] = 1,
    children: Annotated[int, typer.Option("--children", help="Child passengers")] = 0,
    infants: Annotated[int, typer.Option("--infants", help="Infant passengers")] = 0,
    cabin: Annotated[str, typer.Option("--cabin", help="ECONOMY, PREMIUM_ECONOMY, BUSINESS or FIRST")] = "",
    nonstop: Annotated[bool, typer.Option("--nonstop", help="Only non-stop offers")] = False,
    max_results: Annotated[int, typer.Option("--max", help="Maximum offers to request")] = 50,
    save: Annotated[str, typer.Option("--save", help="Also write the raw response to this JSON file")] = "",
    sort: SortOption = SortKey.PRICE,
    min_price: MinPriceOption = None,
    max_price: MaxPriceOption = None,
    stops: StopsOption = "",
    airline: AirlineOption = None,
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Search Amadeus for flight offers and show the filtered results."""
    _setup_logging(verbose, quiet)

    if not origin or not destination:
        _error_panel("Missing --origin and/or --destination. Example: --origin JFK --destination LHR")
        raise typer.Exit(code=2)
    if not departure_date:
        _error_panel("Missing --date. Example: --date 2025-09-01")
        raise typer.Exit(code=2)

    _warn_unknown_airport(origin, "origin")
    _warn_unknown_airport(destination, "destination")

    from fareview.provider.amadeus import AmadeusClient, AmadeusError, FlightSearchParams

    try:
        params = FlightSearchParams(
            origin=origin,
            destination=destination,
            departure_date=Date.fromisoformat(departure_date),
            return_date=Date.fromisoformat(return_date) if return_date else None,
            adults=adults,
            children=children or None,
            infants=infants or None,
            travel_class=cabin or None,
            non_stop=nonstop,
            max_results=max_results,
        )
    except ValidationError as exc:
        raise typer.BadParameter(_validation_lines("Invalid search:", exc))
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid date: {exc}")

    try:
        payload = AmadeusClient().search_flights(params)
    except AmadeusError as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)

    if save:
        Path(save).write_text(json_mod.dumps(payload, indent=2), encoding="utf-8")
        if not quiet:
            typer.echo(f"Response saved to {save}", err=True)

    _show_snapshot(
        payload, lambda fmt, snap: fmt.format_view(snap),
        sort, min_price, max_price, stops, airline, json, plain,
    )


@app.command()
def airports(
    keyword: str = typer.Argument(help="City or airport name fragment"),
    limit: Annotated[int, typer.Option("--limit", "-n", help="Max results")] = 10,
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Look up airports and cities by keyword."""
    _setup_logging(verbose, quiet)
    if len(keyword.strip()) < 2:
        raise typer.BadParameter("Keyword must be at least 2 characters.")
    from fareview.output import get_formatter
    from fareview.provider.amadeus import AmadeusClient

    try:
        locations = AmadeusClient().search_locations(keyword.strip(), limit=limit)
        typer.echo(get_formatter(_get_format(json, plain)).format_locations(locations))
    except Exception as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)


# ---------------------------------------------------------------------------
# Config commands
# ---------------------------------------------------------------------------


@config_app.command(name="set-amadeus")
def config_set_amadeus(
    api_key: str = typer.Option(..., prompt=True, help="Amadeus API key"),
    api_secret: str = typer.Option(..., prompt=True, hide_input=True, help="Amadeus API secret"),
) -> None:
    """Store Amadeus credentials in system keyring."""
    from fareview.config import Credentials, save_credentials

    try:
        save_credentials(Credentials(api_key, api_secret))
        typer.echo("Amadeus credentials saved to system keyring.")
    except ImportError:
        _error_panel("keyring library not available. Install with: pip install keyring")
        raise typer.Exit(code=1)
    except Exception as exc:
        _error_panel(f"Failed to save credentials: {exc}")
        raise typer.Exit(code=1)


@config_app.command(name="status")
def config_status(
    json: JsonFlag = False,
) -> None:
    """Check whether Amadeus credentials are configured."""
    import os

    from fareview.config import amadeus_base_url, load_credentials

    credentials = load_credentials()
    source = None
    if credentials is not None:
        from_env = os.environ.get("AMADEUS_API_KEY", "").strip() and os.environ.get(
            "AMADEUS_API_SECRET", ""
        ).strip()
        source = "environment" if from_env else "keyring"

    if json:
        data = {
            "has_credentials": credentials is not None,
            "source": source,
            "base_url": amadeus_base_url(),
        }
        typer.echo(json_mod.dumps(data, indent=2))
        return

    if credentials is not None:
        typer.echo(f"Amadeus credentials: configured ({source})")
    else:
        typer.echo("Amadeus credentials: not configured")
        typer.echo("Run `fareview config set-amadeus` or set AMADEUS_API_KEY / AMADEUS_API_SECRET.")
    typer.echo(f"API base URL: {amadeus_base_url()}")


@config_app.command(name="clear")
def config_clear() -> None:
    """Clear saved Amadeus credentials."""
    from fareview.config import clear_credentials

    try:
        clear_credentials()
        typer.echo("Amadeus credentials cleared from keyring.")
    except ImportError:
        _error_panel("keyring library not available.")
        raise typer.Exit(code=1)
    except Exception:
        typer.echo("No credentials to clear.")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
