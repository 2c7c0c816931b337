"""View engine: working set + filter -> always-consistent derived view.

The engine is the only writer of view state. Every change builds a complete
new ViewSnapshot and publishes it with a single assignment, so readers see
either the old snapshot or the new one, never a mix. Writers serialize on a
lock; readers never block.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Iterable
from typing import Any

from fareview.config import DEFAULT_PRICE_BOUNDS
from fareview.models import NormalizedFlight
from fareview.normalizer import NormalizationResult
from fareview.view.chart import project_chart
from fareview.view.filters import filter_flights
from fareview.view.models import (
    ChartPoint,
    FilterSpec,
    PriceRange,
    ViewSnapshot,
    ViewStatus,
)
from fareview.view.sorter import sort_flights

logger = logging.getLogger(__name__)


def price_bounds(flights: Iterable[NormalizedFlight]) -> PriceRange:
    """floor(min price) .. ceil(max price), or the default window if empty."""
    prices = [f.price for f in flights]
    if not prices:
        return PriceRange(min=DEFAULT_PRICE_BOUNDS[0], max=DEFAULT_PRICE_BOUNDS[1])
    return PriceRange(min=math.floor(min(prices)), max=math.ceil(max(prices)))


def available_airlines(flights: Iterable[NormalizedFlight]) -> tuple[str, ...]:
    """Distinct airline names, sorted."""
    return tuple(sorted({f.airline for f in flights}))


def apply_filter(
    flights: Iterable[NormalizedFlight], spec: FilterSpec
) -> tuple[NormalizedFlight, ...]:
    """Filter then sort."""
    return tuple(sort_flights(filter_flights(flights, spec), spec.sort_key))


def merge_filter(spec: FilterSpec, changes: dict[str, Any]) -> FilterSpec:
    """Return a new filter with ``changes`` applied; other fields are kept.

    Raises:
        pydantic.ValidationError: If a change names an unknown field or has
            an invalid value.
    """
    data = {
        "price_range": spec.price_range,
        "stops": spec.stops,
        "airlines": spec.airlines,
        "sort_key": spec.sort_key,
    }
    data.update(changes)
    return FilterSpec.model_validate(data)


class ViewEngine:
    """Owns the working set and filter, and derives the current view.

    Usage::

        engine = ViewEngine()
        engine.load(normalize_offers(response))
        engine.update_filter(stops={0}, sort_key="duration")
        for flight in engine.current_view:
            ...
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot = ViewSnapshot()

    # --- Readers ---

    @property
    def snapshot(self) -> ViewSnapshot:
        """The current immutable snapshot."""
        return self._snapshot

    @property
    def status(self) -> ViewStatus:
        return self._snapshot.status

    @property
    def current_view(self) -> tuple[NormalizedFlight, ...]:
        return self._snapshot.current_view

    @property
    def chart_series(self) -> tuple[ChartPoint, ...]:
        return self._snapshot.chart_series

    @property
    def available_airlines(self) -> tuple[str, ...]:
        return self._snapshot.available_airlines

    @property
    def bounds(self) -> PriceRange:
        return self._snapshot.bounds

    @property
    def filter(self) -> FilterSpec:
        return self._snapshot.filter

    # --- Writers ---

    def set_working_set(self, flights: Iterable[NormalizedFlight], dropped_count: int = 0) -> ViewSnapshot:
        """Replace the working set and start from the default filter.

        Bounds and the airline list are recomputed here and only here. The
        filter's price range is reset to the new bounds.
        """
        working_set = tuple(flights)
        bounds = price_bounds(working_set)
        spec = FilterSpec(price_range=bounds)
        view = apply_filter(working_set, spec)
        snapshot = ViewSnapshot(
            status=ViewStatus.POPULATED,
            working_set=working_set,
            filter=spec,
            bounds=bounds,
            current_view=view,
            chart_series=project_chart(view),
            available_airlines=available_airlines(working_set),
            dropped_count=dropped_count,
        )
        with self._lock:
            self._snapshot = snapshot
        logger.debug(
            "Working set replaced: %d flights, bounds %s-%s",
            len(working_set), bounds.min, bounds.max,
        )
        return snapshot

    def load(self, result: NormalizationResult) -> ViewSnapshot:
        """Replace the working set with a batch normalization result."""
        return self.set_working_set(result.flights, dropped_count=result.dropped)

    def update_filter(self, **changes: Any) -> ViewSnapshot:
        """Merge filter changes and re-derive the view and chart series.

        Bounds and available airlines are left untouched. Does nothing
        while no working set is loaded.
        """
        with self._lock:
            current = self._snapshot
            spec = merge_filter(current.filter, changes)
            if current.status == ViewStatus.EMPTY:
                logger.debug("Filter update ignored: no working set loaded")
                return current
            self._snapshot = self._rederive(current, spec)
            return self._snapshot

    def reset_filter(self) -> ViewSnapshot:
        """Default filter, with the price range restored to the data bounds."""
        with self._lock:
            current = self._snapshot
            if current.status == ViewStatus.EMPTY:
                logger.debug("Filter reset ignored: no working set loaded")
                return current
            self._snapshot = self._rederive(current, FilterSpec(price_range=current.bounds))
            return self._snapshot

    def clear(self) -> ViewSnapshot:
        """Drop the working set and return to the empty state."""
        with self._lock:
            self._snapshot = ViewSnapshot()
            return self._snapshot

    @staticmethod
    def _rederive(current: ViewSnapshot, spec: FilterSpec) -> ViewSnapshot:
        view = apply_filter(current.working_set, spec)
        logger.debug("View re-derived: %d of %d flights", len(view), len(current.working_set))
        return current.model_copy(
            update={
                "filter": spec,
                "current_view": view,
                "chart_series": project_chart(view),
            }
        )


def build_view(result: NormalizationResult, **changes: Any) -> ViewSnapshot:
    """One-shot helper: load a result and apply optional filter changes."""
    engine = ViewEngine()
    engine.load(result)
    if changes:
        engine.update_filter(**changes)
    return engine.snapshot
