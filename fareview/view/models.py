"""Pydantic models for the results view: filters, chart points, snapshots."""

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from fareview.config import DEFAULT_PRICE_BOUNDS
from fareview.models import NormalizedFlight


class SortKey(str, Enum):
    """Sort keys for the current view. All sorts are ascending."""

    PRICE = "price"
    DURATION = "duration"
    DEPARTURE = "departure"
    ARRIVAL = "arrival"

    @property
    def label(self) -> str:
        return _SORT_LABELS[self]


_SORT_LABELS = {
    SortKey.PRICE: "Price (Low to High)",
    SortKey.DURATION: "Duration (Shortest)",
    SortKey.DEPARTURE: "Departure Time",
    SortKey.ARRIVAL: "Arrival Time",
}

# Stop buckets offered to users: 2 stands for "two or more"
STOP_BUCKET_LABELS: dict[int, str] = {
    0: "Non-stop",
    1: "1 Stop",
    2: "2+ Stops",
}


class ViewStatus(str, Enum):
    """View engine lifecycle."""

    EMPTY = "empty"  # No search loaded yet
    POPULATED = "populated"  # A working set (possibly empty) is loaded


class PriceRange(BaseModel):
    """Inclusive price window."""

    min: float = DEFAULT_PRICE_BOUNDS[0]
    max: float = DEFAULT_PRICE_BOUNDS[1]

    model_config = {"frozen": True}

    def contains(self, price: float) -> bool:
        return self.min <= price <= self.max


class FilterSpec(BaseModel):
    """User-selected constraints on the working set.

    Empty ``stops`` or ``airlines`` accept everything.
    """

    price_range: PriceRange = Field(default_factory=PriceRange)
    stops: frozenset[int] = frozenset()
    airlines: frozenset[str] = frozenset()
    sort_key: SortKey = SortKey.PRICE

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("stops")
    @classmethod
    def non_negative_stops(cls, v: frozenset[int]) -> frozenset[int]:
        if any(s < 0 for s in v):
            raise ValueError("stop buckets must be non-negative")
        return v


class ChartPoint(BaseModel):
    """One price point per flight in the current view."""

    time: str  # departure "HH:mm"
    price: float
    flight_id: str
    stop_count: int
    airline: str

    model_config = {"frozen": True}


class PriceSummary(BaseModel):
    """Aggregate price figures over a set of chart points."""

    lowest: float = 0.0
    highest: float = 0.0
    average: float = 0.0
    count: int = 0

    model_config = {"frozen": True}


class ViewSnapshot(BaseModel):
    """Complete, immutable state of the view at one moment."""

    status: ViewStatus = ViewStatus.EMPTY
    working_set: tuple[NormalizedFlight, ...] = ()
    filter: FilterSpec = Field(default_factory=FilterSpec)
    bounds: PriceRange = Field(default_factory=PriceRange)
    current_view: tuple[NormalizedFlight, ...] = ()
    chart_series: tuple[ChartPoint, ...] = ()
    available_airlines: tuple[str, ...] = ()
    dropped_count: int = 0

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        return self.status == ViewStatus.EMPTY

    @property
    def total_count(self) -> int:
        return len(self.working_set)

    @property
    def visible_count(self) -> int:
        return len(self.current_view)
