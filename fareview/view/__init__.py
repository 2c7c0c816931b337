"""Results view - filtering, sorting and chart projection over normalized flights."""

from fareview.view.engine import ViewEngine, build_view
from fareview.view.models import (
    ChartPoint,
    FilterSpec,
    PriceRange,
    PriceSummary,
    SortKey,
    ViewSnapshot,
    ViewStatus,
)

__all__ = [
    "ChartPoint",
    "FilterSpec",
    "PriceRange",
    "PriceSummary",
    "SortKey",
    "ViewEngine",
    "ViewSnapshot",
    "ViewStatus",
    "build_view",
]
