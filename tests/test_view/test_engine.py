"""Tests for the view engine."""

import threading

import pytest
from pydantic import ValidationError

from fareview.normalizer import normalize_offers
from fareview.view import ViewEngine, build_view
from fareview.view.engine import available_airlines, merge_filter, price_bounds
from fareview.view.models import FilterSpec, PriceRange, SortKey, ViewStatus


def _ids(flights):
    return [f.id for f in flights]


@pytest.fixture
def three_flights(make_flight):
    return [
        make_flight(id="mid", price=250, airline="Beta", stops=1),
        make_flight(id="high", price=900, airline="Alpha", stops=2),
        make_flight(id="low", price=100, airline="Alpha", stops=0),
    ]


@pytest.fixture
def engine(three_flights):
    eng = ViewEngine()
    eng.set_working_set(three_flights)
    return eng


class TestHelpers:
    def test_price_bounds_floor_and_ceil(self, make_flight):
        bounds = price_bounds([make_flight(price=99.5), make_flight(price=450.2)])
        assert (bounds.min, bounds.max) == (99, 451)

    def test_price_bounds_default(self):
        assert price_bounds([]) == PriceRange(min=0, max=1000)

    def test_available_airlines_sorted_distinct(self, three_flights):
        assert available_airlines(three_flights) == ("Alpha", "Beta")

    def test_merge_filter_keeps_other_fields(self):
        spec = FilterSpec(stops=frozenset({1}), sort_key=SortKey.DURATION)
        merged = merge_filter(spec, {"airlines": {"KLM"}})
        assert merged.stops == frozenset({1})
        assert merged.sort_key == SortKey.DURATION
        assert merged.airlines == frozenset({"KLM"})

    def test_merge_filter_rejects_unknown_field(self):
        with pytest.raises(ValidationError):
            merge_filter(FilterSpec(), {"colour": "red"})


class TestEmptyEngine:
    def test_initial_state(self):
        eng = ViewEngine()
        assert eng.status == ViewStatus.EMPTY
        assert eng.current_view == ()
        assert eng.chart_series == ()
        assert eng.snapshot.is_empty

    def test_update_filter_is_noop(self):
        eng = ViewEngine()
        before = eng.snapshot
        assert eng.update_filter(stops={0}) is before
        assert eng.filter == FilterSpec()

    def test_update_filter_still_validates(self):
        with pytest.raises(ValidationError):
            ViewEngine().update_filter(stops={-1})

    def test_reset_filter_is_noop(self):
        eng = ViewEngine()
        before = eng.snapshot
        assert eng.reset_filter() is before


class TestSetWorkingSet:
    def test_empty_working_set(self):
        """Empty results still populate the engine, with default bounds."""
        eng = ViewEngine()
        snapshot = eng.set_working_set([])
        assert snapshot.status == ViewStatus.POPULATED
        assert snapshot.bounds == PriceRange(min=0, max=1000)
        assert snapshot.current_view == ()
        assert snapshot.available_airlines == ()

    def test_bounds_and_airlines(self, engine):
        assert engine.bounds == PriceRange(min=100, max=900)
        assert engine.available_airlines == ("Alpha", "Beta")

    def test_filter_reset_to_bounds(self, engine):
        assert engine.filter == FilterSpec(price_range=PriceRange(min=100, max=900))

    def test_view_sorted_by_price(self, engine):
        assert _ids(engine.current_view) == ["low", "mid", "high"]

    def test_chart_follows_view(self, engine):
        assert [p.flight_id for p in engine.chart_series] == ["low", "mid", "high"]

    def test_replacing_discards_previous_filter(self, engine, make_flight):
        engine.update_filter(stops={0}, sort_key="duration")
        engine.set_working_set([make_flight(id="new", price=50, stops=1)])
        assert engine.filter.stops == frozenset()
        assert engine.filter.sort_key == SortKey.PRICE
        assert _ids(engine.current_view) == ["new"]

    def test_dropped_count_recorded(self, make_flight):
        snapshot = ViewEngine().set_working_set([make_flight()], dropped_count=2)
        assert snapshot.dropped_count == 2


class TestUpdateFilter:
    def test_price_range(self, engine):
        engine.update_filter(price_range={"min": 200, "max": 1000})
        assert _ids(engine.current_view) == ["mid", "high"]

    def test_price_range_model(self, engine):
        engine.update_filter(price_range=PriceRange(min=0, max=250))
        assert _ids(engine.current_view) == ["low", "mid"]

    def test_two_plus_stops_bucket(self, engine):
        engine.update_filter(stops={2})
        assert _ids(engine.current_view) == ["high"]

    def test_airlines(self, engine):
        engine.update_filter(airlines={"Alpha"})
        assert _ids(engine.current_view) == ["low", "high"]

    def test_unknown_airline_gives_empty_view(self, engine):
        engine.update_filter(airlines={"Nobody"})
        assert engine.current_view == ()
        assert engine.chart_series == ()

    def test_sort_key(self, engine):
        engine.update_filter(sort_key=SortKey.PRICE)
        engine.update_filter(sort_key="departure")
        assert engine.filter.sort_key == SortKey.DEPARTURE

    def test_partial_update_keeps_other_fields(self, engine):
        engine.update_filter(stops={0, 1})
        engine.update_filter(airlines={"Alpha"})
        assert engine.filter.stops == frozenset({0, 1})
        assert _ids(engine.current_view) == ["low"]

    def test_bounds_and_airlines_untouched(self, engine):
        engine.update_filter(price_range={"min": 200, "max": 300}, airlines={"Beta"})
        assert engine.bounds == PriceRange(min=100, max=900)
        assert engine.available_airlines == ("Alpha", "Beta")

    def test_inverted_range_is_empty(self, engine):
        engine.update_filter(price_range={"min": 800, "max": 200})
        assert engine.current_view == ()

    def test_invalid_change_leaves_state(self, engine):
        before = engine.snapshot
        with pytest.raises(ValidationError):
            engine.update_filter(sort_key="airline")
        assert engine.snapshot is before

    def test_snapshot_is_new_object(self, engine):
        before = engine.snapshot
        after = engine.update_filter(stops={0})
        assert after is not before
        assert _ids(before.current_view) == ["low", "mid", "high"]

    def test_view_is_subset_of_working_set(self, engine):
        engine.update_filter(price_range={"min": 150, "max": 950}, stops={1, 2})
        snapshot = engine.snapshot
        assert set(_ids(snapshot.current_view)) <= set(_ids(snapshot.working_set))
        assert all(150 <= f.price <= 950 for f in snapshot.current_view)


class TestResetAndClear:
    def test_reset_filter(self, engine):
        engine.update_filter(price_range={"min": 200, "max": 300}, stops={1}, sort_key="duration")
        engine.reset_filter()
        assert engine.filter == FilterSpec(price_range=PriceRange(min=100, max=900))
        assert _ids(engine.current_view) == ["low", "mid", "high"]

    def test_clear(self, engine):
        engine.clear()
        assert engine.status == ViewStatus.EMPTY
        assert engine.snapshot.working_set == ()
        assert engine.available_airlines == ()


class TestLoad:
    def test_load_normalization_result(self, jfk_lhr_response):
        eng = ViewEngine()
        jfk_lhr_response["data"].append({"id": "bad", "itineraries": []})
        snapshot = eng.load(normalize_offers(jfk_lhr_response))

        assert snapshot.total_count == 5
        assert snapshot.dropped_count == 1
        assert snapshot.bounds == PriceRange(min=389, max=701)
        assert snapshot.available_airlines == (
            "AMERICAN AIRLINES",
            "BRITISH AIRWAYS",
            "DELTA AIR LINES",
            "VS",
        )

    def test_build_view(self, jfk_lhr_response):
        snapshot = build_view(normalize_offers(jfk_lhr_response), stops={0}, sort_key="departure")
        assert _ids(snapshot.current_view) == ["5", "1", "4"]
        assert snapshot.visible_count == 3

    def test_build_view_without_changes(self, jfk_lhr_response):
        snapshot = build_view(normalize_offers(jfk_lhr_response))
        assert _ids(snapshot.current_view) == ["3", "2", "1", "5", "4"]


class TestConcurrency:
    def test_concurrent_updates_leave_consistent_snapshot(self, engine):
        buckets = [{0}, {1}, {2}, set()]

        def worker(n):
            for i in range(50):
                engine.update_filter(stops=buckets[(n + i) % len(buckets)])

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        snapshot = engine.snapshot
        expected = [f for f in snapshot.working_set if f.id in _ids(snapshot.current_view)]
        assert len(expected) == snapshot.visible_count
        rebuilt = ViewEngine()
        rebuilt.set_working_set(snapshot.working_set)
        rebuilt.update_filter(stops=snapshot.filter.stops)
        assert _ids(rebuilt.current_view) == _ids(snapshot.current_view)
