"""Tests for offer normalization."""

import copy
import logging

import pytest
from pydantic import ValidationError

from fareview.normalizer import (
    MalformedOfferError,
    NormalizationResult,
    normalize_offer,
    normalize_offers,
)


def _by_id(result: NormalizationResult) -> dict:
    return {f.id: f for f in result.flights}


class TestNormalizeOffer:
    def test_nonstop(self, jfk_lhr_response):
        carriers = jfk_lhr_response["dictionaries"]["carriers"]
        flight = normalize_offer(jfk_lhr_response["data"][0], carriers)

        assert flight.id == "1"
        assert flight.airline == "BRITISH AIRWAYS"
        assert flight.airline_code == "BA"
        assert flight.airline_logo_url == "https://images.kiwi.com/airlines/64/BA.png"
        assert flight.departure_time == "18:30"
        assert flight.arrival_time == "06:35"
        assert flight.departure_airport == "JFK"
        assert flight.arrival_airport == "LHR"
        assert flight.duration_label == "7h 5m"
        assert flight.duration_minutes == 425
        assert flight.stop_count == 0
        assert flight.layovers == ()
        assert flight.price == pytest.approx(612.40)
        assert flight.currency == "USD"

    def test_only_outbound_itinerary_kept(self, jfk_lhr_response):
        flight = normalize_offer(jfk_lhr_response["data"][0])
        assert len(flight.segments) == 1
        assert flight.segments[0].arrival_airport == "LHR"

    def test_three_segments_with_layovers(self, jfk_lhr_response):
        carriers = jfk_lhr_response["dictionaries"]["carriers"]
        flight = normalize_offer(jfk_lhr_response["data"][2], carriers)

        assert flight.stop_count == 2
        assert flight.layovers == ("ATL (1h 30m)", "AMS (0h 45m)")
        assert flight.departure_time == "06:00"
        assert flight.arrival_time == "01:20"
        assert flight.duration_label == "19h 20m"

    def test_segment_details(self, jfk_lhr_response):
        carriers = jfk_lhr_response["dictionaries"]["carriers"]
        flight = normalize_offer(jfk_lhr_response["data"][2], carriers)
        last = flight.segments[-1]

        assert last.carrier_code == "KL"
        assert last.carrier_name == "KLM"
        assert last.flight_designator == "KL1001"
        assert last.aircraft_code == "73H"
        assert last.operating_carrier_code == "KL"
        assert last.duration_label == "1h 20m"

    def test_unknown_carrier_falls_back_to_code(self, jfk_lhr_response):
        flight = normalize_offer(jfk_lhr_response["data"][3], {})
        assert flight.airline == "VS"
        assert flight.airline_code == "VS"
        assert flight.duration_label == "7h"

    def test_static_table_used_without_dictionary(self, jfk_lhr_response):
        flight = normalize_offer(jfk_lhr_response["data"][1])
        assert flight.airline == "American Airlines"

    def test_one_stop_layover(self, jfk_lhr_response):
        flight = normalize_offer(jfk_lhr_response["data"][1])
        assert flight.stop_count == 1
        assert flight.layovers == ("BOS (1h 30m)",)

    def test_total_used_without_grand_total(self, jfk_lhr_response):
        offer = copy.deepcopy(jfk_lhr_response["data"][0])
        del offer["price"]["grandTotal"]
        offer["price"]["total"] = "599.99"
        assert normalize_offer(offer).price == pytest.approx(599.99)

    def test_missing_price_is_malformed(self, jfk_lhr_response):
        offer = copy.deepcopy(jfk_lhr_response["data"][0])
        offer["price"] = {"currency": "USD"}
        with pytest.raises(MalformedOfferError, match="no price"):
            normalize_offer(offer)

    def test_empty_itineraries_is_malformed(self, jfk_lhr_response):
        offer = copy.deepcopy(jfk_lhr_response["data"][0])
        offer["itineraries"] = []
        with pytest.raises(MalformedOfferError) as exc_info:
            normalize_offer(offer)
        assert exc_info.value.offer_id == "1"

    def test_empty_segments_is_malformed(self, jfk_lhr_response):
        offer = copy.deepcopy(jfk_lhr_response["data"][0])
        offer["itineraries"][0]["segments"] = []
        with pytest.raises(MalformedOfferError):
            normalize_offer(offer)

    def test_unparseable_timestamp_is_malformed(self, jfk_lhr_response):
        offer = copy.deepcopy(jfk_lhr_response["data"][0])
        offer["itineraries"][0]["segments"][0]["departure"]["at"] = "not-a-time"
        with pytest.raises(MalformedOfferError):
            normalize_offer(offer)

    def test_malformed_error_is_value_error(self):
        with pytest.raises(ValueError, match="<no id>"):
            normalize_offer({"itineraries": []})

    def test_unparseable_itinerary_duration_kept_verbatim(self, jfk_lhr_response):
        offer = copy.deepcopy(jfk_lhr_response["data"][0])
        offer["itineraries"][0]["duration"] = "P1D"
        flight = normalize_offer(offer)
        assert flight.duration_label == "P1D"
        assert flight.duration_minutes is None

    def test_null_validating_codes_fall_back_to_segment_carrier(self, jfk_lhr_response):
        offer = copy.deepcopy(jfk_lhr_response["data"][0])
        offer["validatingAirlineCodes"] = None
        flight = normalize_offer(offer)
        assert flight.airline_code == "BA"
        assert flight.airline == "British Airways"

    def test_null_entries_in_validating_codes_skipped(self, jfk_lhr_response):
        offer = copy.deepcopy(jfk_lhr_response["data"][1])
        offer["validatingAirlineCodes"] = [None, "AA"]
        assert normalize_offer(offer).airline_code == "AA"

    def test_null_itinerary_duration_degrades(self, jfk_lhr_response):
        offer = copy.deepcopy(jfk_lhr_response["data"][0])
        offer["itineraries"][0]["duration"] = None
        flight = normalize_offer(offer)
        assert flight.duration_label == ""
        assert flight.duration_minutes is None

    def test_negative_gap_clamped(self, jfk_lhr_response):
        offer = copy.deepcopy(jfk_lhr_response["data"][1])
        offer["itineraries"][0]["segments"][1]["departure"]["at"] = "2025-09-01T09:00:00"
        flight = normalize_offer(offer)
        assert flight.layovers == ("BOS (0h 0m)",)


class TestNormalizeOffers:
    def test_all_offers(self, jfk_lhr_response):
        result = normalize_offers(jfk_lhr_response)
        assert len(result.flights) == 5
        assert result.dropped == 0
        assert result.received == 5
        assert [f.id for f in result.flights] == ["1", "2", "3", "4", "5"]

    def test_dictionary_names_used(self, jfk_lhr_response):
        flights = _by_id(normalize_offers(jfk_lhr_response))
        assert flights["2"].airline == "AMERICAN AIRLINES"
        assert flights["3"].airline == "DELTA AIR LINES"

    def test_malformed_offer_dropped(self, jfk_lhr_response, caplog):
        jfk_lhr_response["data"][1]["itineraries"] = []
        with caplog.at_level(logging.WARNING, logger="fareview.normalizer"):
            result = normalize_offers(jfk_lhr_response)

        assert len(result.flights) == 4
        assert result.dropped == 1
        assert "2" not in _by_id(result)
        assert "Dropping offer" in caplog.text
        assert len(result.errors) == 1

    def test_all_malformed(self, malformed_response, caplog):
        with caplog.at_level(logging.WARNING, logger="fareview.normalizer"):
            result = normalize_offers(malformed_response)

        assert result.is_empty
        assert result.all_malformed
        assert result.dropped == 3
        assert "All 3 offers" in caplog.text

    def test_empty_response(self, load_fixture):
        result = normalize_offers(load_fixture("empty_response.json"))
        assert result.is_empty
        assert not result.all_malformed
        assert result.dropped == 0

    def test_missing_dictionaries(self, jfk_lhr_response):
        del jfk_lhr_response["dictionaries"]
        flights = _by_id(normalize_offers(jfk_lhr_response))
        assert flights["2"].airline == "American Airlines"
        assert flights["4"].airline == "VS"

    def test_non_mapping_offer_dropped(self, jfk_lhr_response):
        jfk_lhr_response["data"].append("garbage")
        result = normalize_offers(jfk_lhr_response)
        assert len(result.flights) == 5
        assert result.dropped == 1

    def test_null_dictionary_name_uses_static_table(self, jfk_lhr_response):
        jfk_lhr_response["dictionaries"]["carriers"]["AA"] = None
        result = normalize_offers(jfk_lhr_response)
        assert result.dropped == 0
        assert _by_id(result)["2"].airline == "American Airlines"
        assert _by_id(result)["1"].airline == "BRITISH AIRWAYS"

    def test_bad_envelope_raises(self):
        with pytest.raises(ValidationError):
            normalize_offers({"data": 42})
