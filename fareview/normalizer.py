"""Offer normalization: raw provider offers -> NormalizedFlight.

normalize_offer() handles one offer and raises MalformedOfferError when the
offer cannot be represented. normalize_offers() handles a whole response,
sharing one carrier dictionary and dropping (and counting) malformed offers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from fareview.carriers import CarrierNameResolver, airline_logo_url
from fareview.durations import (
    gap_minutes,
    iso_duration_minutes,
    layover_label,
    render_duration,
)
from fareview.models import (
    NormalizedFlight,
    ProviderResponse,
    RawOffer,
    RawSegment,
    SegmentDetail,
)

logger = logging.getLogger(__name__)


class MalformedOfferError(ValueError):
    """A raw offer is missing the structure needed to build a flight."""

    def __init__(self, message: str, offer_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.offer_id = offer_id


class NormalizationResult(BaseModel):
    """Flights normalized from one response plus what was dropped."""

    flights: tuple[NormalizedFlight, ...] = ()
    dropped: int = Field(default=0, ge=0)
    errors: tuple[str, ...] = ()

    model_config = {"frozen": True}

    @property
    def received(self) -> int:
        """Number of offers in the response."""
        return len(self.flights) + self.dropped

    @property
    def is_empty(self) -> bool:
        return not self.flights

    @property
    def all_malformed(self) -> bool:
        """True when offers arrived but none could be normalized."""
        return self.dropped > 0 and not self.flights


def _offer_id(raw: Any) -> Optional[str]:
    if isinstance(raw, Mapping) and raw.get("id") is not None:
        return str(raw["id"])
    return None


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    loc = " -> ".join(str(x) for x in first["loc"])
    more = f" (+{exc.error_count() - 1} more)" if exc.error_count() > 1 else ""
    return f"{loc}: {first['msg']}{more}"


def _coerce_offer(offer: Union[RawOffer, Mapping[str, Any]]) -> RawOffer:
    if isinstance(offer, RawOffer):
        return offer
    try:
        return RawOffer.model_validate(offer)
    except ValidationError as exc:
        offer_id = _offer_id(offer)
        raise MalformedOfferError(
            f"Malformed offer {offer_id or '<no id>'}: {_describe(exc)}", offer_id
        ) from exc


def _segment_detail(segment: RawSegment, resolver: CarrierNameResolver) -> SegmentDetail:
    aircraft_code = segment.aircraft.code if segment.aircraft else None
    operating_code = segment.operating.carrier_code if segment.operating else None
    return SegmentDetail(
        id=segment.id,
        departure_airport=segment.departure.iata_code,
        departure_terminal=segment.departure.terminal,
        departure_at=segment.departure.at,
        arrival_airport=segment.arrival.iata_code,
        arrival_terminal=segment.arrival.terminal,
        arrival_at=segment.arrival.at,
        carrier_code=segment.carrier_code,
        carrier_name=resolver.resolve(segment.carrier_code),
        flight_number=segment.number,
        aircraft_code=aircraft_code,
        duration=segment.duration,
        duration_label=render_duration(segment.duration) if segment.duration else "",
        number_of_stops=segment.number_of_stops,
        operating_carrier_code=operating_code,
    )


def _layovers(segments: list[RawSegment]) -> list[str]:
    """One 'AIRPORT (Xh Ym)' label per adjacent segment pair."""
    labels = []
    for current, following in zip(segments, segments[1:]):
        minutes = gap_minutes(current.arrival.at, following.departure.at)
        labels.append(layover_label(current.arrival.iata_code, minutes))
    return labels


def normalize_offer(
    offer: Union[RawOffer, Mapping[str, Any]],
    carrier_dictionary: Optional[Mapping[str, str]] = None,
) -> NormalizedFlight:
    """Build a NormalizedFlight from one raw offer.

    Args:
        offer: A RawOffer or the raw JSON mapping of one offer.
        carrier_dictionary: Optional ``code -> name`` mapping from the
            search response; takes precedence over the static table.

    Raises:
        MalformedOfferError: If the offer lacks itineraries, segments,
            timestamps or a price.
    """
    raw = _coerce_offer(offer)
    if raw.price.amount is None:
        raise MalformedOfferError(f"Malformed offer {raw.id}: no price", raw.id)

    resolver = CarrierNameResolver(carrier_dictionary)
    itinerary = raw.outbound
    segments = itinerary.segments
    first, last = segments[0], segments[-1]
    primary = raw.primary_carrier

    return NormalizedFlight(
        id=raw.id,
        airline=resolver.resolve(primary),
        airline_code=primary,
        airline_logo_url=airline_logo_url(primary),
        departure_time=first.departure.at.strftime("%H:%M"),
        arrival_time=last.arrival.at.strftime("%H:%M"),
        departure_airport=first.departure.iata_code,
        arrival_airport=last.arrival.iata_code,
        duration_label=render_duration(itinerary.duration),
        duration_minutes=iso_duration_minutes(itinerary.duration),
        stop_count=max(0, len(segments) - 1),
        price=raw.price.amount,
        currency=raw.price.currency,
        segments=tuple(_segment_detail(s, resolver) for s in segments),
        layovers=tuple(_layovers(segments)),
    )


def normalize_offers(response: Union[ProviderResponse, Mapping[str, Any]]) -> NormalizationResult:
    """Normalize every offer of a search response.

    The carrier dictionary is read once from ``dictionaries.carriers``.
    Malformed offers are logged and counted, never raised.
    """
    if not isinstance(response, ProviderResponse):
        response = ProviderResponse.model_validate(response)
    carriers = response.dictionaries.carriers

    flights: list[NormalizedFlight] = []
    errors: list[str] = []
    for raw in response.data:
        try:
            flights.append(normalize_offer(raw, carriers))
        except MalformedOfferError as exc:
            logger.warning("Dropping offer: %s", exc)
            errors.append(str(exc))

    if errors and not flights:
        logger.warning("All %d offers in the response were malformed", len(errors))
    else:
        logger.info("Normalized %d offers (%d dropped)", len(flights), len(errors))

    return NormalizationResult(flights=tuple(flights), dropped=len(errors), errors=tuple(errors))
