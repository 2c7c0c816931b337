"""Domain models for fareview.

Pydantic models for raw Amadeus flight-offer payloads and for the flat,
display-ready NormalizedFlight the rest of the system works with.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

# --- Raw provider payload ---

_RAW_CONFIG = {"extra": "ignore", "populate_by_name": True, "frozen": True}


class RawLocation(BaseModel):
    """Departure or arrival point of a segment."""

    iata_code: str = Field(alias="iataCode", min_length=3, max_length=3)
    terminal: Optional[str] = None
    at: datetime

    model_config = _RAW_CONFIG

    @field_validator("iata_code", mode="before")
    @classmethod
    def uppercase_code(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class RawAircraft(BaseModel):
    code: Optional[str] = None

    model_config = _RAW_CONFIG


class RawOperating(BaseModel):
    carrier_code: Optional[str] = Field(default=None, alias="carrierCode")

    model_config = _RAW_CONFIG


class RawSegment(BaseModel):
    """One non-stop hop."""

    id: Optional[str] = None
    departure: RawLocation
    arrival: RawLocation
    carrier_code: str = Field(alias="carrierCode", min_length=1)
    number: Optional[str] = None
    aircraft: Optional[RawAircraft] = None
    duration: Optional[str] = None
    number_of_stops: int = Field(default=0, alias="numberOfStops", ge=0)
    operating: Optional[RawOperating] = None

    model_config = _RAW_CONFIG

    @field_validator("carrier_code", mode="before")
    @classmethod
    def uppercase_carrier(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @field_validator("number", mode="before")
    @classmethod
    def stringify_number(cls, v: Any) -> Optional[str]:
        return str(v) if isinstance(v, int) else v


class RawItinerary(BaseModel):
    """One directional leg of an offer (outbound or return)."""

    duration: str = ""
    segments: list[RawSegment] = Field(min_length=1)

    model_config = _RAW_CONFIG

    @field_validator("duration", mode="before")
    @classmethod
    def none_to_blank(cls, v: Any) -> Any:
        return "" if v is None else v


class RawPrice(BaseModel):
    currency: str = "USD"
    total: Optional[float] = Field(default=None, ge=0)
    grand_total: Optional[float] = Field(default=None, alias="grandTotal", ge=0)

    model_config = _RAW_CONFIG

    @property
    def amount(self) -> Optional[float]:
        """Grand total when present, else total."""
        return self.grand_total if self.grand_total is not None else self.total


class RawOffer(BaseModel):
    """A priced flight proposal as returned by the provider."""

    id: str
    itineraries: list[RawItinerary] = Field(min_length=1)
    price: RawPrice
    validating_airline_codes: list[str] = Field(default_factory=list, alias="validatingAirlineCodes")

    model_config = _RAW_CONFIG

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        return str(v) if isinstance(v, int) else v

    @field_validator("validating_airline_codes", mode="before")
    @classmethod
    def drop_null_codes(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, list):
            return [c for c in v if c is not None]
        return v

    @property
    def outbound(self) -> RawItinerary:
        return self.itineraries[0]

    @property
    def primary_carrier(self) -> str:
        """First validating airline, else the first segment's carrier."""
        for code in self.validating_airline_codes:
            if code:
                return code.upper()
        return self.outbound.segments[0].carrier_code


class ProviderDictionaries(BaseModel):
    carriers: dict[str, str] = Field(default_factory=dict)
    aircraft: dict[str, str] = Field(default_factory=dict)
    currencies: dict[str, str] = Field(default_factory=dict)
    locations: dict[str, Any] = Field(default_factory=dict)

    model_config = _RAW_CONFIG

    @field_validator("carriers", "aircraft", "currencies", "locations", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {k: entry for k, entry in v.items() if entry is not None}
        return v


class ProviderResponse(BaseModel):
    """A flight-offers search response.

    Offers stay as raw mappings here so that one malformed offer cannot
    fail validation of the whole batch.
    """

    data: list[Any] = Field(default_factory=list)
    dictionaries: ProviderDictionaries = Field(default_factory=ProviderDictionaries)
    meta: dict[str, Any] = Field(default_factory=dict)

    model_config = _RAW_CONFIG

    @field_validator("data", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("dictionaries", mode="before")
    @classmethod
    def none_to_dictionaries(cls, v: Any) -> Any:
        return {} if v is None else v


# --- Normalized model ---


class SegmentDetail(BaseModel):
    """Display-ready detail for one segment of a normalized flight."""

    id: Optional[str] = None
    departure_airport: str
    departure_terminal: Optional[str] = None
    departure_at: datetime
    arrival_airport: str
    arrival_terminal: Optional[str] = None
    arrival_at: datetime
    carrier_code: str
    carrier_name: str
    flight_number: Optional[str] = None
    aircraft_code: Optional[str] = None
    duration: Optional[str] = None  # raw ISO-8601, e.g. "PT2H30M"
    duration_label: str = ""
    number_of_stops: int = 0
    operating_carrier_code: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def flight_designator(self) -> str:
        """Carrier code plus flight number, e.g. 'AA100'."""
        return f"{self.carrier_code}{self.flight_number or ''}"


class NormalizedFlight(BaseModel):
    """Canonical, flat flight record built from one provider offer.

    Only the first (outbound) itinerary is represented.
    """

    id: str
    airline: str
    airline_code: str = ""
    airline_logo_url: str = ""
    departure_time: str  # "HH:mm"
    arrival_time: str  # "HH:mm"
    departure_airport: str
    arrival_airport: str
    duration_label: str
    duration_minutes: Optional[int] = None
    stop_count: int = Field(ge=0)
    price: float = Field(ge=0)
    currency: str
    segments: tuple[SegmentDetail, ...] = ()
    layovers: tuple[str, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def stops_match_segments(self) -> "NormalizedFlight":
        expected = max(0, len(self.segments) - 1)
        if self.stop_count != expected:
            raise ValueError(
                f"stop_count {self.stop_count} does not match {len(self.segments)} segments"
            )
        if len(self.layovers) != expected:
            raise ValueError(
                f"{len(self.layovers)} layovers for {len(self.segments)} segments"
            )
        return self

    @property
    def is_nonstop(self) -> bool:
        return self.stop_count == 0

    @property
    def route(self) -> str:
        return f"{self.departure_airport}-{self.arrival_airport}"
