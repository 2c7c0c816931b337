"""Amadeus Self-Service API client (flight offers and airport search).

Authentication uses the OAuth2 client-credentials flow. The access token is
owned by a TokenManager instance and refreshed shortly before it expires.
Flight searches raise typed errors; airport search degrades to an empty list.
Nothing here retries.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import date as Date
from typing import Any, Optional

import requests
from pydantic import BaseModel, Field, field_validator, model_validator

from fareview.config import (
    DEFAULT_CURRENCY,
    MAX_RESULTS,
    REQUEST_TIMEOUT_SECONDS,
    TOKEN_EXPIRY_BUFFER_SECONDS,
    Credentials,
    amadeus_base_url,
    load_credentials,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_TOKEN_PATH = "/v1/security/oauth2/token"
_FLIGHT_OFFERS_PATH = "/v2/shopping/flight-offers"
_LOCATIONS_PATH = "/v1/reference-data/locations"

_TRAVEL_CLASSES = ("ECONOMY", "PREMIUM_ECONOMY", "BUSINESS", "FIRST")

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class AmadeusError(Exception):
    """Base exception for Amadeus API errors."""


class AmadeusConfigError(AmadeusError):
    """No API credentials configured."""


class AmadeusAuthError(AmadeusError):
    """HTTP 401 or token request failure."""


class AmadeusRequestError(AmadeusError):
    """HTTP 400 -- the search parameters were rejected."""


class AmadeusQuotaError(AmadeusError):
    """HTTP 429 -- rate limit exceeded."""


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class FlightSearchParams(BaseModel):
    """Parameters for a flight-offers search."""

    origin: str = Field(min_length=3, max_length=3)
    destination: str = Field(min_length=3, max_length=3)
    departure_date: Date
    return_date: Optional[Date] = None
    adults: int = Field(default=1, ge=1, le=9)
    children: Optional[int] = Field(default=None, ge=0, le=9)
    infants: Optional[int] = Field(default=None, ge=0, le=9)
    travel_class: Optional[str] = None
    non_stop: bool = False
    currency: str = DEFAULT_CURRENCY
    max_results: int = Field(default=MAX_RESULTS, ge=1, le=250)

    @field_validator("origin", "destination", "currency", mode="before")
    @classmethod
    def uppercase_codes(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @field_validator("travel_class", mode="before")
    @classmethod
    def known_travel_class(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        v = str(v).upper()
        if v not in _TRAVEL_CLASSES:
            raise ValueError(f"travel_class must be one of {', '.join(_TRAVEL_CLASSES)}")
        return v

    @model_validator(mode="after")
    def check_route_and_dates(self) -> "FlightSearchParams":
        if self.origin == self.destination:
            raise ValueError("origin and destination must be different")
        if self.return_date is not None and self.return_date < self.departure_date:
            raise ValueError("return_date must not be before departure_date")
        if (self.infants or 0) > self.adults:
            raise ValueError("each infant must travel with an adult")
        return self

    def to_query(self) -> dict[str, Any]:
        """Query-string parameters for the flight-offers endpoint."""
        query: dict[str, Any] = {
            "originLocationCode": self.origin,
            "destinationLocationCode": self.destination,
            "departureDate": self.departure_date.isoformat(),
            "adults": self.adults,
            "max": self.max_results,
            "currencyCode": self.currency,
        }
        if self.return_date:
            query["returnDate"] = self.return_date.isoformat()
        if self.children:
            query["children"] = self.children
        if self.infants:
            query["infants"] = self.infants
        if self.travel_class:
            query["travelClass"] = self.travel_class
        if self.non_stop:
            query["nonStop"] = "true"
        return query


class Location(BaseModel):
    """An airport or city returned by location search."""

    iata_code: str
    name: str = ""
    city: str = ""
    country: str = ""

    @property
    def display(self) -> str:
        place = ", ".join(p for p in (self.city, self.country) if p)
        return f"{self.iata_code} - {self.name}" + (f" ({place})" if place else "")


# ---------------------------------------------------------------------------
# Token management
# ---------------------------------------------------------------------------


class TokenManager:
    """Fetches and caches an OAuth2 access token with an explicit expiry."""

    def __init__(
        self,
        credentials: Credentials,
        base_url: str,
        expiry_buffer_seconds: float = TOKEN_EXPIRY_BUFFER_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.expiry_buffer_seconds = expiry_buffer_seconds
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at: float = 0.0

    @property
    def is_valid(self) -> bool:
        return self._token is not None and self._clock() < self._expires_at

    def invalidate(self) -> None:
        """Forget the cached token so the next call re-authenticates."""
        self._token = None
        self._expires_at = 0.0

    def get_token(self) -> str:
        """Return the cached token, requesting a new one if expired."""
        if self.is_valid:
            return self._token  # type: ignore[return-value]

        logger.debug("Requesting Amadeus access token")
        try:
            resp = requests.post(
                f"{self.base_url}{_TOKEN_PATH}",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.credentials.api_key,
                    "client_secret": self.credentials.api_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            raise AmadeusAuthError(f"Authentication request failed: {exc}") from exc

        if resp.status_code != 200:
            raise AmadeusAuthError(
                "Authentication failed. Please check your API credentials."
            )
        try:
            payload = resp.json()
            token = payload["access_token"]
            expires_in = float(payload.get("expires_in", 0))
        except (ValueError, KeyError, TypeError) as exc:
            raise AmadeusAuthError(f"Unexpected token response: {exc}") from exc

        self._token = token
        self._expires_at = self._clock() + expires_in - self.expiry_buffer_seconds
        return token


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


def _error_detail(resp: requests.Response) -> Optional[str]:
    try:
        errors = resp.json().get("errors") or []
    except (ValueError, AttributeError):
        return None
    if errors and isinstance(errors[0], dict):
        return errors[0].get("detail") or errors[0].get("title")
    return None


class AmadeusClient:
    """Thin client for the Amadeus flight-offers and location endpoints.

    Usage::

        client = AmadeusClient()
        payload = client.search_flights(FlightSearchParams(
            origin="JFK", destination="LHR", departure_date=date(2025, 9, 1),
        ))
        result = normalize_offers(payload)
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        base_url: Optional[str] = None,
        token_manager: Optional[TokenManager] = None,
    ) -> None:
        self.base_url = (base_url or amadeus_base_url()).rstrip("/")
        if token_manager is None:
            credentials = credentials or load_credentials()
            if credentials is None:
                raise AmadeusConfigError(
                    "Amadeus API credentials not found. Set AMADEUS_API_KEY and "
                    "AMADEUS_API_SECRET or run `fareview config set-amadeus`."
                )
            token_manager = TokenManager(credentials, self.base_url)
        self.tokens = token_manager

    def _get(self, path: str, params: dict[str, Any]) -> requests.Response:
        token = self.tokens.get_token()
        try:
            return requests.get(
                f"{self.base_url}{path}",
                params=params,
                headers={"Authorization": f"Bearer {token}"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.Timeout as exc:
            raise AmadeusError(f"Amadeus request timed out: {path}") from exc
        except requests.RequestException as exc:
            raise AmadeusError(f"Network error. Please check your connection. ({exc})") from exc

    def search_flights(self, params: FlightSearchParams) -> dict[str, Any]:
        """Run a flight-offers search and return the raw JSON payload.

        Raises:
            AmadeusAuthError: On HTTP 401 (the cached token is dropped).
            AmadeusRequestError: On HTTP 400.
            AmadeusQuotaError: On HTTP 429.
            AmadeusError: On any other failure.
        """
        logger.info(
            "Searching flights %s-%s on %s",
            params.origin, params.destination, params.departure_date,
        )
        resp = self._get(_FLIGHT_OFFERS_PATH, params.to_query())

        if resp.status_code == 401:
            self.tokens.invalidate()
            raise AmadeusAuthError("Authentication expired. Please try again.")
        if resp.status_code == 400:
            raise AmadeusRequestError(
                _error_detail(resp) or "Invalid search parameters. Please check your inputs."
            )
        if resp.status_code == 429:
            raise AmadeusQuotaError("Rate limit exceeded. Please wait a moment and try again.")
        if resp.status_code >= 400:
            raise AmadeusError(_error_detail(resp) or f"Failed to fetch flights (HTTP {resp.status_code}).")

        try:
            payload = resp.json()
        except ValueError as exc:
            raise AmadeusError("Amadeus returned a non-JSON response") from exc
        if not isinstance(payload, dict):
            raise AmadeusError("Amadeus returned an unexpected payload")

        logger.info("Amadeus returned %d offers", len(payload.get("data") or []))
        return payload

    def search_locations(self, keyword: str, limit: int = 10) -> list[Location]:
        """Search airports and cities by keyword. Returns [] on any failure."""
        try:
            resp = self._get(
                _LOCATIONS_PATH,
                {"keyword": keyword, "subType": "AIRPORT,CITY", "page[limit]": limit},
            )
        except AmadeusError as exc:
            logger.warning("Location search failed for %r: %s", keyword, exc)
            return []

        if resp.status_code >= 400:
            logger.warning("Location search HTTP %d for %r", resp.status_code, keyword)
            return []
        try:
            items = resp.json().get("data") or []
        except (ValueError, AttributeError):
            logger.warning("Location search returned non-JSON for %r", keyword)
            return []

        locations = []
        for item in items:
            address = item.get("address") or {}
            code = item.get("iataCode")
            if not code:
                continue
            locations.append(
                Location(
                    iata_code=code,
                    name=item.get("name", ""),
                    city=address.get("cityName", ""),
                    country=address.get("countryName", ""),
                )
            )
        return locations
