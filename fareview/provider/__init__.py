"""Flight-offer provider clients."""

from fareview.provider.amadeus import (
    AmadeusAuthError,
    AmadeusClient,
    AmadeusConfigError,
    AmadeusError,
    AmadeusQuotaError,
    AmadeusRequestError,
    FlightSearchParams,
    Location,
    TokenManager,
)

__all__ = [
    "AmadeusAuthError",
    "AmadeusClient",
    "AmadeusConfigError",
    "AmadeusError",
    "AmadeusQuotaError",
    "AmadeusRequestError",
    "FlightSearchParams",
    "Location",
    "TokenManager",
]
