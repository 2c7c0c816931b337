"""Runtime configuration for fareview.

Constants for the Amadeus API and display defaults, plus credential lookup.
Credentials come from the environment first (AMADEUS_API_KEY /
AMADEUS_API_SECRET) and fall back to the system keyring, where
``fareview config set-amadeus`` stores them.
"""

from __future__ import annotations

import logging
import os
from typing import NamedTuple, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_BASE_URL = "https://test.api.amadeus.com"
TOKEN_EXPIRY_BUFFER_SECONDS = 60  # refresh this long before the token expires
MAX_RESULTS = 50
DEFAULT_CURRENCY = "USD"
REQUEST_TIMEOUT_SECONDS = 30

LOGO_URL_TEMPLATE = "https://images.kiwi.com/airlines/64/{code}.png"

# Price bounds reported when there is nothing to derive them from
DEFAULT_PRICE_BOUNDS = (0, 1000)

KEYRING_SERVICE = "api.amadeus.com"


class Credentials(NamedTuple):
    """Amadeus API key/secret pair."""

    api_key: str
    api_secret: str


def amadeus_base_url() -> str:
    """Return the API base URL, honouring AMADEUS_API_BASE_URL."""
    return os.environ.get("AMADEUS_API_BASE_URL", "").strip() or DEFAULT_BASE_URL


def _keyring_credentials() -> Optional[Credentials]:
    try:
        import keyring

        api_key = keyring.get_password(KEYRING_SERVICE, "api_key")
        api_secret = keyring.get_password(KEYRING_SERVICE, "api_secret")
    except Exception as exc:
        logger.debug("Keyring lookup failed: %s", exc)
        return None
    if api_key and api_secret:
        return Credentials(api_key, api_secret)
    return None


def load_credentials() -> Optional[Credentials]:
    """Resolve Amadeus credentials: environment first, then keyring.

    Returns None when neither source has both values.
    """
    api_key = os.environ.get("AMADEUS_API_KEY", "").strip()
    api_secret = os.environ.get("AMADEUS_API_SECRET", "").strip()
    if api_key and api_secret:
        return Credentials(api_key, api_secret)
    return _keyring_credentials()


def save_credentials(credentials: Credentials) -> None:
    """Store credentials in the system keyring."""
    import keyring

    keyring.set_password(KEYRING_SERVICE, "api_key", credentials.api_key)
    keyring.set_password(KEYRING_SERVICE, "api_secret", credentials.api_secret)


def clear_credentials() -> None:
    """Remove stored credentials from the system keyring."""
    import keyring

    keyring.delete_password(KEYRING_SERVICE, "api_key")
    keyring.delete_password(KEYRING_SERVICE, "api_secret")
