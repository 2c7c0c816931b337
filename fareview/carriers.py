"""Carrier display-name resolution.

Names are resolved through an ordered list of resolvers:

1. the carrier dictionary supplied with a search response,
2. the static table in carriers.yaml,
3. the raw carrier code itself.

A dictionary entry always wins, even when the static table knows the code,
because the dictionary reflects the vocabulary of that specific response.
"""

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Optional

import yaml

from fareview.config import LOGO_URL_TEMPLATE

_DATA_DIR = Path(__file__).parent / "data"
with open(_DATA_DIR / "carriers.yaml") as f:
    _CARRIERS: dict = yaml.safe_load(f)

# A resolver returns a display name for a code, or None to defer to the next one
CarrierResolver = Callable[[str], Optional[str]]


def static_carrier_name(code: str) -> Optional[str]:
    """Look a carrier up in the static table. Case-insensitive."""
    entry = _CARRIERS.get(code.upper())
    if not entry:
        return None
    return entry.get("name")


def dictionary_resolver(dictionary: Optional[Mapping[str, str]]) -> CarrierResolver:
    """Build a resolver over a per-search ``code -> name`` mapping."""
    entries = dict(dictionary or {})

    def _resolve(code: str) -> Optional[str]:
        return entries.get(code) or entries.get(code.upper())

    return _resolve


class CarrierNameResolver:
    """Resolve carrier codes to display names through prioritized resolvers.

    Usage::

        resolver = CarrierNameResolver({"AA": "American Air"})
        resolver.resolve("AA")  # "American Air"
        resolver.resolve("BA")  # "British Airways" (static table)
        resolver.resolve("ZZ")  # "ZZ"
    """

    def __init__(
        self,
        dictionary: Optional[Mapping[str, str]] = None,
        resolvers: Optional[list[CarrierResolver]] = None,
    ) -> None:
        if resolvers is None:
            resolvers = [dictionary_resolver(dictionary), static_carrier_name]
        self.resolvers = resolvers

    def resolve(self, code: str) -> str:
        """Return the first non-empty name any resolver yields, else the code."""
        for resolver in self.resolvers:
            name = resolver(code)
            if name:
                return name
        return code


def airline_logo_url(code: str, template: str = LOGO_URL_TEMPLATE) -> str:
    """Return the logo URL for a carrier code."""
    return template.format(code=code)


def known_carrier_codes() -> list[str]:
    """All codes in the static table, sorted."""
    return sorted(_CARRIERS)
