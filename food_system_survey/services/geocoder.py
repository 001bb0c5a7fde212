"""
Address geocoding with cache, curated overrides and rate-limited service lookups.
"""
import logging
import re
import time
from typing import Any, Callable, Optional, Tuple

from ..models.survey_data import GeocodeResult
from .geocode_cache import GeocodeCache
from .nominatim_client import NominatimClient, GeocoderAPIError
from .override_table import OverrideTable


CITY = "Los Angeles"
STATE_CODE = "CA"
ACCEPTED_STATE = "California"

_SUITE_PATTERN = re.compile(r'\b(Suite|Ste\.?)\s*[A-Za-z0-9#\-]+', re.IGNORECASE)
_UNIT_PATTERN = re.compile(r'\b#\s*[A-Za-z0-9\-]+', re.IGNORECASE)
_FLOOR_PATTERN = re.compile(r'\bFloor\s*\d+', re.IGNORECASE)
_AND_AT_PREFIX = re.compile(r'^[A-Za-z\s]+ and at ', re.IGNORECASE)
_EDGE_COMMAS = re.compile(r'^,+|,+$')


def clean_address(street: Any, zip_code: Any) -> Optional[str]:
    """
    Strip suite, unit and floor fragments from a street address.

    Also drops a leading "<place> and at " prefix and stray edge commas.

    >>> clean_address("123 Main St, Suite 400", "90001")
    '123 Main St'

    Returns:
        Cleaned street, or None when the street or zip code is missing
    """
    if not street or not zip_code:
        return None

    cleaned = str(street).strip()
    cleaned = _SUITE_PATTERN.sub('', cleaned)
    cleaned = _UNIT_PATTERN.sub('', cleaned)
    cleaned = _FLOOR_PATTERN.sub('', cleaned)
    cleaned = _AND_AT_PREFIX.sub('', cleaned)
    cleaned = _EDGE_COMMAS.sub('', cleaned.strip())

    return cleaned or None


def full_query(cleaned: str, zip_code: Any) -> str:
    return f"{cleaned}, {CITY}, {STATE_CODE}, {str(zip_code).strip()}"


def fallback_query(cleaned: str) -> str:
    return f"{cleaned}, {CITY}, {STATE_CODE}"


def get_cache_key(street: Any, zip_code: Any) -> Optional[str]:
    """Case-insensitive cache key built from the cleaned street and zip code."""
    cleaned = clean_address(street, zip_code)
    if not cleaned:
        return None
    return full_query(cleaned, zip_code).lower()


class Geocoder:
    """
    Resolves an address to coordinates, trying in order:

    1. the cache, where a negative entry also ends the search
    2. the override table, full address then city-only address
    3. the geocoding service with the full address
    4. the geocoding service without the zip code, after a delay
    5. a negative cache entry so later runs skip the address

    The cache is owned by the caller and passed in; only California matches are
    accepted from the service.
    """

    def __init__(self,
                 cache: GeocodeCache,
                 overrides: OverrideTable,
                 client: NominatimClient,
                 delay: float = 2.0,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the geocoder.

        Args:
            cache: Geocode cache, read and updated in place
            overrides: Curated coordinates for known problem addresses
            client: Geocoding service client
            delay: Seconds to wait before the fallback lookup
            sleep: Sleep function, replaceable in tests
        """
        self.cache = cache
        self.overrides = overrides
        self.client = client
        self.delay = delay
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

    def geocode(self, street: Any, zip_code: Any, org_name: str = "") -> GeocodeResult:
        """
        Geocode one address.

        Returns:
            GeocodeResult with status FOUND or NOT_FOUND; ``source`` tells which step answered.
            A record without street or zip returns NOT_FOUND with source "skipped" and
            leaves the cache untouched.

        Raises:
            GeocoderAPIError: If the service fails; the address is cached as a failure first
        """
        cleaned = clean_address(street, zip_code)
        if not cleaned:
            self.logger.info(f"Skipping {org_name}: Missing address or zip")
            return GeocodeResult.not_found(source="skipped")

        full_address = full_query(cleaned, zip_code)
        city_address = fallback_query(cleaned)
        cache_key = full_address.lower()

        cached = self.cache.lookup(cache_key)
        if cached.is_cached():
            self.logger.info(f"Using cached {'coordinates' if cached.is_found() else 'failure'} for {org_name}")
            return cached

        for candidate in (full_address, city_address):
            coordinates = self.overrides.get(candidate)
            if coordinates is not None:
                self.logger.info(f"Using hardcoded coordinates for {org_name}")
                self.cache.store(cache_key, coordinates)
                return GeocodeResult.found(coordinates[0], coordinates[1], source="override")

        try:
            coordinates = self._lookup(full_address)
            if coordinates is not None:
                self.logger.info(f"Geocoded {org_name}: {coordinates[0]}, {coordinates[1]}")
                self.cache.store(cache_key, coordinates)
                return GeocodeResult.found(coordinates[0], coordinates[1], source="api")

            self.logger.info(f"Trying fallback for {org_name}")
            self.sleep(self.delay)

            coordinates = self._lookup(city_address)
            if coordinates is not None:
                self.logger.info(f"Geocoded {org_name} (fallback): {coordinates[0]}, {coordinates[1]}")
                self.cache.store(cache_key, coordinates)
                return GeocodeResult.found(coordinates[0], coordinates[1], source="api_fallback")

        except GeocoderAPIError as e:
            self.logger.error(f"Error geocoding {org_name}: {e}")
            self.cache.store_failure(cache_key)
            raise

        self.logger.info(f"Failed to geocode {org_name}: {full_address}")
        self.cache.store_failure(cache_key)
        return GeocodeResult.not_found()

    def _lookup(self, query: str) -> Optional[Tuple[float, float]]:
        """Query the service and accept the first candidate only if it lies in California."""
        candidates = self.client.search(query)
        if not candidates:
            return None

        best = candidates[0]
        address = best.get('address') or {}
        if not isinstance(address, dict):
            raise GeocoderAPIError(f"Malformed address details in geocoding response: {address!r}")
        if address.get('state') != ACCEPTED_STATE:
            self.logger.debug(f"Rejected match outside {ACCEPTED_STATE} for '{query}': {address.get('state')}")
            return None

        try:
            return float(best['lat']), float(best['lon'])
        except (KeyError, TypeError, ValueError) as e:
            raise GeocoderAPIError(f"Malformed coordinates in geocoding response: {e}") from e
