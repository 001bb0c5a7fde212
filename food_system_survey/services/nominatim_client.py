"""
Nominatim (OpenStreetMap) search client for address geocoding.
"""
import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config.config_manager import ConfigManager


class GeocoderAPIError(Exception):
    """Exception raised for geocoding service errors."""
    pass


class NominatimClient:
    """
    Client for the Nominatim free-text search endpoint.

    The public service is unauthenticated and rate sensitive: it requires an
    identifying User-Agent and at most one request per second. Pacing between
    requests is the caller's job; this client only retries transient failures.
    """

    def __init__(self, config_manager: ConfigManager, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            config_manager: Configuration manager instance
            session: Pre-built HTTP session, mainly for tests
        """
        self.config = config_manager
        self.logger = logging.getLogger(__name__)

        self.base_url = self.config.get_geocoder_url()
        self.search_endpoint = f"{self.base_url}/search"
        self.timeout = self.config.get_request_timeout()
        self.max_retries = self.config.get_max_retries()

        self.session = session or requests.Session()
        if session is None:
            self._setup_session()

        self.logger.debug(f"Nominatim client ready: {self.search_endpoint}")

    def _setup_session(self) -> None:
        """Configure session with retry strategy for network resilience."""
        retry_strategy = Retry(
            total=self.max_retries,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            backoff_factor=1
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        self.session.headers.update({
            'User-Agent': self.config.get_user_agent()
        })

    def search(self, query: str) -> List[Dict[str, Any]]:
        """
        Look up a free-text address.

        Args:
            query: Address query string

        Returns:
            List of candidate matches, each with "lat", "lon" and an "address" mapping

        Raises:
            GeocoderAPIError: On network failure, non-success status or malformed body
        """
        params = {
            'format': 'json',
            'q': query,
            'addressdetails': 1,
            'limit': 1
        }

        try:
            response = self.session.get(self.search_endpoint, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise GeocoderAPIError(f"Request failed for '{query}': {e}") from e

        if not response.ok:
            raise GeocoderAPIError(f"HTTP error! status: {response.status_code}")

        try:
            candidates = response.json()
        except ValueError as e:
            raise GeocoderAPIError(f"Invalid JSON from geocoding service: {e}") from e

        if not isinstance(candidates, list):
            raise GeocoderAPIError(f"Unexpected geocoding response type: {type(candidates).__name__}")
        for candidate in candidates:
            if not isinstance(candidate, dict):
                raise GeocoderAPIError(f"Unexpected geocoding candidate type: {type(candidate).__name__}")

        self.logger.debug(f"Nominatim returned {len(candidates)} candidates for '{query}'")
        return candidates

    def close(self) -> None:
        self.session.close()
