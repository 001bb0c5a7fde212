"""
Configuration manager for the food system survey tools.
"""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv


DEFAULT_OVERRIDES_FILE = str(Path(__file__).resolve().parent.parent / "data" / "geocode_overrides.json")

DEFAULTS = {
    'SURVEY_FILE': 'public/FINAL- Food Systems Stakeholder Survey (Responses).xlsx',
    'SURVEY_SHEET_NAME': 'Copy of Survey Responses',
    'GEOCODE_CACHE_FILE': 'data/geocode-cache.json',
    'GEOCODE_OVERRIDES_FILE': DEFAULT_OVERRIDES_FILE,
    'ORGANIZATIONS_OUTPUT_FILE': 'data/organizations.json',
    'NOMINATIM_URL': 'https://nominatim.openstreetmap.org',
    'GEOCODER_USER_AGENT': 'FoodSystemsStakeholderSurvey/1.0 (contact@example.com)',
    'GEOCODE_DELAY': '2',
    'REQUEST_TIMEOUT': '30',
    'MAX_RETRIES': '3',
    'LOG_LEVEL': 'INFO'
}

# name -> (type, smallest allowed value)
NUMERIC_SETTINGS = {
    'GEOCODE_DELAY': (float, 1),  # Nominatim usage policy: at most one request per second
    'REQUEST_TIMEOUT': (int, 1),
    'MAX_RETRIES': (int, 0)
}


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""
    pass


class ConfigManager:
    """
    Reads settings from the environment, optionally seeded from a .env file.

    Every setting has a default, so the tools run without any configuration;
    numeric settings are converted and range-checked once, at construction.
    """

    def __init__(self, env_file: Optional[str] = None):
        """
        Args:
            env_file: .env file to load; the nearest .env is used when omitted.
                Variables already set in the environment take precedence.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        self._config = {name: os.getenv(name, default) for name, default in DEFAULTS.items()}
        self._convert_numbers()

    def _convert_numbers(self) -> None:
        for name, (number_type, minimum) in NUMERIC_SETTINGS.items():
            raw = self._config[name]
            try:
                value = number_type(raw)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for {name}: {raw}. Expected {number_type.__name__}."
                ) from e

            if value < minimum:
                raise ConfigurationError(f"{name} must be at least {minimum}, got {value}")
            self._config[name] = value

    def get_survey_file(self) -> str:
        return self._config['SURVEY_FILE']

    def get_survey_sheet_name(self) -> str:
        """Worksheet expected to hold the responses; the parser falls back to the first sheet."""
        return self._config['SURVEY_SHEET_NAME']

    def get_cache_file(self) -> str:
        return self._config['GEOCODE_CACHE_FILE']

    def get_overrides_file(self) -> str:
        return self._config['GEOCODE_OVERRIDES_FILE']

    def get_output_file(self) -> str:
        """Path of the geocoded organizations document read by the map view."""
        return self._config['ORGANIZATIONS_OUTPUT_FILE']

    def get_geocoder_url(self) -> str:
        """
        Get the Nominatim base URL.

        Returns:
            str: Base URL without trailing slash
        """
        return self._config['NOMINATIM_URL'].rstrip('/')

    def get_user_agent(self) -> str:
        """User-Agent sent to the geocoding service; Nominatim rejects anonymous clients."""
        return self._config['GEOCODER_USER_AGENT']

    def get_geocode_delay(self) -> float:
        """
        Get the pause between geocoding requests.

        Returns:
            float: Delay in seconds
        """
        return self._config['GEOCODE_DELAY']

    def get_request_timeout(self) -> int:
        return self._config['REQUEST_TIMEOUT']

    def get_max_retries(self) -> int:
        """Transport-level retries on 429 and 5xx responses."""
        return self._config['MAX_RETRIES']

    def get_log_level(self) -> str:
        return self._config['LOG_LEVEL'].upper()

    def get_all_config(self) -> dict:
        """
        Get all configuration values.

        Returns:
            dict: Copy of the converted settings
        """
        return self._config.copy()
