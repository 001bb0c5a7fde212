# Services module

from .spreadsheet_parser import SpreadsheetParser, SpreadsheetParseError, ParseResult
from .survey_processor import SurveyDataProcessor
from .geocode_cache import GeocodeCache
from .override_table import OverrideTable, OverrideTableError
from .nominatim_client import NominatimClient, GeocoderAPIError
from .geocoder import Geocoder
from .batch_geocoder import GeocodingBatchProcessor, BatchGeocodingError

__all__ = [
    'SpreadsheetParser', 'SpreadsheetParseError', 'ParseResult',
    'SurveyDataProcessor',
    'GeocodeCache',
    'OverrideTable', 'OverrideTableError',
    'NominatimClient', 'GeocoderAPIError',
    'Geocoder',
    'GeocodingBatchProcessor', 'BatchGeocodingError'
]
