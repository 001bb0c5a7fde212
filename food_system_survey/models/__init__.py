"""
Data models for the food system survey tools.
"""
from .survey_data import (
    NormalizedOrganization,
    SimilarityLink,
    Flow,
    GeocodeStatus,
    GeocodeResult,
    GeocodedOrganization,
    GeocodingOutcome,
)

__all__ = [
    'NormalizedOrganization', 'SimilarityLink', 'Flow',
    'GeocodeStatus', 'GeocodeResult', 'GeocodedOrganization', 'GeocodingOutcome'
]
