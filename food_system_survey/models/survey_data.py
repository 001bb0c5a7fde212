"""
Data models for the food system survey tools.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple


@dataclass
class NormalizedOrganization:
    """
    A survey respondent organization as a node of the collaboration network.
    """
    id: int
    name: str
    sector: str
    district: str
    scope: str  # "Single District", "Multi-District" or "Countywide"
    goals: List[str] = field(default_factory=list)
    activities: List[str] = field(default_factory=list)
    challenges: List[str] = field(default_factory=list)
    primary_goal: str = ""
    website: str = ""
    size: int = 5  # display radius, clamped to 5-20

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the key names the network chart reads."""
        return {
            'id': self.id,
            'name': self.name,
            'sector': self.sector,
            'district': self.district,
            'scope': self.scope,
            'goals': list(self.goals),
            'activities': list(self.activities),
            'primaryGoal': self.primary_goal,
            'challenges': list(self.challenges),
            'website': self.website,
            'size': self.size
        }


@dataclass
class SimilarityLink:
    """
    Undirected link between two organizations with enough shared goals and activities.
    """
    source: int
    target: int
    shared_goals: int
    shared_activities: int

    @property
    def strength(self) -> int:
        """Goals weigh twice as much as activities."""
        return self.shared_goals * 2 + self.shared_activities

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'target': self.target,
            'strength': self.strength,
            'sharedGoals': self.shared_goals,
            'sharedActivities': self.shared_activities
        }


@dataclass
class Flow:
    """
    Aggregated cross-district service relation between a headquarters district and
    a district the organizations also serve.
    """
    source: str
    target: str
    value: int = 0
    organizations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'target': self.target,
            'value': self.value,
            'organizations': list(self.organizations)
        }


class GeocodeStatus(Enum):
    """Outcome of a geocode lookup."""
    FOUND = "found"
    NOT_FOUND = "not_found"  # tried before and known to be unresolvable
    UNCACHED = "uncached"    # never attempted


@dataclass
class GeocodeResult:
    """
    Tri-state geocode answer.

    A negative cache entry yields NOT_FOUND, an absent key yields UNCACHED, so the
    two can never be confused.
    """
    status: GeocodeStatus
    coordinates: Optional[Tuple[float, float]] = None
    source: str = "none"  # cache, override, api, api_fallback or none

    @classmethod
    def found(cls, latitude: float, longitude: float, source: str) -> 'GeocodeResult':
        return cls(GeocodeStatus.FOUND, (float(latitude), float(longitude)), source)

    @classmethod
    def not_found(cls, source: str = "none") -> 'GeocodeResult':
        return cls(GeocodeStatus.NOT_FOUND, None, source)

    @classmethod
    def uncached(cls) -> 'GeocodeResult':
        return cls(GeocodeStatus.UNCACHED)

    def is_found(self) -> bool:
        return self.status is GeocodeStatus.FOUND

    def is_cached(self) -> bool:
        """True for both positive and negative cache entries."""
        return self.status is not GeocodeStatus.UNCACHED


@dataclass
class GeocodedOrganization:
    """
    Organization row of the geocoded output document consumed by the map view.
    """
    id: str
    name: str
    sector: str
    address: str
    zip_code: str
    coordinates: Tuple[float, float]
    primary_district: str
    other_districts: str = ""
    primary_spa: str = ""
    additional_spas: str = ""
    mission: str = ""
    primary_activity: str = ""
    website: str = ""
    contact_email: str = ""
    contact_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'sector': self.sector,
            'address': self.address,
            'zipCode': self.zip_code,
            'coordinates': [self.coordinates[0], self.coordinates[1]],
            'primaryDistrict': self.primary_district,
            'otherDistricts': self.other_districts,
            'primarySPA': self.primary_spa,
            'additionalSPAs': self.additional_spas,
            'mission': self.mission,
            'primaryActivity': self.primary_activity,
            'website': self.website,
            'contact': {
                'email': self.contact_email,
                'name': self.contact_name
            }
        }


@dataclass
class GeocodingOutcome:
    """
    Per-record result of a geocoding batch run.
    """
    row_index: int
    organization_name: str
    status: str  # "pass", "fail", "skipped" or "error"
    source: str = "none"
    address: str = ""
    zip_code: str = ""
    error_message: Optional[str] = None
    processing_timestamp: Optional[datetime] = None

    def __post_init__(self):
        """Set processing timestamp if not provided."""
        if self.processing_timestamp is None:
            self.processing_timestamp = datetime.now()

    def is_successful(self) -> bool:
        return self.status == "pass"

    def get_error_summary(self) -> str:
        """
        Get a summary of the outcome for logging.

        Returns:
            str: Summary string with organization, status, and error if applicable
        """
        summary = f"Organization: {self.organization_name}, Status: {self.status}"
        if self.error_message:
            summary += f", Error: {self.error_message}"
        return summary
