"""
Normalization helpers for free-text survey answers.
"""
import re
from typing import List, Optional, Sequence


SECTOR_MAP = {
    'Nonprofit/CBO': 'Nonprofit',
    'Government Agency': 'Government',
    'Foundation': 'Foundation',
    'College/University': 'Academic'
}

COUNTYWIDE = "Countywide"
UNKNOWN = "Unknown"

SCOPE_COUNTYWIDE = "Countywide"
SCOPE_MULTI_DISTRICT = "Multi-District"
SCOPE_SINGLE_DISTRICT = "Single District"

MIN_NODE_SIZE = 5
MAX_NODE_SIZE = 20

_DISTRICT_PATTERN = re.compile(r'(\d+)(st|nd|rd|th)\s+District')
_SPA_PATTERN = re.compile(r'^SPA\s*(\d+)', re.IGNORECASE)


def normalize_sector(sector: Optional[str]) -> str:
    """
    Map a raw sector answer onto the dashboard's sector vocabulary.

    Unmapped answers pass through unchanged; a blank answer is "Unknown".
    """
    if not sector:
        return UNKNOWN
    return SECTOR_MAP.get(sector, sector)


def extract_primary_district(district_field: Optional[str]) -> str:
    """
    Reduce the headquarters district answer to "District <n>", "Countywide" or "Unknown".

    >>> extract_primary_district("3rd District")
    'District 3'
    """
    if not district_field:
        return UNKNOWN
    if COUNTYWIDE in district_field:
        return COUNTYWIDE

    match = _DISTRICT_PATTERN.search(district_field)
    return f"District {match.group(1)}" if match else UNKNOWN


def parse_multi_select(field: Optional[str]) -> List[str]:
    """Split a comma-joined multi-select answer into trimmed, non-empty options."""
    if not field:
        return []
    return [item.strip() for item in field.split(',') if item.strip()]


def calculate_scope(served_districts: Sequence[str]) -> str:
    """Classify an organization's reach from the districts it serves."""
    if COUNTYWIDE in served_districts or len(served_districts) >= 4:
        return SCOPE_COUNTYWIDE
    if len(served_districts) >= 2:
        return SCOPE_MULTI_DISTRICT
    return SCOPE_SINGLE_DISTRICT


def calculate_node_size(activities: Sequence[str], served_districts: Sequence[str]) -> int:
    """Network node radius: two points per activity plus one per served district, clamped."""
    return max(MIN_NODE_SIZE, min(MAX_NODE_SIZE, len(activities) * 2 + len(served_districts)))


def clean_spa_data(spa_field: Optional[str]) -> str:
    """
    Reduce Service Planning Area answers to a compact "SPA n" list.

    "SPA 4- Metro LA (Boyle Heights, Central City)" becomes "SPA 4". Tokens
    that do not start with an SPA number are dropped, repeats are removed.
    """
    if not spa_field or not spa_field.strip():
        return ""
    if 'countywide' in spa_field.lower():
        return COUNTYWIDE

    spas = []
    for token in spa_field.split(','):
        match = _SPA_PATTERN.match(token.strip())
        if match:
            spa = f"SPA {match.group(1)}"
            if spa not in spas:
                spas.append(spa)

    return ", ".join(spas)
