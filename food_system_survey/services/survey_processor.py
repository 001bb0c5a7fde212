"""
Survey data processor.
Derives the data shape behind each dashboard chart from parsed survey records.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..models import survey_columns as cols
from ..models.survey_data import NormalizedOrganization, SimilarityLink, Flow
from .field_normalizer import (
    COUNTYWIDE,
    normalize_sector,
    extract_primary_district,
    parse_multi_select,
    calculate_scope,
    calculate_node_size,
)
from .spreadsheet_parser import SpreadsheetParser, ParseResult, DEFAULT_SHEET_NAME


LINK_THRESHOLD = 3

GOAL_LABELS = {
    'Improve affordability of healthy foods': 'Affordability',
    'Increase equitable access to healthy foods': 'Access',
    'Build market demand and consumption of healthy foods': 'Demand',
    'Support sustainability and resilience in food systems and supply chains': 'Sustainability'
}

HIERARCHY_ROOT = 'Food System Goals'


def generate_links(nodes: Sequence[NormalizedOrganization],
                   threshold: int = LINK_THRESHOLD) -> List[SimilarityLink]:
    """
    Link every pair of organizations whose shared goals and activities reach the threshold.

    Shared counts are taken from A's side: each of A's options found among B's
    options counts once, so an option A lists twice counts twice. Compares all
    pairs, which is fine for a survey of a few hundred organizations.

    Args:
        nodes: Organizations indexed by position
        threshold: Minimum of 2 * shared goals + shared activities

    Returns:
        List of links with source < target
    """
    links = []
    for i in range(len(nodes)):
        node_a = nodes[i]
        for j in range(i + 1, len(nodes)):
            node_b = nodes[j]
            shared_goals = sum(1 for goal in node_a.goals if goal in node_b.goals)
            shared_activities = sum(1 for activity in node_a.activities if activity in node_b.activities)

            link = SimilarityLink(
                source=node_a.id,
                target=node_b.id,
                shared_goals=shared_goals,
                shared_activities=shared_activities
            )
            if link.strength >= threshold:
                links.append(link)

    return links


def build_hierarchy(goal_counts: Mapping[str, int],
                    objective_counts: Optional[Mapping[str, int]] = None) -> Dict[str, Any]:
    """Build the donut chart hierarchy, shortening the four Action Plan goals to labels."""
    children = [
        {
            'name': GOAL_LABELS.get(goal, goal),
            'value': count,
            'fullName': goal
        }
        for goal, count in goal_counts.items()
    ]

    hierarchy = {
        'name': HIERARCHY_ROOT,
        'children': children
    }
    if objective_counts is not None:
        hierarchy['objectiveCounts'] = dict(objective_counts)
    return hierarchy


def aggregate_flows(flows: Sequence[Flow]) -> List[Flow]:
    """
    Merge flows sharing the same (source, target) pair.

    Values are summed and organization names concatenated; pairs keep the order
    in which they were first seen.
    """
    flow_map: Dict[tuple, Flow] = {}
    for flow in flows:
        key = (flow.source, flow.target)
        if key not in flow_map:
            flow_map[key] = Flow(source=flow.source, target=flow.target)
        flow_map[key].value += flow.value
        flow_map[key].organizations.extend(flow.organizations)

    return list(flow_map.values())


def rank_counts(counts: Mapping[str, int], label_length: int = 40) -> List[Dict[str, Any]]:
    """
    Turn option counts into a chart series sorted by count, largest first.

    Args:
        counts: Option to number of organizations choosing it
        label_length: Labels longer than this are cut and suffixed with "..."

    Returns:
        List of dicts with label, fullLabel, count and percentage of all choices
    """
    total = sum(counts.values())
    series = []
    for option, count in counts.items():
        label = option[:label_length] + "..." if len(option) > label_length else option
        series.append({
            'label': label,
            'fullLabel': option,
            'count': count,
            'percentage': round(count / total * 100, 1) if total else 0.0
        })

    series.sort(key=lambda item: item['count'], reverse=True)
    return series


class SurveyDataProcessor:
    """
    Derives chart data from survey records.

    Records are read once and never modified; every getter recomputes its shape
    from them.
    """

    def __init__(self, records: Sequence[Mapping[str, str]], parse_result: Optional[ParseResult] = None):
        """
        Initialize the processor.

        Args:
            records: Parsed survey records keyed by normalized column
            parse_result: Parse details, kept for callers that report warnings
        """
        self.logger = logging.getLogger(__name__)
        self.records = list(records)
        self.parse_result = parse_result

    @classmethod
    def from_file(cls, file_path: Union[str, Path], sheet_name: str = DEFAULT_SHEET_NAME) -> 'SurveyDataProcessor':
        """Parse a survey export and wrap its records."""
        parse_result = SpreadsheetParser(sheet_name=sheet_name).parse_file(file_path)
        return cls(parse_result.records, parse_result)

    def _field(self, record: Mapping[str, str], column: str) -> str:
        return cols.read_column(record, column)

    def get_organizations(self) -> List[NormalizedOrganization]:
        """Normalize every record into an organization; ids are record positions."""
        organizations = []
        for index, record in enumerate(self.records):
            activities = parse_multi_select(self._field(record, cols.ACTIVITIES))
            served = parse_multi_select(self._field(record, cols.SERVED_DISTRICTS))

            organizations.append(NormalizedOrganization(
                id=index,
                name=self._field(record, cols.ORGANIZATION_NAME) or 'Unknown',
                sector=normalize_sector(self._field(record, cols.SECTOR)),
                district=extract_primary_district(self._field(record, cols.PRIMARY_DISTRICT)),
                scope=calculate_scope(served),
                goals=parse_multi_select(self._field(record, cols.GOALS)),
                activities=activities,
                challenges=parse_multi_select(self._field(record, cols.CHALLENGES)),
                primary_goal=self._field(record, cols.PRIMARY_GOAL),
                website=self._field(record, cols.WEBSITE),
                size=calculate_node_size(activities, served)
            ))

        return organizations

    def get_network_data(self) -> Dict[str, List[Dict[str, Any]]]:
        """Nodes and similarity links for the force-directed network."""
        nodes = self.get_organizations()
        links = generate_links(nodes)
        self.logger.debug(f"Network built with {len(nodes)} nodes and {len(links)} links")

        return {
            'nodes': [node.to_dict() for node in nodes],
            'links': [link.to_dict() for link in links]
        }

    def get_goal_alignment_data(self) -> Dict[str, Any]:
        """Goal hierarchy for the donut chart, with objective counts attached."""
        goal_counts: Dict[str, int] = {}
        objective_counts: Dict[str, int] = {}

        for record in self.records:
            for goal in parse_multi_select(self._field(record, cols.GOALS)):
                goal_counts[goal] = goal_counts.get(goal, 0) + 1
            for objective in parse_multi_select(self._field(record, cols.OBJECTIVES)):
                objective_counts[objective] = objective_counts.get(objective, 0) + 1

        return build_hierarchy(goal_counts, objective_counts)

    def get_activity_matrix_data(self) -> Dict[str, Any]:
        """Organization by activity 0/1 matrix for the heatmap."""
        activities = set()
        organizations = []

        for record in self.records:
            org_activities = parse_multi_select(self._field(record, cols.ACTIVITIES))
            activities.update(org_activities)
            organizations.append({
                'name': self._field(record, cols.ORGANIZATION_NAME) or 'Unknown',
                'sector': normalize_sector(self._field(record, cols.SECTOR)),
                'activities': org_activities
            })

        activity_list = sorted(activities)
        matrix = [
            {
                'organization': org['name'],
                'sector': org['sector'],
                'activities': [
                    {'activity': activity, 'value': 1 if activity in org['activities'] else 0}
                    for activity in activity_list
                ]
            }
            for org in organizations
        ]

        return {'matrix': matrix, 'activities': activity_list}

    def _count_by_sector(self, column: str):
        counts: Dict[str, int] = {}
        by_sector: Dict[str, Dict[str, int]] = {}

        for record in self.records:
            sector = normalize_sector(self._field(record, cols.SECTOR))
            sector_counts = by_sector.setdefault(sector, {})
            for option in parse_multi_select(self._field(record, column)):
                counts[option] = counts.get(option, 0) + 1
                sector_counts[option] = sector_counts.get(option, 0) + 1

        return counts, by_sector

    def get_challenges_data(self) -> Dict[str, Any]:
        """Collaboration challenge counts, overall and per sector, for the bar chart."""
        challenge_counts, challenges_by_sector = self._count_by_sector(cols.CHALLENGES)
        return {
            'challengeCounts': challenge_counts,
            'challengesBySector': challenges_by_sector,
            'ranked': rank_counts(challenge_counts, label_length=40)
        }

    def get_capacity_needs_data(self) -> Dict[str, Any]:
        """Capacity building need counts, overall and per sector, for the radar chart."""
        needs_counts, needs_by_sector = self._count_by_sector(cols.CAPACITY_NEEDS)
        return {
            'needsCounts': needs_counts,
            'needsBySector': needs_by_sector,
            'ranked': rank_counts(needs_counts, label_length=30)
        }

    def get_geographic_flows(self) -> List[Flow]:
        """
        Cross-district service flows from headquarters district to served districts.

        A served district equal to the headquarters district, or "Countywide",
        produces no flow.
        """
        flows = []
        for record in self.records:
            primary_district = extract_primary_district(self._field(record, cols.PRIMARY_DISTRICT))
            name = self._field(record, cols.ORGANIZATION_NAME)
            for served in parse_multi_select(self._field(record, cols.SERVED_DISTRICTS)):
                if served == primary_district or served == COUNTYWIDE:
                    continue
                flows.append(Flow(source=primary_district, target=served, value=1, organizations=[name]))

        return aggregate_flows(flows)

    def get_geographic_flow_data(self) -> List[Dict[str, Any]]:
        """Aggregated flows serialized for the flow diagram."""
        return [flow.to_dict() for flow in self.get_geographic_flows()]

    def get_summary_stats(self) -> Dict[str, Any]:
        """Organization totals with sector and district breakdowns."""
        sector_counts: Dict[str, int] = {}
        district_counts: Dict[str, int] = {}

        for record in self.records:
            sector = normalize_sector(self._field(record, cols.SECTOR))
            district = extract_primary_district(self._field(record, cols.PRIMARY_DISTRICT))
            sector_counts[sector] = sector_counts.get(sector, 0) + 1
            district_counts[district] = district_counts.get(district, 0) + 1

        return {
            'totalOrganizations': len(self.records),
            'sectorBreakdown': sector_counts,
            'districtBreakdown': district_counts
        }

    def get_all_chart_data(self) -> Dict[str, Any]:
        """Every chart shape keyed by chart name, as exported for the static dashboard."""
        return {
            'network': self.get_network_data(),
            'goals': self.get_goal_alignment_data(),
            'activities': self.get_activity_matrix_data(),
            'challenges': self.get_challenges_data(),
            'capacity': self.get_capacity_needs_data(),
            'flows': self.get_geographic_flow_data(),
            'summary': self.get_summary_stats()
        }
