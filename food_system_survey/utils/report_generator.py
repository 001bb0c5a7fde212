"""
Run reporting for geocoding batches.
Summarizes outcomes, cache use and errors, as a dict and as log-friendly text.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional
import logging

from ..models.survey_data import GeocodingOutcome


class ReportGenerator:
    """
    Builds the geocoding run report from per-record outcomes and run statistics.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize report generator.

        Args:
            logger: Logger instance (optional, creates default if not provided)
        """
        self.logger = logger or logging.getLogger(__name__)

    def generate_run_report(self,
                            outcomes: List[GeocodingOutcome],
                            run_stats: Dict[str, Any],
                            error_summary: Dict[str, Any],
                            output_file: Optional[str] = None) -> Dict[str, Any]:
        """
        Generate the run report.

        Args:
            outcomes: Per-record outcomes in processing order
            run_stats: Counters collected by the batch
            error_summary: Error summary from the error handler
            output_file: Optional path to save report as JSON file

        Returns:
            Dict containing the run report
        """
        report = {
            'report_metadata': {
                'report_generated_at': datetime.now().isoformat(),
                'report_version': '1.0',
                'generator': 'FoodSystemSurvey ReportGenerator'
            },
            'processing_summary': self._generate_processing_summary(run_stats),
            'cache_statistics': self._generate_cache_statistics(run_stats),
            'source_breakdown': self._count_sources(outcomes),
            'failures': [
                {
                    'row_index': outcome.row_index,
                    'organization_name': outcome.organization_name,
                    'status': outcome.status,
                    'address': outcome.address,
                    'zip_code': outcome.zip_code,
                    'error_message': outcome.error_message
                }
                for outcome in outcomes if not outcome.is_successful()
            ],
            'error_analysis': {
                'total_errors': error_summary.get('total_errors', 0),
                'error_counts_by_type': error_summary.get('error_counts_by_type', {}),
                'most_common_error': error_summary.get('most_common_error')
            }
        }

        if output_file:
            self._save_report_to_file(report, output_file)

        self.logger.info(f"Run report generated for {len(outcomes)} organizations")
        return report

    def _generate_processing_summary(self, stats: Dict[str, Any]) -> Dict[str, Any]:
        total = stats.get('total_organizations', 0)
        successful = stats.get('successful', 0)

        return {
            'total_organizations': total,
            'geocoded': successful,
            'failed': stats.get('failed', 0),
            'skipped_missing_address': stats.get('skipped', 0),
            'service_errors': stats.get('errors', 0),
            'success_rate_percent': round(successful / total * 100, 1) if total else 0.0,
            'processing_duration_seconds': stats.get('processing_duration', 0.0),
            'processing_start_time': stats['start_time'].isoformat() if stats.get('start_time') else None,
            'processing_end_time': stats['end_time'].isoformat() if stats.get('end_time') else None
        }

    def _generate_cache_statistics(self, stats: Dict[str, Any]) -> Dict[str, Any]:
        before = stats.get('cache_entries_before', 0)
        after = stats.get('cache_entries_after', 0)
        return {
            'cache_hits': stats.get('cache_hits', 0),
            'override_hits': stats.get('override_hits', 0),
            'api_lookups': stats.get('api_lookups', 0),
            'cache_entries_before': before,
            'cache_entries_after': after,
            'new_cache_entries': after - before,
            'cache_saved': stats.get('cache_saved', False)
        }

    def _count_sources(self, outcomes: List[GeocodingOutcome]) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for outcome in outcomes:
            counts[outcome.source] = counts.get(outcome.source, 0) + 1
        return counts

    def _save_report_to_file(self, report: Dict[str, Any], output_file: str) -> None:
        """Save report to JSON file."""
        try:
            output_path = Path(output_file)
            output_path.parent.mkdir(parents=True, exist_ok=True)

            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2, ensure_ascii=False, default=str)

            self.logger.info(f"Run report saved to: {output_path}")

        except OSError as e:
            self.logger.error(f"Failed to save report to {output_file}: {e}")

    def generate_summary_text(self, report: Dict[str, Any]) -> str:
        """
        Generate a human-readable text summary from the report.

        Args:
            report: Run report dictionary

        Returns:
            Formatted text summary
        """
        summary = report['processing_summary']
        cache = report['cache_statistics']

        lines = [
            "=== GEOCODING COMPLETE ===",
            f"Total organizations: {summary['total_organizations']}",
            f"Successfully geocoded: {summary['geocoded']}",
            f"Failed to geocode: {summary['failed']}",
            f"Success rate: {summary['success_rate_percent']}%",
            "",
            "=== CACHE STATISTICS ===",
            f"Cache hits: {cache['cache_hits']}",
            f"Override hits: {cache['override_hits']}",
            f"API lookups needed: {cache['api_lookups']}",
            f"Cache entries before: {cache['cache_entries_before']}",
            f"Cache entries after: {cache['cache_entries_after']}",
            f"New cache entries: {cache['new_cache_entries']}",
        ]

        if not cache['cache_saved']:
            lines.append("WARNING: cache was not saved; the next run will repeat these lookups")

        failures = report['failures']
        if failures:
            lines.append("")
            lines.append("=== FAILED TO IMPORT ===")
            for failure in failures:
                lines.append(f"  {failure['organization_name']} ({failure['status']}): "
                             f"{failure['address'] or 'N/A'} {failure['zip_code'] or 'N/A'}")

        lines.append("=== END REPORT ===")
        return "\n".join(lines)
