"""
Geocoding batch driver.
Reads the survey export, geocodes each organization in turn and writes the map document.
"""
import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..config.config_manager import ConfigManager
from ..models import survey_columns as cols
from ..models.survey_data import GeocodedOrganization, GeocodingOutcome
from ..utils.logging_config import ErrorHandler
from ..utils.report_generator import ReportGenerator
from .field_normalizer import clean_spa_data
from .geocode_cache import GeocodeCache
from .geocoder import Geocoder
from .nominatim_client import NominatimClient, GeocoderAPIError
from .override_table import OverrideTable
from .spreadsheet_parser import SpreadsheetParser, SpreadsheetParseError


class BatchGeocodingError(Exception):
    """Exception raised when a geocoding run cannot proceed."""
    pass


def build_output_document(organizations: Sequence[GeocodedOrganization], total: int) -> Dict[str, Any]:
    """
    Assemble the map document: geocoded organizations plus run metadata.

    Args:
        organizations: Successfully geocoded organizations only
        total: Number of organizations in the survey, failures included
    """
    success_count = len(organizations)
    districts: List[str] = []
    sectors: List[str] = []
    for org in organizations:
        if org.primary_district not in districts:
            districts.append(org.primary_district)
        if org.sector not in sectors:
            sectors.append(org.sector)

    return {
        'organizations': [org.to_dict() for org in organizations],
        'metadata': {
            'totalOrganizations': total,
            'geocodedOrganizations': success_count,
            'failedGeocode': total - success_count,
            'successRate': f"{(success_count / total * 100) if total else 0.0:.1f}",
            'lastUpdated': datetime.now().isoformat(),
            'districts': districts,
            'sectors': sectors
        }
    }


class GeocodingBatchProcessor:
    """
    Runs the geocoding pipeline over every survey record, one at a time.

    Records are processed serially with a fixed pause between them because the
    public geocoding service is rate limited. The cache is loaded once at the
    start and written once at the end; an organization that cannot be geocoded
    is left out of the output document.
    """

    def __init__(self,
                 config_manager: ConfigManager,
                 client: Optional[NominatimClient] = None,
                 overrides: Optional[OverrideTable] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the batch with its cache, override table and service client.

        Args:
            config_manager: Configuration manager instance
            client: Geocoding service client (built from configuration if omitted)
            overrides: Override table (loaded from the configured file if omitted)
            sleep: Sleep function used for rate limiting, replaceable in tests

        Raises:
            OverrideTableError: If the configured override file is invalid
        """
        self.config = config_manager
        self.logger = logging.getLogger(__name__)
        self.error_handler = ErrorHandler(self.logger)
        self.report_generator = ReportGenerator(self.logger)

        self.delay = self.config.get_geocode_delay()
        self.sleep = sleep

        self.cache = GeocodeCache(self.config.get_cache_file())
        self.overrides = overrides if overrides is not None else OverrideTable.load(self.config.get_overrides_file())
        self.client = client or NominatimClient(self.config)
        self.geocoder = Geocoder(self.cache, self.overrides, self.client, delay=self.delay, sleep=self.sleep)

        self.parser = SpreadsheetParser(sheet_name=self.config.get_survey_sheet_name())

        self.outcomes: List[GeocodingOutcome] = []
        self.stats: Dict[str, Any] = {}
        self._reset_stats()

    def _reset_stats(self) -> None:
        self.outcomes = []
        self.stats = {
            'total_organizations': 0,
            'successful': 0,
            'failed': 0,
            'skipped': 0,
            'errors': 0,
            'cache_hits': 0,
            'override_hits': 0,
            'api_lookups': 0,
            'cache_entries_before': 0,
            'cache_entries_after': 0,
            'cache_saved': False,
            'start_time': None,
            'end_time': None,
            'processing_duration': 0.0
        }
        self.error_handler.clear_error_history()

    def run(self,
            survey_file: Optional[str] = None,
            output_file: Optional[str] = None,
            report_file: Optional[str] = None) -> Dict[str, Any]:
        """
        Geocode the survey export and write the organizations document.

        Args:
            survey_file: Survey export path (configured path if omitted)
            output_file: Output document path (configured path if omitted)
            report_file: Optional path for the JSON run report

        Returns:
            Dict run report

        Raises:
            BatchGeocodingError: If the survey yields no records or the output cannot be written
        """
        survey_file = survey_file or self.config.get_survey_file()
        output_file = output_file or self.config.get_output_file()

        self._reset_stats()
        self.stats['start_time'] = datetime.now()
        self.logger.info(f"Starting geocoding run - Input: {survey_file}, Output: {output_file}")

        self.logger.info("Loading geocoding cache...")
        self.stats['cache_entries_before'] = self.cache.load()

        try:
            parse_result = self.parser.parse_file(survey_file)
        except SpreadsheetParseError as e:
            self.error_handler.handle_file_error(survey_file, e, "reading")
            raise BatchGeocodingError(f"Failed to read survey export {survey_file}: {e}") from e

        for warning in parse_result.warnings:
            self.logger.warning(warning)
        if not parse_result.records:
            details = "; ".join(parse_result.errors) or "no organizations found"
            raise BatchGeocodingError(f"No survey records to geocode: {details}")

        document = self.process_records(parse_result.records)

        self.logger.info("Saving geocoding cache...")
        self.stats['cache_saved'] = self.cache.save()
        if not self.stats['cache_saved']:
            self.error_handler.handle_file_error(
                str(self.cache.file_path), OSError("cache could not be written"), "writing"
            )
        self.stats['cache_entries_after'] = len(self.cache)

        self.write_output(document, output_file)

        self.stats['end_time'] = datetime.now()
        self.stats['processing_duration'] = (self.stats['end_time'] - self.stats['start_time']).total_seconds()

        report = self.report_generator.generate_run_report(
            outcomes=self.outcomes,
            run_stats=self.stats,
            error_summary=self.error_handler.get_error_summary(),
            output_file=report_file
        )

        self.error_handler.log_error_summary()
        for line in self.report_generator.generate_summary_text(report).split('\n'):
            if line.strip():
                self.logger.info(line)

        report['output_document'] = document
        return report

    def process_records(self, records: Sequence[Mapping[str, str]]) -> Dict[str, Any]:
        """
        Geocode records in order, pausing between them, and build the output document.

        Counters and outcomes accumulate on the processor; the cache is not saved here.
        """
        total = len(records)
        self.stats['total_organizations'] = total
        organizations: List[GeocodedOrganization] = []

        for index, record in enumerate(records):
            name = record.get(cols.ORGANIZATION_NAME) or 'Unknown'
            self.logger.info(f"Processing {index + 1}/{total}: {name}")

            organization = self.geocode_record(index, record)
            if organization is not None:
                organizations.append(organization)

            if index < total - 1:
                self.sleep(self.delay)

        return build_output_document(organizations, total)

    def geocode_record(self, index: int, record: Mapping[str, str]) -> Optional[GeocodedOrganization]:
        """
        Geocode a single survey record.

        Returns:
            The output row, or None when the record could not be geocoded
        """
        name = record.get(cols.ORGANIZATION_NAME) or 'Unknown'
        street = record.get(cols.STREET_ADDRESS, '')
        zip_code = record.get(cols.ZIP_CODE, '')

        try:
            result = self.geocoder.geocode(street, zip_code, name)
        except GeocoderAPIError as e:
            self.error_handler.handle_geocode_error(e, name, street)
            self.stats['api_lookups'] += 1
            self._record_failure(index, name, street, zip_code, "error", "api", str(e))
            return None

        if result.source == "cache":
            self.stats['cache_hits'] += 1
        elif result.source == "override":
            self.stats['override_hits'] += 1
        elif result.source != "skipped":
            self.stats['api_lookups'] += 1

        if result.source == "skipped":
            self._record_failure(index, name, street, zip_code, "skipped", "skipped", "Missing address or zip")
            return None

        if not result.is_found():
            self._record_failure(index, name, street, zip_code, "fail", result.source, "Geocoding failed")
            return None

        self.stats['successful'] += 1
        self.outcomes.append(GeocodingOutcome(
            row_index=index,
            organization_name=name,
            status="pass",
            source=result.source,
            address=street,
            zip_code=zip_code
        ))

        return GeocodedOrganization(
            id=f"org-{index}",
            name=name,
            sector=record.get(cols.SECTOR) or 'Unknown',
            address=street,
            zip_code=zip_code,
            coordinates=result.coordinates,
            primary_district=record.get(cols.PRIMARY_DISTRICT) or 'Unknown',
            other_districts=cols.read_column(record, cols.SERVED_DISTRICTS),
            primary_spa=clean_spa_data(record.get(cols.PRIMARY_SPA, '')),
            additional_spas=clean_spa_data(record.get(cols.ADDITIONAL_SPAS, '')),
            mission=record.get(cols.MISSION, ''),
            primary_activity=record.get(cols.PRIMARY_ACTIVITY, ''),
            website=record.get(cols.WEBSITE, ''),
            contact_email=record.get(cols.EMAIL, ''),
            contact_name=record.get(cols.CONTACT_NAME, '')
        )

    def _record_failure(self, index: int, name: str, street: str, zip_code: str,
                        status: str, source: str, message: str) -> None:
        self.stats['failed'] += 1
        if status == "skipped":
            self.stats['skipped'] += 1
        elif status == "error":
            self.stats['errors'] += 1

        outcome = GeocodingOutcome(
            row_index=index,
            organization_name=name,
            status=status,
            source=source,
            address=street,
            zip_code=zip_code,
            error_message=message
        )
        self.outcomes.append(outcome)
        self.logger.warning(f"FAILED TO IMPORT: {name} - {message} "
                            f"(address: {street or 'N/A'}, zip: {zip_code or 'N/A'})")

    def write_output(self, document: Dict[str, Any], output_file: str) -> None:
        """
        Write the organizations document as JSON.

        Raises:
            BatchGeocodingError: If the file cannot be written
        """
        output_path = Path(output_file)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
        except OSError as e:
            self.error_handler.handle_file_error(output_file, e, "writing")
            raise BatchGeocodingError(f"Failed to write output document {output_file}: {e}") from e

        self.logger.info(f"Output saved to: {output_path}")

    def get_processing_statistics(self) -> Dict[str, Any]:
        return self.stats.copy()

    def close(self) -> None:
        self.client.close()
