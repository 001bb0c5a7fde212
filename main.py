#!/usr/bin/env python3
"""
Main entry point for the Food System Survey data tools.

Two commands are available:

    geocode   Geocode every organization's headquarters address and write the
              map document (organizations.json), reusing the geocode cache.
    export    Write every dashboard chart's data shape to one JSON file.

Usage:
    python main.py geocode [--survey-file PATH] [--output-file PATH] [options]
    python main.py export OUTPUT_FILE [--survey-file PATH] [options]

Optional Environment Variables:
    SURVEY_FILE: Survey export (.xlsx or .csv)
    SURVEY_SHEET_NAME: Worksheet name (default: Copy of Survey Responses)
    GEOCODE_CACHE_FILE: Geocode cache (default: data/geocode-cache.json)
    GEOCODE_OVERRIDES_FILE: Coordinate override table (default: bundled table)
    ORGANIZATIONS_OUTPUT_FILE: Map document (default: data/organizations.json)
    NOMINATIM_URL: Geocoding service URL (default: https://nominatim.openstreetmap.org)
    GEOCODER_USER_AGENT: User-Agent sent to the geocoding service
    GEOCODE_DELAY: Seconds between geocoding requests (default: 2)
    LOG_LEVEL: Logging level (default: INFO)
"""

import sys
import json
import argparse
from pathlib import Path

from food_system_survey.config.config_manager import ConfigManager, ConfigurationError


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the command-line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="food-system-survey",
        description="Process the food system stakeholder survey for the dashboard",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)"
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        help="Save logs to specified file (default: logs/food_system_survey.log)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="Food System Survey 1.0.0"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    geocode_parser = subparsers.add_parser("geocode", help="Geocode organizations for the map view")
    geocode_parser.add_argument("--survey-file", metavar="PATH", help="Survey export to read")
    geocode_parser.add_argument("--output-file", metavar="PATH", help="Where to write organizations.json")
    geocode_parser.add_argument("--report-file", metavar="PATH", help="Save the run report to a JSON file")

    export_parser = subparsers.add_parser("export", help="Export chart data shapes to JSON")
    export_parser.add_argument("output_file", help="Path of the JSON file to write")
    export_parser.add_argument("--survey-file", metavar="PATH", help="Survey export to read")

    return parser


def run_geocode(args: argparse.Namespace, config_manager: ConfigManager) -> int:
    from food_system_survey.services.batch_geocoder import GeocodingBatchProcessor, BatchGeocodingError
    from food_system_survey.services.override_table import OverrideTableError

    try:
        batch = GeocodingBatchProcessor(config_manager)
    except OverrideTableError as e:
        print(f"✗ Override table error: {e}")
        return 1

    try:
        report = batch.run(
            survey_file=args.survey_file,
            output_file=args.output_file,
            report_file=args.report_file
        )
    except BatchGeocodingError as e:
        print(f"✗ Geocoding failed: {e}")
        return 1
    finally:
        batch.close()

    summary = report['processing_summary']
    print(f"✓ Geocoded {summary['geocoded']}/{summary['total_organizations']} organizations "
          f"({summary['success_rate_percent']}%)")
    return 0


def run_export(args: argparse.Namespace, config_manager: ConfigManager) -> int:
    from food_system_survey.services.survey_processor import SurveyDataProcessor
    from food_system_survey.services.spreadsheet_parser import SpreadsheetParseError

    survey_file = args.survey_file or config_manager.get_survey_file()
    try:
        processor = SurveyDataProcessor.from_file(survey_file, config_manager.get_survey_sheet_name())
    except SpreadsheetParseError as e:
        print(f"✗ {e}")
        return 1

    if processor.parse_result is not None and not processor.parse_result.is_successful():
        for error in processor.parse_result.errors:
            print(f"✗ {error}")
        return 1

    output_path = Path(args.output_file)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(processor.get_all_chart_data(), f, indent=2, ensure_ascii=False)
    except OSError as e:
        print(f"✗ Failed to write chart data to {output_path}: {e}")
        return 1

    print(f"✓ Exported chart data for {len(processor.records)} organizations to {output_path}")
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        config_manager = ConfigManager()
    except ConfigurationError as e:
        print(f"\n✗ Configuration Error: {e}")
        return 1

    from food_system_survey.utils.logging_config import setup_logging
    logging_config, _ = setup_logging(
        log_level="DEBUG" if args.verbose else config_manager.get_log_level(),
        log_file=args.log_file
    )

    try:
        if args.command == "geocode":
            return run_geocode(args, config_manager)
        return run_export(args, config_manager)
    except KeyboardInterrupt:
        print("\n✗ Interrupted; cache entries learned in this run were not saved")
        return 130
    finally:
        logging_config.shutdown()


if __name__ == "__main__":
    sys.exit(main())
