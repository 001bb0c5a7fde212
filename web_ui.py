#!/usr/bin/env python3
"""
Data API for the Food System Survey dashboard.
Small Flask application serving each chart's data shape as JSON.
"""

import logging
from typing import Optional

from flask import Flask, jsonify

from food_system_survey.config.config_manager import ConfigManager
from food_system_survey.services.spreadsheet_parser import SpreadsheetParseError
from food_system_survey.services.survey_processor import SurveyDataProcessor

logger = logging.getLogger(__name__)

CHART_ENDPOINTS = {
    'network': 'get_network_data',
    'goals': 'get_goal_alignment_data',
    'activities': 'get_activity_matrix_data',
    'challenges': 'get_challenges_data',
    'capacity': 'get_capacity_needs_data',
    'flows': 'get_geographic_flow_data',
    'summary': 'get_summary_stats',
}


def create_app(processor: Optional[SurveyDataProcessor] = None,
               config_manager: Optional[ConfigManager] = None) -> Flask:
    """
    Build the data API.

    Args:
        processor: Ready processor; when omitted the configured survey file is
            parsed on the first request and kept for the life of the process
        config_manager: Configuration manager instance
    """
    app = Flask(__name__)
    config_manager = config_manager or ConfigManager()
    state = {'processor': processor}

    def get_processor() -> SurveyDataProcessor:
        if state['processor'] is None:
            survey_file = config_manager.get_survey_file()
            logger.info(f"Loading survey data from {survey_file}")
            state['processor'] = SurveyDataProcessor.from_file(survey_file, config_manager.get_survey_sheet_name())
        return state['processor']

    @app.route('/health')
    def health():
        return jsonify({'ok': True})

    @app.route('/api/<chart>')
    def chart_data(chart):
        """Serve one chart's data shape."""
        method_name = CHART_ENDPOINTS.get(chart)
        if method_name is None:
            return jsonify({'error': f'Unknown chart: {chart}'}), 404

        try:
            processor = get_processor()
        except SpreadsheetParseError as e:
            logger.error(f"Survey data unavailable: {e}")
            return jsonify({'error': 'Survey data unavailable'}), 500

        parse_result = processor.parse_result
        if parse_result is not None and not parse_result.is_successful():
            return jsonify({'error': 'Survey data could not be parsed', 'details': parse_result.errors}), 500

        return jsonify(getattr(processor, method_name)())

    return app


if __name__ == '__main__':
    from food_system_survey.utils.logging_config import setup_logging

    setup_logging(log_level="INFO")
    create_app().run(debug=False, host='0.0.0.0', port=5000)
