import logging

from food_system_survey.services.nominatim_client import GeocoderAPIError
from food_system_survey.utils.logging_config import ErrorHandler, setup_logging


def test_setup_logging_writes_rotating_file(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    logging_config, error_handler = setup_logging(log_level="debug", log_file=str(log_file), enable_console=False)
    try:
        logging.getLogger("food_system_survey.tests").info("hello from the run")
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.INFO
        assert isinstance(error_handler, ErrorHandler)
    finally:
        logging_config.shutdown()

    assert "hello from the run" in log_file.read_text(encoding="utf-8")


def test_error_handler_counts_by_type():
    handler = ErrorHandler()
    handler.handle_geocode_error(GeocoderAPIError("HTTP error! status: 429"), "Food Bank", "1 Main St")
    handler.handle_geocode_error(GeocoderAPIError("HTTP error! status: 500"), "Pantry")
    details = handler.handle_file_error("data/geocode-cache.json", OSError("read-only"), "writing")

    assert details['operation'] == "writing"
    summary = handler.get_error_summary()
    assert summary['total_errors'] == 3
    assert summary['error_counts_by_type'] == {'geocode_geocoderapierror': 2, 'file_oserror': 1}
    assert summary['most_common_error'] == 'geocode_geocoderapierror'
    assert summary['recent_errors'][0]['is_rate_limit'] is True
    assert summary['recent_errors'][1]['is_rate_limit'] is False

    handler.clear_error_history()
    assert handler.get_error_summary()['total_errors'] == 0
    assert handler.get_error_summary()['most_common_error'] is None
