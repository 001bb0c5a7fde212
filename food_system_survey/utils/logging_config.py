"""
Logging setup for the survey tools.

Console output stays short for people watching a geocoding run; the rotating
log file keeps module and line numbers for later digging. ErrorHandler collects
the errors of one batch run so they can be summarized in the run report.
"""
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional


DEFAULT_LOG_FILE = Path("logs") / "food_system_survey.log"

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# Chatty third-party loggers, kept at INFO or above even in verbose runs
QUIET_LOGGERS = ("urllib3",)

RECENT_ERROR_LIMIT = 10


class LoggingConfig:
    """
    Installs console and rotating file handlers on the root logger.

    Any handlers already on the root logger are replaced, so calling this twice
    does not duplicate output.
    """

    def __init__(self,
                 log_level: str = "INFO",
                 log_file: Optional[str] = None,
                 enable_console: bool = True,
                 enable_file: bool = True,
                 max_file_size_mb: int = 10,
                 backup_count: int = 5):
        """
        Args:
            log_level: Level name; unknown names fall back to INFO
            log_file: Log file path (default logs/food_system_survey.log)
            enable_console: Log to stdout
            enable_file: Log to the rotating file
            max_file_size_mb: Size at which the file is rotated
            backup_count: Rotated files to keep
        """
        self.log_level = getattr(logging, log_level.upper(), logging.INFO)
        self.log_file = Path(log_file) if log_file else DEFAULT_LOG_FILE
        self.enable_console = enable_console
        self.enable_file = enable_file
        self.max_file_size_mb = max_file_size_mb
        self.backup_count = backup_count

        self._install_handlers()

    def _console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
        return handler

    def _file_handler(self) -> logging.Handler:
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            filename=self.log_file,
            maxBytes=self.max_file_size_mb * 1024 * 1024,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        return handler

    def _install_handlers(self) -> None:
        root_logger = logging.getLogger()
        root_logger.setLevel(self.log_level)
        root_logger.handlers.clear()

        handlers = []
        if self.enable_console:
            handlers.append(self._console_handler())
        if self.enable_file:
            handlers.append(self._file_handler())

        for handler in handlers:
            handler.setLevel(self.log_level)
            root_logger.addHandler(handler)

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(max(self.log_level, logging.INFO))

        destination = f", writing to {self.log_file}" if self.enable_file else ""
        logging.getLogger(__name__).info(
            f"Logging at {logging.getLevelName(self.log_level)}{destination}"
        )

    def log_system_info(self) -> None:
        """Record interpreter and working directory at the top of a run."""
        logger = logging.getLogger(__name__)
        logger.info(f"Python {sys.version.split()[0]} on {sys.platform}")
        logger.info(f"Working directory: {Path.cwd()}")

    def shutdown(self) -> None:
        """Flush and detach every root handler."""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            handler.flush()
            handler.close()
            root_logger.removeHandler(handler)


class ErrorHandler:
    """
    Logs errors raised during a batch run and keeps per-category counts.

    Categories are "<area>_<exception class>", e.g. "geocode_geocoderapierror"
    or "file_oserror".
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.error_counts: Dict[str, int] = {}
        self.error_history: List[Dict[str, Any]] = []

    def _record(self, area: str, error: Exception, **context) -> Dict[str, Any]:
        error_type = type(error).__name__
        category = f"{area}_{error_type.lower()}"
        self.error_counts[category] = self.error_counts.get(category, 0) + 1

        details = {
            'error_type': error_type,
            'error_message': str(error),
            'timestamp': datetime.now().isoformat(),
        }
        details.update(context)
        self.error_history.append(details)
        return details

    def handle_file_error(self, file_path: str, error: Exception, operation: str = "reading") -> Dict[str, Any]:
        """Log a failure to read or write a file, such as the geocode cache."""
        self.logger.error(f"File {operation} error for {file_path}: {type(error).__name__} - {error}")
        return self._record("file", error, file_path=file_path, operation=operation)

    def handle_geocode_error(self,
                             error: Exception,
                             organization_name: Optional[str] = None,
                             address: Optional[str] = None) -> Dict[str, Any]:
        """
        Log a geocoding service failure for one organization.

        Rate limiting (HTTP 429) is logged as a warning, anything else as an error.

        Returns:
            Dict of error details, including an ``is_rate_limit`` flag
        """
        message = str(error)
        is_rate_limit = "429" in message or "rate limit" in message.lower()
        who = organization_name or "unknown organization"

        if is_rate_limit:
            self.logger.warning(f"Geocoding rate limit hit for {who}: {message}")
        else:
            self.logger.error(f"Geocoding error for {who}: {type(error).__name__} - {message}")

        return self._record("geocode", error, organization_name=organization_name,
                            address=address, is_rate_limit=is_rate_limit)

    def get_error_summary(self) -> Dict[str, Any]:
        """Totals per category, the most frequent category and the latest errors."""
        most_common = max(self.error_counts, key=self.error_counts.get) if self.error_counts else None
        return {
            'total_errors': sum(self.error_counts.values()),
            'error_counts_by_type': dict(self.error_counts),
            'recent_errors': self.error_history[-RECENT_ERROR_LIMIT:],
            'most_common_error': most_common
        }

    def clear_error_history(self) -> None:
        self.error_counts.clear()
        self.error_history.clear()

    def log_error_summary(self) -> None:
        summary = self.get_error_summary()
        if not summary['total_errors']:
            self.logger.info("No errors encountered during processing")
            return

        self.logger.warning(f"Error Summary: {summary['total_errors']} total errors")
        for category, count in summary['error_counts_by_type'].items():
            self.logger.warning(f"  {category}: {count} occurrences")


def setup_logging(log_level: str = "INFO",
                  log_file: Optional[str] = None,
                  enable_console: bool = True,
                  enable_file: bool = True) -> tuple:
    """
    Configure logging for a CLI or server run.

    Returns:
        Tuple of (LoggingConfig, ErrorHandler)
    """
    logging_config = LoggingConfig(
        log_level=log_level,
        log_file=log_file,
        enable_console=enable_console,
        enable_file=enable_file
    )
    logging_config.log_system_info()
    return logging_config, ErrorHandler(logging.getLogger(__name__))
