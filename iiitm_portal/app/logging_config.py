import logging
import logging.handlers
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class LoggingConfig:
    """Root logger setup for the portal: console output plus a rotating log file."""

    def __init__(self):
        self.logs_dir: Optional[Path] = None
        self._configured = False

    def setup_logging(
        self,
        logs_dir: Optional[Path] = None,
        log_level: str = "INFO",
        console_level: Optional[str] = None,
        file_level: Optional[str] = None,
        max_file_size: int = 10 * 1024 * 1024,
        backup_count: int = 5,
        log_format: str = DEFAULT_FORMAT,
    ) -> None:
        """
        Configure the root logger once per process.

        Args:
            logs_dir: Directory for ``iiitm-portal.log``; no file handler when None
            log_level: Default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            console_level: Log level for console output (if different from log_level)
            file_level: Log level for file output (if different from log_level)
            max_file_size: Maximum size of log files before rotation (in bytes)
            backup_count: Number of rotated files to keep
        """
        if self._configured:
            return

        root_level = LEVEL_MAP.get(log_level.upper(), logging.INFO)
        console_log_level = LEVEL_MAP.get((console_level or log_level).upper(), root_level)
        file_log_level = LEVEL_MAP.get((file_level or log_level).upper(), root_level)

        root_logger = logging.getLogger()
        root_logger.setLevel(min(console_log_level, file_log_level))
        root_logger.handlers.clear()

        console_handler = logging.StreamHandler()
        console_handler.setLevel(console_log_level)
        console_handler.setFormatter(logging.Formatter(log_format))
        root_logger.addHandler(console_handler)

        if logs_dir is not None:
            self.logs_dir = Path(logs_dir)
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self.logs_dir / "iiitm-portal.log",
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(file_log_level)
            file_handler.setFormatter(logging.Formatter(log_format))
            root_logger.addHandler(file_handler)

        self._configured = True

        logger = logging.getLogger(__name__)
        logger.info(
            "Logging configured - Console: %s, File: %s",
            console_level or log_level,
            file_level or log_level,
        )
        if self.logs_dir is not None:
            logger.info("Log files will be stored in: %s", self.logs_dir.absolute())


_logging_config = LoggingConfig()


def setup_logging(**kwargs) -> None:
    _logging_config.setup_logging(**kwargs)


def configure_from_config(config) -> None:
    """Configure logging from a Flask config mapping."""
    logs_dir = config.get("LOG_DIR")
    setup_logging(
        logs_dir=Path(logs_dir) if logs_dir else None,
        log_level=config.get("LOG_LEVEL") or "INFO",
        console_level=config.get("CONSOLE_LOG_LEVEL"),
        file_level=config.get("FILE_LOG_LEVEL"),
    )
