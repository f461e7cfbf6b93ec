"""
Logging utilities for the pauta crawler.

This module provides structured logging with support for multiple outputs
(console, file) and configurable formats, plus the CrawlerLogger reporter
that components receive explicitly instead of printing.
"""

import logging
import logging.config
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml

from ..exceptions import CrawlerError


def setup_logger(
    config_path: Optional[Path] = None,
    log_level: Optional[str] = None,
    log_dir: Optional[Path] = None
) -> None:
    """
    Set up logging configuration.

    Args:
        config_path: Path to logging configuration YAML file
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files
    """
    log_dir = log_dir or Path("logs")
    log_dir.mkdir(parents=True, exist_ok=True)

    if config_path and config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)

            # Log files are timestamped per run
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            handlers = config.get('handlers', {})
            if 'file' in handlers:
                handlers['file']['filename'] = str(log_dir / f"pauta_{timestamp}.log")
            if 'error_file' in handlers:
                handlers['error_file']['filename'] = str(log_dir / f"errors_{timestamp}.log")

            logging.config.dictConfig(config)
        except (OSError, ValueError, yaml.YAMLError) as e:
            print(f"Failed to load logging config: {e}", file=sys.stderr)
            _setup_basic_logging(log_level, log_dir)
    else:
        _setup_basic_logging(log_level, log_dir)

    if log_level:
        logging.getLogger().setLevel(log_level.upper())


def _setup_basic_logging(log_level: Optional[str] = None, log_dir: Optional[Path] = None) -> None:
    """
    Set up basic logging configuration as fallback.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files
    """
    level = getattr(logging, log_level.upper() if log_level else "INFO")

    console_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    file_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(console_formatter)
    handlers = [console_handler]

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        file_handler = logging.FileHandler(
            log_dir / f"pauta_{timestamp}.log",
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)


class CrawlerLogger:
    """
    Leveled event reporter for the crawl.

    Every event carries an ``event`` attribute on the log record so handlers
    and formatters can filter on it (attempt, skip, fatal, cell, unit, sink).
    """

    def __init__(self, name: str):
        """Initialize crawler logger."""
        self.logger = logging.getLogger(name)

    def _emit(self, level: int, event: str, message: str, exc_info=None, **fields) -> None:
        self.logger.log(level, message, exc_info=exc_info, extra={'event': event, **fields})

    def log_attempt(self, attempt: int, max_attempts: int, error: Exception, operation: str = "operation") -> None:
        """Log a failed attempt that the retry envelope will handle."""
        self._emit(
            logging.WARNING, 'attempt',
            f"{operation}: attempt {attempt}/{max_attempts} failed: {error}",
            attempt=attempt, max_attempts=max_attempts,
        )

    def log_skip(self, unit: str, date_label: str, reason: str) -> None:
        """Log a skipped (unit, date) cell."""
        self._emit(
            logging.WARNING, 'skip',
            f"Skipping {unit} | {date_label}: {reason}",
            unit=unit, date=date_label,
        )

    def log_fatal(self, error: BaseException, context: Optional[str] = None) -> None:
        """Log an error that ends the run, with traceback."""
        message = f"Fatal: {error}"
        if context:
            message = f"{context} - {message}"
        details = error.to_dict() if isinstance(error, CrawlerError) else {'error': type(error).__name__}
        self._emit(logging.ERROR, 'fatal', message, exc_info=error, details=details)

    def log_unit_start(self, unit: str, index: int, total: int) -> None:
        self._emit(logging.INFO, 'unit', f"Selecting unit {index}/{total}: {unit}", unit=unit)

    def log_cell(self, unit: str, date_label: str, count: int) -> None:
        """Log successful extraction of a cell."""
        self._emit(
            logging.INFO, 'cell',
            f"{unit} | {date_label} | {count} record(s)",
            unit=unit, date=date_label, count=count,
        )

    def log_sink(self, sink: str, detail: str) -> None:
        self._emit(logging.INFO, 'sink', f"{sink}: {detail}", sink=sink)

    def log_crawl_start(self, target: str) -> None:
        """Log crawl start."""
        self.logger.info("=" * 60)
        self.logger.info(f"Starting crawl: {target}")
        self.logger.info("=" * 60)

    def log_crawl_complete(self, total_items: int, duration: float) -> None:
        """Log crawl completion."""
        self.logger.info("=" * 60)
        self.logger.info(f"Crawl completed: {total_items} records in {duration:.2f}s")
        self.logger.info("=" * 60)

    def __getattr__(self, name):
        """Delegate unknown attributes to underlying logger."""
        return getattr(self.logger, name)
