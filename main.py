#!/usr/bin/env python3
"""
Pauta Crawler - Main Entry Point

Collects the first-instance hearing agenda from the JTe portal for every unit
of the configured region and a window of upcoming business days.

Usage:
    python main.py [options]

Options:
    --config PATH       Path to configuration file (default: config/config.yaml)
    --output-dir PATH   Override output directory
    --log-level LEVEL   Set log level (DEBUG, INFO, WARNING, ERROR)
    --unit NAME         Restrict the run to a unit (repeatable)
    --strategy NAME     Date targeting strategy (stepper, calendar)
    --headless/--headed Run the browser with or without a window
    --no-db             Do not write to the database
    --no-email          Do not send the summary email
    --scheduled         Run in scheduled mode
    --dry-run           Show settings and the date range without crawling
    --help              Show this help message
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import yaml

from pauta_crawler.config import load_config
from pauta_crawler.crawler import CrawlerEngine
from pauta_crawler.crawler.date_navigator import STRATEGIES
from pauta_crawler.scheduler import CronScheduler
from pauta_crawler.utils import build_date_range, setup_logger

DEFAULT_CONFIG_PATH = Path('config/config.yaml')
LOGGING_CONFIG_PATH = Path('config/logging.yaml')


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Pauta Crawler - Collect hearing agenda data from the JTe portal',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--config',
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--output-dir',
        type=Path,
        help='Override output directory'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Set log level'
    )

    parser.add_argument(
        '--unit',
        action='append',
        dest='units',
        metavar='NAME',
        help='Only process this unit (repeatable)'
    )

    parser.add_argument(
        '--strategy',
        choices=sorted(STRATEGIES),
        help='Date targeting strategy'
    )

    parser.add_argument(
        '--headless',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Run the browser headless (--headed shows the window)'
    )
    parser.add_argument('--headed', dest='headless', action='store_false', default=None, help=argparse.SUPPRESS)

    parser.add_argument(
        '--no-db',
        action='store_true',
        help='Disable the database store for this run'
    )

    parser.add_argument(
        '--no-email',
        action='store_true',
        help='Disable the summary email for this run'
    )

    parser.add_argument(
        '--scheduled',
        action='store_true',
        help='Run in scheduled mode (uses scheduler configuration)'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Dry run mode - show settings and the date range without crawling'
    )

    return parser.parse_args(argv)


def apply_arguments(config: dict, args) -> dict:
    """Override configuration with command line arguments."""
    if args.output_dir:
        config.setdefault('storage', {})['output_dir'] = str(args.output_dir)

    if args.log_level:
        config.setdefault('logging', {})['level'] = args.log_level

    if args.units:
        config.setdefault('units', {})['include'] = list(args.units)

    if args.strategy:
        config.setdefault('navigation', {})['date_strategy'] = args.strategy

    if args.headless is not None:
        config.setdefault('browser', {})['headless'] = args.headless

    if args.no_db:
        config.setdefault('database', {})['enabled'] = False

    if args.no_email:
        config.setdefault('email', {})['enabled'] = False

    if args.scheduled:
        config.setdefault('scheduler', {})['enabled'] = True

    return config


def run_crawler(config: dict) -> bool:
    """
    Run the crawler once.

    Args:
        config: Configuration dictionary

    Returns:
        True if the run completed without a fatal error
    """
    logger = logging.getLogger(__name__)

    logger.info("=" * 70)
    logger.info("Starting Pauta Crawler")
    logger.info("=" * 70)

    crawler = CrawlerEngine(config)
    batch = asyncio.run(crawler.run())

    stats = crawler.get_statistics()
    logger.info("=" * 70)
    logger.info("Crawl Statistics:")
    logger.info(f"  Units processed: {stats['units_processed']}")
    logger.info(f"  Cells extracted: {stats['cells_extracted']}")
    logger.info(f"  Cells skipped: {stats['cells_skipped']}")
    logger.info(f"  Records: {stats['records']}")
    logger.info(f"  Errors: {stats['errors']}")
    for name, path in crawler.output_files.items():
        logger.info(f"  {name.upper()}: {path}")
    logger.info("=" * 70)

    if batch.failed:
        logger.error(f"Run ended early: {batch.fatal_error}")
    return not batch.failed


def run_scheduled(config: dict) -> None:
    """Run the crawler in scheduled mode."""
    logger = logging.getLogger(__name__)
    logger.info("Starting crawler in scheduled mode")

    scheduler = CronScheduler(config.get('scheduler', {}))
    try:
        scheduler.start(lambda: run_crawler(config))
    except KeyboardInterrupt:
        logger.info("Scheduler interrupted by user")
        scheduler.stop()


def show_dry_run(config: dict) -> None:
    logger = logging.getLogger(__name__)
    dates_config = config.get('dates', {})
    dates = build_date_range(
        start_offset_days=dates_config.get('start_offset_days', 7),
        months_ahead=dates_config.get('months_ahead', 2),
        extra_days=dates_config.get('extra_days', 10)
    )

    logger.info("=" * 70)
    logger.info("DRY RUN MODE - Configuration loaded successfully")
    logger.info("=" * 70)
    logger.info(f"Target URL: {config['website']['start_url']}")
    logger.info(f"Organization: {config['website']['organization_label']}")
    logger.info(f"Region: {config['website']['region_label']}")
    logger.info(f"Date strategy: {config['navigation']['date_strategy']}")
    logger.info(f"Units filter: {config['units'].get('include') or 'all'}")
    logger.info(f"Headless: {config['browser']['headless']}")
    logger.info(f"Database enabled: {config['database']['enabled']}")
    logger.info(f"Email enabled: {config['email']['enabled']}")
    if dates:
        logger.info(f"Dates: {len(dates)} business day(s) from {dates[0]} to {dates[-1]}")
    else:
        logger.info("Dates: none")
    logger.info("=" * 70)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    config_path = args.config
    if not config_path.exists():
        if config_path != DEFAULT_CONFIG_PATH:
            print(f"Error: Configuration file not found: {config_path}", file=sys.stderr)
            return 1
        config_path = None

    try:
        config = load_config(config_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    apply_arguments(config, args)

    logging_config = config.get('logging', {})
    setup_logger(
        config_path=LOGGING_CONFIG_PATH if LOGGING_CONFIG_PATH.exists() else None,
        log_level=logging_config.get('level', 'INFO'),
        log_dir=Path(logging_config.get('file', {}).get('directory', 'logs'))
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Configuration loaded from: {config_path or 'built-in defaults'}")
    logger.info(f"Output directory: {config['storage']['output_dir']}")

    if args.dry_run:
        show_dry_run(config)
        return 0

    if config.get('scheduler', {}).get('enabled', False):
        run_scheduled(config)
        return 0

    try:
        return 0 if run_crawler(config) else 1
    except KeyboardInterrupt:
        logger.warning("Crawler interrupted by user")
        return 130


if __name__ == '__main__':
    sys.exit(main())
