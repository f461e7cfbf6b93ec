"""
Main crawler engine for the hearing agenda.

This module orchestrates the run: portal navigation, unit enumeration, the
unit x date loop (select unit, target date, wait for the list, extract) and
delivery of the collected records to the sinks.
"""

import asyncio
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from .browser import BrowserManager
from .date_navigator import build_date_navigator
from .interface import BaseCrawler
from .navigator import Navigator
from .overlay import OverlayGuard
from .session import PageSession
from .stabilizer import StabilizationDetector
from .unit_selector import UnitSelector
from ..exceptions import NotificationError, SessionError, StorageError
from ..models import BatchRun, TargetDate, record_rows
from ..notifications import EmailNotifier, SmtpConfig
from ..parser import AgendaParser
from ..storage import AgendaStore, CSVStorage, XLSXStorage
from ..utils import CrawlerLogger, RetryPolicy, RetryStrategy, build_date_range


class CrawlerEngine(BaseCrawler):
    """
    Orchestrates the crawl over units x dates.

    Handles:
    - Browser lifecycle
    - Portal navigation and unit enumeration
    - Per-cell date targeting, stabilization and extraction
    - Cell skips versus fatal unit failures
    - Delivery to file sinks, the relational store and the notifier
    """

    def __init__(
        self,
        config: Dict[str, Any],
        browser_manager: Optional[BrowserManager] = None,
        store: Optional[AgendaStore] = None,
        notifier: Optional[EmailNotifier] = None
    ):
        """
        Initialize crawler engine.

        Args:
            config: Configuration dictionary
            browser_manager: Browser lifecycle owner (built from config if omitted)
            store: Relational store (built from config if omitted and enabled)
            notifier: Email notifier (built from config if omitted and enabled)
        """
        self.config = config
        self.logger = CrawlerLogger(__name__)
        self.browser_manager = browser_manager or BrowserManager(config)
        self.parser = AgendaParser()

        navigation = config.get('navigation', {})
        self.date_strategy = navigation.get('date_strategy', 'stepper')
        self.date_attempts = navigation.get('date_attempts')
        retry = navigation.get('retry', {})
        self.retry_strategy = RetryStrategy(
            max_attempts=retry.get('max_attempts', 5),
            initial_delay=retry.get('delay', 1.2),
            backoff_factor=retry.get('backoff_factor', 1.0),
            max_delay=retry.get('max_delay', 10.0),
            exceptions=(SessionError,)
        )
        self.default_timeout = navigation.get('wait', {}).get('element_timeout', 20000)

        storage_config = config.get('storage', {})
        output_dir = Path(storage_config.get('output_dir', 'output'))
        self.storages = [
            CSVStorage(output_dir, storage_config.get('csv', {})),
            XLSXStorage(output_dir, storage_config.get('xlsx', {})),
        ]

        database_config = config.get('database', {})
        if store is None and database_config.get('enabled', False):
            store = AgendaStore.from_config(database_config)
        self.store = store

        email_config = config.get('email', {})
        if notifier is None and email_config.get('enabled', False):
            notifier = EmailNotifier(SmtpConfig.from_config(email_config))
        self.notifier = notifier

        units_config = config.get('units', {})
        self.unit_include = units_config.get('include') or []
        self.unit_limit = units_config.get('limit')
        self.dates_config = config.get('dates', {})

        self.session = None
        self.output_files: Dict[str, Path] = {}
        self.stats = {
            'units_processed': 0,
            'cells_extracted': 0,
            'cells_skipped': 0,
            'records': 0,
            'errors': 0
        }

    def build_components(self, session) -> None:
        """Wire the navigation components around a session."""
        self.session = session
        self.overlay_guard = OverlayGuard(session)
        self.retry_policy = RetryPolicy(
            self.retry_strategy,
            cleanup=self.overlay_guard.dismiss,
            reporter=self.logger,
            sleep=lambda seconds: session.pause(int(seconds * 1000))
        )
        self.navigator = Navigator(session, self.retry_policy, self.config)
        self.unit_selector = UnitSelector(session, self.overlay_guard, self.retry_policy, self.config, self.logger)
        self.date_navigator = build_date_navigator(
            self.date_strategy, session, self.overlay_guard, self.config, self.logger
        )
        self.stabilizer = StabilizationDetector(session, self.config)

    def build_dates(self) -> List[TargetDate]:
        return build_date_range(
            start_offset_days=self.dates_config.get('start_offset_days', 7),
            months_ahead=self.dates_config.get('months_ahead', 2),
            extra_days=self.dates_config.get('extra_days', 10)
        )

    async def run(self, units: Optional[List[str]] = None) -> BatchRun:
        """
        Run the crawler once.

        Any error escaping the unit loop is caught here, logged once, and
        recorded on the batch; partial records are still delivered.

        Args:
            units: Optional subset of unit labels (overrides configuration)

        Returns:
            BatchRun with collected data
        """
        start_time = time.time()
        batch = BatchRun(dates=self.build_dates())
        self.logger.log_crawl_start(self.config.get('website', {}).get('start_url', 'JTe'))

        try:
            await self._open_store()
            try:
                async with self.browser_manager as browser:
                    page = await browser.get_page()
                    self.build_components(PageSession(page, default_timeout=self.default_timeout))
                    await self.crawl(batch, units)
            except Exception as e:
                self.stats['errors'] += 1
                self.logger.log_fatal(e, "Crawl failed")
                batch.complete(error=str(e) or type(e).__name__)
            else:
                batch.complete()
        finally:
            if batch.completed_at is None:
                batch.complete(error="interrupted")
            try:
                await self.finalize(batch)
            finally:
                if self.store is not None:
                    self.store.close()

        self.logger.log_crawl_complete(total_items=batch.total_records, duration=time.time() - start_time)
        return batch

    async def crawl(self, batch: BatchRun, units: Optional[List[str]] = None) -> None:
        """Navigate to the module, freeze the unit list and walk every cell."""
        await self.navigator.open_portal()
        await self.navigator.open_module()

        discovered = await self.unit_selector.list_units()
        batch.units = self.filter_units(discovered, units or self.unit_include)
        self.logger.info(f"{len(batch.units)} unit(s) x {len(batch.dates)} date(s) to process")

        for index, unit in enumerate(batch.units, start=1):
            self.logger.log_unit_start(unit, index, len(batch.units))
            await self.unit_selector.select_unit(unit)
            await self.date_navigator.prepare_for_unit()
            self.stats['units_processed'] += 1

            for target in batch.dates:
                await self.process_cell(batch, unit, target)

    def filter_units(self, discovered: List[str], requested: Optional[List[str]] = None) -> List[str]:
        """
        Narrow the discovered units to a requested subset and apply the limit.

        Portal order is preserved; requested names that do not exist are
        reported and ignored.
        """
        units = list(discovered)
        if requested:
            wanted = {name.strip().casefold(): name for name in requested}
            units = [u for u in discovered if u.strip().casefold() in wanted]
            known = {u.strip().casefold() for u in discovered}
            for key, name in wanted.items():
                if key not in known:
                    self.logger.warning(f"Requested unit not offered by the portal: {name}")
        if self.unit_limit:
            units = units[:self.unit_limit]
        return units

    async def process_cell(self, batch: BatchRun, unit: str, target: TargetDate) -> None:
        """
        Handle one (unit, date) cell. A date that cannot be confirmed is a skip.
        """
        attempts = self.date_attempts or self.date_navigator.default_attempts
        if not await self.date_navigator.select_date(target, attempts):
            batch.add_skipped(unit, target, "date not confirmed")
            self.stats['cells_skipped'] += 1
            self.logger.log_skip(unit, target.display, "date not confirmed")
            return

        await self.stabilizer.wait_until_stable()
        records = await self.parser.parse(self.session)

        batch.add_extracted(unit, target, records)
        self.stats['cells_extracted'] += 1
        self.stats['records'] += len(records)
        self.logger.log_cell(unit, target.display, len(records))

        if records and self.store is not None and self.store.available:
            rows = record_rows(batch.generated_at, unit, target, records)
            affected = await asyncio.to_thread(self.store.upsert, rows)
            self.logger.log_sink('database', f"{affected} row(s) inserted/updated")

    async def _open_store(self) -> None:
        if self.store is None:
            self.logger.info("Database disabled; writing files only")
            return
        await asyncio.to_thread(self.store.connect)

    async def finalize(self, batch: BatchRun) -> None:
        """
        Write the file sinks, then notify if both files were written.

        Sink failures are logged and never raised.
        """
        rows = batch.rows()
        self.output_files = {}

        for storage in self.storages:
            try:
                filename = storage.get_output_filename(storage.filename_pattern, batch.generated_at)
                path = storage.save(rows, filename)
            except StorageError as e:
                self.logger.error(f"{storage.name} sink failed: {e}")
                continue
            self.output_files[storage.name] = path
            self.logger.log_sink(storage.name, str(path))

        if self.notifier is None:
            return
        if len(self.output_files) != len(self.storages):
            self.logger.warning("Skipping notification: not every file sink was written")
            return

        try:
            await asyncio.to_thread(self.notifier.send_summary, batch, self.output_files['xlsx'])
            self.logger.log_sink('email', "summary sent")
        except (NotificationError, OSError) as e:
            self.logger.error(f"Notification failed: {e}")

    def get_statistics(self) -> Dict[str, Any]:
        return dict(self.stats)
