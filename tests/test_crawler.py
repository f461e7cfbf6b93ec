"""
Tests for the crawl orchestration, with the browser-facing components faked.
"""

import asyncio
import logging
from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from pauta_crawler.crawler import BrowserManager, CrawlerEngine
from pauta_crawler.exceptions import NavigationError, NotificationConfigError, StorageError
from pauta_crawler.models import HearingRecord, TargetDate
from pauta_crawler.notifications import EmailNotifier
from pauta_crawler.storage import AgendaStore, CSVStorage

D1 = TargetDate.of(date(2026, 3, 5))
D2 = TargetDate.of(date(2026, 3, 6))


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class FakeBrowser:
    def __init__(self):
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True
        return False

    async def get_page(self):
        return MagicMock()


class FakeNavigator:
    def __init__(self):
        self.steps = []

    async def open_portal(self):
        self.steps.append('portal')

    async def open_module(self):
        self.steps.append('module')


class FakeUnitSelector:
    def __init__(self, units, failing=None):
        self.units = units
        self.failing = failing
        self.selected = []

    async def list_units(self):
        return list(self.units)

    async def select_unit(self, unit):
        if unit == self.failing:
            raise NavigationError("Unit dropdown did not enable")
        self.selected.append(unit)
        return True


class FakeDateNavigator:
    default_attempts = 2

    def __init__(self, unreachable=()):
        self.unreachable = set(unreachable)
        self.requests = []
        self.prepared = 0

    async def prepare_for_unit(self):
        self.prepared += 1

    async def select_date(self, target, attempts=3):
        self.requests.append((target, attempts))
        return target not in self.unreachable


class FakeStabilizer:
    async def wait_until_stable(self):
        return True


class FakeParser:
    def __init__(self, per_cell=2):
        self.per_cell = per_cell

    async def parse(self, session):
        return [HearingRecord(process_number=str(i)) for i in range(self.per_cell)]


@pytest.fixture
def engine_config(config, tmp_path):
    config['storage']['output_dir'] = str(tmp_path)
    return config


@pytest.fixture
def store():
    store = MagicMock()
    store.available = True
    store.upsert.return_value = 2
    return store


def make_engine(engine_config, units=("1ª Vara", "2ª Vara"), failing=None, unreachable=(),
                store=None, notifier=None):
    engine = CrawlerEngine(engine_config, browser_manager=FakeBrowser(), store=store, notifier=notifier)
    engine.build_dates = lambda: [D1, D2]
    engine.parser = FakeParser()
    fakes = {
        'navigator': FakeNavigator(),
        'unit_selector': FakeUnitSelector(list(units), failing),
        'date_navigator': FakeDateNavigator(unreachable),
    }

    def build_components(session):
        engine.session = session
        engine.navigator = fakes['navigator']
        engine.unit_selector = fakes['unit_selector']
        engine.date_navigator = fakes['date_navigator']
        engine.stabilizer = FakeStabilizer()

    engine.build_components = build_components
    return engine, fakes


def test_full_grid_with_skipped_dates(engine_config, store):
    notifier = MagicMock()
    engine, fakes = make_engine(engine_config, unreachable=[D2], store=store, notifier=notifier)

    batch = asyncio.run(engine.run())

    assert not batch.failed
    assert fakes['navigator'].steps == ['portal', 'module']
    assert fakes['unit_selector'].selected == ["1ª Vara", "2ª Vara"]
    assert fakes['date_navigator'].prepared == 2
    assert len(batch.extracted_cells) == 2
    assert len(batch.skipped_cells) == 2
    assert batch.total_records == 4
    assert engine.stats['cells_skipped'] == 2

    assert store.upsert.call_count == 2
    store.connect.assert_called_once()
    store.close.assert_called_once()
    assert engine.browser_manager.closed

    assert set(engine.output_files) == {'csv', 'xlsx'}
    assert engine.output_files['csv'].exists()
    notifier.send_summary.assert_called_once_with(batch, engine.output_files['xlsx'])


def test_cells_follow_unit_then_date_order(engine_config):
    engine, fakes = make_engine(engine_config)

    batch = asyncio.run(engine.run())

    assert [(c.unit, c.date) for c in batch.cells] == [
        ("1ª Vara", D1), ("1ª Vara", D2), ("2ª Vara", D1), ("2ª Vara", D2),
    ]
    assert all(attempts == 2 for _, attempts in fakes['date_navigator'].requests)


def test_unit_failure_ends_run_but_delivers_partial_data(engine_config, store):
    notifier = MagicMock()
    engine, _ = make_engine(engine_config, units=("1ª Vara", "2ª Vara", "3ª Vara"), failing="2ª Vara",
                            store=store, notifier=notifier)

    batch = asyncio.run(engine.run())

    assert batch.failed
    assert "did not enable" in batch.fatal_error
    assert {c.unit for c in batch.cells} == {"1ª Vara"}
    assert engine.stats['errors'] == 1

    csv_rows = CSVStorage(engine_config['storage']['output_dir'], {}).load(engine.output_files['csv'])
    assert len(csv_rows) == 4
    notifier.send_summary.assert_called_once()
    store.close.assert_called_once()
    assert engine.browser_manager.closed


def test_unavailable_store_still_writes_files(engine_config, store):
    store.available = False
    engine, _ = make_engine(engine_config, store=store)

    batch = asyncio.run(engine.run())

    assert not batch.failed
    store.upsert.assert_not_called()
    assert engine.output_files['csv'].exists()


def test_empty_cells_are_not_sent_to_store(engine_config, store):
    engine, _ = make_engine(engine_config, store=store)
    engine.parser = FakeParser(per_cell=0)

    batch = asyncio.run(engine.run())

    assert len(batch.extracted_cells) == 4
    store.upsert.assert_not_called()


def test_notification_failure_is_logged_not_raised(engine_config):
    notifier = MagicMock()
    notifier.send_summary.side_effect = NotificationConfigError("Incomplete SMTP configuration")
    engine, _ = make_engine(engine_config, notifier=notifier)

    batch = asyncio.run(engine.run())

    assert not batch.failed
    assert engine.output_files['xlsx'].exists()


def test_failed_file_sink_skips_notification(engine_config):
    notifier = MagicMock()
    engine, _ = make_engine(engine_config, notifier=notifier)

    with patch.object(CSVStorage, 'save', side_effect=StorageError("disk full")):
        asyncio.run(engine.run())

    assert set(engine.output_files) == {'xlsx'}
    notifier.send_summary.assert_not_called()


def test_requested_units_narrow_the_run(engine_config):
    engine, fakes = make_engine(engine_config, units=("1ª Vara", "2ª Vara", "3ª Vara"))

    batch = asyncio.run(engine.run(units=["3ª vara", "1ª Vara", "99ª Vara"]))

    assert batch.units == ["1ª Vara", "3ª Vara"]
    assert fakes['unit_selector'].selected == ["1ª Vara", "3ª Vara"]


def test_unit_limit(engine_config):
    engine_config['units']['limit'] = 1
    engine, _ = make_engine(engine_config)

    assert engine.filter_units(["A", "B", "C"]) == ["A"]
    assert engine.filter_units(["A", "B", "C"], ["C", "B"]) == ["B"]


def test_components_built_from_config(engine_config, tmp_path):
    engine_config['database'].update({'enabled': True, 'url': f"sqlite:///{tmp_path / 'pauta.db'}"})
    engine_config['email'].update({'enabled': True, 'host': 'smtp.example.com'})

    engine = CrawlerEngine(engine_config)

    assert isinstance(engine.browser_manager, BrowserManager)
    assert isinstance(engine.store, AgendaStore)
    assert isinstance(engine.notifier, EmailNotifier)


def test_disabled_sinks_are_not_built(engine_config):
    engine = CrawlerEngine(engine_config)

    assert engine.store is None
    assert engine.notifier is None


def test_unreachable_database_at_startup(engine_config, tmp_path):
    store = AgendaStore(f"sqlite:///{tmp_path / 'missing' / 'pauta.db'}")
    engine, _ = make_engine(engine_config, store=store)

    batch = asyncio.run(engine.run())

    assert not batch.failed
    assert batch.total_records == 8
    csv_rows = CSVStorage(engine_config['storage']['output_dir'], {}).load(engine.output_files['csv'])
    assert len(csv_rows) == 8


def test_configured_date_attempts_override_strategy_default(engine_config):
    engine_config['navigation']['date_attempts'] = 4
    engine, fakes = make_engine(engine_config)

    asyncio.run(engine.run())

    assert {attempts for _, attempts in fakes['date_navigator'].requests} == {4}


class ControlCharParser:
    async def parse(self, session):
        return [HearingRecord(process_number="0001", judge="Juiz\x0bFulano")]


def test_control_characters_do_not_block_delivery(engine_config, store):
    notifier = MagicMock()
    engine, _ = make_engine(engine_config, units=("1ª Vara",), store=store, notifier=notifier)
    engine.parser = ControlCharParser()

    batch = asyncio.run(engine.run())

    assert not batch.failed
    assert set(engine.output_files) == {'csv', 'xlsx'}
    notifier.send_summary.assert_called_once()
    store.close.assert_called_once()


def test_store_closed_when_finalize_fails(engine_config, store):
    engine, _ = make_engine(engine_config, store=store)

    with patch.object(CrawlerEngine, 'finalize', side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError):
            asyncio.run(engine.run())

    store.close.assert_called_once()


def test_fatal_event_carries_error_details(engine_config):
    engine, _ = make_engine(engine_config, units=("1ª Vara",), failing="1ª Vara")
    handler = RecordingHandler()
    engine.logger.logger.addHandler(handler)
    try:
        asyncio.run(engine.run())
    finally:
        engine.logger.logger.removeHandler(handler)

    fatal = [r for r in handler.records if getattr(r, "event", None) == "fatal"]
    assert len(fatal) == 1
    assert fatal[0].details['error'] == 'NavigationError'
    assert fatal[0].details['message'] == "Unit dropdown did not enable"
