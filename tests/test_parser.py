import asyncio

import pytest

from pauta_crawler.parser import AgendaParser
from pauta_crawler.parser.agenda_parser import AGENDA_ITEMS, READ_AGENDA_JS

NBSP = '\u00a0'


@pytest.fixture
def parser():
    return AgendaParser()


def test_map_entry_full(parser):
    record = parser.map_entry({
        'time': ' 09:00 ',
        'status': 'Designada',
        'processNumber': '0001234-56.2026.5.02.0001',
        'descriptions': ['Juiz: Fulano de Tal', 'Reclamante: Maria', 'Reclamado: Empresa Ltda'],
    })

    assert record.session == "09:00 - Designada"
    assert record.process_number == "0001234-56.2026.5.02.0001"
    assert record.judge == "Juiz: Fulano de Tal"
    assert record.claimant == "Reclamante: Maria"
    assert record.respondent == "Reclamado: Empresa Ltda"


def test_map_entry_normalizes_non_breaking_spaces(parser):
    record = parser.map_entry({
        'time': f'10:30{NBSP}',
        'processNumber': f'{NBSP}0009999-00.2026.5.02.0002',
        'descriptions': [f'Juiz:{NBSP}Beltrano'],
    })

    assert record.session == "10:30"
    assert record.process_number == "0009999-00.2026.5.02.0002"
    assert record.judge == "Juiz: Beltrano"


def test_map_entry_missing_fields_become_empty(parser):
    record = parser.map_entry({'time': None, 'descriptions': None})

    assert record.session == ""
    assert record.process_number == ""
    assert (record.judge, record.claimant, record.respondent) == ("", "", "")


def test_map_entry_skips_blank_description_lines(parser):
    record = parser.map_entry({'descriptions': ['', '  ', 'Juiz: A', 'Reclamante: B']})

    assert record.judge == "Juiz: A"
    assert record.claimant == "Reclamante: B"
    assert record.respondent == ""


def test_parse_returns_one_record_per_entry(session, parser):
    entries = [
        {'time': '09:00', 'status': '', 'processNumber': '1', 'descriptions': []},
        {'time': '09:30', 'status': '', 'processNumber': '', 'descriptions': []},
        {'time': '', 'status': '', 'processNumber': '', 'descriptions': []},
    ]
    session.counts[AGENDA_ITEMS] = 3
    session.scripts[READ_AGENDA_JS] = lambda arg: entries

    records = asyncio.run(parser.parse(session))

    assert len(records) == 3
    assert [r.process_number for r in records] == ["1", "", ""]


def test_parse_empty_list(session, parser):
    calls = []
    session.scripts[READ_AGENDA_JS] = lambda arg: calls.append(arg) or []

    assert asyncio.run(parser.parse(session)) == []
    assert calls == []
