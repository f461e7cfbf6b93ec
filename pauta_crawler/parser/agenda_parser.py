"""
Agenda list parser.

Reads every rendered hearing entry into a HearingRecord. Sub-fields are
picked by their structural role: the session time and status spans, the
bold process number, and the first three description lines, which are the
judge, the claimant and the respondent in that order.
"""

import logging
from typing import Any, Dict, List

from ..exceptions import SessionError
from ..models import HearingRecord

logger = logging.getLogger(__name__)

AGENDA_ITEMS = 'ion-list ion-item'

READ_AGENDA_JS = """
() => {
  const text = (el) => (el ? (el.textContent || '') : '');
  return Array.from(document.querySelectorAll('ion-list ion-item')).map((item) => ({
    time: text(item.querySelector('.sessao')),
    status: text(item.querySelector('.palavrasRight')),
    processNumber: text(item.querySelector('.JT-item-texto-negrito')),
    descriptions: Array.from(item.querySelectorAll('.item-desc-small.item-text-wrap')).map(text),
  }));
}
"""


def clean_text(text) -> str:
    if not text:
        return ""
    return str(text).replace('\u00a0', ' ').strip()


class AgendaParser:
    """
    Parser for the hearing list shown after a date is selected.
    """

    def map_entry(self, raw: Dict[str, Any]) -> HearingRecord:
        """
        Map one raw list entry to a record.

        Missing sub-fields become empty strings; an entry is never dropped.
        """
        session_label = " - ".join(
            part for part in (clean_text(raw.get('time')), clean_text(raw.get('status'))) if part
        )
        descriptions = [clean_text(d) for d in raw.get('descriptions') or []]
        descriptions = [d for d in descriptions if d]

        def description(index: int) -> str:
            return descriptions[index] if index < len(descriptions) else ""

        return HearingRecord(
            process_number=clean_text(raw.get('processNumber')),
            session=session_label,
            judge=description(0),
            claimant=description(1),
            respondent=description(2),
        )

    async def parse(self, session) -> List[HearingRecord]:
        """
        Read all entries currently in the list.

        Args:
            session: Session facade

        Returns:
            One record per list entry, in display order
        """
        try:
            count = await session.count(AGENDA_ITEMS)
        except SessionError:
            count = 0
        if not count:
            return []

        entries = await session.evaluate(READ_AGENDA_JS) or []
        records = [self.map_entry(entry) for entry in entries]
        logger.debug(f"Parsed {len(records)} agenda entries")
        return records
