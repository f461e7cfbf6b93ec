"""Waiting for the agenda list to finish rendering."""

import logging
from typing import Any, Dict, Sequence

from ..exceptions import SessionError

logger = logging.getLogger(__name__)

LOADING_INDICATORS = (
    'ion-spinner',
    '.mat-mdc-progress-spinner',
    '.mat-mdc-progress-bar',
)
RESULT_ITEMS = 'ion-list ion-item'


class StabilizationDetector:
    """
    Certifies that the result list has stopped changing.

    First waits out any visible loading indicator, then samples the entry
    count. Two equal reads separated by the confirmation interval mean the
    list is stable. The loop is bounded, so a list that never settles only
    delays extraction, it never blocks the run.
    """

    def __init__(
        self,
        session,
        config: Dict[str, Any],
        indicators: Sequence[str] = LOADING_INDICATORS,
        items_selector: str = RESULT_ITEMS
    ):
        self.session = session
        self.indicators = indicators
        self.items_selector = items_selector

        stabilization = config.get('stabilization', {})
        self.probe_timeout = stabilization.get('indicator_probe_timeout', 300)
        self.hidden_timeout = stabilization.get('indicator_hidden_timeout', 15000)
        self.max_iterations = stabilization.get('max_iterations', 20)
        self.poll_ms = stabilization.get('poll_ms', 250)
        self.confirm_ms = stabilization.get('confirm_ms', 600)

    async def count_items(self) -> int:
        try:
            return await self.session.count(self.items_selector)
        except SessionError:
            return 0

    async def wait_for_indicators(self) -> None:
        for selector in self.indicators:
            if await self.session.is_visible(selector, timeout=self.probe_timeout):
                try:
                    await self.session.wait_hidden(selector, timeout=self.hidden_timeout)
                except SessionError:
                    logger.debug(f"Loading indicator {selector} still visible")

    async def wait_until_stable(self) -> bool:
        """
        Block until the entry count is stable or the iteration ceiling is hit.

        Returns:
            True if stability was confirmed, False if the loop ran out
        """
        await self.wait_for_indicators()

        last = -1
        for _ in range(self.max_iterations):
            count = await self.count_items()
            if count == last:
                await self.session.pause(self.confirm_ms)
                if await self.count_items() == count:
                    logger.debug(f"Result list stable at {count} entries")
                    return True
            last = count
            await self.session.pause(self.poll_ms)

        logger.warning(f"Result list did not stabilize after {self.max_iterations} samples")
        return False
