"""
Portal navigation for the JTe SPA.

Handles reaching the agenda module: open the start page, pick the
organization (tribunal) entry and open the module card.
"""

import logging
from typing import Any, Dict

from ..utils import RetryPolicy

logger = logging.getLogger(__name__)

MODULE_CARD_SELECTOR = 'ion-card-content.card-content-modulo:has-text("{label}")'


def text_selector(text: str) -> str:
    """Playwright selector matching an element by its exact visible text."""
    escaped = text.replace('\\', '\\\\').replace('"', '\\"')
    return f'text="{escaped}"'


class Navigator:
    """
    Drives the portal from its start page into the agenda module.
    """

    def __init__(self, session, retry_policy: RetryPolicy, config: Dict[str, Any]):
        self.session = session
        self.retry_policy = retry_policy
        self.website = config.get('website', {})
        self.wait_config = config.get('navigation', {}).get('wait', {})

    async def open_portal(self) -> None:
        """Open the start page and select the organization entry."""
        url = self.website.get('start_url', 'https://jte.csjt.jus.br/start')
        label = self.website.get('organization_label', 'TRT2 - São Paulo')
        timeout = self.wait_config.get('navigation_timeout', 60000)

        logger.info(f"Opening portal: {url}")
        await self.session.goto(url, timeout=timeout)
        await self.session.wait_for_load_settled()
        await self.session.pause(self.wait_config.get('after_start_ms', 2500))

        selector = text_selector(label)

        async def choose_organization():
            await self.session.wait_visible(selector, timeout=20000)
            await self.session.click(selector, force=True)

        await self.retry_policy.run(choose_organization, f"select organization '{label}'")
        await self._settle()
        logger.info(f"Organization selected: {label}")

    async def open_module(self) -> None:
        """Open the agenda module card."""
        label = self.website.get('module_label', 'Pauta')
        selector = MODULE_CARD_SELECTOR.format(label=label)

        async def choose_module():
            await self.session.wait_visible(selector, timeout=20000)
            await self.session.click(selector, force=True)

        await self.retry_policy.run(choose_module, f"open module '{label}'")
        await self._settle()
        logger.info(f"Module opened: {label}")

    async def _settle(self) -> None:
        await self.session.wait_for_load_settled()
        await self.session.pause(self.wait_config.get('after_click_ms', 800))
