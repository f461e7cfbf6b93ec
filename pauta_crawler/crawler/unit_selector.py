"""
Cascading unit selection.

The unit dialog holds three dependent dropdowns (hearing type, region, unit);
each one only enables once the previous one has a value. This module drives
them in order, confirms the choice and enumerates the available units.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from ..exceptions import NavigationError, OptionNotFoundError, SessionError
from ..utils import RetryPolicy

logger = logging.getLogger(__name__)

UNIT_DIALOG_BUTTON = '[data-testid="pautaButtonSelecaoUnidade"]'
DIALOG_TITLE = 'h1.tituloSelecaoTribunal:has-text("Órgão")'
TYPE_SELECT = 'mat-form-field[data-testid="selecaoTribunal"] mat-select'
REGION_SELECT = 'mat-form-field[data-testid="municipio"] mat-select'
UNIT_SELECT = 'mat-form-field[data-testid="orgao"] mat-select'
OPTION_PANEL = '.mat-mdc-select-panel'
OPTIONS = '.mat-mdc-select-panel mat-option'
OPTION_LABELS = '.mat-mdc-select-panel mat-option .mdc-list-item__primary-text'
CONFIRM_BUTTON = '[data-testid="ButtonConfirmar"]'
CANCEL_BUTTON = '[data-testid="ButtonCancelar"]'


def match_option(labels: List[str], wanted: str, exact: bool = True) -> Optional[int]:
    """
    Index of the first option label matching wanted.

    Matching is case-insensitive and ignores surrounding whitespace. With
    exact=False, wanted is treated as a regular expression searched anywhere
    in the label.

    Args:
        labels: Option labels in panel order
        wanted: Desired option text (or pattern)
        exact: Whether the whole trimmed label must match

    Returns:
        Index of the matching option, or None
    """
    if exact:
        target = wanted.strip().casefold()
        for index, label in enumerate(labels):
            if (label or "").strip().casefold() == target:
                return index
        return None

    pattern = re.compile(wanted, re.IGNORECASE)
    for index, label in enumerate(labels):
        if pattern.search((label or "").strip()):
            return index
    return None


class UnitSelector:
    """
    Drives the type -> region -> unit dropdown cascade.
    """

    def __init__(
        self,
        session,
        overlay_guard,
        retry_policy: RetryPolicy,
        config: Dict[str, Any],
        reporter=None
    ):
        self.session = session
        self.overlay_guard = overlay_guard
        self.retry_policy = retry_policy
        self.reporter = reporter

        website = config.get('website', {})
        self.type_label = website.get('unit_type_label', 'Audiências 1º grau')
        self.region_label = website.get('region_label', 'São Paulo - Zonas Central, Norte e Oeste')

        wait = config.get('navigation', {}).get('wait', {})
        self.element_timeout = wait.get('element_timeout', 20000)
        self.poll_ms = wait.get('poll_ms', 100)
        self.after_option_ms = wait.get('after_option_ms', 150)
        self.after_confirm_ms = wait.get('after_confirm_ms', 700)

    async def list_units(self) -> List[str]:
        """
        Enumerate the unit labels offered for the configured type and region.

        Leaves the dialog through Escape and Cancel without confirming.
        """
        logger.info("Listing units...")
        await self._open_dialog()
        await self._prepare_unit_control()

        await self._open_select(UNIT_SELECT)
        labels = await self.session.all_texts(OPTION_LABELS)
        units = [label.strip() for label in labels if label and label.strip()]

        try:
            await self.session.press('Escape')
        except SessionError as e:
            logger.debug(f"Escape on unit panel failed: {e}")
        try:
            await self.session.click(CANCEL_BUTTON)
        except SessionError as e:
            logger.debug(f"Unit dialog cancel failed: {e}")

        logger.info(f"{len(units)} units found")
        return units

    async def select_unit(self, unit: str) -> bool:
        """
        Select a unit through the full cascade and confirm it.

        Args:
            unit: Unit label, matched exactly (case-insensitive, trimmed)

        Returns:
            True if the confirm button was pressed, False if it never enabled

        Raises:
            OptionNotFoundError: If a dropdown lacks the requested option
            NavigationError: If the unit dropdown never becomes enabled
            SessionError: If a primitive keeps failing past the retry envelope
        """
        await self.overlay_guard.dismiss()
        await self._open_dialog()
        await self._prepare_unit_control()
        await self.choose(UNIT_SELECT, unit)
        return await self._confirm()

    async def _open_dialog(self) -> None:
        async def open_dialog():
            await self.session.wait_visible(UNIT_DIALOG_BUTTON, timeout=self.element_timeout)
            await self.session.click(UNIT_DIALOG_BUTTON, force=True)
            await self.session.wait_visible(DIALOG_TITLE, timeout=self.element_timeout)

        await self.retry_policy.run(open_dialog, "open unit dialog")

    async def _prepare_unit_control(self) -> None:
        """Choose type and region, then wait for the unit dropdown to unlock."""
        await self.choose(TYPE_SELECT, self.type_label)
        await self.choose(REGION_SELECT, self.region_label)
        if not await self.wait_until_enabled(UNIT_SELECT, self.element_timeout):
            raise NavigationError(
                "Unit dropdown did not enable",
                {'type': self.type_label, 'region': self.region_label}
            )

    async def choose(self, select_selector: str, option_text: str, exact: bool = True) -> None:
        """
        Open a dropdown and click the option matching option_text.

        Opening the panel is retried; a missing option is not.
        """
        await self._open_select(select_selector)

        index = None
        labels: List[str] = []
        for _ in range(max(1, self.element_timeout // max(self.poll_ms, 1))):
            labels = await self.session.all_texts(OPTIONS)
            index = match_option(labels, option_text, exact=exact)
            if index is not None:
                break
            await self.session.pause(self.poll_ms)

        if index is None:
            raise OptionNotFoundError(
                f"Option not found: {option_text}",
                {'select': select_selector, 'available': [l.strip() for l in labels]}
            )

        await self.session.click_nth(OPTIONS, index, force=True)
        try:
            await self.session.wait_hidden(OPTION_PANEL, timeout=self.element_timeout)
        except SessionError:
            logger.debug(f"Option panel still visible after choosing {option_text}")
        await self.session.pause(self.after_option_ms)

    async def _open_select(self, select_selector: str) -> None:
        async def open_panel():
            try:
                await self.session.scroll_into_view(select_selector)
            except SessionError:
                logger.debug(f"Could not scroll to {select_selector}")
            await self.session.click(select_selector, force=True)
            await self.session.wait_visible(OPTION_PANEL, timeout=self.element_timeout)

        await self.retry_policy.run(open_panel, f"open dropdown {select_selector}")

    async def wait_until_enabled(self, selector: str, timeout: int) -> bool:
        """
        Poll a control until it is neither disabled nor aria-disabled.

        Returns:
            True once enabled, False if the timeout elapsed first
        """
        for _ in range(max(1, timeout // max(self.poll_ms, 1))):
            try:
                if await self.session.is_enabled(selector):
                    return True
            except SessionError:
                pass  # not attached yet
            await self.session.pause(self.poll_ms)
        return False

    async def _confirm(self) -> bool:
        try:
            await self.session.wait_visible(CONFIRM_BUTTON, timeout=self.element_timeout)
        except SessionError:
            logger.warning("Confirm button not visible; continuing without confirmation")
            return False

        if not await self.wait_until_enabled(CONFIRM_BUTTON, self.element_timeout):
            logger.warning("Confirm button never enabled; continuing without confirmation")
            return False

        try:
            await self.session.click(CONFIRM_BUTTON, delay=80)
        except SessionError as e:
            logger.warning(f"Confirm click failed: {e}")
            return False

        try:
            await self.session.wait_for_load_settled()
        except SessionError:
            logger.debug("Load state did not settle after confirming unit")
        await self.session.pause(self.after_confirm_ms)
        return True
