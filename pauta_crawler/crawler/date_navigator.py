"""
Date targeting.

Two interchangeable strategies move the agenda's date cursor to a target
date and confirm it by re-reading the displayed date:

- CalendarGridNavigator opens a month-grid picker, pages to the target
  month and clicks the day cell.
- LinearStepperNavigator clicks previous/next buttons that shift an inline
  date label one day at a time.

Both share select_date(), which wraps go_to_date() in a retry envelope.
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..exceptions import DateNotReachedError, SessionError
from ..models import TargetDate
from ..utils import RetryPolicy, RetryStrategy

logger = logging.getLogger(__name__)

DATE_TRIGGER = '[data-testid="pautaButtonData"]'

# Calendar-grid picker
CALENDAR = 'mat-calendar'
PERIOD_BUTTON = 'mat-calendar button.mat-calendar-period-button'
NEXT_MONTH_BUTTON = 'mat-calendar button.mat-calendar-next-button'
PREV_MONTH_BUTTON = 'mat-calendar button.mat-calendar-previous-button'

# Linear stepper (ion-buttons render their <button> inside a shadow root)
STEPPER_ROW = '#main-content > ng-component:nth-child(3) > ion-content > div > div > ion-grid > ion-row:nth-child(2)'
NEXT_DAY_BUTTON = f'{STEPPER_ROW} > ion-col:nth-child(3) > ion-button'
PREV_DAY_BUTTON = f'{STEPPER_ROW} > ion-col:nth-child(1) > ion-button'
DATE_LABEL_XPATH = '//*[@id="main-content"]/ng-component[3]/ion-content/div/div/ion-grid/ion-row[2]/ion-col[2]/ion-button'

# Ordered (month number, label fragments) pairs; first match wins.
MONTH_LABELS: Tuple[Tuple[int, Tuple[str, ...]], ...] = (
    (1, ('jan', 'janeiro', 'january')),
    (2, ('fev', 'fevereiro', 'feb', 'february')),
    (3, ('mar', 'março', 'marco', 'march')),
    (4, ('abr', 'abril', 'apr', 'april')),
    (5, ('mai', 'maio', 'may')),
    (6, ('jun', 'junho', 'june')),
    (7, ('jul', 'julho', 'july')),
    (8, ('ago', 'agosto', 'aug', 'august')),
    (9, ('set', 'setembro', 'sep', 'september')),
    (10, ('out', 'outubro', 'oct', 'october')),
    (11, ('nov', 'novembro', 'november')),
    (12, ('dez', 'dezembro', 'dec', 'december')),
)
YEAR_PATTERN = re.compile(r'(?:19|20)\d{2}')

CALENDAR_CELLS_JS = """
() => {
  const cal = document.querySelector('mat-calendar');
  if (!cal) return null;
  return Array.from(cal.querySelectorAll('td.mat-calendar-body-cell')).map((td) => {
    const btn = td.querySelector('button');
    return {
      cellLabel: td.getAttribute('aria-label') || '',
      buttonLabel: btn ? (btn.getAttribute('aria-label') || '') : '',
      text: (td.textContent || '').trim(),
      buttonText: btn ? (btn.textContent || '').trim() : '',
      disabled: td.classList.contains('mat-calendar-body-disabled'),
    };
  });
}
"""

CLICK_CALENDAR_CELL_JS = """
(index) => {
  const cal = document.querySelector('mat-calendar');
  if (!cal) return false;
  const td = cal.querySelectorAll('td.mat-calendar-body-cell')[index];
  if (!td) return false;
  const btn = td.querySelector('button');
  (btn || td).click();
  return true;
}
"""

HOST_EXISTS_JS = "(sel) => !!document.querySelector(sel)"

CLICK_HOST_BUTTON_JS = """
(sel) => {
  const host = document.querySelector(sel);
  if (!host) return false;
  const btn = (host.shadowRoot && host.shadowRoot.querySelector('button')) || host.querySelector('button');
  (btn || host).click();
  return true;
}
"""

READ_HOST_TEXT_JS = """
(xp) => {
  const node = document.evaluate(xp, document, null, XPathResult.FIRST_ORDERED_NODE_TYPE, null).singleNodeValue;
  if (!node) return '';
  const btn = (node.shadowRoot && node.shadowRoot.querySelector('button')) || node.querySelector('button');
  return ((btn && (btn.innerText || btn.textContent)) || node.innerText || node.textContent || '').trim();
}
"""


class Direction(Enum):
    FORWARD = 1
    BACKWARD = -1


def parse_calendar_header(
    text: Optional[str],
    month_labels: Sequence[Tuple[int, Sequence[str]]] = MONTH_LABELS
) -> Optional[Tuple[int, int]]:
    """
    Extract (year, month) from a calendar period label such as "MAR. DE 2026".

    Returns:
        (year, month) tuple, or None when either token is missing
    """
    header = (text or "").strip().lower()
    year_match = YEAR_PATTERN.search(header)
    if not year_match:
        return None
    for month, fragments in month_labels:
        if any(fragment in header for fragment in fragments):
            return int(year_match.group(0)), month
    return None


def pick_day_cell(cells: List[Dict[str, Any]], day: int, year: int) -> Optional[int]:
    """
    Choose the grid cell to click for a day of the displayed month.

    Grid markup is inconsistent, so three tiers are tried in order:
    a cell whose own aria-label carries the year, a cell whose inner button
    carries it, then any enabled cell whose text is the day number.

    Returns:
        Index into cells, or None
    """
    day_text = str(day)
    year_text = str(year)

    for index, cell in enumerate(cells):
        if year_text in (cell.get('cellLabel') or '') and (cell.get('text') or '').strip() == day_text:
            return index

    for index, cell in enumerate(cells):
        if year_text in (cell.get('buttonLabel') or '') and (cell.get('buttonText') or '').strip() == day_text:
            return index

    for index, cell in enumerate(cells):
        if not cell.get('disabled') and (cell.get('text') or '').strip() == day_text:
            return index

    return None


class DateNavigator(ABC):
    """
    Common contract of the date targeting strategies.
    """

    name = "base"
    default_attempts = 3
    reset_attempts = 1

    def __init__(
        self,
        session,
        overlay_guard,
        config: Dict[str, Any],
        reporter=None,
        today: Callable[[], date] = date.today
    ):
        self.session = session
        self.overlay_guard = overlay_guard
        self.reporter = reporter
        self.today = today

        navigation = config.get('navigation', {})
        self.retry_delay = navigation.get('date_retry_delay', 0.6)
        self.trigger_timeout = navigation.get('wait', {}).get('trigger_timeout', 20000)

    @abstractmethod
    async def go_to_date(self, target: TargetDate) -> bool:
        """Move the cursor to target; True only if the display confirms it."""

    @abstractmethod
    async def read_displayed_date(self) -> str:
        """Current date label as shown by the portal ('' if unreadable)."""

    @abstractmethod
    def is_confirmed(self, displayed: str, target: TargetDate) -> bool:
        """Whether the displayed label shows target."""

    async def prepare_for_unit(self) -> None:
        """Return the cursor to today after a unit change."""
        today = TargetDate.of(self.today())
        logger.info(f"Resetting date cursor to today: {today.display}")
        if await self.select_date(today, attempts=self.reset_attempts):
            logger.info("Date cursor at today")
        else:
            logger.warning("Could not reset date cursor to today; continuing")

    async def select_date(self, target: TargetDate, attempts: int = 3) -> bool:
        """
        Reach and confirm target, retrying the whole attempt on failure.

        Args:
            target: Date to reach
            attempts: Maximum number of go_to_date attempts

        Returns:
            True if confirmed, False once attempts are exhausted
        """
        policy = RetryPolicy(
            RetryStrategy(
                max_attempts=attempts,
                initial_delay=self.retry_delay,
                backoff_factor=1.0,
                exceptions=(DateNotReachedError, SessionError)
            ),
            cleanup=self.overlay_guard.dismiss,
            reporter=self.reporter,
            sleep=lambda seconds: self.session.pause(int(seconds * 1000))
        )

        async def attempt():
            before = await self.read_displayed_date()
            reached = await self.go_to_date(target)
            after = await self.read_displayed_date()
            logger.info(f"[{self.name}] before='{before}' after='{after}' target={target.display}")
            if not reached:
                raise DateNotReachedError(f"Date not reached: {target.display}", {'displayed': after})

        try:
            await policy.run(attempt, f"select date {target.display}")
            return True
        except (DateNotReachedError, SessionError) as e:
            logger.warning(f"Could not select {target.display}: {e}")
            return False


class CalendarGridNavigator(DateNavigator):
    """
    Month-grid picker strategy.

    Confirmation is exact: the trigger button text must equal the canonical
    DD/MM/YYYY string.
    """

    name = "calendar"
    default_attempts = 3
    reset_attempts = 3

    def __init__(self, session, overlay_guard, config: Dict[str, Any], reporter=None,
                 today: Callable[[], date] = date.today,
                 month_labels: Sequence[Tuple[int, Sequence[str]]] = MONTH_LABELS):
        super().__init__(session, overlay_guard, config, reporter, today)
        navigation = config.get('navigation', {})
        self.max_month_steps = navigation.get('calendar_max_steps', 36)
        self.step_ms = navigation.get('wait', {}).get('calendar_step_ms', 120)
        self.month_labels = month_labels

    def is_confirmed(self, displayed: str, target: TargetDate) -> bool:
        return (displayed or "").strip() == target.display

    async def read_displayed_date(self) -> str:
        try:
            return await self.session.read_text(DATE_TRIGGER, timeout=1000)
        except SessionError:
            return ""

    async def go_to_date(self, target: TargetDate) -> bool:
        await self.overlay_guard.dismiss()

        if not await self.session.is_visible(DATE_TRIGGER, timeout=self.trigger_timeout):
            logger.warning("Date picker trigger not found")
            return False

        try:
            await self.session.click(DATE_TRIGGER, force=True)
            await self.session.wait_visible(CALENDAR, timeout=15000)
        except SessionError as e:
            logger.warning(f"Calendar did not open: {e}")
            return False

        if not await self.navigate_to_month(target):
            logger.warning(f"Could not reach month of {target.display}; trying the day click anyway")

        clicked = await self.click_day(target)
        await self.session.pause(250)
        await self.overlay_guard.dismiss()

        if not clicked:
            logger.warning(f"Day cell for {target.display} not found")
            return False

        displayed = await self.read_displayed_date()
        logger.info(f"Displayed date: {displayed} | target: {target.display}")
        return self.is_confirmed(displayed, target)

    async def read_header(self) -> Optional[Tuple[int, int]]:
        try:
            text = await self.session.read_text(PERIOD_BUTTON, timeout=1000)
        except SessionError:
            return None
        return parse_calendar_header(text, self.month_labels)

    async def navigate_to_month(self, target: TargetDate) -> bool:
        """
        Page the grid until its header shows the target month.

        An unreadable header advances one month blindly; this can pass the
        target without noticing, within the step ceiling.
        """
        for _ in range(self.max_month_steps):
            header = await self.read_header()
            if header is None:
                try:
                    await self.session.click(NEXT_MONTH_BUTTON, force=True)
                except SessionError:
                    logger.debug("Blind next-month click failed")
                await self.session.pause(self.step_ms)
                continue

            year, month = header
            current_key = year * 12 + (month - 1)
            if current_key == target.month_key:
                return True

            button = NEXT_MONTH_BUTTON if target.month_key > current_key else PREV_MONTH_BUTTON
            await self.session.click(button, force=True)
            await self.session.pause(self.step_ms)

        return False

    async def click_day(self, target: TargetDate) -> bool:
        cells = await self.session.evaluate(CALENDAR_CELLS_JS)
        if not cells:
            return False
        index = pick_day_cell(cells, target.day, target.year)
        if index is None:
            return False
        return bool(await self.session.evaluate(CLICK_CALENDAR_CELL_JS, index))


class LinearStepperNavigator(DateNavigator):
    """
    Previous/next stepper strategy.

    Confirmation is containment: the label may carry a weekday prefix, so
    success means the canonical DD/MM/YYYY string appears in it.
    """

    name = "stepper"
    default_attempts = 2
    reset_attempts = 1

    def __init__(self, session, overlay_guard, config: Dict[str, Any], reporter=None,
                 today: Callable[[], date] = date.today):
        super().__init__(session, overlay_guard, config, reporter, today)
        navigation = config.get('navigation', {})
        wait = navigation.get('wait', {})
        self.max_steps = navigation.get('stepper_max_steps', 220)
        self.change_timeout = wait.get('label_change_timeout', 2500)
        self.change_poll_ms = wait.get('label_change_poll_ms', 80)
        self.step_ms = wait.get('stepper_step_ms', 120)
        self.failed_click_ms = wait.get('stepper_failed_click_ms', 150)

    def is_confirmed(self, displayed: str, target: TargetDate) -> bool:
        return bool(displayed) and target.display in displayed

    @staticmethod
    def choose_direction(label: str, target: TargetDate, can_go_back: bool = True) -> Direction:
        """Backward only when the label shows a later date and a back button exists."""
        current = TargetDate.search(label)
        if current is not None and can_go_back and current.value > target.value:
            return Direction.BACKWARD
        return Direction.FORWARD

    async def read_displayed_date(self) -> str:
        try:
            raw = await self.session.evaluate(READ_HOST_TEXT_JS, DATE_LABEL_XPATH)
        except SessionError:
            raw = ""
        if raw and str(raw).strip():
            return str(raw).strip()

        try:
            return await self.session.read_text(DATE_TRIGGER, timeout=800)
        except SessionError:
            return ""

    async def _exists(self, selector: str) -> bool:
        try:
            return bool(await self.session.evaluate(HOST_EXISTS_JS, selector))
        except SessionError:
            return False

    async def _click(self, selector: str) -> bool:
        try:
            return bool(await self.session.evaluate(CLICK_HOST_BUTTON_JS, selector))
        except SessionError:
            return False

    async def wait_for_label_change(self, before: str) -> str:
        """Poll the label until it differs from before, bounded by change_timeout."""
        for _ in range(max(1, self.change_timeout // max(self.change_poll_ms, 1))):
            current = await self.read_displayed_date()
            if current and current != before:
                return current
            await self.session.pause(self.change_poll_ms)
        return await self.read_displayed_date()

    async def go_to_date(self, target: TargetDate) -> bool:
        await self.overlay_guard.dismiss()

        has_prev = await self._exists(PREV_DAY_BUTTON)
        has_next = await self._exists(NEXT_DAY_BUTTON)
        if not has_prev and not has_next:
            logger.warning("Previous/next date buttons not found")
            return False

        if self.is_confirmed(await self.read_displayed_date(), target):
            return True

        for step in range(1, self.max_steps + 1):
            label = await self.read_displayed_date()
            if self.is_confirmed(label, target):
                return True

            direction = self.choose_direction(label, target, can_go_back=has_prev)
            button = PREV_DAY_BUTTON if direction is Direction.BACKWARD else NEXT_DAY_BUTTON

            if not await self._click(button):
                logger.warning(f"{direction.name} click failed (step {step})")
                await self.session.pause(self.failed_click_ms)
                continue

            after = await self.wait_for_label_change(label)
            if self.is_confirmed(after, target):
                return True

            await self.session.pause(self.step_ms)

        return False


STRATEGIES = {
    CalendarGridNavigator.name: CalendarGridNavigator,
    LinearStepperNavigator.name: LinearStepperNavigator,
}


def build_date_navigator(strategy: str, session, overlay_guard, config: Dict[str, Any], reporter=None) -> DateNavigator:
    """
    Instantiate the date navigator for a strategy name.

    Raises:
        ValueError: If the strategy is unknown
    """
    try:
        navigator_cls = STRATEGIES[strategy]
    except KeyError:
        raise ValueError(f"Unknown date strategy: {strategy}. Must be one of {sorted(STRATEGIES)}")
    return navigator_cls(session, overlay_guard, config, reporter)
