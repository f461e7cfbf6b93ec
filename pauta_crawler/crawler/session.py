"""
Session facade over a Playwright page.

The navigation core never touches Playwright directly: it talks to this
selector-addressed facade, and every Playwright failure surfaces as a
SessionError so callers handle a single exception family.
"""

import logging
from functools import wraps
from typing import Any, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..exceptions import SessionError, SessionTimeoutError

logger = logging.getLogger(__name__)

IS_ENABLED_JS = """
(el) => !el.hasAttribute('disabled') && el.getAttribute('aria-disabled') !== 'true'
"""


def _translate_errors(func):
    """Re-raise Playwright errors as SessionError subclasses."""
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except PlaywrightTimeoutError as e:
            raise SessionTimeoutError(str(e), {'operation': func.__name__, 'args': args}) from e
        except PlaywrightError as e:
            raise SessionError(str(e), {'operation': func.__name__, 'args': args}) from e
    return wrapper


class PageSession:
    """
    Selector-addressed interaction primitives for one browser page.

    Timeouts are in milliseconds, matching Playwright.
    """

    def __init__(self, page: Page, default_timeout: int = 20000):
        """
        Initialize the session.

        Args:
            page: Playwright page object
            default_timeout: Timeout for waits and clicks when none is given
        """
        self.page = page
        self.default_timeout = default_timeout

    def _first(self, selector: str):
        return self.page.locator(selector).first

    def _timeout(self, timeout: Optional[int]) -> int:
        return self.default_timeout if timeout is None else timeout

    @_translate_errors
    async def goto(self, url: str, timeout: int = 60000, wait_until: str = 'networkidle') -> None:
        await self.page.goto(url, timeout=timeout, wait_until=wait_until)

    @_translate_errors
    async def wait_for_load_settled(self, timeout: Optional[int] = None) -> None:
        await self.page.wait_for_load_state('networkidle', timeout=self._timeout(timeout))

    @_translate_errors
    async def pause(self, ms: int) -> None:
        """Suspend for a fixed time without blocking the event loop."""
        await self.page.wait_for_timeout(ms)

    @_translate_errors
    async def press(self, key: str) -> None:
        await self.page.keyboard.press(key)

    @_translate_errors
    async def click(
        self,
        selector: str,
        force: bool = False,
        position: Optional[Dict[str, float]] = None,
        delay: Optional[float] = None,
        timeout: Optional[int] = None
    ) -> None:
        options: Dict[str, Any] = {'force': force, 'timeout': self._timeout(timeout)}
        if position:
            options['position'] = position
        if delay:
            options['delay'] = delay
        await self._first(selector).click(**options)

    @_translate_errors
    async def click_nth(self, selector: str, index: int, force: bool = False, timeout: Optional[int] = None) -> None:
        target = self.page.locator(selector).nth(index)
        try:
            await target.scroll_into_view_if_needed(timeout=self._timeout(timeout))
        except PlaywrightError:
            logger.debug(f"Could not scroll {selector}[{index}] into view")
        await target.click(force=force, timeout=self._timeout(timeout))

    @_translate_errors
    async def read_text(self, selector: str, timeout: Optional[int] = None) -> str:
        text = await self._first(selector).inner_text(timeout=self._timeout(timeout))
        return (text or "").strip()

    @_translate_errors
    async def all_texts(self, selector: str) -> List[str]:
        return await self.page.locator(selector).all_text_contents()

    @_translate_errors
    async def count(self, selector: str) -> int:
        return await self.page.locator(selector).count()

    async def is_visible(self, selector: str, timeout: int = 0) -> bool:
        """Probe visibility, waiting up to timeout; never raises."""
        try:
            if timeout:
                await self._first(selector).wait_for(state='visible', timeout=timeout)
                return True
            return await self._first(selector).is_visible()
        except PlaywrightError:
            return False

    @_translate_errors
    async def is_enabled(self, selector: str) -> bool:
        return await self._first(selector).evaluate(IS_ENABLED_JS)

    @_translate_errors
    async def scroll_into_view(self, selector: str) -> None:
        await self._first(selector).scroll_into_view_if_needed()

    @_translate_errors
    async def wait_visible(self, selector: str, timeout: Optional[int] = None) -> None:
        await self._first(selector).wait_for(state='visible', timeout=self._timeout(timeout))

    @_translate_errors
    async def wait_hidden(self, selector: str, timeout: Optional[int] = None) -> None:
        await self._first(selector).wait_for(state='hidden', timeout=self._timeout(timeout))

    @_translate_errors
    async def wait_detached(self, selector: str, timeout: Optional[int] = None) -> None:
        await self._first(selector).wait_for(state='detached', timeout=self._timeout(timeout))

    @_translate_errors
    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self.page.evaluate(script, arg)
