"""Dismissal of transient modal backdrops that swallow clicks."""

import logging

from ..exceptions import SessionError

logger = logging.getLogger(__name__)

BACKDROP_SELECTOR = '.cdk-overlay-backdrop'


class OverlayGuard:
    """
    Best-effort overlay dismissal.

    Sends Escape, then clicks the backdrop corner if it is still visible, then
    waits for it to detach. Each step tolerates session failures on its own,
    so dismiss() never raises a SessionError.
    """

    def __init__(
        self,
        session,
        settle_ms: int = 200,
        probe_timeout: int = 400,
        detach_timeout: int = 1500,
        selector: str = BACKDROP_SELECTOR
    ):
        self.session = session
        self.settle_ms = settle_ms
        self.probe_timeout = probe_timeout
        self.detach_timeout = detach_timeout
        self.selector = selector

    async def dismiss(self) -> None:
        try:
            await self.session.press('Escape')
        except SessionError as e:
            logger.debug(f"Escape not delivered: {e}")

        try:
            await self.session.pause(self.settle_ms)
        except SessionError:
            return

        if await self.session.is_visible(self.selector, timeout=self.probe_timeout):
            try:
                await self.session.click(self.selector, force=True, position={'x': 5, 'y': 5})
            except SessionError as e:
                logger.debug(f"Backdrop click failed: {e}")

        try:
            await self.session.wait_detached(self.selector, timeout=self.detach_timeout)
        except SessionError:
            logger.debug("Overlay backdrop still attached after dismissal")
