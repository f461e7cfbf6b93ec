"""
Browser management for Playwright-based crawling.

This module provides a wrapper around the async Playwright API for managing
browser instances with proper configuration and cleanup.
"""

import logging
from typing import Any, Dict, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

logger = logging.getLogger(__name__)


class BrowserManager:
    """
    Manages Playwright browser instances.

    Provides an async context manager interface so the browser is always
    released, including when the run ends with an error.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize browser manager.

        Args:
            config: Configuration dictionary with browser settings
        """
        self.config = config.get('browser', {})
        self.headless = self.config.get('headless', True)
        self.slow_mo = self.config.get('slow_mo', 0)
        self.timeout = self.config.get('timeout', 30000)
        self.viewport = self.config.get('viewport', {'width': 1920, 'height': 1080})
        self.locale = self.config.get('locale', 'pt-BR')
        self.timezone_id = self.config.get('timezone', 'America/Sao_Paulo')
        self.user_agent = self.config.get('user_agent')

        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def __aenter__(self):
        """Enter context manager."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager."""
        await self.close()
        return False

    async def start(self) -> Page:
        """
        Start browser and create a new page.

        Returns:
            Playwright Page object
        """
        try:
            logger.info("Starting browser...")

            self.playwright = await async_playwright().start()

            self.browser = await self.playwright.chromium.launch(
                headless=self.headless,
                slow_mo=self.slow_mo,
                args=[
                    '--no-sandbox',
                    '--disable-dev-shm-usage',
                    '--disable-blink-features=AutomationControlled'
                ]
            )

            context_options = {
                'viewport': self.viewport,
                'locale': self.locale,
                'timezone_id': self.timezone_id
            }
            if self.user_agent:
                context_options['user_agent'] = self.user_agent

            self.context = await self.browser.new_context(**context_options)
            self.context.set_default_timeout(self.timeout)

            self.page = await self.context.new_page()

            logger.info("Browser started successfully")
            return self.page

        except Exception as e:
            logger.error(f"Failed to start browser: {e}")
            await self.close()
            raise

    async def close(self) -> None:
        """Close browser and cleanup resources."""
        try:
            if self.page:
                await self.page.close()
                self.page = None

            if self.context:
                await self.context.close()
                self.context = None

            if self.browser:
                await self.browser.close()
                self.browser = None

            if self.playwright:
                await self.playwright.stop()
                self.playwright = None

            logger.info("Browser closed successfully")

        except Exception as e:
            logger.error(f"Error closing browser: {e}")

    async def get_page(self) -> Page:
        """
        Get the current page or start the browser.

        Returns:
            Playwright Page object
        """
        if not self.page:
            if self.context:
                self.page = await self.context.new_page()
            else:
                self.page = await self.start()

        return self.page
