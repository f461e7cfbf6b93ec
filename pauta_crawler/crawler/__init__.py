"""Crawler engine and navigation components."""

from .engine import CrawlerEngine
from .interface import BaseCrawler
from .browser import BrowserManager
from .session import PageSession

__all__ = ["CrawlerEngine", "BaseCrawler", "BrowserManager", "PageSession"]
