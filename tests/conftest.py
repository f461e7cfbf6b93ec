"""Shared fixtures: an in-memory session facade and a base configuration."""

import copy

import pytest

from pauta_crawler.config import DEFAULT_CONFIG
from pauta_crawler.exceptions import SessionError, SessionTimeoutError


def _next(value):
    """Resolve a scripted value: callables are called, lists are consumed (last one sticks)."""
    if callable(value):
        return value()
    if isinstance(value, list):
        return value.pop(0) if len(value) > 1 else value[0]
    return value


class FakeSession:
    """
    Scriptable stand-in for PageSession.

    Attributes are plain dictionaries and sets so each test can describe only
    the part of the page it cares about. Unknown selectors behave like an
    empty page: nothing visible, no text, zero count.
    """

    def __init__(self):
        self.calls = []
        self.clicks = []
        self.keys = []
        self.pauses = []
        self.visible = set()
        self.missing = set()
        self.stuck = set()
        self.enabled = {}
        self.texts = {}
        self.text_lists = {}
        self.counts = {}
        self.scripts = {}
        self.on_click = {}
        self.failures = {}

    def fail(self, method, selector=None, times=1):
        self.failures[(method, selector)] = times

    def _maybe_fail(self, method, selector=None):
        for key in ((method, selector), (method, None)):
            remaining = self.failures.get(key)
            if remaining:
                self.failures[key] = remaining - 1
                raise SessionError(f"{method} failed: {selector}")

    async def goto(self, url, timeout=60000, wait_until='networkidle'):
        self.calls.append(('goto', url))
        self._maybe_fail('goto', url)

    async def wait_for_load_settled(self, timeout=None):
        self.calls.append(('wait_for_load_settled', None))

    async def pause(self, ms):
        self.pauses.append(ms)

    async def press(self, key):
        self.keys.append(key)
        self._maybe_fail('press', key)

    async def click(self, selector, force=False, position=None, delay=None, timeout=None):
        self._maybe_fail('click', selector)
        self.clicks.append(selector)
        self.calls.append(('click', selector, {'force': force, 'position': position}))
        handler = self.on_click.get(selector)
        if handler:
            handler()

    async def click_nth(self, selector, index, force=False, timeout=None):
        self._maybe_fail('click_nth', selector)
        self.clicks.append((selector, index))
        handler = self.on_click.get(selector)
        if handler:
            handler(index)

    async def read_text(self, selector, timeout=None):
        self._maybe_fail('read_text', selector)
        if selector not in self.texts:
            raise SessionTimeoutError(f"no text for {selector}")
        return str(_next(self.texts[selector])).strip()

    async def all_texts(self, selector):
        self._maybe_fail('all_texts', selector)
        return list(_next(self.text_lists.get(selector, [[]])))

    async def count(self, selector):
        self._maybe_fail('count', selector)
        return _next(self.counts.get(selector, 0))

    async def is_visible(self, selector, timeout=0):
        return selector in self.visible

    async def is_enabled(self, selector):
        self._maybe_fail('is_enabled', selector)
        return bool(_next(self.enabled.get(selector, True)))

    async def scroll_into_view(self, selector):
        self.calls.append(('scroll', selector))

    async def wait_visible(self, selector, timeout=None):
        self._maybe_fail('wait_visible', selector)
        if selector in self.missing:
            raise SessionTimeoutError(f"{selector} never became visible")

    async def wait_hidden(self, selector, timeout=None):
        if selector in self.stuck:
            raise SessionTimeoutError(f"{selector} still visible")

    async def wait_detached(self, selector, timeout=None):
        if selector in self.stuck:
            raise SessionTimeoutError(f"{selector} still attached")
        self.visible.discard(selector)

    async def evaluate(self, script, arg=None):
        self._maybe_fail('evaluate', None)
        handler = self.scripts.get(script)
        if handler is None:
            return None
        return handler(arg)


class NullGuard:
    """Overlay guard that only counts dismissals."""

    def __init__(self):
        self.dismissals = 0

    async def dismiss(self):
        self.dismissals += 1


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def guard():
    return NullGuard()


@pytest.fixture
def config():
    """Default configuration with every wait shortened for tests."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg['navigation']['date_retry_delay'] = 0
    cfg['navigation']['retry']['delay'] = 0
    cfg['navigation']['wait']['element_timeout'] = 1000
    cfg['navigation']['wait']['poll_ms'] = 100
    return cfg
