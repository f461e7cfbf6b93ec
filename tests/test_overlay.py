import asyncio

from pauta_crawler.crawler.overlay import BACKDROP_SELECTOR, OverlayGuard


def test_dismiss_clicks_visible_backdrop_corner(session):
    session.visible.add(BACKDROP_SELECTOR)

    asyncio.run(OverlayGuard(session).dismiss())

    assert session.keys == ['Escape']
    assert ('click', BACKDROP_SELECTOR, {'force': True, 'position': {'x': 5, 'y': 5}}) in session.calls
    assert BACKDROP_SELECTOR not in session.visible


def test_dismiss_without_backdrop_only_sends_escape(session):
    asyncio.run(OverlayGuard(session).dismiss())

    assert session.keys == ['Escape']
    assert session.clicks == []
    assert session.pauses == [200]


def test_dismiss_never_raises(session):
    """Failed key press, failed click and a backdrop that never detaches are all tolerated."""
    session.visible.add(BACKDROP_SELECTOR)
    session.stuck.add(BACKDROP_SELECTOR)
    session.fail('press', 'Escape')
    session.fail('click', BACKDROP_SELECTOR)

    asyncio.run(OverlayGuard(session).dismiss())

    assert session.clicks == []
