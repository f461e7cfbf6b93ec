import asyncio
from itertools import count

from pauta_crawler.crawler.stabilizer import LOADING_INDICATORS, RESULT_ITEMS, StabilizationDetector


def test_stable_once_count_repeats_and_confirms(session, config):
    session.counts[RESULT_ITEMS] = [0, 3, 5, 5, 5]
    detector = StabilizationDetector(session, config)

    assert asyncio.run(detector.wait_until_stable()) is True
    assert session.pauses == [250, 250, 250, 600]


def test_flicker_during_confirmation_keeps_sampling(session, config):
    session.counts[RESULT_ITEMS] = [2, 2, 4, 4, 4]
    detector = StabilizationDetector(session, config)

    assert asyncio.run(detector.wait_until_stable()) is True
    assert session.pauses.count(600) == 2


def test_empty_list_is_stable(session, config):
    detector = StabilizationDetector(session, config)

    assert asyncio.run(detector.wait_until_stable()) is True


def test_gives_up_after_iteration_ceiling(session, config):
    growing = count()
    session.counts[RESULT_ITEMS] = lambda: next(growing)
    detector = StabilizationDetector(session, config)

    assert asyncio.run(detector.wait_until_stable()) is False
    assert session.pauses == [250] * 20


def test_loading_indicator_that_never_hides_is_tolerated(session, config):
    session.visible.add(LOADING_INDICATORS[0])
    session.stuck.add(LOADING_INDICATORS[0])
    session.counts[RESULT_ITEMS] = 4
    detector = StabilizationDetector(session, config)

    assert asyncio.run(detector.wait_until_stable()) is True


def test_count_failure_reads_as_zero(session, config):
    session.fail('count', RESULT_ITEMS, times=1)
    detector = StabilizationDetector(session, config)

    assert asyncio.run(detector.count_items()) == 0
