import asyncio
from unittest.mock import MagicMock, patch

import pytest

from pauta_crawler.exceptions import NavigationError, SessionError
from pauta_crawler.utils import RetryPolicy, RetryStrategy, with_retry


class Recorder:
    def __init__(self):
        self.sleeps = []
        self.cleanups = 0

    async def sleep(self, seconds):
        self.sleeps.append(seconds)

    async def cleanup(self):
        self.cleanups += 1


def flaky(failures, exc=SessionError):
    """Operation failing `failures` times before returning 'ok'."""
    state = {'calls': 0}

    async def operation():
        state['calls'] += 1
        if state['calls'] <= failures:
            raise exc(f"failure {state['calls']}")
        return "ok"

    return operation, state


def test_strategy_rejects_zero_attempts():
    with pytest.raises(ValueError):
        RetryStrategy(max_attempts=0)


def test_strategy_delays():
    fixed = RetryStrategy(initial_delay=1.2, backoff_factor=1.0)
    assert [fixed.calculate_delay(a) for a in range(3)] == [1.2, 1.2, 1.2]

    growing = RetryStrategy(initial_delay=1.0, backoff_factor=2.0, max_delay=3.0)
    assert [growing.calculate_delay(a) for a in range(4)] == [1.0, 2.0, 3.0, 3.0]


def test_policy_recovers_after_failures():
    recorder = Recorder()
    policy = RetryPolicy(
        RetryStrategy(max_attempts=5, initial_delay=1.2, exceptions=(SessionError,)),
        cleanup=recorder.cleanup,
        sleep=recorder.sleep
    )
    operation, state = flaky(2)

    assert asyncio.run(policy.run(operation, "click")) == "ok"
    assert state['calls'] == 3
    assert recorder.cleanups == 2
    assert recorder.sleeps == [1.2, 1.2]


def test_policy_reraises_last_error_when_exhausted():
    recorder = Recorder()
    reporter = MagicMock()
    policy = RetryPolicy(
        RetryStrategy(max_attempts=3, initial_delay=0, exceptions=(SessionError,)),
        cleanup=recorder.cleanup,
        reporter=reporter,
        sleep=recorder.sleep
    )
    operation, state = flaky(10)

    with pytest.raises(SessionError, match="failure 3"):
        asyncio.run(policy.run(operation, "open dialog"))

    assert state['calls'] == 3
    assert recorder.cleanups == 2
    assert reporter.log_attempt.call_count == 3
    last_call = reporter.log_attempt.call_args[0]
    assert last_call[:2] == (3, 3)
    assert last_call[3] == "open dialog"


def test_policy_does_not_retry_other_errors():
    recorder = Recorder()
    policy = RetryPolicy(
        RetryStrategy(max_attempts=5, exceptions=(SessionError,)),
        cleanup=recorder.cleanup,
        sleep=recorder.sleep
    )
    operation, state = flaky(1, exc=NavigationError)

    with pytest.raises(NavigationError):
        asyncio.run(policy.run(operation))

    assert state['calls'] == 1
    assert recorder.cleanups == 0


def test_with_retry_decorator():
    calls = []

    @with_retry(max_attempts=3, initial_delay=0.5, exceptions=(OSError,))
    def send():
        calls.append(1)
        if len(calls) < 3:
            raise OSError("connection reset")
        return "sent"

    with patch('pauta_crawler.utils.retry.time.sleep') as mock_sleep:
        assert send() == "sent"

    assert len(calls) == 3
    assert mock_sleep.call_count == 2


def test_with_retry_gives_up():
    @with_retry(max_attempts=2, initial_delay=0, exceptions=(OSError,))
    def send():
        raise OSError("down")

    with patch('pauta_crawler.utils.retry.time.sleep'):
        with pytest.raises(OSError):
            send()
