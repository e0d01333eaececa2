import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from config import load_settings
from processor.budget import RateLimiter


@pytest.fixture
def limiter(clock, test_settings):
    return RateLimiter(clock=clock, settings=test_settings)


def test_fourth_call_in_window_denied(limiter, clock):
    results = []
    for _ in range(4):
        results.append(limiter.allow("ai-call", 3, 1000).allowed)
        clock.advance_ms(100)
    assert results == [True, True, True, False]


def test_retry_after_is_time_left_in_window(limiter, clock):
    for _ in range(3):
        limiter.allow("k", 3, 1000)
    clock.advance_ms(500)

    decision = limiter.allow("k", 3, 1000)
    assert not decision.allowed
    assert decision.retry_after_ms == 500


def test_window_resets_wholesale(limiter, clock):
    for _ in range(3):
        limiter.allow("k", 3, 1000)

    clock.advance_ms(1000)
    assert not limiter.allow("k", 3, 1000).allowed

    clock.advance_ms(1)
    assert [limiter.allow("k", 3, 1000).allowed for _ in range(4)] == [True, True, True, False]


def test_keys_are_independent(limiter):
    assert limiter.allow("a", 1, 1000).allowed
    assert not limiter.allow("a", 1, 1000).allowed
    assert limiter.allow("b", 1, 1000).allowed


def test_reset_single_key(limiter):
    limiter.allow("a", 1, 1000)
    limiter.allow("b", 1, 1000)
    limiter.reset("a")

    assert limiter.allow("a", 1, 1000).allowed
    assert not limiter.allow("b", 1, 1000).allowed


def test_ai_request_limit_from_settings(clock):
    limiter = RateLimiter(clock=clock, settings=load_settings(AI_CALLS_PER_MINUTE=2))
    assert limiter.can_make_ai_request().allowed
    assert limiter.can_make_ai_request().allowed
    decision = limiter.can_make_ai_request()
    assert not decision.allowed
    assert decision.retry_after_ms == 60_000

    clock.advance(61)
    assert limiter.can_make_ai_request().allowed


def test_news_fetch_limit_from_settings(clock):
    limiter = RateLimiter(clock=clock, settings=load_settings(NEWS_FETCHES_PER_HOUR=1))
    assert limiter.can_fetch_news().allowed
    assert not limiter.can_fetch_news().allowed


def test_concurrent_calls_admit_exactly_the_window_max(limiter):
    start = threading.Barrier(40)

    def call(_):
        start.wait()
        return limiter.allow("burst", 7, 60_000).allowed

    with ThreadPoolExecutor(max_workers=40) as pool:
        results = list(pool.map(call, range(40)))

    assert results.count(True) == 7
    assert results.count(False) == 33
