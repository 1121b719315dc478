import pytest
from fastapi import HTTPException

from nltm.core.rate_limit import RateLimiter


def test_window_fills_and_slides():
    limiter = RateLimiter(2, 60, scope="test", message="slow down")
    assert limiter.hit("1.2.3.4", now=0)
    assert limiter.hit("1.2.3.4", now=10)
    assert not limiter.hit("1.2.3.4", now=20)
    # other clients have their own window
    assert limiter.hit("5.6.7.8", now=20)
    # the first hit has left the window
    assert limiter.hit("1.2.3.4", now=60)
    assert not limiter.hit("1.2.3.4", now=61)


def test_reset():
    limiter = RateLimiter(1, 60, scope="test", message="slow down")
    assert limiter.hit("a", now=0)
    assert not limiter.hit("a", now=1)
    limiter.reset()
    assert limiter.hit("a", now=2)


def test_dependency_raises_429():
    class FakeRequest:
        class client:
            host = "9.9.9.9"

    limiter = RateLimiter(1, 30, scope="test", message="slow down")
    limiter(FakeRequest())
    with pytest.raises(HTTPException) as info:
        limiter(FakeRequest())
    assert info.value.status_code == 429
    assert info.value.detail == "slow down"
    assert info.value.headers["Retry-After"] == "30"


def test_idle_clients_are_forgotten():
    limiter = RateLimiter(5, 60, scope="test", message="slow down")
    for i in range(100):
        limiter.hit(f"10.0.0.{i}", now=0)
    assert limiter.tracked_clients() == 100
    # once a full window has passed, only clients seen inside it are kept
    assert limiter.hit("10.0.1.1", now=61)
    assert limiter.tracked_clients() == 1
    assert limiter.hit("10.0.0.1", now=62)
    assert limiter.tracked_clients() == 2


def test_reset_all_skips_collected_limiters():
    import gc

    from nltm.core import rate_limit

    RateLimiter(1, 60, scope="temp", message="slow down")
    gc.collect()
    assert all(limiter.scope != "temp" for limiter in rate_limit._limiters)
    rate_limit.reset_all()
