from translatebot.shared.rate_limiter import RateLimiter


def test_channel_limit_admits_n_then_rejects(clock):
    limiter = RateLimiter(global_limit=100, channel_limit=10, clock=clock)

    assert all(limiter.admit("#Chan") for _ in range(10))
    assert not limiter.admit("chan")
    assert limiter.usage("chan") == 10


def test_window_slides_after_sixty_seconds(clock):
    limiter = RateLimiter(global_limit=100, channel_limit=10, clock=clock)
    for _ in range(10):
        limiter.admit("chan")
    assert not limiter.admit("chan")

    clock.advance(60)
    assert limiter.admit("chan")


def test_global_limit_is_checked_first(clock):
    limiter = RateLimiter(global_limit=3, channel_limit=10, clock=clock)
    assert limiter.admit("a")
    assert limiter.admit("b")
    assert limiter.admit("c")

    assert not limiter.admit("d")
    # The rejection recorded nothing for "d"
    assert limiter.usage("d") == 0
    assert limiter.stats()["global"]["limited_requests"] == 1


def test_channel_rejection_does_not_consume_global_quota(clock):
    limiter = RateLimiter(global_limit=5, channel_limit=1, clock=clock)
    assert limiter.admit("busy")
    assert not limiter.admit("busy")
    assert not limiter.admit("busy")

    assert limiter.usage() == 1
    assert limiter.admit("quiet")


def test_channel_named_global_has_its_own_scope(clock):
    limiter = RateLimiter(global_limit=20, channel_limit=1, clock=clock)
    assert limiter.admit("global")
    assert not limiter.admit("global")

    assert limiter.admit("other")
    assert limiter.stats()["channels"]["global"]["current_usage"] == 1


def test_stats_report_each_channel(clock):
    limiter = RateLimiter(global_limit=20, channel_limit=2, clock=clock)
    limiter.admit("a")
    limiter.admit("a")
    limiter.admit("a")

    stats = limiter.stats()
    assert stats["global"]["current_usage"] == 2
    assert stats["channels"]["a"]["total_requests"] == 3
    assert stats["channels"]["a"]["limited_requests"] == 1
    assert stats["channels"]["a"]["limit"] == 2
