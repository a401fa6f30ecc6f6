from agroerp.core.cache import ReportCache, configure_report_cache, report_cache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_entry_is_served_until_ttl_expires():
    clock = FakeClock()
    cache = ReportCache(ttl_seconds=300, clock=clock)
    cache.set("summary", {"total": 1})

    clock.now += 299
    assert cache.get("summary") == {"total": 1}

    clock.now += 1
    assert cache.get("summary") is None
    assert len(cache) == 0


def test_missing_key_returns_none():
    assert ReportCache().get("nope") is None


def test_set_overwrites_and_restarts_ttl():
    clock = FakeClock()
    cache = ReportCache(ttl_seconds=10, clock=clock)
    cache.set("k", 1)
    clock.now += 8
    cache.set("k", 2)
    clock.now += 8
    assert cache.get("k") == 2


def test_clear_drops_everything():
    cache = ReportCache()
    cache.set("a", 1)
    cache.set("b", 2)
    cache.clear()
    assert len(cache) == 0


def test_configure_report_cache_resets_shared_instance():
    report_cache.set("stale", True)
    configured = configure_report_cache(60)
    assert configured is report_cache
    assert report_cache.ttl_seconds == 60
    assert report_cache.get("stale") is None
    configure_report_cache(300)
