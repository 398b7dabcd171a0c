from paint_proxy.infrastructure.cache import MAX_ENTRIES, RenderCache


class _Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_render_cache_evicts_least_recently_used():
    cache = RenderCache(ttl=60)

    for idx in range(MAX_ENTRIES):
        cache.put(f"key-{idx}", b"data")
    assert cache.get("key-0") == b"data"

    for idx in range(MAX_ENTRIES, MAX_ENTRIES + 4):
        cache.put(f"key-{idx}", b"data")

    assert len(cache) == MAX_ENTRIES
    assert "key-0" in cache
    assert "key-1" not in cache
    assert "key-4" not in cache
    assert "key-5" in cache


def test_render_cache_expires_entries_after_ttl():
    clock = _Clock()
    cache = RenderCache(ttl=30, clock=clock)
    cache.put("paint", b"png")

    clock.now += 30
    assert cache.get("paint") == b"png"

    clock.now += 0.5
    assert cache.get("paint") is None
    assert "paint" not in cache
    assert cache.get("missing") is None


def test_last_painting_survives_clear():
    cache = RenderCache(ttl=60)
    assert cache.last_painting() is None

    cache.put("/raw", b"raw")
    assert cache.last_painting() is None

    cache.store_painting("/paint?a=1", b"painted")
    cache.clear()

    assert cache.get("/paint?a=1") is None
    assert cache.last_painting() == b"painted"
