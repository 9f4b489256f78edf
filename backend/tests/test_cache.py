"""
Tests du cache mémoire à expiration.
"""

import pytest

from atlas.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_get_set():
    cache = TTLCache(ttl_seconds=30)
    cache.set("a", [1, 2])
    assert cache.get("a") == [1, 2]
    assert cache.get("absent", "defaut") == "defaut"


def test_expiration():
    clock = FakeClock()
    cache = TTLCache(ttl_seconds=30, clock=clock)
    cache.set("a", 1)

    clock.now = 29.9
    assert cache.get("a") == 1
    clock.now = 30.0
    assert cache.get("a") is None
    assert len(cache) == 0


def test_eviction_la_moins_recemment_utilisee():
    cache = TTLCache(ttl_seconds=30, max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)

    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3


def test_invalidate_cle_prefixe_et_tout():
    cache = TTLCache(ttl_seconds=30)
    cache.set("abstracts:e1:r1", 1)
    cache.set("abstracts:e1:r2", 2)
    cache.set("abstracts:e2:r1", 3)

    assert cache.invalidate("abstracts:e1:r1") == 1
    assert cache.invalidate("abstracts:e1:r1") == 0
    assert cache.invalidate(prefix="abstracts:e1:") == 1
    assert len(cache) == 1
    assert cache.invalidate() == 1
    assert len(cache) == 0


@pytest.mark.parametrize("kwargs", [{"ttl_seconds": 0}, {"ttl_seconds": 10, "max_entries": 0}])
def test_parametres_invalides(kwargs):
    with pytest.raises(ValueError):
        TTLCache(**kwargs)
