import copy
import threading
import time

import pytest

from httpcookie import Cookie, HashStore
from httpcookie.errors import CookieStateError
from httpcookie.eviction import EvictionPolicy


def _cookie(name: str, domain: str = "example.com", path: str = "/", **attrs) -> Cookie:
    attrs.setdefault("expires", time.time() + 3600)
    return Cookie(name, "value", domain=domain, path=path, **attrs)


def test_add_and_iterate() -> None:
    store = HashStore()
    store.add(_cookie("a")).add(_cookie("b", path="/foo"))
    assert sorted(c.name for c in store) == ["a", "b"]
    assert len(store) == 2
    assert not store.empty()


def test_add_replaces_same_key() -> None:
    store = HashStore()
    first = _cookie("a")
    second = _cookie("a")
    second.value = "other"
    store.add(first).add(second)
    assert list(store.each()) == [second]
    assert len(store) == 1


def test_same_name_different_path_or_domain_are_distinct() -> None:
    store = HashStore()
    store.add(_cookie("a")).add(_cookie("a", path="/foo")).add(_cookie("a", domain="example.org"))
    assert len(store) == 3


def test_adding_expired_cookie_deletes_existing() -> None:
    store = HashStore()
    store.add(_cookie("a"))
    store.add(_cookie("a").expire())
    assert store.empty()
    assert len(store) == 0


def test_adding_expired_cookie_alone_is_noop() -> None:
    store = HashStore()
    store.add(_cookie("a").expire())
    assert store.empty()


def test_add_requires_domain_and_path() -> None:
    store = HashStore()
    with pytest.raises(CookieStateError):
        store.add(Cookie("a", "b"))
    with pytest.raises(CookieStateError):
        store.add(Cookie("a", "b", domain="example.com"))


def test_delete() -> None:
    store = HashStore()
    cookie = _cookie("a")
    store.add(cookie).add(_cookie("b"))
    store.delete(cookie)
    assert [c.name for c in store] == ["b"]
    # Deleting twice is harmless
    store.delete(cookie)
    assert len(store) == 1


def test_delete_prunes_empty_buckets() -> None:
    store = HashStore()
    cookie = _cookie("a", path="/foo")
    store.add(cookie)
    store.delete(cookie)
    assert store.empty()
    assert store._store == {}


def test_each_filters_by_uri() -> None:
    store = HashStore()
    store.add(_cookie("host_only"))
    store.add(_cookie("domain", domain=".example.com"))
    store.add(_cookie("deep", domain=".example.com", path="/foo/"))
    store.add(_cookie("other", domain="example.org"))
    store.add(_cookie("secure", domain=".example.com", secure=True))

    names = sorted(c.name for c in store.each("http://www.example.com/"))
    assert names == ["domain"]

    names = sorted(c.name for c in store.each("https://example.com/foo/bar"))
    assert names == ["deep", "domain", "host_only", "secure"]

    assert list(store.each("ftp://example.com/")) == []


def test_each_skips_and_removes_expired() -> None:
    store = HashStore()
    doomed = _cookie("a")
    store.add(doomed).add(_cookie("b"))
    doomed.expire()
    assert [c.name for c in store.each()] == ["b"]
    assert len(store) == 1


def test_each_is_restartable() -> None:
    store = HashStore()
    store.add(_cookie("a")).add(_cookie("b"))
    assert sorted(c.name for c in store) == sorted(c.name for c in store)


def test_mutation_while_iterating() -> None:
    store = HashStore()
    store.add(_cookie("a")).add(_cookie("b"))
    for cookie in store.each():
        store.delete(cookie)
        store.add(_cookie(cookie.name + "2"))
    assert sorted(c.name for c in store) == ["a2", "b2"]


def test_clear() -> None:
    store = HashStore()
    store.add(_cookie("a")).add(_cookie("b", domain="example.org"))
    store.clear()
    assert store.empty()
    assert len(store) == 0
    assert list(store) == []


def test_cleanup_removes_session_cookies_on_request() -> None:
    store = HashStore()
    store.add(_cookie("persistent"))
    store.add(Cookie("session", "value", domain="example.com", path="/"))
    store.cleanup()
    assert len(store) == 2
    store.cleanup(session=True)
    assert [c.name for c in store] == ["persistent"]


def test_per_domain_limit_evicts_oldest() -> None:
    store = HashStore()
    now = time.time()
    for i in range(51):
        store.add(_cookie(f"c{i}", created_at=now - 100 + i))
    store.add(_cookie("elsewhere", domain="example.org", created_at=now - 1000))
    store.cleanup()

    names = {c.name for c in store if c.domain == "example.com"}
    assert len(names) == Cookie.MAX_COOKIES_PER_DOMAIN
    assert "c0" not in names
    assert "c50" in names
    assert any(c.name == "elsewhere" for c in store)


def test_gc_runs_at_threshold() -> None:
    store = HashStore(gc_threshold=10, max_cookies_per_domain=5)
    now = time.time()
    for i in range(9):
        store.add(_cookie(f"c{i}", created_at=now + i))
    assert len(store) == 9
    store.add(_cookie("c9", created_at=now + 9))
    assert len(store) == 5
    assert sorted(c.name for c in store) == ["c5", "c6", "c7", "c8", "c9"]


def test_total_limit_evicts_oldest() -> None:
    store = HashStore(gc_threshold=100, max_cookies_total=10)
    now = time.time()
    for i in range(12):
        store.add(_cookie(f"c{i}", domain=f"d{i % 4}.example.com", created_at=now + i))
    store.cleanup()
    names = sorted(c.name for c in store)
    assert len(names) == 10
    assert "c0" not in names and "c1" not in names


def test_copy_is_independent() -> None:
    store = HashStore()
    store.add(_cookie("a"))
    other = store.copy()
    other.add(_cookie("b"))
    store.clear()
    assert store.empty()
    assert sorted(c.name for c in other) == ["a", "b"]
    assert copy.copy(other) is not other
    assert len(copy.deepcopy(other)) == 2


def test_copy_keeps_limits() -> None:
    store = HashStore(gc_threshold=7, max_cookies_per_domain=3, max_cookies_total=9)
    other = store.copy()
    assert other.gc_threshold == 7
    assert other.policy == EvictionPolicy(3, 9)


def test_eviction_policy_clamps_limits() -> None:
    policy = EvictionPolicy(0, -5)
    assert policy.max_cookies_per_domain == 1
    assert policy.max_cookies_total == 1
    assert EvictionPolicy().default_gc_threshold == 150


def test_eviction_policy_victims() -> None:
    policy = EvictionPolicy(max_cookies_per_domain=2, max_cookies_total=3)
    now = time.time()
    a = [_cookie(f"a{i}", created_at=now + i) for i in range(3)]
    b = [_cookie(f"b{i}", domain="example.org", created_at=now + 10 + i) for i in range(2)]
    expired = _cookie("x").expire()
    victims = policy.victims({"example.com": a + [expired], "example.org": b}, now=now)
    assert expired in victims
    # a0 goes for the domain limit, then a1 is the oldest over the total limit
    assert [c.name for c in victims if c is not expired] == ["a0", "a1"]


def test_concurrent_add_and_each() -> None:
    store = HashStore()
    # Resolve the suffix list before threads start
    _cookie("warmup", domain="w0.example.com")
    errors = []
    writers_done = threading.Event()

    def write(worker: int) -> None:
        try:
            for i in range(40):
                store.add(_cookie(f"c{i}", domain=f"w{worker}.example.com"))
        except Exception as exc:
            errors.append(exc)

    def read(worker: int) -> None:
        try:
            while not writers_done.is_set():
                for cookie in store.each(f"http://w{worker}.example.com/"):
                    assert cookie.domain == f"w{worker}.example.com"
                list(store.each())
        except Exception as exc:
            errors.append(exc)

    writers = [threading.Thread(target=write, args=(n,)) for n in range(4)]
    readers = [threading.Thread(target=read, args=(n,)) for n in range(4)]
    for thread in readers + writers:
        thread.start()
    for thread in writers:
        thread.join()
    writers_done.set()
    for thread in readers:
        thread.join()

    assert errors == []
    assert len(store) == 160
    assert sum(1 for _ in store.each()) == 160
    for n in range(4):
        assert len(list(store.each(f"http://w{n}.example.com/"))) == 40


def test_concurrent_cleanup_and_clear() -> None:
    store = HashStore(gc_threshold=5, max_cookies_per_domain=10)
    errors = []

    def churn() -> None:
        try:
            for i in range(100):
                store.add(_cookie(f"c{i}"))
                if i % 25 == 0:
                    store.clear()
                list(store.each("http://example.com/"))
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=churn) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    store.cleanup()

    assert errors == []
    assert len(store) <= 10
    assert len(store) == sum(1 for _ in store.each())
