import time

import pytest

from httpcookie import Cookie, CookieJar


@pytest.fixture
def jar() -> CookieJar:
    return CookieJar()


@pytest.fixture
def now() -> float:
    return float(int(time.time()))


@pytest.fixture
def make_cookie():
    def _make_cookie(name: str = "Foo", value: str = "Bar", **attrs) -> Cookie:
        attrs.setdefault("domain", "example.org")
        attrs.setdefault("for_domain", True)
        attrs.setdefault("path", "/")
        attrs.setdefault("expires", time.time() + 10 * 86400)
        return Cookie(name, value, **attrs)

    return _make_cookie
