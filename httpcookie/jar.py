import logging
import time
from typing import IO, Any, Iterator, List, Optional, Union

from .cookie import Cookie, TimeType
from .errors import CookieStateError
from .logging import get_logger
from .registry import Registry, default_registry
from .store import AbstractStore
from .uri import URIType, is_http, parse_uri


class CookieJar:
    """
    Cookie jar backed by a pluggable store.

    Features:
    - RFC 6265 parsing and domain/path matching
    - Per-domain and global capacity limits with oldest-first eviction
    - Saving to and loading from JSON or cookies.txt

    Example:
        jar = CookieJar()
        jar.parse("sid=31d4d96e; Path=/; Secure", "https://example.com/login")
        jar.cookie_header("https://example.com/")  # 'sid=31d4d96e'
    """

    def __init__(
        self,
        store: Union[str, AbstractStore] = "hash",
        registry: Optional[Registry] = None,
        logger: Optional[logging.Logger] = None,
        **store_options: Any,
    ) -> None:
        self.registry = registry or default_registry()
        self.logger = logger or get_logger()
        if isinstance(store, AbstractStore):
            self.store = store
        else:
            store_class = self.registry.store(store)
            self.store = store_class(logger=self.logger, **store_options)

    def add(self, cookie: Cookie) -> "CookieJar":
        """
        Add a cookie and return the jar. The cookie is trusted as is; no
        acceptance check against an origin is made here.
        """
        if cookie.domain is None or cookie.path is None:
            raise CookieStateError("a cookie with unknown domain or path cannot be added")
        self.store.add(cookie)
        return self

    def delete(self, cookie: Cookie) -> "CookieJar":
        self.store.delete(cookie)
        return self

    def parse(self, set_cookie: str, origin: URIType, date: Optional[TimeType] = None) -> List[Cookie]:
        """Parse a Set-Cookie header value received from ``origin`` and add the cookies."""
        return Cookie.parse(set_cookie, origin=origin, date=date, logger=self.logger, callback=self.add)

    def each(self, uri: Optional[URIType] = None) -> Iterator[Cookie]:
        """
        Iterate over cookies, only those to be sent to ``uri`` if given.
        A URI that is not HTTP(S) yields nothing.
        """
        if uri is not None:
            uri = parse_uri(uri)
            if not is_http(uri):
                return iter(())
        return self.store.each(uri)

    def cookies(self, uri: Optional[URIType] = None) -> List[Cookie]:
        """
        Return the cookies to send to ``uri``, in sending order, and mark
        them as accessed.
        """
        now = time.time()
        cookies = [cookie for cookie in self.each(uri) if not cookie.expired(now)]
        for cookie in cookies:
            cookie.accessed_at = now
        cookies.sort()
        return cookies

    def cookie_header(self, uri: URIType) -> Optional[str]:
        """Get the Cookie header value for ``uri``, or None without cookies."""
        cookies = self.cookies(uri)
        if not cookies:
            return None
        return "; ".join(cookie.cookie_value for cookie in cookies)

    def empty(self, uri: Optional[URIType] = None) -> bool:
        if uri is None:
            return self.store.empty()
        for _ in self.each(uri):
            return False
        return True

    def clear(self) -> "CookieJar":
        self.store.clear()
        return self

    def cleanup(self, session: bool = False) -> "CookieJar":
        """Remove expired cookies (and session cookies if asked) and enforce limits."""
        self.store.cleanup(session)
        return self

    def save(
        self,
        target: Union[str, IO[str]],
        format: str = "json",
        session: bool = False,
        **options: Any,
    ) -> "CookieJar":
        """
        Save the jar to a file path or a text stream. Session cookies are
        skipped unless ``session`` is true.
        """
        saver = self.registry.saver(format)(session=session, logger=self.logger, **options)
        if hasattr(target, "write"):
            saver.save(target, self)
        else:
            with open(target, "w", encoding="utf-8") as f:
                saver.save(f, self)
        return self

    def load(self, source: Union[str, IO[str]], format: str = "json", **options: Any) -> "CookieJar":
        """Load cookies from a file path or a text stream into the jar."""
        saver = self.registry.saver(format)(logger=self.logger, **options)
        if hasattr(source, "read"):
            saver.load(source, self)
        else:
            with open(source, "r", encoding="utf-8") as f:
                saver.load(f, self)
        return self

    def copy(self) -> "CookieJar":
        return CookieJar(store=self.store.copy(), registry=self.registry, logger=self.logger)

    __copy__ = copy

    def __deepcopy__(self, memo: dict) -> "CookieJar":
        return self.copy()

    def __iter__(self) -> Iterator[Cookie]:
        return self.each()

    def __len__(self) -> int:
        return len(self.store)

    def __repr__(self) -> str:
        return f"<CookieJar {self.store!r}>"
