import copy
import logging
import threading
import time
from typing import Dict, Iterator, List, Optional, Tuple

from .cookie import Cookie
from .domain import default_matcher
from .errors import CookieStateError, InvalidDomainError
from .eviction import EvictionPolicy
from .logging import get_logger
from .uri import URIType, is_http, normalize_path, parse_uri, path_match


class AbstractStore:
    """
    Interface of a cookie store.

    ``each`` yields cookies that are not expired; with a ``uri`` every
    cookie yielded must be good to send there, i.e.
    ``cookie.valid_for_uri(uri)`` is true.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or get_logger()

    def add(self, cookie: Cookie) -> "AbstractStore":
        raise NotImplementedError

    def delete(self, cookie: Cookie) -> "AbstractStore":
        raise NotImplementedError

    def each(self, uri: Optional[URIType] = None) -> Iterator[Cookie]:
        raise NotImplementedError

    def empty(self) -> bool:
        raise NotImplementedError

    def clear(self) -> "AbstractStore":
        raise NotImplementedError

    def copy(self) -> "AbstractStore":
        raise NotImplementedError

    def cleanup(self, session: bool = False) -> "AbstractStore":
        """Remove expired cookies, and session cookies too if ``session``."""
        for cookie in [c for c in self.each() if c.expired() or (session and c.session)]:
            self.delete(cookie)
        return self

    def __iter__(self) -> Iterator[Cookie]:
        return self.each()

    def __len__(self) -> int:
        return sum(1 for _ in self.each())

    def __copy__(self) -> "AbstractStore":
        return self.copy()

    def __deepcopy__(self, memo: dict) -> "AbstractStore":
        return self.copy()


class HashStore(AbstractStore):
    """
    In-memory store.

    Internally cookies are stored in a nested dictionary:
        domain -> path -> name -> Cookie
    One reentrant lock serializes every read and write. Eviction runs
    every ``gc_threshold`` additions, or on ``cleanup``.
    """

    def __init__(
        self,
        gc_threshold: Optional[int] = None,
        max_cookies_per_domain: int = Cookie.MAX_COOKIES_PER_DOMAIN,
        max_cookies_total: int = Cookie.MAX_COOKIES_TOTAL,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        self.policy = EvictionPolicy(max_cookies_per_domain, max_cookies_total)
        self.gc_threshold = max(gc_threshold or self.policy.default_gc_threshold, 1)
        # domain -> path -> name -> Cookie
        self._store: Dict[str, Dict[str, Dict[str, Cookie]]] = {}
        self._total_cookies = 0
        self._gc_index = 0
        self._lock = threading.RLock()

    @staticmethod
    def _key(cookie: Cookie) -> Tuple[str, str, str]:
        if cookie.domain_name is None or cookie.path is None:
            raise CookieStateError("a cookie with unknown domain or path cannot be stored")
        return cookie.domain_name.hostname, cookie.path, cookie.name

    def _delete_cookie(self, domain_key: str, path_key: str, name: str) -> bool:
        """Remove a specific cookie entry, cleaning up empty buckets."""
        domain_bucket = self._store.get(domain_key)
        if not domain_bucket:
            return False
        path_bucket = domain_bucket.get(path_key)
        if not path_bucket or name not in path_bucket:
            return False
        del path_bucket[name]
        self._total_cookies -= 1
        if not path_bucket:
            domain_bucket.pop(path_key, None)
        if not domain_bucket:
            self._store.pop(domain_key, None)
        return True

    def _upsert_cookie(self, domain_key: str, path_key: str, cookie: Cookie) -> None:
        """Insert or replace a cookie inside the nested store."""
        path_bucket = self._store.setdefault(domain_key, {}).setdefault(path_key, {})
        if cookie.name not in path_bucket:
            self._total_cookies += 1
        path_bucket[cookie.name] = cookie

    def add(self, cookie: Cookie) -> "HashStore":
        domain_key, path_key, name = self._key(cookie)
        with self._lock:
            if cookie.expired():
                self._delete_cookie(domain_key, path_key, name)
            else:
                self._upsert_cookie(domain_key, path_key, cookie)
            self._gc_index += 1
            if self._gc_index >= self.gc_threshold:
                self._cleanup(session=False)
        return self

    def delete(self, cookie: Cookie) -> "HashStore":
        with self._lock:
            self._delete_cookie(*self._key(cookie))
        return self

    def each(self, uri: Optional[URIType] = None) -> Iterator[Cookie]:
        """
        Yield live cookies, optionally only those valid for ``uri``.

        The store is scanned once under the lock; expired entries met on
        the way are deleted once the scan is over, and the lock is released
        before anything is yielded.
        """
        now = time.time()
        host = target_path = None
        if uri is not None:
            uri = parse_uri(uri)
            if not is_http(uri):
                return
            try:
                host = default_matcher().domain_name(uri.hostname)
            except InvalidDomainError:
                self.logger.debug(f"Malformed request host: {uri.hostname}")
                return
            target_path = normalize_path(uri.path)

        live: List[Cookie] = []
        with self._lock:
            expired: List[Tuple[str, str, str]] = []
            for domain_key, paths in self._store.items():
                if host is not None and not (host.hostname == domain_key or host.cookie_domain(domain_key)):
                    continue
                for path_key, names in paths.items():
                    if target_path is not None and not path_match(path_key, target_path):
                        continue
                    for name, cookie in names.items():
                        if cookie.expired(now):
                            expired.append((domain_key, path_key, name))
                        elif uri is None or cookie.valid_for_uri(uri):
                            live.append(cookie)
            for key in expired:
                self._delete_cookie(*key)
        yield from live

    def empty(self) -> bool:
        with self._lock:
            return not self._store

    def clear(self) -> "HashStore":
        with self._lock:
            self._store.clear()
            self._total_cookies = 0
            self._gc_index = 0
        return self

    def cleanup(self, session: bool = False) -> "HashStore":
        with self._lock:
            self._cleanup(session)
        return self

    def _cleanup(self, session: bool) -> None:
        domains = {
            domain_key: [cookie for names in paths.values() for cookie in names.values()]
            for domain_key, paths in self._store.items()
        }
        victims = self.policy.victims(domains, session=session)
        for cookie in victims:
            self._delete_cookie(*self._key(cookie))
        if victims:
            self.logger.debug(f"Evicted {len(victims)} cookies; {self._total_cookies} left")
        self._gc_index = 0

    def copy(self) -> "HashStore":
        other = HashStore(
            gc_threshold=self.gc_threshold,
            max_cookies_per_domain=self.policy.max_cookies_per_domain,
            max_cookies_total=self.policy.max_cookies_total,
            logger=self.logger,
        )
        with self._lock:
            other._store = copy.deepcopy(self._store)
            other._total_cookies = self._total_cookies
        return other

    def __len__(self) -> int:
        with self._lock:
            return self._total_cookies

    def __repr__(self) -> str:
        return f"<HashStore domains={len(self._store)} cookies={self._total_cookies}>"
