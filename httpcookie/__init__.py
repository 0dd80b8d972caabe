from .cookie import Cookie, PERSISTENT_PROPERTIES
from .domain import DomainMatcher, DomainName, default_matcher
from .eviction import EvictionPolicy, MAX_COOKIES_PER_DOMAIN, MAX_COOKIES_TOTAL
from .jar import CookieJar
from .registry import Registry, default_registry
from .saver import AbstractSaver, CookiestxtSaver, JSONSaver
from .scanner import AttributeKind, CookieAttributeScanner, MAX_LENGTH, ScannedCookie, scan_set_cookie
from .store import AbstractStore, HashStore
from .uri import path_match
from .errors import (
    HTTPCookieError,
    InvalidCookieError,
    InvalidDomainError,
    UnacceptableCookieError,
    CookieStateError,
    UnknownImplementationError,
)

__all__ = [
    "Cookie",
    "CookieJar",
    "CookieAttributeScanner",
    "ScannedCookie",
    "AttributeKind",
    "scan_set_cookie",
    "DomainMatcher",
    "DomainName",
    "default_matcher",
    "EvictionPolicy",
    "AbstractStore",
    "HashStore",
    "AbstractSaver",
    "CookiestxtSaver",
    "JSONSaver",
    "Registry",
    "default_registry",
    "path_match",
    "PERSISTENT_PROPERTIES",
    "MAX_LENGTH",
    "MAX_COOKIES_PER_DOMAIN",
    "MAX_COOKIES_TOTAL",
    "HTTPCookieError",
    "InvalidCookieError",
    "InvalidDomainError",
    "UnacceptableCookieError",
    "CookieStateError",
    "UnknownImplementationError",
]


__version__ = "0.1.0"
