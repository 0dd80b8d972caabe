import logging
import re
import time
from datetime import datetime, timezone
from email.utils import formatdate, parsedate_to_datetime
from functools import lru_cache
from http.cookiejar import http2time
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import SplitResult

from .domain import DomainName, default_matcher
from .errors import CookieStateError, InvalidCookieError, InvalidDomainError, UnacceptableCookieError
from .eviction import MAX_COOKIES_PER_DOMAIN, MAX_COOKIES_TOTAL
from .logging import get_logger
from .scanner import MAX_LENGTH, AttributeKind, scan_set_cookie
from .uri import URIType, default_path, is_http, is_secure, normalize_path, parse_uri, path_match


TimeType = Union[float, int, datetime]

UNIX_EPOCH = 0.0

PERSISTENT_PROPERTIES = (
    "name", "value",
    "domain", "for_domain", "path",
    "secure", "httponly",
    "expires", "created_at", "accessed_at",
)

_BAD_NAME_REGEX = re.compile(r'[\x00-\x20\x7f\\",;=]')
_BAD_VALUE_REGEX = re.compile(r"[\x00-\x1f\x7f]")
_QUOTE_NEEDED_REGEX = re.compile(r'[ ",;\\]')
_MAX_AGE_REGEX = re.compile(r"-?\d+")
# Max-Age values beyond a signed 64-bit integer are clamped
MAX_AGE_LIMIT = 2 ** 63 - 1
_HOST_PORT_REGEX = re.compile(r"([^:]+):[0-9]+")


@lru_cache(maxsize=128)
def _parse_date(date_str: str) -> Optional[float]:
    """Parse an HTTP date, falling back to the lenient cookie date formats."""
    try:
        dt = parsedate_to_datetime(date_str)
    except (TypeError, ValueError, IndexError):
        return http2time(date_str)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _to_timestamp(value: TimeType) -> float:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{type(value).__name__} is not a time")
    return float(value)


def _check_string_type(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{what}: {type(value).__name__} is not a String")
    return value


def _quote(value: str) -> str:
    if not _QUOTE_NEEDED_REGEX.search(value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class Cookie:
    """
    A single HTTP cookie.

    ``domain`` and ``path`` may stay unset until an origin is assigned;
    a cookie needs both before it can be added to a jar.

    Example:
        cookie = Cookie("uid", "a12345", domain=".example.org", max_age=86400)
        cookie.valid_for_uri("https://www.example.org/")
    """

    MAX_LENGTH = MAX_LENGTH
    MAX_COOKIES_PER_DOMAIN = MAX_COOKIES_PER_DOMAIN
    MAX_COOKIES_TOTAL = MAX_COOKIES_TOTAL

    def __init__(
        self,
        name: str,
        value: str,
        *,
        domain: Optional[Union[str, DomainName]] = None,
        for_domain: Optional[bool] = None,
        path: Optional[str] = None,
        secure: bool = False,
        httponly: bool = False,
        expires: Optional[Union[TimeType, str]] = None,
        max_age: Optional[int] = None,
        comment: Optional[str] = None,
        version: Optional[int] = 0,
        created_at: Optional[TimeType] = None,
        accessed_at: Optional[TimeType] = None,
        origin: Optional[URIType] = None,
    ) -> None:
        if name is None or value is None:
            raise InvalidCookieError("at least name and value must be specified")
        self._origin: Optional[SplitResult] = None
        self._domain_name: Optional[DomainName] = None
        self._for_domain = False
        self._path: Optional[str] = None
        self._expires: Optional[float] = None
        self._max_age: Optional[int] = None

        self.name = name
        self.value = value
        self.secure = bool(secure)
        self.httponly = bool(httponly)
        self.comment = comment
        self.version = version

        now = time.time()
        self.created_at = _to_timestamp(created_at) if created_at is not None else now
        self.accessed_at = _to_timestamp(accessed_at) if accessed_at is not None else self.created_at

        if domain is not None:
            self.domain = domain
        if path is not None:
            self.path = path
        if for_domain is not None:
            self.for_domain = for_domain
        if max_age is not None:
            self.set_max_age(max_age)
        elif expires is not None:
            self.set_expires_at(expires)
        if origin is not None:
            self.origin = origin

    # Parsing

    @classmethod
    def parse(
        cls,
        set_cookie: str,
        origin: Optional[URIType] = None,
        date: Optional[TimeType] = None,
        logger: Optional[logging.Logger] = None,
        callback: Optional[Callable[["Cookie"], None]] = None,
    ) -> List["Cookie"]:
        """
        Parse a ``Set-Cookie`` header value into cookies.

        Malformed definitions and attributes are dropped with a warning
        instead of raising. ``date`` is the creation time and the base for
        ``Max-Age``; it defaults to now. With an ``origin``, cookies the
        origin may not set are dropped. ``callback`` is called with each
        accepted cookie.
        """
        logger = logger or get_logger()
        if origin is not None:
            origin = parse_uri(origin)
        date = _to_timestamp(date) if date is not None else time.time()

        cookies: List[Cookie] = []
        for name, value, attributes in scan_set_cookie(set_cookie, logger):
            try:
                cookie = cls(name, value, created_at=date)
            except (InvalidCookieError, TypeError):
                logger.warning(f"Couldn't parse key/value: {name}={value}")
                continue

            max_age: Optional[int] = None
            for key, attr_value in attributes:
                kind = AttributeKind.lookup(key)
                if kind is None:
                    continue
                if kind is AttributeKind.MAX_AGE:
                    if not attr_value:
                        continue
                    if _MAX_AGE_REGEX.fullmatch(attr_value):
                        max_age = int(attr_value)
                    else:
                        logger.warning(f"Couldn't parse max age '{attr_value}'")
                    continue
                try:
                    _ATTRIBUTE_SETTERS[kind](cookie, attr_value)
                except (ValueError, TypeError) as exc:
                    logger.warning(f"Couldn't parse {key}: {attr_value} ({exc})")
                    if kind is AttributeKind.VERSION:
                        cookie.version = None

            # RFC 6265 4.1.2.2
            if max_age is not None:
                cookie.set_max_age(max_age, reference=date)

            if origin is not None:
                try:
                    cookie.origin = origin
                except InvalidCookieError as exc:
                    logger.warning(f"Invalid cookie for the origin: {origin.geturl()} ({exc})")
                    continue

            if callback is not None:
                callback(cookie)
            cookies.append(cookie)
        return cookies

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Cookie":
        """Build a cookie from a mapping of persistent properties."""
        known = {key: data[key] for key in PERSISTENT_PROPERTIES if key in data}
        try:
            name = known.pop("name")
            value = known.pop("value")
        except KeyError as exc:
            raise InvalidCookieError("at least name and value must be specified") from exc
        return cls(name, value, **known)

    def to_dict(self) -> Dict[str, Any]:
        return {key: getattr(self, key) for key in PERSISTENT_PROPERTIES}

    # Attributes

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, name: str) -> None:
        name = _check_string_type(name, "name")
        if not name:
            raise InvalidCookieError("cookie name cannot be empty")
        if _BAD_NAME_REGEX.search(name):
            raise InvalidCookieError(
                "cookie name cannot contain a control character, a separator or an equal sign"
            )
        self._name = name

    @property
    def value(self) -> str:
        return self._value

    @value.setter
    def value(self, value: str) -> None:
        value = _check_string_type(value, "value")
        if _BAD_VALUE_REGEX.search(value):
            raise InvalidCookieError("cookie value cannot contain a control character")
        self._value = value

    @property
    def domain(self) -> Optional[str]:
        return self._domain_name.hostname if self._domain_name else None

    @domain.setter
    def domain(self, domain: Optional[Union[str, DomainName]]) -> None:
        """A leading dot turns ``for_domain`` on."""
        if domain is None:
            self._domain_name = None
            self._for_domain = False
            return
        for_domain = None
        if not isinstance(domain, DomainName):
            domain = _check_string_type(domain, "domain").strip()
            if domain.startswith("."):
                for_domain = True
                domain = domain[1:]
            if not domain:
                raise InvalidCookieError("cookie domain cannot be empty")
            match = _HOST_PORT_REGEX.fullmatch(domain)
            if match:
                domain = match.group(1)
            domain = default_matcher().domain_name(domain)
        self._domain_name = domain
        # RFC 6265 5.3 step 5: a public suffix or an IP address is host-only
        if domain.registrable is None:
            self._for_domain = False
        elif for_domain is not None:
            self._for_domain = for_domain

    @property
    def domain_name(self) -> Optional[DomainName]:
        return self._domain_name

    @property
    def for_domain(self) -> bool:
        """
        If true, the cookie is sent to every host in ``domain``; otherwise
        only to the host named by ``domain``.
        """
        return self._for_domain

    @for_domain.setter
    def for_domain(self, for_domain: bool) -> None:
        name = self._domain_name
        self._for_domain = bool(for_domain) and (name is None or name.registrable is not None)

    @property
    def dot_domain(self) -> Optional[str]:
        if self.domain is None:
            return None
        return "." + self.domain if self._for_domain else self.domain

    @property
    def path(self) -> Optional[str]:
        return self._path

    @path.setter
    def path(self, path: Optional[str]) -> None:
        if path is None:
            self._path = None
            return
        self._path = normalize_path(_check_string_type(path, "path"))

    @property
    def origin(self) -> Optional[SplitResult]:
        return self._origin

    @origin.setter
    def origin(self, origin: URIType) -> None:
        """
        Set the URI the cookie came from, filling in an unset domain and
        path. The origin can only be set once.
        """
        if self._origin is not None:
            raise CookieStateError("origin cannot be changed once it is set")
        uri = parse_uri(origin)
        if self.domain is None and uri.hostname:
            self.domain = uri.hostname
        if self._path is None:
            self._path = default_path(uri)
        if not self.acceptable_from_uri(uri):
            raise UnacceptableCookieError(f"unacceptable cookie sent from URI {uri.geturl()}")
        self._origin = uri

    # Expiration

    @property
    def expires(self) -> Optional[float]:
        return self._expires

    @expires.setter
    def expires(self, when: Optional[Union[TimeType, str]]) -> None:
        self.set_expires_at(when)

    @property
    def max_age(self) -> Optional[int]:
        return self._max_age

    @max_age.setter
    def max_age(self, seconds: Optional[int]) -> None:
        self.set_max_age(seconds)

    def set_expires_at(self, when: Optional[Union[TimeType, str]]) -> None:
        """Set an absolute expiry; ``None`` makes this a session cookie."""
        if when is None:
            self._expires = None
        elif isinstance(when, str):
            timestamp = _parse_date(when.strip())
            if timestamp is None:
                raise ValueError(f"invalid date: {when!r}")
            self._expires = timestamp
        else:
            self._expires = _to_timestamp(when)
        self._max_age = None

    def set_max_age(self, seconds: Optional[int], reference: Optional[TimeType] = None) -> None:
        """
        Set the expiry relative to ``reference`` (default: ``created_at``).
        ``None`` makes this a session cookie. ``seconds`` is clamped to
        ``MAX_AGE_LIMIT`` in either direction.
        """
        if seconds is None:
            self._expires = None
            self._max_age = None
            return
        if isinstance(seconds, bool) or not isinstance(seconds, int):
            raise TypeError(f"max_age: {type(seconds).__name__} is not an Integer")
        seconds = max(-MAX_AGE_LIMIT, min(seconds, MAX_AGE_LIMIT))
        base = self.created_at if reference is None else _to_timestamp(reference)
        self._expires = base + seconds
        self._max_age = seconds

    @property
    def session(self) -> bool:
        return self._expires is None

    def expired(self, at: Optional[TimeType] = None) -> bool:
        if self._expires is None:
            return False
        now = time.time() if at is None else _to_timestamp(at)
        return now > self._expires

    def expire(self) -> "Cookie":
        self._expires = UNIX_EPOCH
        self._max_age = None
        return self

    # Matching

    def acceptable_from_uri(self, uri: URIType) -> bool:
        """
        RFC 6265 5.3: may a response from ``uri`` set this cookie?

        A domain cookie whose domain equals the host exactly but fails
        the domain match is degraded to a host-only cookie and accepted.
        """
        uri = parse_uri(uri)
        if not is_http(uri):
            return False
        try:
            host = default_matcher().domain_name(uri.hostname)
        except InvalidDomainError:
            return False

        if not self._for_domain:
            return self._domain_name is None or host.hostname == self.domain
        if self._domain_name is None:
            return True
        if host.cookie_domain(self.domain):
            return True
        if host.hostname == self.domain:
            self._for_domain = False
            return True
        return False

    def valid_for_uri(self, uri: URIType) -> bool:
        """Should this cookie be sent with a request to ``uri``?"""
        if self._domain_name is None:
            raise CookieStateError("cannot tell if this cookie is valid because the domain is unknown")
        uri = parse_uri(uri)
        if self.secure and not is_secure(uri):
            return False
        return self.acceptable_from_uri(uri) and path_match(self._path or "/", normalize_path(uri.path))

    # Output

    @property
    def cookie_value(self) -> str:
        """The ``name=value`` form used in a Cookie header."""
        return f"{self._name}={self._value}"

    def set_cookie_value(self, origin: Optional[URIType] = None) -> str:
        """
        Render a ``Set-Cookie`` header value. Without an argument the
        cookie's own origin is used. Acceptance from the origin is not
        checked.
        """
        uri = parse_uri(origin) if origin is not None else self._origin
        if uri is None:
            raise CookieStateError("origin must be specified to produce a value for Set-Cookie")

        origin_host = default_matcher().domain_name(uri.hostname).hostname if uri.hostname else None
        parts = [f"{self._name}={_quote(self._value)}"]
        if self.domain is not None and (self._for_domain or self.domain != origin_host):
            parts.append(f"Domain={self.domain}")
        if self._path is not None and default_path(uri) != self._path:
            parts.append(f"Path={self._path}")
        if self._max_age is not None:
            parts.append(f"Max-Age={self._max_age}")
        elif self._expires is not None:
            parts.append(f"Expires={formatdate(self._expires, usegmt=True)}")
        if self.comment is not None:
            parts.append(f"Comment={_quote(self.comment)}")
        if self.httponly:
            parts.append("HttpOnly")
        if self.secure:
            parts.append("Secure")
        return "; ".join(parts)

    # Ordering

    @property
    def sort_key(self) -> Tuple[str, int, float, str]:
        # Grouped by name; within a name RFC 6265 5.4 order: longer paths
        # first, then earlier creation times
        return (self._name, -len(self._path or ""), self.created_at, self._value)

    def __lt__(self, other: "Cookie") -> bool:
        if not isinstance(other, Cookie):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __str__(self) -> str:
        return self.cookie_value

    def __repr__(self) -> str:
        return (
            f"<Cookie {self.cookie_value} domain={self.dot_domain!r} path={self._path!r}"
            f" secure={self.secure} httponly={self.httponly} expires={self._expires!r}>"
        )


def _set_domain(cookie: Cookie, value: Optional[str]) -> None:
    if not value:
        return
    cookie.domain = value
    cookie.for_domain = True


def _set_path(cookie: Cookie, value: Optional[str]) -> None:
    if value:
        cookie.path = value


def _set_expires(cookie: Cookie, value: Optional[str]) -> None:
    if value:
        cookie.set_expires_at(value)


def _set_comment(cookie: Cookie, value: Optional[str]) -> None:
    if value is not None:
        cookie.comment = value


def _set_version(cookie: Cookie, value: Optional[str]) -> None:
    if value is not None:
        cookie.version = int(value)


def _set_secure(cookie: Cookie, value: Optional[str]) -> None:
    cookie.secure = True


def _set_httponly(cookie: Cookie, value: Optional[str]) -> None:
    cookie.httponly = True


# Max-Age is resolved after all attributes are read, see Cookie.parse.
_ATTRIBUTE_SETTERS: Dict[AttributeKind, Callable[[Cookie, Optional[str]], None]] = {
    AttributeKind.DOMAIN: _set_domain,
    AttributeKind.PATH: _set_path,
    AttributeKind.EXPIRES: _set_expires,
    AttributeKind.COMMENT: _set_comment,
    AttributeKind.VERSION: _set_version,
    AttributeKind.SECURE: _set_secure,
    AttributeKind.HTTPONLY: _set_httponly,
}
