"""
Hostname normalization and public-suffix-aware cookie domain matching.

The public suffix list is the snapshot bundled with ``tldextract``; no
network fetch is made.
"""

import ipaddress
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional

import tldextract

from .errors import InvalidDomainError


_FORBIDDEN_HOST_CHARS = frozenset(" \t\r\n\v\f/\\?#@:;,=\"'<>[]%")


def _is_ip_address(hostname: str) -> bool:
    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return True


def normalize_hostname(hostname: str) -> str:
    """
    Lowercase a hostname and convert internationalized labels to their
    punycode form. Brackets around IPv6 literals and a trailing dot are
    removed.
    """
    if not isinstance(hostname, str):
        raise TypeError(f"{type(hostname).__name__} is not a String")
    host = hostname.strip()
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if host.endswith(".") and not host.endswith(".."):
        host = host[:-1]
    host = host.lower()
    if not host:
        raise InvalidDomainError("hostname cannot be empty")
    if _is_ip_address(host):
        return host
    if not host.isascii():
        try:
            host = ".".join(
                label.encode("idna").decode("ascii") for label in host.split(".")
            )
        except UnicodeError as exc:
            raise InvalidDomainError(f"invalid hostname: {hostname!r}") from exc
    if any(ch in _FORBIDDEN_HOST_CHARS for ch in host) or "" in host.split("."):
        raise InvalidDomainError(f"invalid hostname: {hostname!r}")
    return host


def within(hostname: str, domain: str) -> bool:
    """True when ``hostname`` is ``domain`` or one of its subdomains."""
    return hostname == domain or hostname.endswith("." + domain)


@dataclass(frozen=True)
class DomainName:
    """
    A normalized hostname together with its registrable domain.

    ``registrable`` is ``None`` for IP addresses and for hostnames that
    are themselves public suffixes (``com``, ``co.uk``).
    """

    hostname: str
    registrable: Optional[str] = None
    is_ip: bool = False

    def cookie_domain(self, domain: str) -> bool:
        """
        RFC 6265 5.1.3: can a cookie for ``domain`` be sent to (or set
        from) this host? IP addresses only match themselves.
        """
        if self.is_ip:
            return self.hostname == domain
        if self.registrable is None:
            return False
        return within(self.hostname, domain) and within(domain, self.registrable)

    def __str__(self) -> str:
        return self.hostname


class DomainMatcher:
    """
    Resolves hostnames to ``DomainName`` values.

    Hostnames under a TLD that is not in the public suffix list (``local``,
    ``localhost``, intranet names) fall back to treating the last label as
    the suffix: cookies are accepted down to the second level, and a
    single-label hostname is its own registrable domain.
    """

    def __init__(self, extractor: Optional[Callable[[str], object]] = None, cache_size: int = 1024) -> None:
        if extractor is None:
            extractor = tldextract.TLDExtract(suffix_list_urls=(), cache_dir=None)
        self._extract = extractor
        self._lookup = lru_cache(maxsize=cache_size)(self._resolve)

    def domain_name(self, hostname: str) -> DomainName:
        return self._lookup(normalize_hostname(hostname))

    def registrable_domain(self, hostname: str) -> Optional[str]:
        return self.domain_name(hostname).registrable

    def cookie_domain_match(self, host: str, domain: str) -> bool:
        return self.domain_name(host).cookie_domain(normalize_hostname(domain))

    def _resolve(self, hostname: str) -> DomainName:
        if _is_ip_address(hostname):
            return DomainName(hostname, None, True)
        labels = hostname.split(".")
        suffix = self._extract(hostname).suffix
        if not suffix:
            # Unknown TLD
            return DomainName(hostname, ".".join(labels[-2:]))
        suffix_size = len(suffix.split("."))
        if len(labels) <= suffix_size:
            return DomainName(hostname, None)
        return DomainName(hostname, ".".join(labels[-(suffix_size + 1):]))


@lru_cache(maxsize=1)
def default_matcher() -> DomainMatcher:
    return DomainMatcher()
