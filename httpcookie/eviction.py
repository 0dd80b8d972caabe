import time
from dataclasses import dataclass
from operator import attrgetter
from typing import TYPE_CHECKING, Iterable, List, Mapping, Optional

if TYPE_CHECKING:
    from .cookie import Cookie


# Maximum number of cookies per domain (RFC 6265 6.1 requires 50 at least)
MAX_COOKIES_PER_DOMAIN = 50
# Maximum number of cookies total (RFC 6265 6.1 requires 3000 at least)
MAX_COOKIES_TOTAL = 3000

_by_creation = attrgetter("created_at")


@dataclass
class EvictionPolicy:
    """
    Capacity limits for a cookie store.

    ``victims`` picks what to delete: expired cookies (and session
    cookies when asked), then the oldest cookies of each domain over
    ``max_cookies_per_domain``, then the oldest cookies overall over
    ``max_cookies_total``.
    """

    max_cookies_per_domain: int = MAX_COOKIES_PER_DOMAIN
    max_cookies_total: int = MAX_COOKIES_TOTAL

    def __post_init__(self) -> None:
        if self.max_cookies_per_domain < 1:
            self.max_cookies_per_domain = 1
        if self.max_cookies_total < 1:
            self.max_cookies_total = 1

    @property
    def default_gc_threshold(self) -> int:
        return max(self.max_cookies_total // 20, 1)

    def victims(
        self,
        domains: Mapping[str, Iterable["Cookie"]],
        now: Optional[float] = None,
        session: bool = False,
    ) -> List["Cookie"]:
        now = time.time() if now is None else now
        victims: List["Cookie"] = []
        survivors: List["Cookie"] = []

        for cookies in domains.values():
            domain_cookies = []
            for cookie in cookies:
                if cookie.expired(now) or (session and cookie.session):
                    victims.append(cookie)
                else:
                    domain_cookies.append(cookie)

            debt = len(domain_cookies) - self.max_cookies_per_domain
            if debt > 0:
                domain_cookies.sort(key=_by_creation)
                victims.extend(domain_cookies[:debt])
                domain_cookies = domain_cookies[debt:]
            survivors.extend(domain_cookies)

        debt = len(survivors) - self.max_cookies_total
        if debt > 0:
            survivors.sort(key=_by_creation)
            victims.extend(survivors[:debt])
        return victims
