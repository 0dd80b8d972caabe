import json
import logging
import time
from typing import TYPE_CHECKING, Optional, TextIO

from .cookie import Cookie
from .errors import HTTPCookieError
from .logging import get_logger

if TYPE_CHECKING:
    from .jar import CookieJar


class AbstractSaver:
    """
    Serializes a jar to a text stream and back.

    ``save`` walks ``jar.each()``; ``load`` calls ``jar.add`` for every
    cookie it reads. Session cookies are only saved when ``session`` is
    true.
    """

    def __init__(self, session: bool = False, logger: Optional[logging.Logger] = None) -> None:
        self.session = session
        self.logger = logger or get_logger()

    def save(self, io: TextIO, jar: "CookieJar") -> None:
        raise NotImplementedError

    def load(self, io: TextIO, jar: "CookieJar") -> None:
        raise NotImplementedError


class CookiestxtSaver(AbstractSaver):
    """
    Mozilla/Netscape ``cookies.txt`` format: one tab-separated record per
    line. HttpOnly cookies have their domain prefixed with ``#HttpOnly_``.
    """

    TRUE = "TRUE"
    FALSE = "FALSE"
    HTTPONLY_PREFIX = "#HttpOnly_"

    def __init__(
        self,
        session: bool = False,
        logger: Optional[logging.Logger] = None,
        header: Optional[str] = "# HTTP Cookie File",
        linefeed: str = "\n",
    ) -> None:
        super().__init__(session, logger)
        self.header = header
        self.linefeed = linefeed

    def save(self, io: TextIO, jar: "CookieJar") -> None:
        if self.header:
            io.write(self.header + self.linefeed)
        for cookie in jar.each():
            if not self.session and cookie.session:
                continue
            io.write(self.cookie_to_record(cookie))

    def load(self, io: TextIO, jar: "CookieJar") -> None:
        for line in io:
            cookie = self.parse_record(line)
            if cookie is not None:
                jar.add(cookie)

    def cookie_to_record(self, cookie: Cookie) -> str:
        domain = cookie.dot_domain
        if cookie.httponly:
            domain = self.HTTPONLY_PREFIX + domain
        fields = [
            domain,
            self.TRUE if cookie.for_domain else self.FALSE,
            cookie.path,
            self.TRUE if cookie.secure else self.FALSE,
            str(int(cookie.expires or 0)),
            cookie.name,
            cookie.value,
        ]
        return "\t".join(fields) + self.linefeed

    def parse_record(self, line: str) -> Optional[Cookie]:
        """Return the cookie on a cookies.txt line, or None for anything else."""
        if line.startswith(self.HTTPONLY_PREFIX):
            httponly = True
            line = line[len(self.HTTPONLY_PREFIX):]
        elif line.startswith("#"):
            return None
        else:
            httponly = False

        fields = line.rstrip("\r\n").split("\t", 6)
        if len(fields) != 7:
            return None
        domain, s_for_domain, path, s_secure, s_expires, name, value = fields

        try:
            expires_seconds = int(s_expires)
        except ValueError:
            self.logger.warning(f"Couldn't parse expires in cookies.txt record: {s_expires}")
            return None
        expires = None
        if expires_seconds:
            if expires_seconds < time.time():
                return None
            expires = float(expires_seconds)

        try:
            return Cookie(
                name,
                value,
                domain=domain,
                for_domain=s_for_domain == self.TRUE,
                path=path,
                secure=s_secure == self.TRUE,
                httponly=httponly,
                expires=expires,
                version=0,
            )
        except (HTTPCookieError, TypeError, ValueError) as exc:
            self.logger.warning(f"Invalid cookies.txt record discarded: {exc}")
            return None


class JSONSaver(AbstractSaver):
    """Saves cookies as a JSON array of their persistent properties."""

    def __init__(
        self,
        session: bool = False,
        logger: Optional[logging.Logger] = None,
        indent: Optional[int] = None,
    ) -> None:
        super().__init__(session, logger)
        self.indent = indent

    def save(self, io: TextIO, jar: "CookieJar") -> None:
        records = [
            cookie.to_dict()
            for cookie in jar.each()
            if self.session or not cookie.session
        ]
        json.dump(records, io, indent=self.indent)

    def load(self, io: TextIO, jar: "CookieJar") -> None:
        try:
            data = json.load(io)
        except ValueError:
            self.logger.warning("unloadable JSON cookie data discarded")
            return

        if not isinstance(data, list):
            self.logger.warning("incompatible JSON cookie data discarded")
            return

        for record in data:
            if not isinstance(record, dict):
                self.logger.warning(f"incompatible JSON cookie record discarded: {record!r}")
                continue
            try:
                cookie = Cookie.from_dict(record)
            except (HTTPCookieError, TypeError, ValueError) as exc:
                self.logger.warning(f"invalid JSON cookie record discarded: {exc}")
                continue
            if cookie.domain is None or cookie.path is None:
                self.logger.warning(f"JSON cookie record lacks domain or path: {cookie.name}")
                continue
            jar.add(cookie)
