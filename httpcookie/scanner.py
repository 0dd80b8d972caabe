"""
Tokenizer for ``Set-Cookie`` header values.

A header value may hold several cookie definitions joined by commas
(header folding). A comma only starts a new definition when it is
followed by ``token=`` or ends the string, so the comma inside an
``Expires`` date stays part of the attribute value.
"""

import enum
import logging
import re
from typing import List, NamedTuple, Optional, Tuple

from .logging import get_logger


# Maximum number of bytes per cookie (RFC 6265 6.1 requires 4096 at least)
MAX_LENGTH = 4096

_WSP = re.compile(r"[ \t]*")
_NAME = re.compile(r"[^,;=]*")
_VALUE_CHUNK = re.compile(r'[^,;"]+')
_COOKIE_COMMA = re.compile(r",(?=[ \t]*[^,;=\s\"]+[ \t]*=)|,[ \t]*\Z")


class AttributeKind(enum.Enum):
    DOMAIN = "domain"
    PATH = "path"
    EXPIRES = "expires"
    MAX_AGE = "max-age"
    COMMENT = "comment"
    VERSION = "version"
    SECURE = "secure"
    HTTPONLY = "httponly"

    @classmethod
    def lookup(cls, key: str) -> Optional["AttributeKind"]:
        try:
            return cls(key.lower())
        except ValueError:
            return None


Attribute = Tuple[str, Optional[str]]


class ScannedCookie(NamedTuple):
    name: str
    value: str
    attributes: List[Attribute]


class CookieAttributeScanner:
    """
    Splits a header value into ``ScannedCookie`` tuples.

    Attribute keys are lowercased and keep their order of appearance; an
    attribute without ``=`` has a ``None`` value. Definitions without a
    name=value pair, with an empty name, or longer than ``MAX_LENGTH``
    bytes are dropped.
    """

    def __init__(self, string: str, logger: Optional[logging.Logger] = None) -> None:
        if not isinstance(string, str):
            raise TypeError(f"{type(string).__name__} is not a String")
        self.string = string
        self.pos = 0
        self.logger = logger or get_logger()

    def eos(self) -> bool:
        return self.pos >= len(self.string)

    def peek(self) -> str:
        return self.string[self.pos:self.pos + 1]

    def skip_wsp(self) -> None:
        self.pos = _WSP.match(self.string, self.pos).end()

    def scan_name(self) -> str:
        match = _NAME.match(self.string, self.pos)
        self.pos = match.end()
        return match.group().strip()

    def scan_dquoted(self) -> str:
        """Read up to the closing quote, resolving backslash escapes."""
        chars = []
        string = self.string
        while self.pos < len(string):
            ch = string[self.pos]
            self.pos += 1
            if ch == '"':
                break
            if ch == "\\" and self.pos < len(string):
                ch = string[self.pos]
                self.pos += 1
            chars.append(ch)
        return "".join(chars)

    def scan_value(self) -> str:
        chunks = []
        self.skip_wsp()
        while not self.eos():
            match = _VALUE_CHUNK.match(self.string, self.pos)
            if match:
                chunks.append(match.group())
                self.pos = match.end()
                continue
            ch = self.peek()
            if ch == '"':
                self.pos += 1
                chunks.append(self.scan_dquoted())
            elif ch == ";":
                break
            elif _COOKIE_COMMA.match(self.string, self.pos):
                break
            else:
                chunks.append(ch)
                self.pos += 1
        return "".join(chunks).rstrip()

    def scan_name_value(self) -> Tuple[str, Optional[str]]:
        name = self.scan_name()
        if self.peek() == "=":
            self.pos += 1
            return name, self.scan_value()
        self.scan_value()
        return name, None

    def scan_definition(self) -> Optional[ScannedCookie]:
        """Scan one comma-delimited definition starting at the current position."""
        start = self.pos
        self.skip_wsp()
        name, value = self.scan_name_value()
        attributes: List[Attribute] = []
        while not self.eos():
            ch = self.peek()
            if ch == ",":
                break
            # ch == ";"
            self.pos += 1
            self.skip_wsp()
            key, attr_value = self.scan_name_value()
            if key:
                attributes.append((key.lower(), attr_value))
        definition = self.string[start:self.pos].strip()
        if self.peek() == ",":
            self.pos += 1

        if len(definition.encode("utf-8")) > MAX_LENGTH:
            self.logger.warning(f"Cookie definition too long: {name}")
            return None
        if value is None:
            if name:
                self.logger.warning(f"Cookie definition lacks a name-value pair: {name}")
            return None
        if not name:
            self.logger.warning("Cookie definition has an empty name")
            return None
        return ScannedCookie(name, value, attributes)

    def scan(self) -> List[ScannedCookie]:
        cookies = []
        while not self.eos():
            scanned = self.scan_definition()
            if scanned is not None:
                cookies.append(scanned)
        return cookies


def scan_set_cookie(string: str, logger: Optional[logging.Logger] = None) -> List[ScannedCookie]:
    return CookieAttributeScanner(string, logger).scan()
