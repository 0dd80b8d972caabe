class HTTPCookieError(Exception):
    """Base exception for the httpcookie package."""


class InvalidCookieError(HTTPCookieError, ValueError):
    """Raised when a cookie is constructed from invalid arguments."""


class InvalidDomainError(InvalidCookieError):
    """Raised when a hostname cannot be normalized."""


class UnacceptableCookieError(InvalidCookieError):
    """Raised when an origin is not allowed to set a cookie's domain or path."""


class CookieStateError(HTTPCookieError, RuntimeError):
    """Raised when the cookie or jar API is used out of contract."""


class UnknownImplementationError(HTTPCookieError, LookupError):
    """Raised when a store or saver name is not registered."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"cookie {kind} unavailable: {name!r}")
        self.kind = kind
        self.name = name
