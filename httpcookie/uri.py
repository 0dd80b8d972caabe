from typing import Union
from urllib.parse import ParseResult, SplitResult, urlsplit


HTTP_SCHEMES = ("http", "https")

URIType = Union[str, SplitResult, ParseResult]


def parse_uri(uri: URIType) -> SplitResult:
    """Coerce a URI string or a urllib result into a ``SplitResult``."""
    if isinstance(uri, SplitResult):
        return uri
    if isinstance(uri, ParseResult):
        return urlsplit(uri.geturl())
    if isinstance(uri, str):
        return urlsplit(uri.strip())
    raise TypeError(f"{type(uri).__name__} is not a URI string or urllib result")


def is_http(uri: SplitResult) -> bool:
    return uri.scheme.lower() in HTTP_SCHEMES and bool(uri.hostname)


def is_secure(uri: SplitResult) -> bool:
    return uri.scheme.lower() == "https"


def normalize_path(path: str) -> str:
    """Empty or relative paths become the root path."""
    if not path or not path.startswith("/"):
        return "/"
    return path


def default_path(uri: SplitResult) -> str:
    """
    Return the directory part of the URI path, including the trailing
    slash: ``/dir/file.html`` gives ``/dir/``.
    """
    path = normalize_path(uri.path)
    return path[: path.rindex("/") + 1]


def path_match(base_path: str, target_path: str) -> bool:
    """
    RFC 6265 5.1.4: ``target_path`` path-matches ``base_path`` when the
    latter is a prefix ending on a segment boundary.
    """
    if not target_path.startswith(base_path):
        return False
    size = len(base_path)
    return (
        len(target_path) == size
        or base_path.endswith("/")
        or target_path[size] == "/"
    )
