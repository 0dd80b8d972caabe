import logging

from httpcookie.scanner import MAX_LENGTH, AttributeKind, CookieAttributeScanner, scan_set_cookie


def test_single_definition_with_attributes() -> None:
    scanned = scan_set_cookie("foo=bar; Path=/; Secure; HttpOnly; Domain=.example.com")
    assert len(scanned) == 1
    name, value, attributes = scanned[0]
    assert (name, value) == ("foo", "bar")
    assert attributes == [
        ("path", "/"),
        ("secure", None),
        ("httponly", None),
        ("domain", ".example.com"),
    ]


def test_attribute_order_is_preserved() -> None:
    (cookie,) = scan_set_cookie("a=b; max-age=10; expires=Sun, 06 Nov 2011 00:28:06 GMT; max-age=20")
    assert [key for key, _ in cookie.attributes] == ["max-age", "expires", "max-age"]
    assert cookie.attributes[1] == ("expires", "Sun, 06 Nov 2011 00:28:06 GMT")


def test_comma_in_expires_is_not_a_separator() -> None:
    scanned = scan_set_cookie(
        "foo=bar;Expires=Sun, 06 Nov 2011 00:28:06 GMT;Path=/, baz=qux; Path=/x"
    )
    assert [(c.name, c.value) for c in scanned] == [("foo", "bar"), ("baz", "qux")]
    assert ("expires", "Sun, 06 Nov 2011 00:28:06 GMT") in scanned[0].attributes
    assert scanned[1].attributes == [("path", "/x")]


def test_trailing_comma_ends_definition() -> None:
    scanned = scan_set_cookie("a=1,")
    assert [(c.name, c.value) for c in scanned] == [("a", "1")]


def test_definitions_without_value_are_skipped() -> None:
    scanned = scan_set_cookie("n/a, ASPSESSIONID=FBLDGHPB; path=/")
    assert [(c.name, c.value) for c in scanned] == [("ASPSESSIONID", "FBLDGHPB")]


def test_empty_name_is_skipped() -> None:
    assert scan_set_cookie("=value; path=/") == []


def test_empty_value_is_kept() -> None:
    (cookie,) = scan_set_cookie("12345%7D=; path=/")
    assert cookie.value == ""


def test_value_may_contain_equal_sign() -> None:
    (cookie,) = scan_set_cookie("12345%7D=ASDFWEE345%3DASda=x")
    assert cookie.name == "12345%7D"
    assert cookie.value == "ASDFWEE345%3DASda=x"


def test_empty_and_double_semicolons() -> None:
    (cookie,) = scan_set_cookie("WSIDC=WEST;; domain=.williams-sonoma.com; ; path=/")
    assert (cookie.name, cookie.value) == ("WSIDC", "WEST")
    assert cookie.attributes == [("domain", ".williams-sonoma.com"), ("path", "/")]


def test_quoted_values_are_unquoted() -> None:
    (cookie,) = scan_set_cookie(
        'quoted="value"; Path=/; comment="comment is \\"comment\\""'
    )
    assert cookie.value == "value"
    assert ("comment", 'comment is "comment"') in cookie.attributes


def test_quoted_value_may_hold_separators() -> None:
    (cookie,) = scan_set_cookie('a="x; y, z=1"; path=/')
    assert cookie.value == "x; y, z=1"
    assert cookie.attributes == [("path", "/")]


def test_max_length_boundary() -> None:
    cookie_str = "foo=" + "Cookie" * 680 + "; path=/ab/"
    assert len(cookie_str.encode("utf-8")) == MAX_LENGTH - 1
    assert len(scan_set_cookie(cookie_str)) == 1
    assert len(scan_set_cookie(cookie_str.replace(";", "x;", 1))) == 1
    assert len(scan_set_cookie(cookie_str.replace(";", "xx;", 1))) == 0


def test_oversized_definition_does_not_drop_neighbours() -> None:
    header = "a=" + "x" * MAX_LENGTH + ", b=2"
    assert [c.name for c in scan_set_cookie(header)] == ["b"]


def test_many_definitions() -> None:
    header = (
        "abc, "
        "name=Aaron; Domain=localhost; Expires=Sun, 06 Nov 2011 00:29:51 GMT; Path=/, "
        "no_path1=no_path; Expires=Sun, 06 Nov 2011 00:29:52 GMT, no_expires=nope; Path=/, "
        "no_domain3=no_domain; Expires=Sun, 06 Nov 2011 00:29:53 GMT; no_expires=nope; Domain="
    )
    names = [c.name for c in scan_set_cookie(header)]
    assert names == ["name", "no_path1", "no_expires", "no_domain3"]


def test_skipped_definitions_are_logged(caplog) -> None:
    logger = logging.getLogger("test.scanner")
    with caplog.at_level(logging.WARNING, logger="test.scanner"):
        CookieAttributeScanner("novalue", logger).scan()
    assert "lacks a name-value pair" in caplog.text


def test_attribute_kind_lookup() -> None:
    assert AttributeKind.lookup("Max-Age") is AttributeKind.MAX_AGE
    assert AttributeKind.lookup("HTTPONLY") is AttributeKind.HTTPONLY
    assert AttributeKind.lookup("samesite") is None
