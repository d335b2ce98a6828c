"""
Unit tests for cookie parsing and Set-Cookie serialization.
"""

from datetime import datetime, timezone

from httpkit.http.cookies import CookieJar, build_set_cookie, parse_cookie_header


class TestParseCookieHeader:
    """Tests for parse_cookie_header()."""

    def test_missing_header(self):
        assert parse_cookie_header(None) == {}
        assert parse_cookie_header("") == {}

    def test_pairs(self):
        assert parse_cookie_header("a=1; b=2") == {"a": "1", "b": "2"}

    def test_percent_decoding(self):
        """Cookie: name=va%20lue decodes to 'va lue'."""
        assert parse_cookie_header("name=va%20lue") == {"name": "va lue"}

    def test_splits_on_first_equals(self):
        assert parse_cookie_header("token=abc=def") == {"token": "abc=def"}

    def test_pair_without_equals_is_skipped(self):
        assert parse_cookie_header("flag; a=1") == {"a": "1"}

    def test_empty_value(self):
        assert parse_cookie_header("a=") == {"a": ""}


class TestBuildSetCookie:
    """Tests for build_set_cookie()."""

    def test_value_is_percent_encoded(self):
        assert build_set_cookie("name", "va lue") == "name=va%20lue"

    def test_no_default_attributes(self):
        """Unset options are omitted entirely."""
        assert build_set_cookie("a", "1") == "a=1"

    def test_all_attributes(self):
        cookie = build_set_cookie(
            "sid", "x",
            path="/",
            domain="example.com",
            max_age=3600,
            http_only=True,
            secure=True,
            same_site="Strict",
        )

        assert cookie == (
            "sid=x; Path=/; Domain=example.com; Max-Age=3600; "
            "HttpOnly; Secure; SameSite=Strict"
        )

    def test_expires_datetime(self):
        expires = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

        assert build_set_cookie("a", "1", expires=expires) == (
            "a=1; Expires=Thu, 01 Jan 2026 12:00:00 GMT"
        )

    def test_expires_naive_datetime_is_utc(self):
        expires = datetime(2026, 1, 1, 12, 0, 0)

        assert build_set_cookie("a", "1", expires=expires).endswith("Expires=Thu, 01 Jan 2026 12:00:00 GMT")

    def test_expires_timestamp(self):
        assert build_set_cookie("a", "1", expires=0) == "a=1; Expires=Thu, 01 Jan 1970 00:00:00 GMT"

    def test_max_age_zero_is_emitted(self):
        assert build_set_cookie("a", "", max_age=0) == "a=; Max-Age=0"

    def test_non_string_value(self):
        assert build_set_cookie("count", 3) == "count=3"


class TestCookieJar:
    """Tests for the request-scoped CookieJar."""

    def test_get(self):
        jar = CookieJar("session=abc123; theme=dark")

        assert jar.get("session") == "abc123"
        assert jar.get("missing") is None
        assert jar.get("missing", "light") == "light"

    def test_get_without_name_returns_everything(self):
        jar = CookieJar("a=1; b=2")

        everything = jar.get()
        assert everything == {"a": "1", "b": "2"}

        # A copy: mutating it does not touch the jar
        everything["c"] = "3"
        assert not jar.has("c")

    def test_get_all_preserves_order(self):
        jar = CookieJar("b=2; a=1")

        assert jar.get_all() == [{"b": "2"}, {"a": "1"}]

    def test_has_and_contains(self):
        jar = CookieJar("a=1")

        assert jar.has("a")
        assert "a" in jar
        assert "b" not in jar
        assert len(jar) == 1

    def test_empty_jar(self):
        jar = CookieJar()

        assert jar.to_dict() == {}
        assert jar.get_all() == []
        assert jar.outbound == []

    def test_set_appends(self):
        """No dedup: setting a name twice queues two cookies."""
        jar = CookieJar()
        jar.set("name", "va lue")
        jar.set("name", "other", path="/")

        assert jar.outbound == ["name=va%20lue", "name=other; Path=/"]

    def test_set_does_not_change_inbound(self):
        jar = CookieJar("a=1")
        jar.set("a", "2")

        assert jar.get("a") == "1"

    def test_delete(self):
        """delete() is set(name, '') with Max-Age forced to 0."""
        jar = CookieJar()
        jar.delete("flash", path="/", max_age=999)

        assert jar.outbound == ["flash=; Path=/; Max-Age=0"]

    def test_set_and_delete_return_none(self):
        jar = CookieJar()

        assert jar.set("a", "1") is None
        assert jar.delete("a") is None

    def test_outbound_is_a_copy(self):
        jar = CookieJar()
        jar.set("a", "1")
        jar.outbound.append("b=2")

        assert jar.outbound == ["a=1"]
