"""
Unit tests for HTTP request parsing.
"""

import io

import pytest

from httpkit.errors import BadRequest, PayloadTooLarge
from httpkit.http.request import (
    RequestContext,
    RequestParser,
    content_length,
    find_header,
    parse_query,
    split_target,
)


def parse(raw: bytes, **kwargs) -> RequestContext:
    return RequestParser(**kwargs).read_request(io.BytesIO(raw), ("127.0.0.1", 12345))


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        request = parse(sample_get_request)

        assert request.method == "GET"
        assert request.path == "/api/users"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)
        assert request.client_ip == "127.0.0.1"
        assert request.body is None

    def test_parse_headers(self, sample_get_request: bytes):
        """Headers keep their case; lookups ignore it."""
        request = parse(sample_get_request)

        assert request.headers["Host"] == "localhost:4567"
        assert request.get_header("accept") == "application/json"
        assert request.user_agent == "pytest"

    def test_parse_query_params(self, sample_get_request: bytes):
        """Test query parameter parsing."""
        request = parse(sample_get_request)

        assert request.query == {"page": "1", "limit": "10"}
        assert request.get_query("missing") is None
        assert request.get_query("missing", "default") == "default"

    def test_parse_cookies(self, sample_get_request: bytes):
        request = parse(sample_get_request)

        assert request.cookies.get("session") == "abc123"
        assert request.cookies.get("theme") == "dark"

    def test_parse_post_with_json_body(self, sample_post_request: bytes):
        """JSON bodies are parsed into objects."""
        request = parse(sample_post_request)

        assert request.method == "POST"
        assert request.body == {"nome": "Pedro", "email": "pedro@example.com"}

    def test_malformed_json_falls_back_to_text(self):
        """A body declared as JSON that fails to parse stays raw text."""
        body = b'{"nome": Pedro'
        raw = (
            b"POST /api/data HTTP/1.1\r\n"
            b"Content-Type: application/json\r\n"
            + f"Content-Length: {len(body)}\r\n\r\n".encode()
        ) + body

        assert parse(raw).body == '{"nome": Pedro'

    def test_text_body(self):
        raw = b"PUT /notes/1 HTTP/1.1\r\nContent-Type: text/plain\r\nContent-Length: 5\r\n\r\nhello"

        assert parse(raw).body == "hello"

    def test_body_read_up_to_content_length(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 3\r\n\r\nabcdef"

        assert parse(raw).body == "abc"

    def test_body_without_content_length(self):
        raw = b"POST / HTTP/1.1\r\nHost: test\r\n\r\nignored"

        assert parse(raw).body is None

    def test_get_body_is_not_read(self):
        raw = b"GET / HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"

        assert parse(raw).body is None

    def test_invalid_content_length_counts_as_zero(self):
        raw = b"PATCH / HTTP/1.1\r\nContent-Length: lots\r\n\r\nhello"

        assert parse(raw).body is None

    def test_body_too_large(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 100\r\n\r\n" + b"x" * 100

        with pytest.raises(PayloadTooLarge):
            parse(raw, max_body_size=10)

    def test_non_utf8_body_is_replaced(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 2\r\n\r\n\xff\xfe"

        assert parse(raw).body == "\ufffd\ufffd"

    def test_parse_path_with_encoded_query(self):
        """Test URL-encoded query parsing."""
        request = parse(b"GET /search?q=hello%20world&tag=a+b HTTP/1.1\r\n\r\n")

        assert request.path == "/search"
        assert request.query == {"q": "hello world", "tag": "a b"}

    def test_empty_stream_is_abandoned(self):
        """A peer that sends nothing yields no request."""
        assert RequestParser().read_request(io.BytesIO(b"")) is None

    def test_parse_invalid_request_line(self):
        """Test handling of malformed request line."""
        with pytest.raises(BadRequest) as exc_info:
            parse(b"GET\r\nHost: test\r\n\r\n")

        assert exc_info.value.status == 400

    def test_missing_version_defaults(self):
        request = parse(b"GET /\r\n\r\n")

        assert request.path == "/"
        assert request.version == "HTTP/1.0"

    def test_headers_end_at_stream_end(self):
        """A request cut off after its headers still parses."""
        request = parse(b"GET / HTTP/1.1\r\nHost: test\r\n")

        assert request.headers == {"Host": "test"}

    def test_bare_newlines(self):
        request = parse(b"GET /x HTTP/1.1\nHost: test\n\n")

        assert request.path == "/x"
        assert request.headers == {"Host": "test"}

    def test_header_without_separator_is_skipped(self):
        request = parse(b"GET / HTTP/1.1\r\nGarbage\r\nHost: test\r\n\r\n")

        assert request.headers == {"Host": "test"}

    def test_header_value_keeps_later_colons(self):
        request = parse(b"GET / HTTP/1.1\r\nX-Time: 12:30:00\r\n\r\n")

        assert request.get_header("X-Time") == "12:30:00"

    def test_unique_request_ids(self, sample_get_request: bytes):
        assert parse(sample_get_request).id != parse(sample_get_request).id


class TestHelpers:
    """Tests for the module-level helpers."""

    def test_query_last_value_wins(self):
        assert parse_query("a=1&a=2&b=3") == {"a": "2", "b": "3"}

    def test_query_blank_values_kept(self):
        assert parse_query("a=&b=2") == {"a": "", "b": "2"}

    def test_query_empty(self):
        assert parse_query(None) == {}
        assert parse_query("") == {}

    def test_split_target(self):
        assert split_target("/a?b=1?c") == ("/a", "b=1?c")
        assert split_target("/a") == ("/a", None)
        assert split_target("/a?") == ("/a", "")

    def test_find_header_case_insensitive(self):
        headers = {"Content-Type": "text/plain"}

        assert find_header(headers, "content-type") == "text/plain"
        assert find_header(headers, "X-Missing", "none") == "none"

    def test_content_length(self):
        assert content_length({"content-length": "12"}) == 12
        assert content_length({}) == 0
        assert content_length({"Content-Length": "abc"}) == 0


class TestRequestContext:
    """Tests for RequestContext."""

    def test_defaults(self):
        ctx = RequestContext(method="GET", path="/")

        assert ctx.params == {}
        assert ctx.query == {}
        assert ctx.body is None
        assert ctx.client_ip == "-"
        assert ctx.user_agent is None
        assert ctx.cookies.get() == {}

    def test_get_header_default(self):
        ctx = RequestContext(method="GET", path="/", headers={"Host": "x"})

        assert ctx.get_header("host") == "x"
        assert ctx.get_header("X-Custom", "default") == "default"
