"""
Unit tests for the path compiler and route table.
"""

import pytest

from httpkit.http.router import METHODS, RouteTable, compile_path


def dummy_handler(ctx):
    """Dummy handler for testing."""
    return "ok"


def other_handler(ctx):
    return "other"


class TestCompilePath:
    """Tests for compile_path()."""

    def test_static_path(self):
        """Literal patterns match only themselves."""
        regex, names = compile_path("/users")

        assert names == []
        assert regex.match("/users")
        assert not regex.match("/users/1")
        assert not regex.match("/users/")

    def test_params_are_positional(self):
        """Parameter names come out in left-to-right order."""
        regex, names = compile_path("/users/:user_id/posts/:post_id")

        assert names == ["user_id", "post_id"]
        assert regex.match("/users/4/posts/9").groups() == ("4", "9")

    def test_param_does_not_cross_segments(self):
        regex, _ = compile_path("/hello/:name")

        assert not regex.match("/hello/a/b")
        assert not regex.match("/hello/")

    def test_literal_text_is_escaped(self):
        """Regex metacharacters in literals match literally."""
        regex, _ = compile_path("/files/report.txt")

        assert regex.match("/files/report.txt")
        assert not regex.match("/files/reportXtxt")

    def test_anchored(self):
        regex, _ = compile_path("/a")

        assert not regex.match("/ab")
        assert not regex.match("x/a")


class TestRouteTable:
    """Tests for RouteTable class."""

    def test_register_and_lookup(self):
        """Test adding and finding routes."""
        table = RouteTable()
        table.register("GET", "/users", dummy_handler)

        route = table.lookup("GET", "/users")
        assert route is not None
        assert route.pattern == "/users"
        assert route.method == "GET"
        assert route.handler is dummy_handler
        assert len(table) == 1

    def test_lookup_is_per_method(self):
        """Test method-based routing."""
        table = RouteTable()
        table.register("GET", "/users", dummy_handler)
        table.register("POST", "/users", other_handler)

        assert table.lookup("GET", "/users").handler is dummy_handler
        assert table.lookup("POST", "/users").handler is other_handler
        assert table.lookup("DELETE", "/users") is None

    def test_method_is_uppercased(self):
        table = RouteTable()
        table.register("get", "/", dummy_handler)

        assert table.lookup("GET", "/") is not None

    def test_unknown_method_lookup(self):
        table = RouteTable()
        table.register("GET", "/", dummy_handler)

        assert table.lookup("BREW", "/") is None

    def test_unsupported_method_registration(self):
        table = RouteTable()

        with pytest.raises(ValueError):
            table.register("BREW", "/coffee", dummy_handler)

    def test_all_methods_supported(self):
        table = RouteTable()
        for method in METHODS:
            table.register(method, "/x", dummy_handler)

        assert len(table) == len(METHODS)
        assert {"GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"} == set(METHODS)

    def test_no_match(self):
        """Test unmatched paths."""
        table = RouteTable()
        table.register("GET", "/users/:id", dummy_handler)

        assert table.lookup("GET", "/posts") is None
        assert table.lookup("GET", "/users") is None

    def test_extract_params(self):
        """Test dynamic path parameters."""
        table = RouteTable()
        table.register("GET", "/users/:id", dummy_handler)

        route = table.lookup("GET", "/users/42")
        assert route.extract_params("/users/42") == {"id": "42"}

    def test_extract_params_decodes_segments(self):
        table = RouteTable()
        route = table.register("GET", "/hello/:name", dummy_handler)

        assert route.extract_params("/hello/Jo%C3%A3o%20Silva") == {"name": "João Silva"}

    def test_extract_params_on_mismatch(self):
        table = RouteTable()
        route = table.register("GET", "/hello/:name", dummy_handler)

        assert route.extract_params("/bye/x") == {}

    def test_first_registered_wins(self):
        """A parameter route registered first shadows a later literal one."""
        table = RouteTable()
        table.register("GET", "/a/:x", dummy_handler)
        table.register("GET", "/a/b", other_handler)

        assert table.lookup("GET", "/a/b").handler is dummy_handler

    def test_first_registered_wins_reversed(self):
        """The opposite registration order gives the opposite match."""
        table = RouteTable()
        table.register("GET", "/a/b", other_handler)
        table.register("GET", "/a/:x", dummy_handler)

        assert table.lookup("GET", "/a/b").handler is other_handler
        assert table.lookup("GET", "/a/c").handler is dummy_handler

    def test_route_middlewares_are_kept_in_order(self):
        def first(ctx):
            return None

        def second(ctx):
            return None

        table = RouteTable()
        route = table.register("GET", "/", dummy_handler, [first, second])

        assert route.middlewares == (first, second)

    def test_freeze_blocks_registration(self):
        """Test that a frozen table is read-only."""
        table = RouteTable()
        table.register("GET", "/", dummy_handler)
        table.freeze()

        assert table.frozen
        with pytest.raises(RuntimeError):
            table.register("GET", "/late", dummy_handler)

        # Lookups still work, and freezing twice is harmless
        table.freeze()
        assert table.lookup("GET", "/") is not None

    def test_routes_listing(self):
        table = RouteTable()
        table.register("GET", "/a", dummy_handler)
        table.register("POST", "/b", dummy_handler)

        assert [(r.method, r.pattern) for r in table.routes()] == [("GET", "/a"), ("POST", "/b")]
