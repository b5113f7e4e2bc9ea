"""Tests for tini.routing.router: registration, composition, flattening."""

import pytest

from tini.errors import ConfigurationError, PatternError
from tini.routing.router import Router, RouteTable


def h1(request):
    return None


def h2(request):
    return None


def mw(request):
    return None


def outer_mw(request):
    return None


class TestRegistration:
    def test_routes_keep_registration_order(self) -> None:
        router = Router()
        router.get("/a", h1)
        router.get("/b", h2)
        router.get("/c", h1)
        table = router.flatten()
        assert [r.path for r in table.candidates("GET")] == ["/a", "/b", "/c"]

    def test_handlers_keep_order(self) -> None:
        router = Router()
        router.get("/", h1, h2)
        (route,) = router.flatten().candidates("GET")
        assert route.handlers == (h1, h2)

    def test_prefix_applied_at_registration(self) -> None:
        router = Router("/api")
        route = router.register("GET", "/users/:id", (h1,))
        assert route.path == "/api/users/:id"
        assert route.matcher.match("/api/users/1").params == {"id": "1"}

    def test_pre_callbacks_prepended(self) -> None:
        router = Router("", mw)
        route = router.register("POST", "/", (h1, h2))
        assert route.handlers == (mw, h1, h2)

    def test_decorator_form(self) -> None:
        router = Router()

        @router.get("/users/:id")
        def user(request):
            return {"id": request.params["id"]}

        (route,) = router.flatten().candidates("GET")
        assert route.handlers == (user,)
        assert user.__name__ == "user"

    def test_positional_form_returns_none(self) -> None:
        router = Router()
        assert router.post("/", h1) is None

    @pytest.mark.parametrize("method", ["get", "post", "put", "delete"])
    def test_method_shortcuts(self, method: str) -> None:
        router = Router()
        getattr(router, method)("/x", h1)
        table = router.flatten()
        assert len(table.candidates(method.upper())) == 1

    def test_use_arbitrary_method(self) -> None:
        router = Router()
        router.use("PATCH", "/x", h1)
        router.use("PURGE", "/x", h2)
        table = router.flatten()
        assert table.candidates("PATCH")[0].handlers == (h1,)
        assert table.candidates("PURGE")[0].handlers == (h2,)

    def test_method_is_not_normalized(self) -> None:
        router = Router()
        router.use("get", "/x", h1)
        table = router.flatten()
        assert table.candidates("GET") == ()
        assert len(table.candidates("get")) == 1

    def test_no_handlers_rejected(self) -> None:
        router = Router()
        with pytest.raises(TypeError, match="at least one handler"):
            router.register("GET", "/", ())

    def test_malformed_pattern_fails_at_registration(self) -> None:
        router = Router()
        with pytest.raises(PatternError):
            router.get("/:id(\\d+", h1)

    def test_router_options_reach_matcher(self) -> None:
        router = Router(sensitive=True, strict=True)
        route = router.register("GET", "/Users", (h1,))
        assert route.matcher.match("/users") is None
        assert route.matcher.match("/Users/") is None
        assert route.matcher.match("/Users") is not None


class TestComposition:
    def test_interleaved_order(self) -> None:
        child = Router()
        child.get("/b", h2)

        root = Router()
        root.get("/a", h1)
        root.compose(child)
        root.get("/c", h1)

        paths = [r.path for r in root.flatten().candidates("GET")]
        assert paths == ["/a", "/b", "/c"]

    def test_child_registered_after_compose_still_included(self) -> None:
        root = Router()
        child = Router()
        root.compose(child)
        child.get("/late", h1)
        assert [r.path for r in root.flatten().candidates("GET")] == ["/late"]

    def test_prefix_and_callbacks_compose(self) -> None:
        inner = Router("/users", mw)
        inner.get("/:id", h1)

        outer = Router("/api", outer_mw)
        outer.compose(inner)

        root = Router()
        root.compose(outer)

        (route,) = root.flatten().candidates("GET")
        assert route.path == "/api/users/:id"
        assert route.handlers == (outer_mw, mw, h1)
        assert route.matcher.match("/api/users/42").params == {"id": "42"}
        assert route.matcher.match("/users/42") is None

    def test_parent_own_routes_not_reprefixed(self) -> None:
        parent = Router("/api", mw)
        parent.get("/ping", h1)
        (route,) = parent.flatten().candidates("GET")
        assert route.path == "/api/ping"
        assert route.handlers == (mw, h1)

    def test_three_levels(self) -> None:
        a = Router("/a")
        b = Router("/b")
        c = Router("/c")
        c.get("/leaf", h1)
        b.compose(c)
        a.compose(b)
        (route,) = a.flatten().candidates("GET")
        assert route.path == "/a/b/c/leaf"

    def test_compose_into_self_rejected(self) -> None:
        router = Router()
        with pytest.raises(ValueError, match="itself"):
            router.compose(router)

    def test_cycle_rejected_at_flatten(self) -> None:
        a = Router("/a")
        b = Router("/b")
        a.get("/x", h1)
        a.compose(b)
        b.compose(a)
        with pytest.raises(ConfigurationError, match="composed into itself"):
            a.flatten()

    def test_indirect_cycle_rejected(self) -> None:
        a, b, c = Router("/a"), Router("/b"), Router("/c")
        a.compose(b)
        b.compose(c)
        c.compose(a)
        with pytest.raises(ConfigurationError):
            a.flatten()

    def test_same_router_in_two_branches(self) -> None:
        shared = Router("/s")
        shared.get("/x", h1)
        left, right = Router("/l"), Router("/r")
        left.compose(shared)
        right.compose(shared)
        root = Router()
        root.compose(left)
        root.compose(right)
        assert [r.path for r in root.flatten().candidates("GET")] == ["/l/s/x", "/r/s/x"]

    def test_methods_partitioned(self) -> None:
        child = Router()
        child.post("/items", h2)
        root = Router()
        root.get("/items", h1)
        root.compose(child)
        table = root.flatten()
        assert [r.handlers for r in table.candidates("GET")] == [(h1,)]
        assert [r.handlers for r in table.candidates("POST")] == [(h2,)]


class TestFlatten:
    def test_returns_route_table(self) -> None:
        router = Router()
        router.get("/", h1)
        table = router.flatten()
        assert isinstance(table, RouteTable)
        assert len(table) == 1

    def test_empty_router(self) -> None:
        table = Router().flatten()
        assert len(table) == 0
        assert table.candidates("GET") == ()

    def test_table_is_immutable(self) -> None:
        router = Router()
        router.get("/", h1)
        table = router.flatten()
        with pytest.raises(TypeError):
            table.by_method["GET"] = ()  # type: ignore[index]

    def test_deterministic(self) -> None:
        def build() -> RouteTable:
            child = Router("/c", mw)
            child.get("/x", h2)
            root = Router()
            root.get("/a", h1)
            root.compose(child)
            root.post("/a", h2)
            return root.flatten()

        first, second = build(), build()
        assert [(r.method, r.path, r.handlers) for r in first.routes] == [
            (r.method, r.path, r.handlers) for r in second.routes
        ]

    def test_register_after_flatten_rejected(self) -> None:
        router = Router()
        router.get("/", h1)
        router.flatten()
        assert router.is_compiled
        with pytest.raises(RuntimeError, match="Cannot add routes after compilation."):
            router.get("/late", h1)

    def test_nested_router_frozen_too(self) -> None:
        child = Router()
        root = Router()
        root.compose(child)
        root.flatten()
        assert child.is_compiled
        with pytest.raises(RuntimeError):
            child.get("/late", h1)

    def test_compose_after_flatten_rejected(self) -> None:
        root = Router()
        root.flatten()
        with pytest.raises(RuntimeError):
            root.compose(Router())


class TestMatches:
    def test_yields_in_order(self) -> None:
        router = Router()
        router.get("/users/:id", h1)
        router.get("/users/me", h2)
        router.get("(.*)", mw)
        matches = list(router.flatten().matches("GET", "/users/me"))
        assert [m.route.handlers for m in matches] == [(h1,), (h2,), (mw,)]
        assert matches[0].params == {"id": "me"}
        assert matches[1].params == {}

    def test_pathname_is_request_path(self) -> None:
        router = Router()
        router.get("/a/:b", h1)
        (match,) = router.flatten().matches("GET", "/a/x/")
        assert match.pathname == "/a/x/"

    def test_other_methods_ignored(self) -> None:
        router = Router()
        router.post("/a", h1)
        assert list(router.flatten().matches("GET", "/a")) == []

    def test_lazy(self) -> None:
        router = Router()
        router.get("/a", h1)
        router.get("/a", h2)
        matches = router.flatten().matches("GET", "/a")
        assert next(matches).route.handlers == (h1,)
