"""Tests for hashroute.routing.router: trie matching and URL generation."""

import pytest

from hashroute.errors import (
    InvalidRouteParameter,
    MethodNotAllowed,
    MissingParameters,
    NotFound,
    RouteNotFound,
    RoutingError,
)
from hashroute.routing.protocol import ReferenceType, RequestContext
from hashroute.routing.route import Route
from hashroute.routing.router import Router, parse_path


def _handler() -> str:
    return "ok"


def _route(
    path: str,
    methods: frozenset[str] | None = None,
    name: str | None = None,
    **defaults: object,
) -> Route:
    return Route(
        path=path,
        handler=_handler,
        methods=methods or frozenset({"GET"}),
        name=name,
        defaults=defaults,
    )


def _router(*routes: Route, context: RequestContext | None = None) -> Router:
    r = Router(context)
    for route in routes:
        r.add(route)
    r.compile()
    return r


class TestParsePath:
    def test_static(self) -> None:
        segments = parse_path("/orders")
        assert [s.value for s in segments] == ["orders"]
        assert segments[0].is_param is False

    def test_param(self) -> None:
        segments = parse_path("/orders/{id}")
        assert segments[1].is_param is True
        assert segments[1].param_name == "id"
        assert segments[1].param_type == "str"

    def test_typed_param(self) -> None:
        assert parse_path("/orders/{id:int}")[1].param_type == "int"

    def test_root(self) -> None:
        assert parse_path("/") == []

    def test_rejects_flask_style_param(self) -> None:
        with pytest.raises(RoutingError) as exc_info:
            parse_path("/share/<slug>")
        assert "<param>" in str(exc_info.value)
        assert "{param}" in str(exc_info.value)

    def test_rejects_unknown_type(self) -> None:
        with pytest.raises(RoutingError, match="Unknown parameter type"):
            parse_path("/orders/{id:uuid}")


class TestRouterMatch:
    def test_root(self) -> None:
        r = _router(_route("/"))
        assert r.match("/").path_params == {}

    def test_trailing_slash_ignored(self) -> None:
        r = _router(_route("/orders"))
        assert r.match("/orders/").route.path == "/orders"

    def test_params(self) -> None:
        r = _router(_route("/orders/{id}/{slug}"))
        match = r.match("/orders/Mj3nqrZx/blue-mug")
        assert match.path_params == {"id": "Mj3nqrZx", "slug": "blue-mug"}

    def test_query_and_fragment_ignored(self) -> None:
        r = _router(_route("/orders"), _route("/orders/{id}"))
        assert r.match("/orders/Mj3nqrZx?page=2#totals").path_params == {"id": "Mj3nqrZx"}
        assert r.match("/orders?page=2").route.path == "/orders"

    def test_segments_unquoted(self) -> None:
        r = _router(_route("/orders/{slug}"), _route("/files/{filepath:path}"))
        assert r.match("/orders/blue%20mug").path_params == {"slug": "blue mug"}
        assert r.match("/files/docs/a%20b.txt").path_params == {"filepath": "docs/a b.txt"}

    def test_absolute_url(self) -> None:
        r = _router(_route("/orders/{id}"))
        assert r.match("https://example.com/orders/7?page=2").path_params == {"id": "7"}

    def test_int_param_rejects_non_digit(self) -> None:
        r = _router(_route("/pages/{page:int}"))
        with pytest.raises(NotFound):
            r.match("/pages/first")

    def test_path_param(self) -> None:
        r = _router(_route("/files/{filepath:path}"))
        assert r.match("/files/docs/v2/index.html").path_params == {
            "filepath": "docs/v2/index.html"
        }

    def test_static_preferred_over_param(self) -> None:
        r = _router(_route("/orders/new"), _route("/orders/{id}"))
        assert r.match("/orders/new").route.path == "/orders/new"
        assert r.match("/orders/42").route.path == "/orders/{id}"

    def test_default_method_is_get(self) -> None:
        r = _router(_route("/orders", frozenset({"GET"})), _route("/orders", frozenset({"POST"})))
        assert "GET" in r.match("/orders").route.methods
        assert "POST" in r.match("/orders", "POST").route.methods

    def test_method_not_allowed(self) -> None:
        r = _router(_route("/orders", frozenset({"GET"})))
        with pytest.raises(MethodNotAllowed) as exc_info:
            r.match("/orders", "DELETE")
        assert dict(exc_info.value.headers)["Allow"] == "GET"

    def test_not_found(self) -> None:
        r = _router(_route("/orders"))
        with pytest.raises(NotFound) as exc_info:
            r.match("/nonexistent")
        assert exc_info.value.status == 404


class TestRouterLifecycle:
    def test_add_after_compile_raises(self) -> None:
        r = Router()
        r.compile()
        with pytest.raises(RuntimeError, match="Cannot add routes after compilation"):
            r.add(_route("/orders"))

    def test_routes_lists_each_route_once(self) -> None:
        multi = _route("/orders", frozenset({"GET", "POST"}))
        r = _router(multi, _route("/orders/{id}"), _route("/files/{p:path}"))
        assert len(r.routes) == 3
        assert r.routes.count(multi) == 1

    def test_named_routes_in_collection(self) -> None:
        named = _route("/orders/{id}", name="order_show")
        r = _router(named, _route("/health"))
        collection = r.get_route_collection()
        assert collection.get("order_show") is named
        assert len(collection) == 1

    def test_warm_up_compiles_and_lists_handlers(self) -> None:
        r = Router()
        r.add(_route("/a"))
        r.add(Route(path="/b", handler="shop.views:OrderView.show"))
        warmed = r.warm_up("/tmp/cache")
        assert warmed == sorted(warmed)
        assert "shop.views:OrderView.show" in warmed
        assert f"{__name__}:_handler" in warmed
        with pytest.raises(RuntimeError):
            r.add(_route("/c"))

    def test_context_round_trip(self) -> None:
        r = Router()
        context = RequestContext(host="example.com")
        r.set_context(context)
        assert r.get_context() is context


class TestRequestContext:
    def test_with_parameters_merges_into_copy(self) -> None:
        context = RequestContext(host="example.com", parameters={"_locale": "fr"})
        updated = context.with_parameters(_locale="de", tenant="acme")
        assert dict(updated.parameters) == {"_locale": "de", "tenant": "acme"}
        assert updated.host == "example.com"
        assert dict(context.parameters) == {"_locale": "fr"}

    def test_with_parameters_feeds_generation(self) -> None:
        r = _router(
            _route("/{_locale}/about", name="about"),
            context=RequestContext(parameters={"_locale": "fr"}),
        )
        r.set_context(r.get_context().with_parameters(_locale="de"))
        assert r.generate("about") == "/de/about"

    def test_parameters_are_read_only(self) -> None:
        context = RequestContext(parameters={"_locale": "fr"})
        with pytest.raises(TypeError):
            context.parameters["_locale"] = "de"  # type: ignore[index]
        assert context.get_parameter("missing", "en") == "en"


class TestRouterGenerate:
    def test_static(self) -> None:
        r = _router(_route("/orders", name="order_list"))
        assert r.generate("order_list") == "/orders"

    def test_root(self) -> None:
        r = _router(_route("/", name="home"))
        assert r.generate("home") == "/"

    def test_path_params(self) -> None:
        r = _router(_route("/orders/{id}/{slug}", name="order_show"))
        assert r.generate("order_show", {"id": 42, "slug": "blue-mug"}) == "/orders/42/blue-mug"

    def test_extra_params_become_query_string(self) -> None:
        r = _router(_route("/orders", name="order_list"))
        url = r.generate("order_list", {"page": 2, "tag": ["a", "b"], "empty": None})
        assert url == "/orders?page=2&tag=a&tag=b"

    def test_underscore_params_not_in_query(self) -> None:
        r = _router(_route("/orders", name="order_list"))
        assert r.generate("order_list", {"_locale": "fr", "page": 1}) == "/orders?page=1"

    def test_fragment(self) -> None:
        r = _router(_route("/orders", name="order_list"))
        assert r.generate("order_list", {"_fragment": "totals"}) == "/orders#totals"

    def test_route_defaults(self) -> None:
        r = _router(_route("/orders/page/{page:int}", name="order_page", page=1))
        assert r.generate("order_page") == "/orders/page/1"
        assert r.generate("order_page", {"page": 3}) == "/orders/page/3"

    def test_context_parameters(self) -> None:
        context = RequestContext(parameters={"_locale": "fr"})
        r = _router(_route("/{_locale}/about", name="about"), context=context)
        assert r.generate("about") == "/fr/about"
        assert r.generate("about", {"_locale": "de"}) == "/de/about"

    def test_values_are_quoted(self) -> None:
        r = _router(
            _route("/orders/{slug}", name="order_slug"),
            _route("/files/{filepath:path}", name="file"),
        )
        assert r.generate("order_slug", {"slug": "blue mug"}) == "/orders/blue%20mug"
        assert r.generate("file", {"filepath": "docs/a b.txt"}) == "/files/docs/a%20b.txt"

    def test_base_url(self) -> None:
        r = _router(_route("/orders", name="order_list"), context=RequestContext(base_url="/app/"))
        assert r.generate("order_list") == "/app/orders"

    def test_absolute_url(self) -> None:
        context = RequestContext(host="example.com")
        r = _router(_route("/orders/{id}", name="order_show"), context=context)
        url = r.generate("order_show", {"id": 7}, ReferenceType.ABSOLUTE_URL)
        assert url == "http://example.com/orders/7"

    def test_absolute_url_non_default_port(self) -> None:
        context = RequestContext(host="example.com", scheme="https", https_port=8443)
        r = _router(_route("/orders", name="order_list"), context=context)
        url = r.generate("order_list", reference_type=ReferenceType.ABSOLUTE_URL)
        assert url == "https://example.com:8443/orders"

    def test_network_path(self) -> None:
        r = _router(
            _route("/orders", name="order_list"),
            context=RequestContext(host="example.com"),
        )
        url = r.generate("order_list", reference_type=ReferenceType.NETWORK_PATH)
        assert url == "//example.com/orders"

    def test_unknown_route(self) -> None:
        r = _router(_route("/orders", name="order_list"))
        with pytest.raises(RouteNotFound, match="'missing'"):
            r.generate("missing")

    def test_missing_parameters(self) -> None:
        r = _router(_route("/orders/{id}/{slug}", name="order_show"))
        with pytest.raises(MissingParameters, match="'slug'"):
            r.generate("order_show", {"id": 1})

    def test_invalid_parameter(self) -> None:
        r = _router(_route("/pages/{page:int}", name="page"))
        with pytest.raises(InvalidRouteParameter, match="'page'"):
            r.generate("page", {"page": "Mj3nqrZx"})

    def test_generated_url_matches_back(self) -> None:
        r = _router(_route("/orders/{id}/{slug}", name="order_show"))
        url = r.generate(
            "order_show", {"id": 42, "slug": "blue mug", "page": 2, "_fragment": "totals"}
        )
        assert url == "/orders/42/blue%20mug?page=2#totals"
        assert r.match(url).path_params == {"id": "42", "slug": "blue mug"}

    def test_caller_mapping_untouched(self) -> None:
        r = _router(_route("/orders/{id}", name="order_show"))
        params = {"id": 1, "page": 2}
        r.generate("order_show", params)
        assert params == {"id": 1, "page": 2}
