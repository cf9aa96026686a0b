"""Compiled router with trie-based path matching and named URL generation.

Routes are registered during setup and compiled into an immutable
lookup structure by ``compile()`` (or ``warm_up()``).
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, unquote, urlencode, urlsplit

from hashroute.errors import (
    InvalidRouteParameter,
    MethodNotAllowed,
    MissingParameters,
    NotFound,
    RouteNotFound,
    RoutingError,
)
from hashroute.routing.params import CONVERTERS, format_param
from hashroute.routing.protocol import ReferenceType, RequestContext
from hashroute.routing.route import PathSegment, Route, RouteCollection, RouteMatch

logger = logging.getLogger("hashroute.routing")

_FLASK_STYLE = re.compile(r"<[^>]*>")


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/users"          -> [PathSegment("users")]
        "/users/{id}"     -> [PathSegment("users"), PathSegment("{id}", is_param=True, ...)]
        "/users/{id:int}" -> [PathSegment("{id:int}", is_param=True, param_type="int")]
        "/files/{path:path}" -> [PathSegment("{path:path}", is_param=True, param_type="path")]

    Raises ``RoutingError`` for ``<param>`` placeholders or unknown types.
    """
    if _FLASK_STYLE.search(path):
        msg = f"Route path {path!r} uses <param> placeholders; use {{param}} instead."
        raise RoutingError(msg)

    segments: list[PathSegment] = []
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if part.startswith("{") and part.endswith("}"):
            inner = part[1:-1]
            if ":" in inner:
                param_name, param_type = inner.split(":", 1)
            else:
                param_name = inner
                param_type = "str"
            if param_type not in CONVERTERS:
                msg = f"Unknown parameter type {param_type!r} in route path {path!r}."
                raise RoutingError(msg)
            segments.append(
                PathSegment(
                    value=part,
                    is_param=True,
                    param_name=param_name,
                    param_type=param_type,
                )
            )
        else:
            segments.append(PathSegment(value=part))
    return segments


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("catch_all_route", "children", "param_child", "routes_by_method")

    def __init__(self) -> None:
        # Static segment children: "users" -> node
        self.children: dict[str, _TrieNode] = {}
        # Single parameter child (only one param pattern per level)
        self.param_child: _ParamEdge | None = None
        # Catch-all route (path converter)
        self.catch_all_route: _CatchAllEdge | None = None
        # Routes at this node, keyed by HTTP method
        self.routes_by_method: dict[str, Route] = {}


@dataclass(slots=True)
class _ParamEdge:
    """A parameter edge in the trie."""

    param_name: str
    param_type: str
    regex: re.Pattern[str]
    node: _TrieNode


@dataclass(slots=True)
class _CatchAllEdge:
    """A catch-all (path) edge; consumes the remaining path."""

    param_name: str
    route_by_method: dict[str, Route]


class Router:
    """Compiled router with trie-based path matching.

    Usage::

        router = Router()
        router.add(Route("/orders/{id}", show_order, name="order_show"))
        router.compile()
        router.match("/orders/42")
        router.generate("order_show", {"id": 42})  # "/orders/42"
    """

    __slots__ = ("_compiled", "_context", "_named", "_root", "_segments")

    def __init__(self, context: RequestContext | None = None) -> None:
        self._root = _TrieNode()
        self._compiled = False
        self._context = context or RequestContext()
        self._named = RouteCollection()
        # id(route) -> parsed segments, reused by generate()
        self._segments: dict[int, list[PathSegment]] = {}

    def add(self, route: Route) -> None:
        """Add a route to the router. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        segments = parse_path(route.path)
        self._segments[id(route)] = segments
        if route.name is not None:
            self._named.add(route)

        node = self._root
        for seg in segments:
            if seg.is_param and seg.param_type == "path":
                # Catch-all: consumes rest of path, must be last segment
                if node.catch_all_route is None:
                    node.catch_all_route = _CatchAllEdge(
                        param_name=seg.param_name or "path",
                        route_by_method={},
                    )
                for method in route.methods:
                    node.catch_all_route.route_by_method[method] = route
                return

            if seg.is_param:
                if node.param_child is None:
                    pattern, _ = CONVERTERS[seg.param_type]
                    node.param_child = _ParamEdge(
                        param_name=seg.param_name or "",
                        param_type=seg.param_type,
                        regex=re.compile(f"^{pattern}$"),
                        node=_TrieNode(),
                    )
                node = node.param_child.node
            else:
                if seg.value not in node.children:
                    node.children[seg.value] = _TrieNode()
                node = node.children[seg.value]

        for method in route.methods:
            node.routes_by_method[method] = route

    @property
    def routes(self) -> list[Route]:
        """Return all registered routes.

        Traverses the trie to collect every unique Route object.
        """
        seen: set[int] = set()
        result: list[Route] = []
        self._collect_routes(self._root, seen, result)
        return result

    def _collect_routes(
        self,
        node: _TrieNode,
        seen: set[int],
        result: list[Route],
    ) -> None:
        """Recursively collect routes from the trie."""
        for route in node.routes_by_method.values():
            route_id = id(route)
            if route_id not in seen:
                seen.add(route_id)
                result.append(route)

        for child in node.children.values():
            self._collect_routes(child, seen, result)

        if node.param_child is not None:
            self._collect_routes(node.param_child.node, seen, result)

        if node.catch_all_route is not None:
            for route in node.catch_all_route.route_by_method.values():
                route_id = id(route)
                if route_id not in seen:
                    seen.add(route_id)
                    result.append(route)

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def warm_up(self, cache_dir: str) -> list[str]:
        """Compile the router and return the handler references it serves.

        Nothing is written to *cache_dir*; routing state lives in memory.
        """
        self.compile()
        warmed = sorted({_handler_name(route.handler) for route in self.routes})
        logger.debug("Warmed %d route handlers (cache_dir=%s)", len(warmed), cache_dir)
        return warmed

    # -- Context --

    def get_context(self) -> RequestContext:
        return self._context

    def set_context(self, context: RequestContext) -> None:
        self._context = context

    def get_route_collection(self) -> RouteCollection:
        return self._named

    # -- Matching --

    def match(self, path: str, method: str = "GET") -> RouteMatch:
        """Match a request path and method against compiled routes.

        *path* may be any URL ``generate()`` returns: the query string and
        fragment are ignored and segments are percent-decoded.

        Returns a ``RouteMatch`` on success.
        Raises ``NotFound`` if no route matches the path.
        Raises ``MethodNotAllowed`` if the path matches but the method doesn't.
        """
        parts = [unquote(p) for p in urlsplit(path).path.strip("/").split("/") if p]
        result = self._match_node(self._root, parts, 0, {})

        if result is None:
            raise NotFound(f"No route matches {method} {path!r}")

        node, params = result

        if method in node.routes_by_method:
            return RouteMatch(route=node.routes_by_method[method], path_params=params)

        if node.routes_by_method:
            all_methods = frozenset(node.routes_by_method)
            raise MethodNotAllowed(all_methods)

        raise NotFound(f"No route matches {method} {path!r}")

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, str],
    ) -> tuple[_TrieNode, dict[str, str]] | None:
        """Recursively match path parts against the trie."""
        # All parts consumed: return this node
        if index == len(parts):
            if node.routes_by_method:
                return node, params
            return None

        part = parts[index]

        # 1. Try static child first (exact match)
        if part in node.children:
            result = self._match_node(node.children[part], parts, index + 1, params)
            if result is not None:
                return result

        # 2. Try parameter child
        if node.param_child is not None:
            edge = node.param_child
            if edge.regex.match(part):
                new_params = {**params, edge.param_name: part}
                result = self._match_node(edge.node, parts, index + 1, new_params)
                if result is not None:
                    return result

        # 3. Try catch-all
        if node.catch_all_route is not None:
            remaining = "/".join(parts[index:])
            new_params = {**params, node.catch_all_route.param_name: remaining}
            synthetic = _TrieNode()
            synthetic.routes_by_method = node.catch_all_route.route_by_method
            return synthetic, new_params

        return None

    # -- Generation --

    def segments_for(self, route: Route) -> list[PathSegment]:
        """Parsed path segments of *route* (parsed on demand for foreign routes)."""
        segments = self._segments.get(id(route))
        if segments is None:
            segments = parse_path(route.path)
        return segments

    def generate(
        self,
        name: str,
        parameters: Mapping[str, Any] | None = None,
        reference_type: ReferenceType = ReferenceType.ABSOLUTE_PATH,
    ) -> str:
        """Build the URL of the route registered as *name*.

        Path parameters come from *parameters*, then the request context,
        then the route's defaults. Remaining explicit parameters become the
        query string, except ``_``-prefixed ones; ``_fragment`` sets the
        fragment. An unknown *name* falls back to ``"<name>.<locale>"`` using
        ``_locale`` from the parameters or the context.

        Raises ``RouteNotFound``, ``MissingParameters`` or
        ``InvalidRouteParameter``.
        """
        explicit = dict(parameters or {})
        route = self._named.get(name)
        if route is None:
            # Localized routes are registered as "<name>.<locale>"
            locale = explicit.get("_locale") or self._context.get_parameter("_locale")
            if locale:
                route = self._named.get(f"{name}.{locale}")
        if route is None:
            raise RouteNotFound(f"Unable to generate a URL for the named route {name!r}.")

        merged = {**route.defaults, **self._context.parameters, **explicit}

        parts: list[str] = []
        used: set[str] = set()
        missing: list[str] = []
        for seg in self.segments_for(route):
            if not seg.is_param:
                parts.append(seg.value)
                continue
            param_name = seg.param_name or ""
            value = merged.get(param_name)
            if value is None:
                missing.append(param_name)
                continue
            text = format_param(value)
            pattern, _ = CONVERTERS[seg.param_type]
            if re.fullmatch(pattern, text) is None:
                msg = (
                    f"Parameter {param_name!r} for route {name!r} must match "
                    f"{pattern!r} ({text!r} given)."
                )
                raise InvalidRouteParameter(msg)
            parts.append(quote(text, safe="/" if seg.param_type == "path" else ""))
            used.add(param_name)

        if missing:
            msg = (
                f"Some mandatory parameters are missing ({', '.join(repr(m) for m in missing)}) "
                f"to generate a URL for route {name!r}."
            )
            raise MissingParameters(msg)

        url = self._context.base_url.rstrip("/") + "/" + "/".join(parts)

        query = {
            key: value
            for key, value in explicit.items()
            if key not in used and not key.startswith("_") and value is not None
        }
        if query:
            url = f"{url}?{urlencode(query, doseq=True)}"
        fragment = explicit.get("_fragment")
        if fragment:
            url = f"{url}#{quote(format_param(fragment), safe='')}"

        if reference_type is ReferenceType.ABSOLUTE_URL:
            return f"{self._context.scheme}://{self._context.authority}{url}"
        if reference_type is ReferenceType.NETWORK_PATH:
            return f"//{self._context.authority}{url}"
        return url


def _handler_name(handler: Any) -> str:
    if isinstance(handler, str):
        return handler
    module = getattr(handler, "__module__", None) or "?"
    qualname = getattr(handler, "__qualname__", None) or type(handler).__qualname__
    return f"{module}:{qualname}"
