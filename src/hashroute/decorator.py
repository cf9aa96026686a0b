"""Router decorator that hashes route parameters during URL generation.

Wraps any object matching ``RouterProtocol``. Callers keep passing raw
integer IDs; the decorator looks up the route's handler, asks the factory
for its encode transform and hands the rewritten parameters to the wrapped
router::

    router = RouterDecorator(Router(), factory)
    router.generate("order_show", {"id": 123, "slug": "blue-mug"})
    # "/orders/Mj3nqrZx/blue-mug"

Route names starting with ``_`` (``_profiler``, ``_wdt``...) are internal
and always bypass the transform.
"""

from collections.abc import Mapping
from typing import Any

from hashroute.factory import ParameterTransformFactory
from hashroute.routing.protocol import (
    ReferenceType,
    RequestContext,
    RouteLookup,
    RouterProtocol,
    WarmableRouter,
)
from hashroute.routing.route import Route, RouteMatch

_LOCALE_KEY = "_locale"


class RouterDecorator:
    """Transparent router wrapper applying encode transforms on ``generate``."""

    __slots__ = ("_factory", "_router")

    def __init__(self, router: RouterProtocol, factory: ParameterTransformFactory) -> None:
        self._router = router
        self._factory = factory

    @property
    def router(self) -> RouterProtocol:
        """The wrapped router."""
        return self._router

    def generate(
        self,
        name: str,
        parameters: Mapping[str, Any] | None = None,
        reference_type: ReferenceType = ReferenceType.ABSOLUTE_PATH,
    ) -> str:
        params = dict(parameters or {})
        if not name.startswith("_"):
            route = self._find_route(name, params)
            if route is not None:
                transform = self._factory.create_encode_transform(route)
                if transform.need_to_process():
                    params = transform.process(params)
        return self._router.generate(name, params, reference_type)

    def _find_route(self, name: str, parameters: Mapping[str, Any]) -> Route | None:
        collection = self._router.get_route_collection()
        route = collection.get(name)
        if route is not None:
            return route

        # Localized routes are registered as "<name>.<locale>"
        locale = parameters.get(_LOCALE_KEY) or self._router.get_context().get_parameter(
            _LOCALE_KEY
        )
        if locale:
            return collection.get(f"{name}.{locale}")
        return None

    # -- Passthrough --

    def match(self, path: str, method: str = "GET") -> RouteMatch:
        return self._router.match(path, method)

    def get_route_collection(self) -> RouteLookup:
        return self._router.get_route_collection()

    def get_context(self) -> RequestContext:
        return self._router.get_context()

    def set_context(self, context: RequestContext) -> None:
        self._router.set_context(context)

    def warm_up(self, cache_dir: str) -> list[str]:
        """Warm the wrapped router when it supports it; otherwise nothing to do."""
        if isinstance(self._router, WarmableRouter):
            return self._router.warm_up(cache_dir)
        return []
