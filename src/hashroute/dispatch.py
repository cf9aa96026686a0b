"""Decode-side dispatch.

The mirror image of ``RouterDecorator``: after a path matches, the hashed
path parameters are decoded back to integers before the handler sees
them::

    decoder = ParameterDecoder(router, factory)
    match = decoder.match("/orders/Mj3nqrZx/blue-mug")
    match.path_params  # {"id": 123, "slug": "blue-mug"}

    result = await decoder.dispatch("/orders/Mj3nqrZx/blue-mug")

Parameters that are not hashed are converted according to their path
segment type (``{page:int}`` -> ``int``). A token that doesn't decode is
passed through unchanged; checking that the ID exists is the handler's
job.
"""

import inspect
from typing import Any

from hashroute.factory import ParameterTransformFactory
from hashroute.resolver import import_reference
from hashroute.routing.params import convert_param
from hashroute.routing.protocol import RouterProtocol
from hashroute.routing.route import RouteMatch
from hashroute.routing.router import parse_path


class ParameterDecoder:
    """Match paths and hand handlers decoded parameters."""

    __slots__ = ("_factory", "_router")

    def __init__(self, router: RouterProtocol, factory: ParameterTransformFactory) -> None:
        self._router = router
        self._factory = factory

    def decode(self, match: RouteMatch) -> dict[str, Any]:
        """Decoded path parameters for *match*."""
        transform = self._factory.create_decode_transform(match.route.handler)
        hashed = set(getattr(transform, "parameters", ()))
        params = transform.process(match.path_params)

        for seg in parse_path(match.route.path):
            name = seg.param_name
            if not seg.is_param or name is None or name in hashed or name not in params:
                continue
            try:
                params[name] = convert_param(params[name], seg.param_type)
            except (ValueError, TypeError):
                continue  # keep the raw string
        return params

    def match(self, path: str, method: str = "GET") -> RouteMatch:
        """Match *path* and return a ``RouteMatch`` with decoded parameters.

        Raises ``NotFound`` or ``MethodNotAllowed`` from the router.
        """
        match = self._router.match(path, method)
        return RouteMatch(route=match.route, path_params=self.decode(match))

    async def dispatch(self, path: str, method: str = "GET", **kwargs: Any) -> Any:
        """Match *path*, decode its parameters and call the handler.

        Decoded path parameters the handler accepts are passed as keyword
        arguments together with *kwargs*. Coroutine results are awaited.
        """
        match = self.match(path, method)
        handler = load_handler(match.route.handler)
        arguments = {**_accepted(handler, match.path_params), **kwargs}
        result = handler(**arguments)
        if inspect.isawaitable(result):
            result = await result
        return result


def load_handler(handler: Any) -> Any:
    """Turn a route handler into something callable.

    Callables are returned as-is. String references to module-level
    functions import the function; references to methods construct the
    owning class with no arguments and return the bound method.
    """
    if not isinstance(handler, str):
        return handler

    obj = import_reference(handler)
    if not inspect.isfunction(obj):
        return obj

    owner_name, _, attr = obj.__qualname__.rpartition(".")
    if not owner_name or "<locals>" in owner_name:
        return obj

    owner = import_reference(f"{obj.__module__}:{owner_name}")
    if not inspect.isclass(owner):
        return obj
    if isinstance(inspect.getattr_static(owner, attr, None), staticmethod | classmethod):
        return getattr(owner, attr)
    return getattr(owner(), attr)


def _accepted(handler: Any, params: dict[str, Any]) -> dict[str, Any]:
    try:
        sig = inspect.signature(handler)
    except (TypeError, ValueError):
        return dict(params)
    if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in sig.parameters.values()):
        return dict(params)
    return {name: value for name, value in params.items() if name in sig.parameters}
