"""Router contract, request context and reference types.

Any router the decorator wraps must match ``RouterProtocol``. No base
class required; the decorator checks the shape, not the lineage.
``warm_up`` is optional and described separately by ``WarmableRouter``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

from hashroute.routing.route import Route, RouteMatch


class ReferenceType(Enum):
    """Shape of a generated URL."""

    ABSOLUTE_URL = "absolute_url"  # http://example.com/orders/x9aA2
    ABSOLUTE_PATH = "absolute_path"  # /orders/x9aA2
    NETWORK_PATH = "network_path"  # //example.com/orders/x9aA2


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Information about the current request used to build URLs.

    ``parameters`` holds request-wide values such as ``_locale`` that URL
    generation falls back to when a call doesn't pass them.
    """

    base_url: str = ""
    host: str = "localhost"
    scheme: str = "http"
    http_port: int = 80
    https_port: int = 443
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def get_parameter(self, name: str, default: Any = None) -> Any:
        return self.parameters.get(name, default)

    def with_parameters(self, **parameters: Any) -> RequestContext:
        """Return a copy with *parameters* merged in."""
        return replace(self, parameters={**self.parameters, **parameters})

    @property
    def authority(self) -> str:
        """``host`` plus the port when it isn't the scheme's default."""
        if self.scheme == "https":
            port, default = self.https_port, 443
        else:
            port, default = self.http_port, 80
        if port == default:
            return self.host
        return f"{self.host}:{port}"


class RouteLookup(Protocol):
    """The part of a route collection URL generation needs."""

    def get(self, name: str) -> Route | None: ...


@runtime_checkable
class RouterProtocol(Protocol):
    """Public surface shared by ``Router`` and ``RouterDecorator``."""

    def generate(
        self,
        name: str,
        parameters: Mapping[str, Any] | None = None,
        reference_type: ReferenceType = ReferenceType.ABSOLUTE_PATH,
    ) -> str: ...

    def match(self, path: str, method: str = "GET") -> RouteMatch: ...

    def get_route_collection(self) -> RouteLookup: ...

    def get_context(self) -> RequestContext: ...

    def set_context(self, context: RequestContext) -> None: ...


@runtime_checkable
class WarmableRouter(Protocol):
    """A router that can prepare itself ahead of the first request."""

    def warm_up(self, cache_dir: str) -> list[str]: ...
