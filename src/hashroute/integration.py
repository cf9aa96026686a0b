"""Composition helper.

Wires registry, resolver, factory, decorator and decoder around one
router::

    routing = HashRouting.create(router, {"default": {"salt": "s3cr3t", "min_length": 8}})
    routing.router.generate("order_show", {"id": 123})
    await routing.decoder.dispatch("/orders/Mj3nqrZx")
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from hashroute.config import HashIdConfig
from hashroute.decorator import RouterDecorator
from hashroute.dispatch import ParameterDecoder
from hashroute.factory import ParameterTransformFactory
from hashroute.registry import HasherRegistry
from hashroute.resolver import ConfigurationCache, ConfigurationResolver
from hashroute.routing.protocol import RouterProtocol


@dataclass(frozen=True, slots=True)
class HashRouting:
    """The wired components. Build with ``HashRouting.create()``."""

    registry: HasherRegistry
    resolver: ConfigurationResolver
    factory: ParameterTransformFactory
    router: RouterDecorator
    decoder: ParameterDecoder

    @classmethod
    def create(
        cls,
        router: RouterProtocol,
        config: HashIdConfig | Mapping[str, Mapping[str, Any]] | None = None,
        *,
        cache: ConfigurationCache | None = None,
        deprecation_warnings: bool = True,
    ) -> "HashRouting":
        """Decorate *router* using hashers from *config*.

        *config* is a ``HashIdConfig`` or a ``{name: {salt, min_length,
        alphabet}}`` mapping. Without one, only the built-in ``default``
        hasher exists.
        """
        if config is not None and not isinstance(config, HashIdConfig):
            config = HashIdConfig.from_mapping(config)
        registry = HasherRegistry(config)
        resolver = ConfigurationResolver(cache, deprecation_warnings=deprecation_warnings)
        factory = ParameterTransformFactory(resolver, registry)
        return cls(
            registry=registry,
            resolver=resolver,
            factory=factory,
            router=RouterDecorator(router, factory),
            decoder=ParameterDecoder(router, factory),
        )
