"""Transform factory.

Decides which transform applies to a route (encode direction, URL
generation) or a handler (decode direction, after matching).

Missing metadata never breaks a request: when a handler reference can't
be resolved, or names a hasher that isn't configured, the factory logs
and returns ``NOOP`` instead of raising.
"""

import logging
from collections.abc import Callable
from typing import Any

from hashroute.converter import Converter
from hashroute.declaration import HandlerHashing
from hashroute.errors import HashIdException, HasherNotFound, InvalidController, MissingClassOrMethod
from hashroute.registry import HasherRegistry
from hashroute.resolver import ConfigurationResolver, HandlerRef
from hashroute.routing.route import Route
from hashroute.transform import NOOP, CompositeTransform, Decode, Encode, ParameterTransform

logger = logging.getLogger("hashroute.factory")

_RECOVERABLE = (InvalidController, MissingClassOrMethod, HasherNotFound)


class ParameterTransformFactory:
    """Build encode/decode transforms from handler declarations.

    Usage::

        factory = ParameterTransformFactory(resolver, registry)
        factory.create_encode_transform(route).process({"id": 123})
    """

    __slots__ = ("registry", "resolver")

    def __init__(self, resolver: ConfigurationResolver, registry: HasherRegistry) -> None:
        self.resolver = resolver
        self.registry = registry

    def create_encode_transform(self, route: Route) -> ParameterTransform:
        """Transform that hashes *route*'s declared parameters."""
        return self._create(route.handler, Encode)

    def create_decode_transform(self, handler: HandlerRef) -> ParameterTransform:
        """Transform that decodes *handler*'s declared parameters."""
        return self._create(handler, Decode)

    def _create(
        self,
        handler: HandlerRef,
        variant: Callable[[Converter, tuple[str, ...]], ParameterTransform],
    ) -> ParameterTransform:
        try:
            hashing = self.resolver.resolve(handler)
            if hashing is None or not hashing.has_parameters():
                return NOOP
            return self._build(hashing, variant)
        except _RECOVERABLE as exc:
            self._log_fallback(handler, exc)
            return NOOP

    def _build(
        self,
        hashing: HandlerHashing,
        variant: Callable[[Converter, tuple[str, ...]], ParameterTransform],
    ) -> ParameterTransform:
        transforms = [
            variant(self.registry.get_converter(config.hasher), config.parameters)
            for config in hashing.configurations
            if config.parameters
        ]
        if len(transforms) == 1:
            return transforms[0]
        return CompositeTransform(transforms)

    def _log_fallback(self, handler: Any, exc: HashIdException) -> None:
        if isinstance(exc, HasherNotFound):
            logger.warning("Skipping parameter hashing for %r: %s", handler, exc)
        else:
            logger.debug("No hash configuration for %r: %s", handler, exc)
