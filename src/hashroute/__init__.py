"""hashroute: obfuscated integer IDs in generated URLs.

Handlers declare which route parameters are hashed; URL generation turns
integers into short tokens, and matching turns tokens back into integers.

Basic usage::

    from hashroute import HashRouting, Route, Router, hash_params

    @hash_params("id")
    def show_order(id: int, slug: str):
        ...

    router = Router()
    router.add(Route("/orders/{id}/{slug}", show_order, name="order_show"))
    routing = HashRouting.create(router, {"default": {"salt": "s3cr3t", "min_length": 8}})

    routing.router.generate("order_show", {"id": 123, "slug": "blue-mug"})
    # "/orders/Mj3nqrZx/blue-mug"
"""

__version__ = "0.1.0"
__all__ = [
    "CompositeTransform",
    "ConfigurationCache",
    "ConfigurationError",
    "ConfigurationResolver",
    "Decode",
    "Encode",
    "HashConfiguration",
    "HashIdConfig",
    "HashIdError",
    "HashIdException",
    "HashRouteError",
    "HashRouting",
    "HasherConfig",
    "HasherNotFound",
    "HasherRegistry",
    "HashidsConverter",
    "ParameterDecoder",
    "ParameterTransformFactory",
    "ReferenceType",
    "RequestContext",
    "Route",
    "Router",
    "RouterDecorator",
    "hash_params",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import hashroute`` fast while providing a clean top-level API.
    """
    if name == "HashRouting":
        from hashroute.integration import HashRouting

        return HashRouting

    if name == "RouterDecorator":
        from hashroute.decorator import RouterDecorator

        return RouterDecorator

    if name == "ParameterDecoder":
        from hashroute.dispatch import ParameterDecoder

        return ParameterDecoder

    if name == "ParameterTransformFactory":
        from hashroute.factory import ParameterTransformFactory

        return ParameterTransformFactory

    if name == "HasherRegistry":
        from hashroute.registry import HasherRegistry

        return HasherRegistry

    if name == "HashidsConverter":
        from hashroute.converter import HashidsConverter

        return HashidsConverter

    if name in ("HasherConfig", "HashIdConfig"):
        from hashroute import config as _config

        return getattr(_config, name)

    if name in ("HashConfiguration", "hash_params"):
        from hashroute import declaration as _declaration

        return getattr(_declaration, name)

    if name in ("ConfigurationCache", "ConfigurationResolver"):
        from hashroute import resolver as _resolver

        return getattr(_resolver, name)

    if name in ("CompositeTransform", "Decode", "Encode"):
        from hashroute import transform as _transform

        return getattr(_transform, name)

    if name in ("Route", "Router"):
        from hashroute.routing.route import Route
        from hashroute.routing.router import Router

        return {"Route": Route, "Router": Router}[name]

    if name in ("ReferenceType", "RequestContext"):
        from hashroute.routing import protocol as _protocol

        return getattr(_protocol, name)

    if name in (
        "ConfigurationError",
        "HashIdError",
        "HashIdException",
        "HashRouteError",
        "HasherNotFound",
    ):
        from hashroute import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
