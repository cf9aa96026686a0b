"""Parameter transforms.

A transform rewrites a fixed set of named values in a parameter map::

    encode = Encode(converter, ("id",))
    encode.process({"id": 123, "slug": "abc"})
    # {"id": "Mj3nqrZx", "slug": "abc"}

Configured names that are absent from the map (or ``None``) are skipped;
optional route parameters are normal. Keys that are not configured come
back unchanged. ``process`` returns a new dict and never mutates its input.

Transforms hold only immutable state, so they are safe to share across
threads without locking.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from hashroute.converter import Converter


class ParameterTransform(Protocol):
    """Anything that can rewrite a route parameter map."""

    def process(self, parameters: Mapping[str, Any]) -> dict[str, Any]: ...

    def need_to_process(self) -> bool: ...


class _ConverterTransform:
    """Shared base for Encode and Decode."""

    __slots__ = ("converter", "parameters")

    def __init__(self, converter: Converter, parameters: Iterable[str] = ()) -> None:
        self.converter = converter
        self.parameters: tuple[str, ...] = tuple(dict.fromkeys(parameters))

    def process(self, parameters: Mapping[str, Any]) -> dict[str, Any]:
        result = dict(parameters)
        for name in self.parameters:
            value = result.get(name)
            if value is not None:
                result[name] = self._apply(value)
        return result

    def need_to_process(self) -> bool:
        return bool(self.parameters)

    def _apply(self, value: Any) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.converter!r}, {self.parameters!r})"


class Encode(_ConverterTransform):
    """Replace configured values with ``converter.encode(value)``."""

    __slots__ = ()

    def _apply(self, value: Any) -> Any:
        return self.converter.encode(value)


class Decode(_ConverterTransform):
    """Replace configured values with ``converter.decode(value)``."""

    __slots__ = ()

    def _apply(self, value: Any) -> Any:
        return self.converter.decode(value)


class NoOp:
    """Identity transform used when a handler declares nothing."""

    __slots__ = ()

    parameters: tuple[str, ...] = ()

    def process(self, parameters: Mapping[str, Any]) -> dict[str, Any]:
        return dict(parameters)

    def need_to_process(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NoOp()"


NOOP = NoOp()


class CompositeTransform:
    """Apply several transforms in order, one per hasher.

    Used when a handler binds different parameters to different hashers,
    e.g. ``id`` to ``default`` and ``user_id`` to ``secure``.
    """

    __slots__ = ("transforms",)

    def __init__(self, transforms: Iterable[ParameterTransform]) -> None:
        self.transforms: tuple[ParameterTransform, ...] = tuple(transforms)

    @property
    def parameters(self) -> tuple[str, ...]:
        return tuple(
            name for transform in self.transforms for name in getattr(transform, "parameters", ())
        )

    def process(self, parameters: Mapping[str, Any]) -> dict[str, Any]:
        result = dict(parameters)
        for transform in self.transforms:
            result = transform.process(result)
        return result

    def need_to_process(self) -> bool:
        return any(transform.need_to_process() for transform in self.transforms)

    def __repr__(self) -> str:
        return f"CompositeTransform({list(self.transforms)!r})"
