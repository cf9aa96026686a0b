"""Hash declarations on route handlers.

Two ways to mark which handler parameters carry hashed IDs:

Modern, the ``hash_params`` decorator::

    @hash_params("id")
    def show(id: int): ...

    @hash_params(["id", "user_id"])
    def compare(id: int, user_id: int): ...

    @hash_params("id")
    @hash_params("user_id", hasher="secure")
    def transfer(id: int, user_id: int): ...

Legacy, a line in the docstring, always bound to the default hasher::

    def show(id):
        \"\"\"Show an order.

        @Hash("id")
        \"\"\"

    def compare(id, user_id):
        \"\"\"@Hash({"id", "user_id"})\"\"\"

``extract_modern`` and ``extract_legacy`` read one form each; the resolver
composes them with modern taking priority.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Literal

from hashroute.config import DEFAULT_HASHER, HASHER_NAME_PATTERN, MAX_HASHER_NAME_LENGTH
from hashroute.errors import InvalidParameter

logger = logging.getLogger("hashroute.resolver")

HASH_ATTRIBUTE = "__hashroute__"

MAX_PARAMETERS = 20
PARAM_NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]{0,99}")

MAX_DOCSTRING_LENGTH = 10_000
MAX_PARAM_STRING_LENGTH = 500
_LEGACY_MARKER = "@Hash("
_LEGACY_PATTERN = re.compile(r"@Hash\(([^)]{1,%d})\)" % MAX_PARAM_STRING_LENGTH)
_QUOTED = re.compile(r"""^(["'])([^"']*)\1$""")
_COLLECTION = re.compile(r"^[\[{](.*)[\]}]$")

type Source = Literal["modern", "legacy"]


def is_valid_parameter_name(name: object) -> bool:
    return isinstance(name, str) and PARAM_NAME_PATTERN.fullmatch(name) is not None


def _normalize_hasher(hasher: object) -> str:
    if not isinstance(hasher, str):
        raise InvalidParameter("Hasher name must be a string", parameter="hasher")
    hasher = hasher.strip()
    if not hasher:
        return DEFAULT_HASHER
    if len(hasher) > MAX_HASHER_NAME_LENGTH:
        raise InvalidParameter(
            f"Hasher name too long (max {MAX_HASHER_NAME_LENGTH} characters)",
            parameter="hasher",
        )
    if not HASHER_NAME_PATTERN.match(hasher):
        raise InvalidParameter(
            f"Invalid hasher name {hasher!r}. Hasher names can only contain letters, "
            "numbers, underscores, hyphens, and dots.",
            parameter="hasher",
        )
    return hasher


@dataclass(frozen=True, slots=True)
class HashConfiguration:
    """Parameter names hashed with one hasher. Immutable.

    Names are validated, and duplicates dropped keeping first occurrence.
    Raises ``InvalidParameter`` for a malformed name or hasher name.
    """

    parameters: tuple[str, ...] = ()
    hasher: str = DEFAULT_HASHER

    def __post_init__(self) -> None:
        params = self.parameters
        if isinstance(params, str):
            params = (params,)
        seen: dict[str, None] = {}
        for name in params:
            if not isinstance(name, str):
                raise InvalidParameter(
                    f"Parameter must be a string, got {type(name).__name__}",
                    parameter=repr(name),
                )
            if not is_valid_parameter_name(name):
                raise InvalidParameter(
                    f"Invalid parameter name {name!r}", parameter=name
                )
            seen.setdefault(name, None)
        if len(seen) > MAX_PARAMETERS:
            raise InvalidParameter(
                f"Too many parameters specified (max {MAX_PARAMETERS}, got {len(seen)})",
                parameter="parameters",
            )
        object.__setattr__(self, "parameters", tuple(seen))
        object.__setattr__(self, "hasher", _normalize_hasher(self.hasher))

    @classmethod
    def of(cls, parameters: str | Iterable[str], hasher: str = DEFAULT_HASHER) -> HashConfiguration:
        """Build from a single name or an iterable of names."""
        if isinstance(parameters, str):
            return cls((parameters,), hasher)
        if not isinstance(parameters, Iterable):
            raise InvalidParameter(
                f"Parameters must be a name or a list of names, got {type(parameters).__name__}",
                parameter="parameters",
            )
        return cls(tuple(parameters), hasher)

    def has_parameters(self) -> bool:
        return bool(self.parameters)

    def has_parameter(self, name: str) -> bool:
        return name in self.parameters


@dataclass(frozen=True, slots=True)
class HandlerHashing:
    """The resolved hash declaration of one handler.

    ``configurations`` holds one entry per distinct hasher, in declaration
    order. ``duplicate`` is True when the handler carries both forms; the
    modern form wins.
    """

    configurations: tuple[HashConfiguration, ...]
    source: Source = "modern"
    duplicate: bool = False

    @property
    def parameters(self) -> tuple[str, ...]:
        return tuple(name for config in self.configurations for name in config.parameters)

    @property
    def hashers(self) -> tuple[str, ...]:
        return tuple(config.hasher for config in self.configurations)

    def has_parameters(self) -> bool:
        return any(config.parameters for config in self.configurations)


def hash_params[F: Callable[..., Any]](
    parameters: str | Iterable[str],
    *,
    hasher: str = DEFAULT_HASHER,
) -> Callable[[F], F]:
    """Mark handler parameters whose values are hashed in URLs.

    Repeatable. A parameter may only be bound to one hasher per handler,
    and one hasher to at most ``MAX_PARAMETERS`` names. Raises
    ``InvalidParameter`` at decoration time when either is violated or a
    name is malformed.
    """
    config = HashConfiguration.of(parameters, hasher)

    def decorator(func: F) -> F:
        existing: tuple[HashConfiguration, ...] = getattr(func, HASH_ATTRIBUTE, ())
        for other in existing:
            if other.hasher == config.hasher:
                continue
            clash = set(other.parameters) & set(config.parameters)
            if clash:
                name = sorted(clash)[0]
                raise InvalidParameter(
                    f"Parameter {name!r} is bound to hashers {other.hasher!r} "
                    f"and {config.hasher!r}",
                    parameter=name,
                )
        same_hasher = dict.fromkeys(
            name
            for other in (config, *existing)
            if other.hasher == config.hasher
            for name in other.parameters
        )
        if len(same_hasher) > MAX_PARAMETERS:
            raise InvalidParameter(
                f"Too many parameters specified for hasher {config.hasher!r} "
                f"(max {MAX_PARAMETERS}, got {len(same_hasher)})",
                parameter="parameters",
            )
        # Decorators apply bottom-up; prepend to keep source order
        setattr(func, HASH_ATTRIBUTE, (config, *existing))
        return func

    return decorator


def has_modern_declaration(func: Any) -> bool:
    return bool(getattr(func, HASH_ATTRIBUTE, ()))


def has_legacy_declaration(func: Any) -> bool:
    """True when the docstring holds a parseable ``@Hash(...)`` declaration."""
    return extract_legacy(func) is not None


def extract_modern(func: Any) -> HandlerHashing | None:
    """Read ``hash_params`` declarations, merged per hasher."""
    declared: tuple[HashConfiguration, ...] = getattr(func, HASH_ATTRIBUTE, ())
    if not declared:
        return None

    by_hasher: dict[str, list[str]] = {}
    for config in declared:
        by_hasher.setdefault(config.hasher, []).extend(config.parameters)
    return HandlerHashing(
        configurations=tuple(
            HashConfiguration(tuple(names), hasher) for hasher, names in by_hasher.items()
        ),
        source="modern",
    )


def extract_legacy(func: Any) -> HandlerHashing | None:
    """Parse an ``@Hash(...)`` docstring declaration.

    Entries that aren't quoted, valid names are dropped; the valid subset
    is kept. Returns ``None`` when there is no usable declaration.
    """
    doc = getattr(func, "__doc__", None)
    if not isinstance(doc, str) or not doc:
        return None
    if len(doc) > MAX_DOCSTRING_LENGTH:
        logger.warning(
            "Ignoring @Hash docstring on %s: exceeds %d characters",
            _describe(func),
            MAX_DOCSTRING_LENGTH,
        )
        return None
    if _LEGACY_MARKER not in doc:
        return None

    match = _LEGACY_PATTERN.search(" ".join(doc.split()))
    if match is None:
        logger.warning("Ignoring malformed @Hash docstring on %s", _describe(func))
        return None

    items = _split_legacy_arguments(match.group(1).strip())
    if items is None:
        logger.warning("Ignoring malformed @Hash docstring on %s", _describe(func))
        return None
    if len(items) > MAX_PARAMETERS:
        logger.warning(
            "Ignoring @Hash docstring on %s: more than %d parameters",
            _describe(func),
            MAX_PARAMETERS,
        )
        return None

    names: list[str] = []
    for item in items:
        quoted = _QUOTED.match(item.strip())
        if quoted is None or not is_valid_parameter_name(quoted.group(2)):
            logger.debug("Dropping @Hash entry %r on %s", item, _describe(func))
            continue
        names.append(quoted.group(2))

    return HandlerHashing(configurations=(HashConfiguration(tuple(names)),), source="legacy")


def _split_legacy_arguments(args: str) -> list[str] | None:
    if _QUOTED.match(args):
        return [args]
    collection = _COLLECTION.match(args)
    if collection is None:
        return None
    inner = collection.group(1).strip()
    if not inner:
        return []
    return inner.split(",")


def _describe(func: Any) -> str:
    module = getattr(func, "__module__", None) or "?"
    qualname = getattr(func, "__qualname__", None) or repr(func)
    return f"{module}.{qualname}"
