"""Hash declaration resolution with memoization.

Given a handler (a function, a bound method, or a string reference), the
resolver returns its ``HandlerHashing`` by trying, in order:

1. the modern ``@hash_params`` declaration,
2. the legacy ``@Hash(...)`` docstring declaration.

When both are present the modern one wins and the result is flagged as a
duplicate. Results are cached per ``(module, qualname)`` of the underlying
function (plus the function itself for closures and lambdas), so each
handler is parsed once per process.

String references::

    "shop.views:OrderView.show"      # module:qualified.name
    "shop.views.OrderView::show"     # dotted.Class::method
    "shop.views:show_order"          # module:function

Free-threading safety:
    ``ConfigurationCache`` takes a Lock and re-checks on a miss, so each
    handler is resolved at most once even under concurrent first access.
    Hits read the dict without locking.
"""

import dataclasses
import functools
import importlib
import inspect
import logging
import os
import re
import threading
import warnings
from collections.abc import Callable
from typing import Any

from hashroute.declaration import (
    HandlerHashing,
    extract_legacy,
    extract_modern,
    has_legacy_declaration,
    has_modern_declaration,
)
from hashroute.errors import InvalidController, MissingClassOrMethod

logger = logging.getLogger("hashroute.resolver")

type HandlerRef = Callable[..., Any] | str
type CacheKey = tuple[str, str] | tuple[str, str, Any]

_COLON_REF = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*:[A-Za-z_][A-Za-z0-9_.]*$")
_DOUBLE_COLON_REF = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*::[A-Za-z_][A-Za-z0-9_]*$")

_MISSING = object()

# Deprecation warnings point at the first frame outside this package
_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__)) + os.sep


class ConfigurationCache:
    """Handler identity -> resolved declaration (or ``None``).

    Lives for the process by default (see ``default_cache``); tests create
    their own instance and pass it to the resolver.
    """

    __slots__ = ("_entries", "_lock")

    def __init__(self) -> None:
        self._entries: dict[CacheKey, HandlerHashing | None] = {}
        self._lock = threading.Lock()

    def get_or_compute(
        self,
        key: CacheKey,
        compute: Callable[[], HandlerHashing | None],
    ) -> HandlerHashing | None:
        value = self._entries.get(key, _MISSING)
        if value is not _MISSING:
            return value  # type: ignore[return-value]

        with self._lock:
            value = self._entries.get(key, _MISSING)
            if value is not _MISSING:
                return value  # type: ignore[return-value]
            result = compute()
            self._entries[key] = result
            return result

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


default_cache = ConfigurationCache()


class ConfigurationResolver:
    """Resolve and memoize handler hash declarations.

    Usage::

        resolver = ConfigurationResolver(ConfigurationCache())
        hashing = resolver.resolve(OrderView.show)
        hashing.parameters  # ("id",)
    """

    __slots__ = ("_cache", "deprecation_warnings")

    def __init__(
        self,
        cache: ConfigurationCache | None = None,
        *,
        deprecation_warnings: bool = True,
    ) -> None:
        self._cache = default_cache if cache is None else cache
        self.deprecation_warnings = deprecation_warnings

    @property
    def cache(self) -> ConfigurationCache:
        return self._cache

    def resolve(self, handler: HandlerRef) -> HandlerHashing | None:
        """Return the handler's declaration, or ``None`` if it has none.

        Raises ``InvalidController`` for malformed references and
        ``MissingClassOrMethod`` for references that don't resolve.
        """
        func = resolve_handler(handler)
        key = handler_key(func)
        return self._cache.get_or_compute(key, lambda: self._extract(func))

    def has_duplicate_configuration(self, handler: HandlerRef) -> bool:
        resolved = self.resolve(handler)
        return resolved is not None and resolved.duplicate

    def compatibility_report(self, cls: type) -> dict[str, Any]:
        """Summarize which methods of *cls* use which declaration form."""
        if not inspect.isclass(cls):
            raise InvalidController(repr(cls), "Expected a class")

        report: dict[str, Any] = {
            "class": f"{cls.__module__}.{cls.__qualname__}",
            "methods": {},
            "uses_legacy": False,
            "uses_modern": False,
            "has_duplicates": False,
        }
        for name, member in inspect.getmembers(cls, inspect.isfunction):
            modern = has_modern_declaration(member)
            legacy = has_legacy_declaration(member)
            if not (modern or legacy):
                continue
            report["methods"][name] = {
                "uses_legacy": legacy,
                "uses_modern": modern,
                "is_duplicate": modern and legacy,
            }
            report["uses_legacy"] = report["uses_legacy"] or legacy
            report["uses_modern"] = report["uses_modern"] or modern
            report["has_duplicates"] = report["has_duplicates"] or (modern and legacy)
        return report

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_size(self) -> int:
        return self._cache.size()

    def _extract(self, func: Any) -> HandlerHashing | None:
        modern = extract_modern(func)
        if modern is not None:
            if has_legacy_declaration(func):
                logger.debug(
                    "%s has both @hash_params and @Hash declarations; using @hash_params",
                    _describe(func),
                )
                return dataclasses.replace(modern, duplicate=True)
            return modern

        legacy = extract_legacy(func)
        if legacy is not None and self.deprecation_warnings:
            warnings.warn(
                f"@Hash docstring declaration on {_describe(func)} is deprecated; "
                "use the @hash_params decorator",
                DeprecationWarning,
                skip_file_prefixes=(_PACKAGE_DIR,),
            )
        return legacy


def resolve_handler(handler: HandlerRef) -> Any:
    """Turn a handler reference into the object that carries its declarations.

    Bound methods resolve to their function, ``functools.partial`` to the
    wrapped callable, and callable instances to their class's ``__call__``.
    """
    if isinstance(handler, str):
        return resolve_handler(import_reference(handler))

    if isinstance(handler, functools.partial):
        return resolve_handler(handler.func)

    func = getattr(handler, "__func__", handler)
    if inspect.isfunction(func) or inspect.isclass(func) or inspect.isbuiltin(func):
        return func
    if callable(func):
        return type(func).__call__
    raise InvalidController(repr(handler), "Handler is not callable")


def handler_key(func: Any) -> CacheKey:
    """Cache key for *func*.

    Closures and lambdas share a qualname across every function object
    created from them, so they are keyed by the object as well.
    """
    module = getattr(func, "__module__", None) or ""
    qualname = getattr(func, "__qualname__", None) or repr(func)
    if "<locals>" in qualname or "<lambda>" in qualname:
        return module, qualname, func
    return module, qualname


def import_reference(ref: str) -> Any:
    """Import the callable a string handler reference points to.

    Raises ``InvalidController`` or ``MissingClassOrMethod``.
    """
    if any(ch in ref for ch in ("\x00", "\r", "\n")):
        raise InvalidController(
            ref, 'Contains illegal characters. Expected format: "module:Class.method"'
        )

    if _DOUBLE_COLON_REF.match(ref):
        target, _, method = ref.partition("::")
        module_name, _, class_name = target.rpartition(".")
        if not module_name:
            raise InvalidController(ref, 'Expected format: "module.Class::method"')
        path = [class_name, method]
    elif _COLON_REF.match(ref):
        module_name, _, qualname = ref.partition(":")
        path = qualname.split(".")
        if not all(path):
            raise InvalidController(ref, 'Expected format: "module:Class.method"')
    else:
        raise InvalidController(ref, 'Expected format: "module:Class.method"')

    try:
        obj: Any = importlib.import_module(module_name)
    except (ImportError, ValueError) as exc:
        raise MissingClassOrMethod(module_name, ".".join(path)) from exc

    owner = module_name
    for part in path:
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise MissingClassOrMethod(owner, part) from exc
        owner = f"{owner}.{part}"

    if not callable(obj):
        raise InvalidController(ref, "Reference does not point to a callable")
    return obj


def _describe(func: Any) -> str:
    module, qualname = handler_key(func)[:2]
    return f"{module}.{qualname}"
