"""Named hasher registry.

Holds the configured hashers and materializes one ``HashidsConverter``
per name on first use. Once built, a name's converter is never replaced.

Free-threading safety:
    - First access to a name takes a Lock and re-checks the cache, so
      concurrent first callers construct exactly one converter.
    - Later lookups read the dict without locking; converters are
      immutable after construction.
"""

import logging
import threading
from collections.abc import Mapping
from typing import Any

from hashroute.config import HasherConfig, HashIdConfig, validate_hasher_name
from hashroute.converter import HashidsConverter
from hashroute.errors import ConfigurationError, HasherNotFound

logger = logging.getLogger("hashroute.registry")


class HasherRegistry:
    """Mapping of hasher name to converter, built lazily from configuration.

    Usage::

        registry = HasherRegistry(HashIdConfig.from_mapping({
            "default": {"salt": "s", "min_length": 8},
            "secure": {"salt": "other", "min_length": 20},
        }))
        registry.get_converter("secure").encode(42)
    """

    __slots__ = ("_configs", "_converters", "_default", "_lock")

    def __init__(self, config: HashIdConfig | None = None) -> None:
        config = config or HashIdConfig()
        self._configs: dict[str, HasherConfig] = dict(config.hashers)
        self._default: str = config.default_hasher
        self._converters: dict[str, HashidsConverter] = {}
        self._lock = threading.Lock()

    @property
    def default_name(self) -> str:
        return self._default

    def register_hasher(self, name: str, settings: HasherConfig | Mapping[str, Any]) -> None:
        """Add a hasher configuration.

        Raises ``ConfigurationError`` for invalid settings, or when *name*
        already has a materialized converter.
        """
        validate_hasher_name(name)
        if not isinstance(settings, HasherConfig):
            settings = HasherConfig.from_mapping(settings)
        with self._lock:
            if name in self._converters:
                raise ConfigurationError(name, "Hasher is already in use and cannot be replaced")
            self._configs[name] = settings
        logger.debug("Registered hasher %r", name)

    def register_hashers(self, hashers: Mapping[str, HasherConfig | Mapping[str, Any]]) -> None:
        for name, settings in hashers.items():
            self.register_hasher(name, settings)

    def get_converter(self, name: str | None = None) -> HashidsConverter:
        """Return the converter for *name* (the default hasher when ``None``).

        Raises ``HasherNotFound`` for unknown names.
        """
        key = self._default if name is None else name

        # Fast path: no lock once built
        converter = self._converters.get(key)
        if converter is not None:
            return converter

        with self._lock:
            converter = self._converters.get(key)
            if converter is not None:
                return converter
            config = self._configs.get(key)
            if config is None:
                raise HasherNotFound(key, tuple(self._configs))
            converter = HashidsConverter(config, name=key)
            self._converters[key] = converter

        logger.debug("Built converter for hasher %r", key)
        return converter

    def has_hasher(self, name: str) -> bool:
        return name in self._configs

    def hasher_names(self) -> list[str]:
        return list(self._configs)

    def get_hasher_config(self, name: str) -> HasherConfig | None:
        return self._configs.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._configs

    def __len__(self) -> int:
        return len(self._configs)
