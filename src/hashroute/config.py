"""Hasher configuration.

HasherConfig and HashIdConfig are frozen dataclasses; immutable after
creation, validated on construction, no string-key dict lookups at
runtime. Loading them from files is the host application's job; the
``from_mapping`` constructors accept the already-parsed mapping.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from hashroute.errors import ConfigurationError

DEFAULT_HASHER = "default"
DEFAULT_SALT = ""
DEFAULT_MIN_LENGTH = 10
DEFAULT_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ1234567890"

MAX_LENGTH = 255
MIN_ALPHABET_LENGTH = 16
MAX_HASHER_NAME_LENGTH = 50
HASHER_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\-.]+$")

# %env(NAME)% or %env(int:NAME)%
_ENV_PLACEHOLDER = re.compile(r"^%env\(([^)]+)\)%$")


@dataclass(frozen=True, slots=True)
class HasherConfig:
    """Settings for one named hasher. Immutable after creation.

    Usage::

        HasherConfig(salt="s3cr3t", min_length=8)
    """

    salt: str = DEFAULT_SALT
    min_length: int = DEFAULT_MIN_LENGTH
    alphabet: str = DEFAULT_ALPHABET

    def __post_init__(self) -> None:
        if not isinstance(self.salt, str):
            raise ConfigurationError("salt", "Must be a string")

        if isinstance(self.min_length, bool) or not isinstance(self.min_length, int):
            raise ConfigurationError("min_length", "Must be a non-negative integer")
        if self.min_length < 0:
            raise ConfigurationError("min_length", "Must be a non-negative integer")
        if self.min_length > MAX_LENGTH:
            raise ConfigurationError("min_length", f"Cannot exceed {MAX_LENGTH}")

        if not isinstance(self.alphabet, str):
            raise ConfigurationError("alphabet", "Must be a string")
        if any(ch.isspace() for ch in self.alphabet):
            raise ConfigurationError("alphabet", "Must not contain whitespace")
        unique = len(set(self.alphabet))
        if unique != len(self.alphabet):
            raise ConfigurationError("alphabet", "Must contain only unique characters")
        if unique < MIN_ALPHABET_LENGTH:
            raise ConfigurationError(
                "alphabet",
                f"Must contain at least {MIN_ALPHABET_LENGTH} unique characters, got {unique}",
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> HasherConfig:
        """Build from a settings mapping.

        Accepts ``salt``, ``min_length`` (or ``min_hash_length``) and
        ``alphabet``. Missing keys keep their defaults. String values of the
        form ``%env(NAME)%`` / ``%env(int:NAME)%`` resolve from the
        environment.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError("hasher", "Settings must be a mapping")

        known = {"salt", "min_length", "min_hash_length", "alphabet"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(unknown[0], "Unknown setting")

        resolved = {key: resolve_env_placeholder(value) for key, value in data.items()}
        kwargs: dict[str, Any] = {}
        if "salt" in resolved:
            kwargs["salt"] = resolved["salt"]
        if "min_length" in resolved:
            kwargs["min_length"] = resolved["min_length"]
        elif "min_hash_length" in resolved:
            kwargs["min_length"] = resolved["min_hash_length"]
        if "alphabet" in resolved:
            kwargs["alphabet"] = resolved["alphabet"]
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {"salt": self.salt, "min_length": self.min_length, "alphabet": self.alphabet}


@dataclass(frozen=True, slots=True)
class HashIdConfig:
    """All named hashers plus the name used when none is specified.

    A ``default`` hasher always exists: when *hashers* omits it, the
    built-in ``HasherConfig()`` is used.
    """

    hashers: Mapping[str, HasherConfig] = field(default_factory=dict)
    default_hasher: str = DEFAULT_HASHER

    def __post_init__(self) -> None:
        hashers = dict(self.hashers)
        for name, settings in hashers.items():
            validate_hasher_name(name)
            if not isinstance(settings, HasherConfig):
                raise ConfigurationError(name, "Expected a HasherConfig instance")
        hashers.setdefault(DEFAULT_HASHER, HasherConfig())
        if self.default_hasher not in hashers:
            raise ConfigurationError(
                "default_hasher", f"{self.default_hasher!r} is not a configured hasher"
            )
        object.__setattr__(self, "hashers", MappingProxyType(hashers))

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Mapping[str, Any]],
        *,
        default_hasher: str = DEFAULT_HASHER,
    ) -> HashIdConfig:
        """Build from ``{hasher_name: {salt, min_length, alphabet}}``."""
        if not isinstance(data, Mapping):
            raise ConfigurationError("hashers", "Must be a mapping of hasher name to settings")
        hashers = {}
        for name, settings in data.items():
            validate_hasher_name(name)
            hashers[name] = HasherConfig.from_mapping(settings)
        return cls(hashers=hashers, default_hasher=default_hasher)


def validate_hasher_name(name: object) -> str:
    """Return *name* if it is a valid hasher name, else raise ``ConfigurationError``."""
    if not isinstance(name, str) or not name:
        raise ConfigurationError("hasher_name", "Hasher name cannot be empty")
    if len(name) > MAX_HASHER_NAME_LENGTH:
        raise ConfigurationError(
            "hasher_name", f"Name too long (max {MAX_HASHER_NAME_LENGTH} characters)"
        )
    if not HASHER_NAME_PATTERN.match(name):
        raise ConfigurationError(
            "hasher_name",
            f"Invalid name {name!r}. Names can only contain letters, numbers, "
            "underscores, hyphens, and dots.",
        )
    return name


def resolve_env_placeholder(value: Any) -> Any:
    """Resolve ``%env(NAME)%`` / ``%env(type:NAME)%`` from ``os.environ``.

    Untyped placeholders whose variable is unset are returned unchanged.
    Typed placeholders with an unset variable raise ``ConfigurationError``.
    """
    if not isinstance(value, str):
        return value
    match = _ENV_PLACEHOLDER.match(value)
    if match is None:
        return value

    ref = match.group(1)
    if ":" not in ref:
        return os.environ.get(ref, value)

    cast, _, var = ref.partition(":")
    raw = os.environ.get(var)
    if raw is None:
        raise ConfigurationError(var, "Environment variable is not set")
    return _cast_env(var, raw, cast)


def _cast_env(var: str, raw: str, cast: str) -> Any:
    if cast == "int":
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(var, f"Cannot cast {raw!r} to int") from None
    if cast == "float":
        try:
            return float(raw)
        except ValueError:
            raise ConfigurationError(var, f"Cannot cast {raw!r} to float") from None
    if cast == "bool":
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if cast == "string":
        return raw
    raise ConfigurationError(var, f"Unknown environment cast {cast!r}")
