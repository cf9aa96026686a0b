"""Reversible integer <-> token conversion.

A converter owns one ``hashids.Hashids`` instance keyed by
(salt, min_length, alphabet). Converters are immutable and shared by
every caller for the lifetime of the process.

Decoding is lenient: a token that doesn't decode comes back unchanged,
so hand-edited or foreign URLs degrade to a harmless pass-through value
that downstream type checks reject.
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from hashids import Hashids

from hashroute.config import HasherConfig
from hashroute.errors import EncodingFailed


@runtime_checkable
class Converter(Protocol):
    """Anything that can reversibly encode route parameter values."""

    def encode(self, value: Any) -> str: ...

    def decode(self, value: Any) -> Any: ...


class HashidsConverter:
    """Converter backed by the ``hashids`` algorithm.

    Usage::

        converter = HashidsConverter(HasherConfig(salt="s", min_length=8))
        token = converter.encode(123)
        converter.decode(token)  # 123
    """

    __slots__ = ("_hashids", "config", "name")

    def __init__(self, config: HasherConfig | None = None, *, name: str = "default") -> None:
        self.config = config or HasherConfig()
        self.name = name
        self._hashids = Hashids(
            salt=self.config.salt,
            min_length=self.config.min_length,
            alphabet=self.config.alphabet,
        )

    def encode(self, value: Any) -> str:
        """Encode one integer, or a short sequence of integers into one token.

        Digit-only strings are accepted (route parameters often arrive as
        text). Raises ``EncodingFailed`` for anything the algorithm cannot
        represent.
        """
        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
            numbers = (self._to_number(value),)
        else:
            numbers = tuple(self._to_number(item) for item in value)
            if not numbers:
                raise EncodingFailed("Cannot encode an empty sequence", hasher=self.name)

        token = self._hashids.encode(*numbers)
        if not token:
            raise EncodingFailed(
                f"Failed to encode value {value!r} using hasher {self.name!r}",
                value=value,
                hasher=self.name,
            )
        return token

    def decode(self, value: Any) -> Any:
        """Return the first integer in *value*, or *value* itself if it doesn't decode."""
        numbers = self.decode_all(value)
        if not numbers:
            return value
        return numbers[0]

    def decode_all(self, value: Any) -> tuple[int, ...]:
        """Return every integer in a composite token; empty tuple if it doesn't decode."""
        if not isinstance(value, str) or not value:
            return ()
        return tuple(self._hashids.decode(value))

    def _to_number(self, value: Any) -> int:
        if isinstance(value, bool):
            raise EncodingFailed(
                f"Cannot encode boolean {value!r}", value=value, hasher=self.name
            )
        if isinstance(value, int):
            if value < 0:
                raise EncodingFailed(
                    f"Cannot encode negative value {value!r}", value=value, hasher=self.name
                )
            return value
        if isinstance(value, str) and value.isascii() and value.isdigit():
            return int(value)
        raise EncodingFailed(
            f"Failed to encode value {value!r} using hasher {self.name!r}",
            value=value,
            hasher=self.name,
        )

    def __repr__(self) -> str:
        return f"HashidsConverter(name={self.name!r}, min_length={self.config.min_length})"
