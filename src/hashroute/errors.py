"""hashroute exception hierarchy.

Shared across the registry, resolver, factory, decorator and router so
every module raises and catches the same types.

Hashing errors carry a ``HashIdError`` member describing the failure
category. The factory downgrades the recoverable ones to a no-op transform
during URL generation; explicit API calls let them propagate.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class HashIdError(Enum):
    """Categories of hashing failures."""

    INVALID_PARAMETER = "invalid_parameter"
    DECODING_FAILED = "decoding_failed"
    ENCODING_FAILED = "encoding_failed"
    HASHER_NOT_FOUND = "hasher_not_found"
    CONFIGURATION_ERROR = "configuration_error"
    INVALID_CONTROLLER = "invalid_controller"
    MISSING_CLASS_OR_METHOD = "missing_class_or_method"

    @property
    def message(self) -> str:
        return _MESSAGES[self]

    @property
    def status(self) -> int:
        """HTTP-like status code for the category."""
        if self in (
            HashIdError.INVALID_PARAMETER,
            HashIdError.DECODING_FAILED,
            HashIdError.INVALID_CONTROLLER,
        ):
            return 400
        if self in (HashIdError.HASHER_NOT_FOUND, HashIdError.MISSING_CLASS_OR_METHOD):
            return 404
        return 500

    @property
    def severity(self) -> str:
        """One of ``"warning"``, ``"error"``, ``"critical"``."""
        if self is HashIdError.CONFIGURATION_ERROR:
            return "critical"
        if self in (HashIdError.ENCODING_FAILED, HashIdError.MISSING_CLASS_OR_METHOD):
            return "error"
        return "warning"

    @property
    def recoverable(self) -> bool:
        """True when URL generation may fall back to a no-op transform."""
        return self in (
            HashIdError.DECODING_FAILED,
            HashIdError.HASHER_NOT_FOUND,
            HashIdError.INVALID_CONTROLLER,
            HashIdError.MISSING_CLASS_OR_METHOD,
        )


_MESSAGES: dict[HashIdError, str] = {
    HashIdError.INVALID_PARAMETER: "The provided parameter is invalid for hashing",
    HashIdError.DECODING_FAILED: "Failed to decode the hash value",
    HashIdError.ENCODING_FAILED: "Failed to encode the value",
    HashIdError.HASHER_NOT_FOUND: "The specified hasher configuration was not found",
    HashIdError.CONFIGURATION_ERROR: "Invalid hasher configuration",
    HashIdError.INVALID_CONTROLLER: "Invalid handler reference",
    HashIdError.MISSING_CLASS_OR_METHOD: "The specified class or method does not exist",
}


class HashRouteError(Exception):
    """Base for all hashroute-specific errors."""


class HashIdException(HashRouteError):
    """A hashing failure tagged with its ``HashIdError`` category.

    Subclasses fix the category; ``context`` holds structured details
    (parameter name, hasher name, offending value) for logging.
    """

    error: HashIdError = HashIdError.CONFIGURATION_ERROR

    def __init__(self, message: str = "", **context: Any) -> None:
        self.context: dict[str, Any] = context
        super().__init__(message or self.error.message)

    @property
    def status(self) -> int:
        return self.error.status

    @property
    def recoverable(self) -> bool:
        return self.error.recoverable


class InvalidParameter(HashIdException):
    """A parameter name or hasher name in a declaration is malformed.

    Raised when a ``HashConfiguration`` is built, so bad declarations fail
    at import time rather than on the first request.
    """

    error = HashIdError.INVALID_PARAMETER


class DecodingFailed(HashIdException):
    """A token could not be decoded.

    ``HashidsConverter.decode`` never raises this; it passes unknown tokens
    through. Callers that want a hard failure raise it themselves.
    """

    error = HashIdError.DECODING_FAILED


class EncodingFailed(HashIdException):
    """The hashing algorithm cannot represent the value (negative, non-numeric)."""

    error = HashIdError.ENCODING_FAILED


class HasherNotFound(HashIdException):  # noqa: N818
    """No hasher is registered under the requested name."""

    error = HashIdError.HASHER_NOT_FOUND

    def __init__(self, name: str, available: list[str] | tuple[str, ...] = ()) -> None:
        if available:
            message = f"Hasher {name!r} not found. Available hashers: {', '.join(available)}"
        else:
            message = f"Hasher {name!r} not found. No hashers are configured."
        super().__init__(message, hasher=name, available=tuple(available))


class ConfigurationError(HashIdException):
    """Hasher settings are invalid.

    Raised while building ``HasherConfig`` / ``HashIdConfig`` or registering
    hashers, typically at startup.
    """

    error = HashIdError.CONFIGURATION_ERROR

    def __init__(self, key: str, issue: str) -> None:
        super().__init__(f"Configuration error for {key!r}: {issue}", config_key=key, issue=issue)


class InvalidController(HashIdException):
    """A handler reference is not a callable or a well-formed string."""

    error = HashIdError.INVALID_CONTROLLER

    def __init__(self, handler: str, reason: str = "") -> None:
        message = f"Invalid handler {handler!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, handler=handler, reason=reason)


class MissingClassOrMethod(HashIdException):
    """A string handler reference names a module, class or method that doesn't exist."""

    error = HashIdError.MISSING_CLASS_OR_METHOD

    def __init__(self, target: str, member: str) -> None:
        super().__init__(
            f"Cannot resolve {member!r} on {target!r}",
            target=target,
            member=member,
        )


# -- Routing --


@dataclass(frozen=True, slots=True)
class HTTPError(HashRouteError):
    """An error that maps directly to an HTTP status code.

    Raised by ``Router.match()`` when no route accepts the request.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )


class RoutingError(HashRouteError):
    """A route path is malformed or a route cannot produce a URL."""


class RouteNotFound(RoutingError):  # noqa: N818
    """No route is registered under the requested name."""


class MissingParameters(RoutingError):  # noqa: N818
    """Required path parameters were not supplied and have no default."""


class InvalidRouteParameter(RoutingError):
    """A path parameter value doesn't satisfy its converter pattern."""
