"""Path parameter patterns and type conversion.

Built-in converters for route path segments like ``{id:int}``.

Hashed IDs are text tokens, so routes whose parameters are declared with
``@hash_params`` should use the plain ``{id}`` (``str``) form; an ``int``
segment would reject the token.
"""


# (regex_pattern, python_type) for each supported converter
CONVERTERS: dict[str, tuple[str, type]] = {
    "str": (r"[^/]+", str),
    "int": (r"\d+", int),
    "float": (r"\d+(?:\.\d+)?", float),
    "path": (r".+", str),
}


def convert_param(value: str, param_type: str) -> str | int | float:
    """Convert a captured path parameter string to the target type.

    Raises ``ValueError`` if the string cannot be converted.
    Raises ``KeyError`` if *param_type* is not a registered converter.
    """
    _, target_type = CONVERTERS[param_type]
    return target_type(value)


def format_param(value: object) -> str:
    """Render a parameter value for a URL path segment or query string."""
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)
