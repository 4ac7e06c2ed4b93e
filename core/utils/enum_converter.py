"""
Enum conversion utilities.

Provides standardized methods for converting between enums and strings,
with support for case-insensitive and PascalCase parsing and fallback defaults.
"""

import re
from typing import Any, Type, TypeVar

T = TypeVar("T")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def normalize_enum_name(value: str) -> str:
    """
    Normalize an enum spelling to lowercase snake_case.

    Example:
        >>> normalize_enum_name("DarkToLight")
        'dark_to_light'
        >>> normalize_enum_name("BINARY-INV")
        'binary_inv'
    """
    value = _CAMEL_BOUNDARY.sub("_", value.strip())
    return value.replace("-", "_").replace(" ", "_").lower()


def parse_enum(value: Any, enum_class: Type[T], default: T, normalize: bool = False) -> T:
    """
    Parse value to enum with fallback to default.

    Args:
        value: Value to parse (string, enum, or None)
        enum_class: Enum class to parse to
        default: Default enum value if parsing fails
        normalize: Whether to normalize the string (case, PascalCase,
            separators) before parsing

    Returns:
        Parsed enum value or default

    Example:
        >>> parse_enum("LightToDark", EdgePolarity, EdgePolarity.ANY, normalize=True)
        >>> # Returns EdgePolarity.LIGHT_TO_DARK
    """
    if isinstance(value, enum_class):
        return value

    if value is None:
        return default

    try:
        str_value = normalize_enum_name(value) if normalize else value
        return enum_class(str_value)
    except (ValueError, AttributeError, TypeError):
        pass

    # Also accept member names ("LIGHT_TO_DARK")
    if isinstance(value, str):
        member = getattr(enum_class, "__members__", {}).get(normalize_enum_name(value).upper())
        if member is not None:
            return member
    return default

