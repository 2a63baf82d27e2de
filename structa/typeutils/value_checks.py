from typing import Any, Type, Tuple
import numpy as np

_BOOL_TYPES = (bool, np.bool_)
_INT_TYPES = (int, np.integer)
_NUMBER_TYPES = (int, float, np.integer, np.floating)


def format_type_name(tp: Type[Any] | Tuple[Type[Any], ...]) -> str:
    """
    Helper to format type names nicely for error messages.
    """
    if isinstance(tp, tuple):
        return ", ".join(t.__name__ for t in tp)
    return tp.__name__


def is_boolean(value: object) -> bool:
    return isinstance(value, _BOOL_TYPES)


def is_integer(value: object) -> bool:
    """
    Shallow check for an integral value.

    `bool` is rejected even though it subclasses `int`. NumPy integer scalars
    are accepted.
    """
    return isinstance(value, _INT_TYPES) and not is_boolean(value)


def is_number(value: object) -> bool:
    """
    Shallow check for an integral or floating-point value, excluding booleans.
    """
    return isinstance(value, _NUMBER_TYPES) and not is_boolean(value)


def is_string(value: object) -> bool:
    return isinstance(value, str)


def mismatch_message(expected: Type[Any] | Tuple[Type[Any], ...], value: object) -> str:
    """
    Build the message used when a value does not have the expected shape.

    Example:
        >>> mismatch_message(int, "x")
        'Expected int, got str'

        >>> mismatch_message((int, float), None)
        'Expected int, float, got NoneType'
    """
    return f"Expected {format_type_name(expected)}, got {type(value).__name__}"


def to_builtin(value: Any) -> Any:
    """
    Convert a NumPy scalar to the equivalent Python scalar; other values pass through.
    """
    if isinstance(value, np.generic):
        return value.item()
    return value
