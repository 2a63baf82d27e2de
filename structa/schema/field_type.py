from __future__ import annotations
from enum import Enum
import functools
from types import UnionType
from typing import Any, Mapping, Protocol, Self, Tuple, Type, Union, get_args, get_origin, runtime_checkable
import numpy as np

from structa.result.structa_result import Result


class FieldType(Enum):
    """
    Semantic type tag of a declared field, used by the validation engine to pick its checks.
    """

    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"
    OBJECT = "object"
    UNKNOWN = "unknown"


@runtime_checkable
class StructaSerializable(Protocol):
    """
    Capability set shared by every record type.

    A declared field whose type exposes these members is treated as a nested
    record and handled by recursing into the type's own methods.
    """

    def to_value_tree(self) -> Result[dict[str, Any]]: ...

    @classmethod
    def from_value_tree(cls, tree: Mapping[str, Any]) -> Result[Self]: ...

    def validate(self) -> Result[None]: ...

    @classmethod
    def schema(cls) -> Any: ...


_RECORD_CAPABILITIES = ("to_value_tree", "from_value_tree", "validate", "schema")


def is_record_type(tp: Any) -> bool:
    """
    Structural check: True if `tp` is a class exposing the record capability set.

    Subclasses of the `Structa` base that were never decorated with `@structa`
    only carry its placeholder methods and are not records.
    """
    if not isinstance(tp, type) or getattr(tp, "_structa_interface_only", False):
        return False
    return all(callable(getattr(tp, name, None)) for name in _RECORD_CAPABILITIES)


def unwrap_optional(tp: Any) -> Tuple[Any, bool]:
    """
    Strip an `Optional[X]` / `X | None` wrapper.

    Args:
        tp (Any):
            The declared type.

    Returns:
        Tuple[Any, bool]:
            - The inner type (or `tp` unchanged if not optional).
            - Whether the wrapper was present.
    """
    if get_origin(tp) in (Union, UnionType):
        args = get_args(tp)
        if len(args) == 2 and type(None) in args:
            return (args[0] if args[1] is type(None) else args[1]), True
    return tp, False


@functools.lru_cache(maxsize=None)
def resolve_field_type(declared_type: Type[Any] | Any) -> FieldType:
    """
    Map a declared field type to its semantic tag.

    - `bool`, `numpy.bool_` -> BOOL (checked before integers since `bool` subclasses `int`)
    - `int`, `numpy.integer` subclasses -> INT
    - `float`, `numpy.floating` subclasses -> FLOAT
    - `str` -> STRING
    - any class exposing the record capability set -> OBJECT
    - anything else -> UNKNOWN

    Optional wrappers are unwrapped before mapping.

    Args:
        declared_type (Type[Any] | Any):
            The annotation or class declared for the field.

    Returns:
        FieldType:
            The resolved tag.
    """
    tp, _ = unwrap_optional(declared_type)

    # parametrized generics such as list[int] are not plain classes
    if get_origin(tp) is not None or not isinstance(tp, type):
        return FieldType.UNKNOWN

    if issubclass(tp, (bool, np.bool_)):
        return FieldType.BOOL
    if issubclass(tp, (int, np.integer)):
        return FieldType.INT
    if issubclass(tp, (float, np.floating)):
        return FieldType.FLOAT
    if issubclass(tp, str):
        return FieldType.STRING
    if is_record_type(tp):
        return FieldType.OBJECT
    return FieldType.UNKNOWN
