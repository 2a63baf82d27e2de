from collections.abc import Mapping
from typing import Any, Callable, Iterable

from structa.result.structa_result import ErrorKind, Result
from structa.schema.field_type import FieldType
from structa.schema.record_schema import FieldDescriptor
from structa.typeutils.value_checks import (
    is_boolean, is_integer, is_number, is_string, mismatch_message
)

# A check returns None when the value passes, else the failure message.
_Check = Callable[[FieldDescriptor, Any], str | None]


def _check_bounds(descriptor: FieldDescriptor, value: Any) -> str | None:
    # Written as negated inclusive checks so NaN fails any configured bound.
    if descriptor.min_value is not None and not value >= descriptor.min_value:
        return "Value below min"
    if descriptor.max_value is not None and not value <= descriptor.max_value:
        return "Value above max"
    return None


def _check_int(descriptor: FieldDescriptor, value: Any) -> str | None:
    if not is_integer(value):
        return mismatch_message(int, value)
    return _check_bounds(descriptor, value)


def _check_float(descriptor: FieldDescriptor, value: Any) -> str | None:
    if not is_number(value):
        return mismatch_message((int, float), value)
    return _check_bounds(descriptor, value)


def _check_bool(descriptor: FieldDescriptor, value: Any) -> str | None:
    if not is_boolean(value):
        return mismatch_message(bool, value)
    return None


def _check_string(descriptor: FieldDescriptor, value: Any) -> str | None:
    if not is_string(value):
        return mismatch_message(str, value)

    length = len(value)
    if descriptor.min_length is not None and length < descriptor.min_length:
        return "String too short"
    if descriptor.max_length is not None and length > descriptor.max_length:
        return "String too long"
    if descriptor.allowed is not None and value not in descriptor.allowed:
        return "Invalid enum value"
    return None


def _check_object(descriptor: FieldDescriptor, value: Any) -> str | None:
    # Only the shape is checked here; the nested record validates its own fields.
    if not isinstance(value, Mapping):
        return mismatch_message(dict, value)
    return None


def _check_unknown(descriptor: FieldDescriptor, value: Any) -> str | None:
    if descriptor.has_constraints():
        return f"Cannot apply constraints to unsupported type {type(value).__name__}"
    return None


_CHECKS: dict[FieldType, _Check] = {
    FieldType.INT: _check_int,
    FieldType.FLOAT: _check_float,
    FieldType.BOOL: _check_bool,
    FieldType.STRING: _check_string,
    FieldType.OBJECT: _check_object,
    FieldType.UNKNOWN: _check_unknown,
}


def validate_field(descriptor: FieldDescriptor, tree: Mapping[str, Any]) -> Result[None]:
    """
    Validate a single field of `tree` against its descriptor.

    Args:
        descriptor (FieldDescriptor):
            The field to check.

        tree (Mapping[str, Any]):
            The value tree holding the field, keyed by field name.

    Returns:
        Result[None]:
            Success, or a failure located at the field name:
              - FIELD_MISSING if the field is required and absent.
              - TYPE_MISMATCH for a wrong shape, an out-of-range number,
                a bad string length or a value outside the allowed set.
    """
    if not descriptor.validate:
        return Result.success()

    if descriptor.name not in tree:
        if descriptor.required:
            return Result.failure(
                ErrorKind.FIELD_MISSING, "Required field missing", descriptor.name
            )
        return Result.success()

    message = _CHECKS[descriptor.field_type](descriptor, tree[descriptor.name])
    if message is not None:
        return Result.failure(ErrorKind.TYPE_MISMATCH, message, descriptor.name)
    return Result.success()


def validate_tree(schema: Iterable[FieldDescriptor], tree: Any) -> Result[None]:
    """
    Validate a value tree against a schema, stopping at the first failing field.

    Fields are checked in schema order, so the reported failure is always the
    first violation in declaration order. No coercion is attempted: a value of
    the wrong type fails even if it could be converted.

    Args:
        schema (Iterable[FieldDescriptor]):
            The record schema.

        tree (Any):
            The value tree, normally a dict parsed from text or built from a record.

    Returns:
        Result[None]:
            Success if every field passes, otherwise the first failure.
    """
    if not isinstance(tree, Mapping):
        return Result.failure(ErrorKind.TYPE_MISMATCH, mismatch_message(dict, tree))

    for descriptor in schema:
        result = validate_field(descriptor, tree)
        if not result:
            return result
    return Result.success()
