from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional
import numpy as np
import pytest
from structa.schema.field_type import FieldType, is_record_type, resolve_field_type, unwrap_optional
from structa.serialization.structa_serialization import Structa, structa


class Level(IntEnum):
    LOW = 1
    HIGH = 2


@structa
@dataclass
class Point(Structa):
    x: int = 0
    y: int = 0


class DuckRecord:
    """Not a structa record, but exposes the same capabilities."""

    def to_value_tree(self): ...

    @classmethod
    def from_value_tree(cls, tree): ...

    def validate(self): ...

    @classmethod
    def schema(cls): ...


class PartialRecord:
    def to_value_tree(self): ...


@dataclass
class UndecoratedRecord(Structa):
    x: int = 0


@pytest.mark.parametrize("tp, expected", [
    (int, FieldType.INT),
    (np.int8, FieldType.INT),
    (np.uint32, FieldType.INT),
    (Level, FieldType.INT),
    (float, FieldType.FLOAT),
    (np.float32, FieldType.FLOAT),
    (bool, FieldType.BOOL),
    (np.bool_, FieldType.BOOL),
    (str, FieldType.STRING),
    (Point, FieldType.OBJECT),
    (DuckRecord, FieldType.OBJECT),
    (PartialRecord, FieldType.UNKNOWN),
    (UndecoratedRecord, FieldType.UNKNOWN),
    (list, FieldType.UNKNOWN),
    (list[int], FieldType.UNKNOWN),
    (bytes, FieldType.UNKNOWN),
])
def test_resolve(tp: type, expected: FieldType) -> None:
    assert resolve_field_type(tp) is expected


def test_resolve_unwraps_optional() -> None:
    assert resolve_field_type(int | None) is FieldType.INT
    assert resolve_field_type(Optional[str]) is FieldType.STRING
    assert resolve_field_type(None | Point) is FieldType.OBJECT


def test_non_optional_union_is_unknown() -> None:
    assert resolve_field_type(int | str) is FieldType.UNKNOWN


def test_unwrap_optional() -> None:
    assert unwrap_optional(int | None) == (int, True)
    assert unwrap_optional(Optional[float]) == (float, True)
    assert unwrap_optional(str) == (str, False)


def test_is_record_type_requires_a_class() -> None:
    assert is_record_type(Point)
    assert not is_record_type(Point())
    assert not is_record_type(PartialRecord)
