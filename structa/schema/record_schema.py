from __future__ import annotations
from collections.abc import Sequence
from dataclasses import dataclass, fields, is_dataclass
import logging
import threading
from typing import Any, Iterable, Iterator, Mapping, Tuple, get_type_hints, overload

from structa.schema.field_meta import META_KEYS
from structa.schema.field_type import FieldType, resolve_field_type, unwrap_optional

logger = logging.getLogger(__name__)

SchemaEntry = Tuple[Any, str, Mapping[str, Any]]

_SCHEMA_ATTR = "_structa_schema"
_schema_lock = threading.Lock()


class SchemaDefinitionError(ValueError):
    """
    Raised when a record declaration is malformed (duplicate names, bad metadata).

    This is a definition-time error, never a validation result.
    """


@dataclass(frozen=True)
class FieldDescriptor:
    """
    Immutable description of one declared field.

    Attributes:
        name (str):
            Field name, unique within its schema. Also the key used in the value tree.

        field_type (FieldType):
            Semantic tag resolved from the declared type.

        declared_type (Any):
            The declared Python type with any Optional wrapper removed. Used when
            coercing parsed values and recursing into nested records.

        required (bool):
            The key must be present in the value tree.

        validate (bool):
            When False the field is never checked, regardless of `required`.

        min_value (float | None), max_value (float | None):
            Inclusive numeric bounds, None when unconstrained.

        min_length (int | None), max_length (int | None):
            Inclusive string length bounds, None when unconstrained.

        allowed (tuple[str, ...] | None):
            Accepted string values, None when there is no enum constraint.
    """

    name: str
    field_type: FieldType
    declared_type: Any = None
    required: bool = True
    validate: bool = True
    min_value: float | None = None
    max_value: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    allowed: tuple[str, ...] | None = None

    def has_constraints(self) -> bool:
        return (
            self.min_value is not None
            or self.max_value is not None
            or self.min_length is not None
            or self.max_length is not None
            or self.allowed is not None
        )

    def describe(self) -> str:
        text = f"{self.name} [{self.field_type.value}]"
        if not self.required:
            text += " (optional)"
        if not self.validate:
            text += " (unvalidated)"
        return text


class RecordSchema(Sequence[FieldDescriptor]):
    """
    Read-only, ordered sequence of field descriptors for one record type.

    Order is declaration order and determines validation order. Instances are
    built by `build_schema` and never mutated afterwards.

    Attributes:
        _fields (tuple[FieldDescriptor, ...]):
            The descriptors, in declaration order.

        _by_name (dict[str, FieldDescriptor]):
            Name index over `_fields`.
    """

    _fields: tuple[FieldDescriptor, ...]
    _by_name: dict[str, FieldDescriptor]

    def __init__(self, descriptors: Iterable[FieldDescriptor]):
        self._fields = tuple(descriptors)
        self._by_name = {}
        for descriptor in self._fields:
            if descriptor.name in self._by_name:
                raise SchemaDefinitionError(f"Duplicate field name {descriptor.name!r}")
            self._by_name[descriptor.name] = descriptor

    @overload
    def __getitem__(self, index: int) -> FieldDescriptor: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[FieldDescriptor]: ...

    def __getitem__(self, index: int | slice) -> FieldDescriptor | Sequence[FieldDescriptor]:
        return self._fields[index]

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self._fields)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return item in self._by_name
        return item in self._fields

    def get(self, name: str) -> FieldDescriptor | None:
        return self._by_name.get(name)

    def names(self) -> list[str]:
        return [d.name for d in self._fields]

    def describe(self, title: str = "Record") -> str:
        """
        Render the schema as a human-readable listing.

        Args:
            title (str):
                Name shown in the header line, typically the record class name.

        Returns:
            str:
                One header line followed by one line per field, e.g.
                " - note [string] (optional)".
        """
        lines = [f"=== {title} Schema ==="]
        lines.extend(f" - {d.describe()}" for d in self._fields)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"RecordSchema({self.names()!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RecordSchema):
            return self._fields == other._fields
        if isinstance(other, Sequence):
            return list(self._fields) == list(other)  # type: ignore[arg-type]
        return False

    def __hash__(self) -> int:
        return hash(self._fields)


def _optional_number(meta: Mapping[str, Any], key: str, name: str) -> float | None:
    value = meta.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaDefinitionError(f"Field {name!r}: '{key}' must be a number")
    return value


def _optional_length(meta: Mapping[str, Any], key: str, name: str) -> int | None:
    value = meta.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise SchemaDefinitionError(f"Field {name!r}: '{key}' must be a non-negative int")
    return value


def _flag(meta: Mapping[str, Any], key: str, name: str) -> bool:
    value = meta.get(key, True)
    if not isinstance(value, bool):
        raise SchemaDefinitionError(f"Field {name!r}: '{key}' must be a bool")
    return value


def compile_descriptor(declared_type: Any, name: str, meta: Mapping[str, Any]) -> FieldDescriptor:
    """
    Turn one `(type, name, metadata)` declaration into a FieldDescriptor.

    Metadata values are copied verbatim; missing keys take the defaults
    `required=True`, `validate=True`, no bounds and no enum.

    Args:
        declared_type (Any):
            The declared type of the field. `meta["ptype"]` takes precedence when set.

        name (str):
            The field name.

        meta (Mapping[str, Any]):
            Field metadata (see `structa.schema.field_meta`).

    Returns:
        FieldDescriptor:
            The compiled descriptor.

    Raises:
        SchemaDefinitionError:
            - If the name is empty or not a string.
            - If a metadata key is unknown or has a value of the wrong type.
            - If a lower bound exceeds its upper bound.
            - If `allowed` is a bare string or contains non-string values.
    """
    if not isinstance(name, str) or not name:
        raise SchemaDefinitionError(f"Invalid field name {name!r}")

    unknown = set(meta) - META_KEYS
    if unknown:
        raise SchemaDefinitionError(
            f"Field {name!r}: unknown metadata keys {', '.join(sorted(unknown))}"
        )

    ptype = meta.get("ptype")
    tp, _ = unwrap_optional(ptype if ptype is not None else declared_type)

    min_value = _optional_number(meta, "min", name)
    max_value = _optional_number(meta, "max", name)
    if min_value is not None and max_value is not None and min_value > max_value:
        raise SchemaDefinitionError(f"Field {name!r}: 'min' is greater than 'max'")

    min_length = _optional_length(meta, "min_length", name)
    max_length = _optional_length(meta, "max_length", name)
    if min_length is not None and max_length is not None and min_length > max_length:
        raise SchemaDefinitionError(f"Field {name!r}: 'min_length' is greater than 'max_length'")

    allowed_raw = meta.get("allowed")
    allowed: tuple[str, ...] | None = None
    if allowed_raw is not None:
        if isinstance(allowed_raw, str):
            raise SchemaDefinitionError(f"Field {name!r}: 'allowed' must be a collection of strings")
        allowed = tuple(allowed_raw)
        if not all(isinstance(v, str) for v in allowed):
            raise SchemaDefinitionError(f"Field {name!r}: 'allowed' values must be strings")

    return FieldDescriptor(
        name=name,
        field_type=resolve_field_type(tp),
        declared_type=tp,
        required=_flag(meta, "required", name),
        validate=_flag(meta, "validate", name),
        min_value=min_value,
        max_value=max_value,
        min_length=min_length,
        max_length=max_length,
        allowed=allowed,
    )


def build_schema(entries: Iterable[SchemaEntry]) -> RecordSchema:
    """
    Build an immutable schema from an ordered list of `(type, name, metadata)` triples.

    Example:
        >>> schema = build_schema([
        ...     (str, "username", meta_strlen(3, 15)),
        ...     (int, "age", meta_range(18, 100)),
        ... ])

    Args:
        entries (Iterable[SchemaEntry]):
            Field declarations in declaration order.

    Returns:
        RecordSchema:
            The schema, preserving declaration order.

    Raises:
        SchemaDefinitionError:
            If a field name repeats or a declaration is malformed.
    """
    return RecordSchema(compile_descriptor(tp, name, meta) for tp, name, meta in entries)


def schema_entries_from_dataclass(cls: type) -> list[SchemaEntry]:
    """
    Derive schema entries from the fields of a dataclass.

    The declared type comes from the resolved annotation, so string annotations
    (`from __future__ import annotations`) are supported as long as the names
    resolve from the module of `cls`.

    Args:
        cls (type):
            A dataclass type.

    Returns:
        list[SchemaEntry]:
            One entry per dataclass field, in declaration order.

    Raises:
        TypeError:
            If `cls` is not a dataclass.
    """
    if not (isinstance(cls, type) and is_dataclass(cls)):
        raise TypeError(f"{cls!r} is not a dataclass")

    hints = get_type_hints(cls)
    return [(hints.get(f.name, f.type), f.name, f.metadata) for f in fields(cls)]


def schema_for(cls: type) -> RecordSchema:
    """
    Return the schema of a record type, building and caching it on first use.

    The first build is guarded by a lock; once built, the cached schema is
    returned without locking. The cache lives on the class itself, so a
    subclass gets its own schema rather than inheriting its parent's.

    Args:
        cls (type):
            A dataclass record type.

    Returns:
        RecordSchema:
            The cached schema.
    """
    schema = cls.__dict__.get(_SCHEMA_ATTR)
    if schema is not None:
        return schema

    with _schema_lock:
        schema = cls.__dict__.get(_SCHEMA_ATTR)
        if schema is None:
            schema = build_schema(schema_entries_from_dataclass(cls))
            setattr(cls, _SCHEMA_ATTR, schema)
            logger.debug("Built schema for %s: %s", cls.__qualname__, schema.names())
    return schema
