"""
Helpers producing field metadata for `@structa` records.

Every helper returns a plain dict suitable for `dataclasses.field(metadata=...)`.
Helpers can be merged with `|`, e.g. `meta_optional() | meta_strlen(1, 40)`.

Recognized keys:
  - `required` (bool, default True): the key must be present in the value tree.
  - `validate` (bool, default True): when False the field is never checked.
  - `min` / `max` (number): inclusive numeric bounds.
  - `min_length` / `max_length` (int): inclusive string length bounds.
  - `allowed` (iterable of str): exact, case-sensitive set of accepted values.
  - `ptype` (type): overrides the annotation when resolving the field type.
"""

from dataclasses import MISSING, field
from typing import Any, Callable, Iterable

META_KEYS = frozenset({
    "required", "validate", "min", "max", "min_length", "max_length", "allowed", "ptype",
})


def meta_none() -> dict[str, Any]:
    """Field is stored and converted but never validated."""
    return {"validate": False}


def meta_optional() -> dict[str, Any]:
    """Field may be absent; validated when present."""
    return {"required": False}


def meta_optional_unvalidated() -> dict[str, Any]:
    return {"required": False, "validate": False}


def meta_range(min_value: float | None, max_value: float | None) -> dict[str, Any]:
    """Inclusive numeric bounds; pass None to leave one side open."""
    return {"min": min_value, "max": max_value}


def meta_strlen(min_length: int | None, max_length: int | None) -> dict[str, Any]:
    """Inclusive string length bounds; pass None to leave one side open."""
    return {"min_length": min_length, "max_length": max_length}


def meta_enum(values: Iterable[str]) -> dict[str, Any]:
    return {"allowed": tuple(values)}


def structa_field(
    *,
    default: Any = MISSING,
    default_factory: Callable[[], Any] | Any = MISSING,
    **meta: Any,
) -> Any:
    """
    Shorthand for `dataclasses.field` carrying structa metadata.

    Example:
        >>> username: str = structa_field(default="", min_length=3, max_length=15)

    Args:
        default (Any):
            Default value, as for `dataclasses.field`.

        default_factory (Callable[[], Any]):
            Default factory, as for `dataclasses.field`.

        **meta (Any):
            Metadata keys (see module docstring).

    Returns:
        Any:
            The dataclass field.

    Raises:
        ValueError:
            If an unknown metadata key is given.
    """
    unknown = set(meta) - META_KEYS
    if unknown:
        raise ValueError(f"Unknown field metadata keys: {', '.join(sorted(unknown))}")
    return field(default=default, default_factory=default_factory, metadata=meta)
