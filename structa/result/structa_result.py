from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")
D = TypeVar("D")


class ErrorKind(Enum):
    """
    Closed taxonomy of failures reported by the validation and serialization engine.

    Each member carries a human-readable label used when rendering errors.
    """

    SUCCESS = "Success"
    INVALID_REPRESENTATION = "Invalid representation"
    TYPE_MISMATCH = "Type mismatch"
    FIELD_MISSING = "Field missing"
    ALLOCATION_FAILED = "Allocation failed"
    VALIDATION_FAILED = "Validation failed"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class ValidationError:
    """
    Structured description of a single failure.

    Attributes:
        kind (ErrorKind):
            The category of the failure.

        message (str):
            Human-readable explanation, e.g. "String too short".

        field_path (str):
            Dot-joined location of the failing field (e.g. "address.city"),
            or an empty string when the failure is not tied to a field.
    """

    kind: ErrorKind
    message: str = ""
    field_path: str = ""

    def prefixed(self, parent: str) -> ValidationError:
        """
        Return a copy of this error located under the field `parent`.

        Only the path changes; kind and message are preserved so that nested
        failures surface unchanged apart from their location.

        Args:
            parent (str):
                Name of the enclosing field.

        Returns:
            ValidationError:
                The relocated error.
        """
        path = f"{parent}.{self.field_path}" if self.field_path else parent
        return replace(self, field_path=path)

    def render(self) -> str:
        """
        Combine kind, message and field path into one line.

        Returns:
            str:
                e.g. "Error: Type mismatch: String too short (field: username)".
        """
        if self.kind is ErrorKind.SUCCESS:
            return "Success"
        text = f"Error: {self.kind.label}"
        if self.message:
            text += f": {self.message}"
        if self.field_path:
            text += f" (field: {self.field_path})"
        return text

    def __str__(self) -> str:
        return self.render()


class ResultError(ValueError):
    """
    Raised by `Result.unwrap()` when called on a failure.

    Attributes:
        error (ValidationError):
            The structured error held by the failed result.
    """

    error: ValidationError

    def __init__(self, error: ValidationError):
        super().__init__(error.render())
        self.error = error


_MISSING: Any = object()


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Two-variant outcome of an engine operation: success with a value or failure with an error.

    Use the `success` / `failure` constructors rather than instantiating directly.
    A `Result` is truthy exactly when it is a success.

    Attributes:
        _value (T):
            The success payload; meaningless on failure.

        _error (ValidationError | None):
            The failure description, or None on success.
    """

    _value: T
    _error: ValidationError | None = None

    @classmethod
    def success(cls, value: T = None) -> Result[T]:  # type: ignore[assignment]
        return cls(value, None)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str = "", field_path: str = "") -> Result[T]:
        return cls.from_error(ValidationError(kind, message, field_path))

    @classmethod
    def from_error(cls, error: ValidationError) -> Result[T]:
        if error.kind is ErrorKind.SUCCESS:
            raise ValueError("A failure cannot carry the SUCCESS kind")
        return cls(_MISSING, error)

    @property
    def ok(self) -> bool:
        return self._error is None

    def __bool__(self) -> bool:
        return self.ok

    @property
    def value(self) -> T:
        """
        The success payload.

        Raises:
            ResultError: If the result is a failure.
        """
        return self.unwrap()

    @property
    def error(self) -> ValidationError | None:
        return self._error

    def unwrap(self) -> T:
        if self._error is not None:
            raise ResultError(self._error)
        return self._value

    def value_or(self, default: D) -> T | D:
        """
        Collapse the result to its value, or `default` on failure.

        The structured error is discarded; callers needing diagnostics must
        inspect the result itself instead.
        """
        if self._error is not None:
            return default
        return self._value

    def map_error(self, fn: Callable[[ValidationError], ValidationError]) -> Result[T]:
        if self._error is None:
            return self
        return Result.from_error(fn(self._error))

    def cast_failure(self) -> Result[Any]:
        """
        Re-type a failure so it can be propagated from a function with a different payload type.

        Raises:
            ValueError: If called on a success.
        """
        if self._error is None:
            raise ValueError("cast_failure() called on a successful result")
        return Result.from_error(self._error)

    def __repr__(self) -> str:
        if self._error is None:
            return f"Success({self._value!r})"
        return f"Failure({self._error.kind.name}, {self._error.message!r}, {self._error.field_path!r})"
