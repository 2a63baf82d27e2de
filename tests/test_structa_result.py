import pytest
from structa.result.structa_result import ErrorKind, Result, ResultError, ValidationError


def test_success_is_truthy_and_holds_value() -> None:
    result = Result.success(42)
    assert result
    assert result.ok
    assert result.value == 42
    assert result.error is None


def test_void_success() -> None:
    result: Result[None] = Result.success()
    assert result.ok
    assert result.value is None


def test_failure_holds_error() -> None:
    result: Result[int] = Result.failure(ErrorKind.FIELD_MISSING, "Required field missing", "age")
    assert not result
    assert result.error == ValidationError(ErrorKind.FIELD_MISSING, "Required field missing", "age")


def test_failure_value_raises() -> None:
    result: Result[int] = Result.failure(ErrorKind.TYPE_MISMATCH, "String too short", "username")
    with pytest.raises(ResultError, match="String too short") as exc_info:
        _ = result.value
    assert exc_info.value.error.field_path == "username"


def test_failure_cannot_use_success_kind() -> None:
    with pytest.raises(ValueError):
        Result.failure(ErrorKind.SUCCESS)


def test_value_or() -> None:
    assert Result.success("x").value_or("default") == "x"
    failed: Result[str] = Result.failure(ErrorKind.INVALID_REPRESENTATION, "Parse error")
    assert failed.value_or("default") == "default"


def test_render_full() -> None:
    error = ValidationError(ErrorKind.TYPE_MISMATCH, "String too short", "username")
    assert error.render() == "Error: Type mismatch: String too short (field: username)"
    assert str(error) == error.render()


def test_render_without_message_or_path() -> None:
    assert ValidationError(ErrorKind.ALLOCATION_FAILED).render() == "Error: Allocation failed"
    assert ValidationError(ErrorKind.SUCCESS).render() == "Success"
    assert (ValidationError(ErrorKind.VALIDATION_FAILED, "bad").render()
            == "Error: Validation failed: bad")


def test_prefixed_keeps_kind_and_message() -> None:
    error = ValidationError(ErrorKind.FIELD_MISSING, "Required field missing", "city")
    moved = error.prefixed("address").prefixed("user")
    assert moved.field_path == "user.address.city"
    assert moved.kind is ErrorKind.FIELD_MISSING
    assert moved.message == "Required field missing"


def test_prefixed_empty_path() -> None:
    error = ValidationError(ErrorKind.TYPE_MISMATCH, "Expected dict, got list")
    assert error.prefixed("address").field_path == "address"


def test_map_error_and_cast_failure() -> None:
    failed: Result[int] = Result.failure(ErrorKind.FIELD_MISSING, "", "city")
    mapped = failed.map_error(lambda e: e.prefixed("address"))
    assert mapped.error is not None
    assert mapped.error.field_path == "address.city"

    recast: Result[str] = mapped.cast_failure()
    assert recast.error == mapped.error

    ok = Result.success(1)
    assert ok.map_error(lambda e: e.prefixed("x")) is ok
    with pytest.raises(ValueError):
        ok.cast_failure()


def test_repr() -> None:
    assert repr(Result.success(3)) == "Success(3)"
    assert (repr(Result.failure(ErrorKind.FIELD_MISSING, "m", "p"))
            == "Failure(FIELD_MISSING, 'm', 'p')")
