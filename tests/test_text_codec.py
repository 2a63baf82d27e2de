import math
import pytest
from structa.codec.text_codec import AllocationHooks, JsonCodec, TextCodec
from structa.result.structa_result import ErrorKind


class CountingHooks:
    def __init__(self):
        self.current = 0
        self.peak = 0
        self.calls: list[tuple[str, int]] = []

    def on_allocate(self, size: int) -> None:
        self.current += size
        self.peak = max(self.peak, self.current)
        self.calls.append(("alloc", size))

    def on_deallocate(self, size: int) -> None:
        self.current -= size
        self.calls.append(("free", size))


def test_protocols() -> None:
    assert isinstance(JsonCodec(), TextCodec)
    assert isinstance(CountingHooks(), AllocationHooks)


def test_parse_object() -> None:
    result = JsonCodec().parse('{"username":"alice","age":25}')
    assert result.value == {"username": "alice", "age": 25}


def test_parse_bytes() -> None:
    assert JsonCodec().parse(b'{"a":1}').value == {"a": 1}


def test_parse_invalid_utf8() -> None:
    result = JsonCodec().parse(b'{"a":"\xff"}')
    assert result.error is not None
    assert result.error.kind is ErrorKind.INVALID_REPRESENTATION


@pytest.mark.parametrize("text", ['{"a":', "not json", "", "{'a': 1}"])
def test_parse_malformed(text: str) -> None:
    result = JsonCodec().parse(text)
    assert result.error is not None
    assert result.error.kind is ErrorKind.INVALID_REPRESENTATION
    assert result.error.message.startswith("Parse error: ")
    assert result.error.field_path == ""


@pytest.mark.parametrize("text", ["[1, 2]", "3", '"x"', "null"])
def test_parse_requires_object(text: str) -> None:
    result = JsonCodec().parse(text)
    assert result.error is not None
    assert result.error.kind is ErrorKind.INVALID_REPRESENTATION
    assert "expected a JSON object" in result.error.message


def test_parse_non_text() -> None:
    result = JsonCodec().parse(42)  # type: ignore[arg-type]
    assert result.error is not None
    assert result.error.kind is ErrorKind.INVALID_REPRESENTATION


def test_parse_over_ceiling() -> None:
    codec = JsonCodec(max_text_size=10)
    assert codec.parse('{"a":"12"}')
    result = codec.parse('{"a":"123"}')
    assert result.error is not None
    assert result.error.kind is ErrorKind.INVALID_REPRESENTATION
    assert "exceeds limit of 10" in result.error.message


def test_encode_compact() -> None:
    assert JsonCodec().encode({"username": "alice", "age": 25}).value == '{"username":"alice","age":25}'


def test_encode_keeps_unicode() -> None:
    assert JsonCodec().encode({"city": "Zürich"}).value == '{"city":"Zürich"}'


@pytest.mark.parametrize("value", [math.nan, math.inf, object()])
def test_encode_unrepresentable(value: object) -> None:
    result = JsonCodec().encode({"x": value})
    assert result.error is not None
    assert result.error.kind is ErrorKind.INVALID_REPRESENTATION


def test_encode_over_ceiling() -> None:
    codec = JsonCodec(max_text_size=8)
    assert codec.encode({"a": 1}).value == '{"a":1}'
    result = codec.encode({"a": 12345})
    assert result.error is not None
    assert result.error.kind is ErrorKind.ALLOCATION_FAILED


def test_ceiling_must_be_positive() -> None:
    with pytest.raises(ValueError):
        JsonCodec(max_text_size=0)


def test_hooks_are_balanced() -> None:
    hooks = CountingHooks()
    codec = JsonCodec(hooks=hooks)

    codec.parse('{"a":1}')
    codec.parse('{"a":')
    codec.encode({"a": 1})

    assert hooks.current == 0
    assert hooks.peak == 7
    assert hooks.calls == [
        ("alloc", 7), ("free", 7),
        ("alloc", 5), ("free", 5),
        ("alloc", 7), ("free", 7),
    ]


def test_hooks_not_called_for_oversized_input() -> None:
    hooks = CountingHooks()
    JsonCodec(max_text_size=4, hooks=hooks).parse('{"a":1}')
    assert hooks.calls == []


@pytest.mark.parametrize("text", ['{"x":NaN}', '{"x":Infinity}', '{"x":-Infinity}'])
def test_parse_rejects_non_finite_literals(text: str) -> None:
    result = JsonCodec().parse(text)
    assert result.error is not None
    assert result.error.kind is ErrorKind.INVALID_REPRESENTATION
    assert result.error.message.startswith("Parse error: ")


@pytest.mark.parametrize("data", [b'{"a":"123"}', bytearray(b'{"a":"123"}'), b'{"a":"\xff\xff\xff"}'])
def test_parse_oversized_bytes_checked_before_decoding(data: bytes) -> None:
    hooks = CountingHooks()
    result = JsonCodec(max_text_size=10, hooks=hooks).parse(data)
    assert result.error is not None
    assert result.error.kind is ErrorKind.INVALID_REPRESENTATION
    assert "exceeds limit of 10" in result.error.message
    assert hooks.calls == []
