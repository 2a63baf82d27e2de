"""
Text codec used by structa records to move between value trees and text.

The default `JsonCodec` wraps the standard library `json` module and bounds every
parse and encode by a size ceiling, so oversized input or output fails locally
instead of growing unbounded. An optional `AllocationHooks` object can be
installed to observe the working buffers the codec handles.
"""

from __future__ import annotations
import json
import logging
from typing import Any, Mapping, Protocol, runtime_checkable

from structa.result.structa_result import ErrorKind, Result

logger = logging.getLogger(__name__)

DEFAULT_MAX_TEXT_SIZE = 65536


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are accepted by the json module but are not JSON
    raise json.JSONDecodeError(f"Non-finite number {name} is not valid JSON", name, 0)


@runtime_checkable
class AllocationHooks(Protocol):
    def on_allocate(self, size: int) -> None: ...
    def on_deallocate(self, size: int) -> None: ...


@runtime_checkable
class TextCodec(Protocol):
    def parse(self, text: str) -> Result[dict[str, Any]]: ...
    def encode(self, tree: Mapping[str, Any]) -> Result[str]: ...


class JsonCodec:
    """
    JSON implementation of the `TextCodec` protocol.

    Output is compact (no whitespace between tokens). Non-finite floats are
    rejected since they have no JSON representation.

    Attributes:
        max_text_size (int):
            Maximum number of characters accepted by `parse` or produced by `encode`.

        hooks (AllocationHooks | None):
            Optional instrumentation notified of the size of each buffer handled.
    """

    max_text_size: int
    hooks: AllocationHooks | None

    def __init__(self, max_text_size: int = DEFAULT_MAX_TEXT_SIZE,
                 hooks: AllocationHooks | None = None):
        if max_text_size <= 0:
            raise ValueError("max_text_size must be positive")
        self.max_text_size = max_text_size
        self.hooks = hooks

    def _allocate(self, size: int) -> None:
        if self.hooks is not None:
            self.hooks.on_allocate(size)

    def _deallocate(self, size: int) -> None:
        if self.hooks is not None:
            self.hooks.on_deallocate(size)

    def parse(self, text: str | bytes | bytearray) -> Result[dict[str, Any]]:
        """
        Parse text into a value tree.

        Args:
            text (str | bytes | bytearray):
                JSON text; bytes are decoded as UTF-8.

        Returns:
            Result[dict[str, Any]]:
                The parsed object, or an INVALID_REPRESENTATION failure if the
                text is too large, malformed, or not a JSON object.
        """
        if isinstance(text, (bytes, bytearray)):
            # a UTF-8 buffer is never shorter than its decoded text
            if len(text) > self.max_text_size:
                return Result.failure(
                    ErrorKind.INVALID_REPRESENTATION,
                    f"Input of {len(text)} bytes exceeds limit of {self.max_text_size}",
                )
            try:
                text = text.decode("utf-8")
            except UnicodeDecodeError as exc:
                return Result.failure(ErrorKind.INVALID_REPRESENTATION, f"Parse error: {exc}")

        if not isinstance(text, str):
            return Result.failure(
                ErrorKind.INVALID_REPRESENTATION,
                f"Parse error: expected text, got {type(text).__name__}",
            )

        size = len(text)
        if size > self.max_text_size:
            return Result.failure(
                ErrorKind.INVALID_REPRESENTATION,
                f"Input of {size} characters exceeds limit of {self.max_text_size}",
            )

        self._allocate(size)
        try:
            tree = json.loads(text, parse_constant=_reject_constant)
        except (json.JSONDecodeError, RecursionError) as exc:
            logger.debug("JSON parse failed: %s", exc)
            return Result.failure(ErrorKind.INVALID_REPRESENTATION, f"Parse error: {exc}")
        finally:
            self._deallocate(size)

        if not isinstance(tree, dict):
            return Result.failure(
                ErrorKind.INVALID_REPRESENTATION,
                f"Parse error: expected a JSON object, got {type(tree).__name__}",
            )
        return Result.success(tree)

    def encode(self, tree: Mapping[str, Any]) -> Result[str]:
        """
        Encode a value tree to compact JSON text.

        Args:
            tree (Mapping[str, Any]):
                The value tree to encode.

        Returns:
            Result[str]:
                The text, or:
                  - INVALID_REPRESENTATION if the tree holds values JSON cannot express.
                  - ALLOCATION_FAILED if the text would exceed `max_text_size`.
        """
        try:
            text = json.dumps(tree, allow_nan=False, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError, RecursionError) as exc:
            logger.debug("JSON encode failed: %s", exc)
            return Result.failure(ErrorKind.INVALID_REPRESENTATION, f"Failed to serialize: {exc}")

        size = len(text)
        self._allocate(size)
        try:
            if size > self.max_text_size:
                return Result.failure(
                    ErrorKind.ALLOCATION_FAILED,
                    f"Output of {size} characters exceeds limit of {self.max_text_size}",
                )
            return Result.success(text)
        finally:
            self._deallocate(size)
