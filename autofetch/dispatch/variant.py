"""Tagged values passed to and returned from late-bound automation calls.

Only the handful of variant types this tool produces or consumes are
modelled: empty, boolean, 32-bit integer, string and a one-dimensional byte
array. Reading a payload under a different tag raises
:class:`VariantTypeError` instead of coercing.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Union

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class VarType(Enum):
    EMPTY = "VT_EMPTY"
    BOOL = "VT_BOOL"
    I4 = "VT_I4"
    BSTR = "VT_BSTR"
    UI1_ARRAY = "VT_ARRAY|VT_UI1"


class VariantTypeError(TypeError):
    """Raised when a payload is read under a tag it does not carry."""

    def __init__(self, expected: VarType, actual: VarType) -> None:
        super().__init__(f"Expected {expected.value}, value is tagged {actual.value}.")
        self.expected = expected
        self.actual = actual


class ByteArray:
    """Contiguous byte buffer addressed by inclusive ``[lower, upper]`` bounds.

    The bounds are authoritative: ``element_count`` is always
    ``upper_bound - lower_bound + 1`` regardless of how large the backing
    buffer is. Access goes through :meth:`access`, which holds a lock for the
    lifetime of the ``with`` block; a locked array cannot be destroyed.
    """

    def __init__(self, data: Union[bytes, bytearray, memoryview], lower_bound: int = 0, upper_bound: Optional[int] = None) -> None:
        buffer = bytes(data)
        if upper_bound is None:
            upper_bound = lower_bound + len(buffer) - 1
        count = upper_bound - lower_bound + 1
        if count < 0:
            raise ValueError(f"Invalid bounds [{lower_bound}, {upper_bound}].")
        if count > len(buffer):
            raise ValueError(f"Bounds [{lower_bound}, {upper_bound}] exceed a buffer of {len(buffer)} bytes.")
        self._data: Optional[bytes] = buffer
        self.lower_bound = lower_bound
        self.upper_bound = upper_bound
        self._locks = 0

    @property
    def element_count(self) -> int:
        return self.upper_bound - self.lower_bound + 1

    @property
    def lock_count(self) -> int:
        return self._locks

    @property
    def destroyed(self) -> bool:
        return self._data is None

    @contextmanager
    def access(self) -> Iterator[memoryview]:
        if self._data is None:
            raise ValueError("Byte array has already been destroyed.")
        self._locks += 1
        view = memoryview(self._data)[: self.element_count]
        try:
            yield view
        finally:
            view.release()
            self._locks -= 1

    def destroy(self) -> None:
        if self._locks:
            raise RuntimeError("Byte array is locked and cannot be destroyed.")
        self._data = None

    def __repr__(self) -> str:
        state = "destroyed" if self.destroyed else f"{self.element_count} bytes"
        return f"ByteArray([{self.lower_bound}, {self.upper_bound}], {state})"


Payload = Union[None, bool, int, str, ByteArray]


@dataclass(frozen=True)
class TaggedValue:
    tag: VarType
    payload: Payload = None

    @classmethod
    def empty(cls) -> "TaggedValue":
        return cls(VarType.EMPTY)

    @classmethod
    def boolean(cls, value: bool) -> "TaggedValue":
        return cls(VarType.BOOL, bool(value))

    @classmethod
    def int32(cls, value: int) -> "TaggedValue":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"VT_I4 requires an int, got {type(value).__name__}.")
        if not INT32_MIN <= value <= INT32_MAX:
            raise OverflowError(f"{value} does not fit in a signed 32-bit integer.")
        return cls(VarType.I4, value)

    @classmethod
    def string(cls, value: str) -> "TaggedValue":
        if not isinstance(value, str):
            raise TypeError(f"VT_BSTR requires a str, got {type(value).__name__}.")
        return cls(VarType.BSTR, value)

    @classmethod
    def byte_array(cls, array: Optional[ByteArray]) -> "TaggedValue":
        """Wrap *array*; ``None`` models a byte-array tag with a null buffer."""

        return cls(VarType.UI1_ARRAY, array)

    @classmethod
    def of(cls, value: object) -> "TaggedValue":
        if value is None:
            return cls.empty()
        if isinstance(value, TaggedValue):
            return value
        if isinstance(value, bool):
            return cls.boolean(value)
        if isinstance(value, int):
            return cls.int32(value)
        if isinstance(value, str):
            return cls.string(value)
        if isinstance(value, ByteArray):
            return cls.byte_array(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls.byte_array(ByteArray(value))
        raise TypeError(f"No variant tag for values of type {type(value).__name__}.")

    @property
    def is_empty(self) -> bool:
        return self.tag is VarType.EMPTY

    @property
    def is_binary(self) -> bool:
        return self.tag is VarType.UI1_ARRAY and self.payload is not None

    def _expect(self, tag: VarType) -> Payload:
        if self.tag is not tag:
            raise VariantTypeError(tag, self.tag)
        return self.payload

    def as_bool(self) -> bool:
        return bool(self._expect(VarType.BOOL))

    def as_int32(self) -> int:
        return int(self._expect(VarType.I4))  # type: ignore[arg-type]

    def as_string(self) -> str:
        return str(self._expect(VarType.BSTR))

    def as_byte_array(self) -> Optional[ByteArray]:
        return self._expect(VarType.UI1_ARRAY)  # type: ignore[return-value]

    def release(self) -> None:
        """Free owned storage, mirroring ``VariantClear`` for array payloads."""

        if self.tag is VarType.UI1_ARRAY and isinstance(self.payload, ByteArray) and not self.payload.destroyed:
            self.payload.destroy()


__all__ = [
    "INT32_MAX",
    "INT32_MIN",
    "ByteArray",
    "TaggedValue",
    "VarType",
    "VariantTypeError",
]
