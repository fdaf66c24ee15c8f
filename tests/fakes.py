"""Test doubles standing in for COM automation objects and the registry."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from autofetch.dispatch.invoker import DISP_E_UNKNOWNNAME, DispatchError, DispatchParams
from autofetch.dispatch.variant import ByteArray, TaggedValue

WINHTTP_OPERATIONS = ("Open", "SetOption", "Send", "Status", "ResponseBody")

Response = Union[TaggedValue, DispatchError, None]


class FakeAutomationObject:
    """Records every resolve/invoke and counts releases."""

    def __init__(
        self,
        responses: Optional[Dict[str, Response]] = None,
        *,
        operations: Iterable[str] = WINHTTP_OPERATIONS,
    ) -> None:
        self._ids = {name: dispid for dispid, name in enumerate(operations, start=1)}
        self._names = {dispid: name for name, dispid in self._ids.items()}
        self._responses = dict(responses or {})
        self.resolved: List[str] = []
        self.calls: List[Tuple[str, Tuple[TaggedValue, ...], int]] = []
        self.release_count = 0

    @property
    def call_names(self) -> List[str]:
        return [name for name, _, _ in self.calls]

    def args_for(self, name: str) -> Tuple[object, ...]:
        for call_name, args, _ in self.calls:
            if call_name == name:
                return tuple(arg.payload for arg in args)
        raise KeyError(name)

    def get_id_of_name(self, name: str) -> int:
        self.resolved.append(name)
        if name not in self._ids:
            raise DispatchError(DISP_E_UNKNOWNNAME, f"Unknown name '{name}'")
        return self._ids[name]

    def invoke(self, dispid: int, params: DispatchParams, flags: int) -> TaggedValue:
        name = self._names[dispid]
        self.calls.append((name, params.args, flags))
        response = self._responses.get(name)
        if isinstance(response, DispatchError):
            raise response
        return response if response is not None else TaggedValue.empty()

    def release(self) -> None:
        self.release_count += 1

    def __enter__(self) -> "FakeAutomationObject":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.release()


def winhttp_responses(body: bytes = b"\x01\x02\x03\x04", status: int = 200) -> Dict[str, Response]:
    return {
        "Status": TaggedValue.int32(status),
        "ResponseBody": TaggedValue.byte_array(ByteArray(body)),
    }


class TrackingContext:
    """Callable context factory counting enter/exit pairs."""

    def __init__(self) -> None:
        self.entered = 0
        self.exited = 0

    @contextmanager
    def __call__(self) -> Iterator[None]:
        self.entered += 1
        try:
            yield
        finally:
            self.exited += 1


class FakeRegistryKey:
    def __init__(self, subkey: str) -> None:
        self.subkey = subkey
        self.closed = False

    def Close(self) -> None:  # noqa: N802
        self.closed = True

    def __enter__(self) -> "FakeRegistryKey":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.Close()


class FakeWinreg:
    HKEY_CURRENT_USER = "HKEY_CURRENT_USER"
    KEY_SET_VALUE = 0x0002
    REG_SZ = 1

    def __init__(self, *, open_error: OSError | None = None, write_error: OSError | None = None) -> None:
        self._open_error = open_error
        self._write_error = write_error
        self.opened: List[Tuple[object, str, int]] = []
        self.keys: List[FakeRegistryKey] = []
        self.values: Dict[str, Tuple[int, str]] = {}

    def OpenKey(self, root, subkey, reserved=0, access=0):  # noqa: N802
        if self._open_error is not None:
            raise self._open_error
        self.opened.append((root, subkey, access))
        key = FakeRegistryKey(subkey)
        self.keys.append(key)
        return key

    def SetValueEx(self, key, name, reserved, value_type, value):  # noqa: N802
        if self._write_error is not None:
            raise self._write_error
        self.values[name] = (value_type, value)
