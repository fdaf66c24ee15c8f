"""COM automation objects driven through ``IDispatch`` via pywin32."""
from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from autofetch.core.errors import (
    AutomationEnvironmentError,
    ClassLookupError,
    ComInitializationError,
    InstantiationError,
)
from autofetch.dispatch.invoker import (
    DISP_E_TYPEMISMATCH,
    E_FAIL,
    LOCALE_USER_DEFAULT,
    DispatchError,
    DispatchParams,
)
from autofetch.dispatch.variant import INT32_MAX, INT32_MIN, ByteArray, TaggedValue, VarType

if sys.platform == "win32":
    import pythoncom  # type: ignore[import-not-found]
    import pywintypes  # type: ignore[import-not-found]
    from win32com.client import VARIANT  # type: ignore[import-not-found]
else:  # pragma: no cover - pywin32 only ships for Windows
    pythoncom = None
    pywintypes = None
    VARIANT = None

LOGGER = logging.getLogger(__name__)

WINHTTP_REQUEST_PROGID = "WinHttp.WinHttpRequest.5.1"


def _require(module: Any, name: str) -> Any:
    if module is None:
        raise AutomationEnvironmentError(f"{name} is unavailable; COM automation requires Windows with pywin32.")
    return module


def _hresult_of(exc: BaseException) -> int:
    hresult = getattr(exc, "hresult", None)
    if hresult is None and exc.args and isinstance(exc.args[0], int):
        hresult = exc.args[0]
    return (hresult if hresult is not None else E_FAIL) & 0xFFFFFFFF


@contextmanager
def automation_context(*, pythoncom_module: Any = None) -> Iterator[None]:
    """Initialize COM for the calling thread and uninitialize it on exit."""

    com = _require(pythoncom_module or pythoncom, "pythoncom")
    try:
        com.CoInitialize()
    except com.com_error as exc:
        raise ComInitializationError(_hresult_of(exc)) from exc
    LOGGER.debug("COM library initialized")
    try:
        yield
    finally:
        com.CoUninitialize()
        LOGGER.debug("COM library uninitialized")


class AutomationObject:
    """Owned ``IDispatch`` reference exposing name-resolved calls.

    Arguments cross the boundary with explicit variant types; results are
    converted back into :class:`TaggedValue`. pywin32 takes arguments in
    declared order and builds the reversed ``rgvarg`` block itself.
    """

    def __init__(
        self,
        prog_id: str,
        dispatch: Any,
        *,
        pythoncom_module: Any,
        variant_factory: Callable[[int, Any], Any],
    ) -> None:
        self.prog_id = prog_id
        self._dispatch = dispatch
        self._com = pythoncom_module
        self._variant = variant_factory

    @property
    def released(self) -> bool:
        return self._dispatch is None

    def release(self) -> None:
        if self._dispatch is None:
            return
        self._dispatch = None
        LOGGER.debug("Released automation object %s", self.prog_id)

    def __enter__(self) -> "AutomationObject":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.release()

    def _require_dispatch(self) -> Any:
        if self._dispatch is None:
            raise RuntimeError(f"Automation object '{self.prog_id}' has been released.")
        return self._dispatch

    def get_id_of_name(self, name: str) -> int:
        dispatch = self._require_dispatch()
        try:
            return int(dispatch.GetIDsOfNames(name))
        except self._com.com_error as exc:
            raise DispatchError(_hresult_of(exc), f"Unknown operation '{name}'.") from exc

    def invoke(self, dispid: int, params: DispatchParams, flags: int) -> TaggedValue:
        dispatch = self._require_dispatch()
        args = [self._to_com(value) for value in params.declared()]
        try:
            raw = dispatch.Invoke(dispid, LOCALE_USER_DEFAULT, flags, True, *args)
        except self._com.com_error as exc:
            raise DispatchError(_hresult_of(exc)) from exc
        return _from_com(raw)

    def _to_com(self, value: TaggedValue) -> Any:
        com = self._com
        if value.tag is VarType.EMPTY:
            return com.Empty
        if value.tag is VarType.BOOL:
            return self._variant(com.VT_BOOL, value.as_bool())
        if value.tag is VarType.I4:
            return self._variant(com.VT_I4, value.as_int32())
        if value.tag is VarType.BSTR:
            return self._variant(com.VT_BSTR, value.as_string())
        array = value.as_byte_array()
        if array is None:
            return com.Empty
        with array.access() as view:
            return self._variant(com.VT_ARRAY | com.VT_UI1, bytes(view))


def _from_com(raw: Any) -> TaggedValue:
    if raw is None:
        return TaggedValue.empty()
    if isinstance(raw, bool):
        return TaggedValue.boolean(raw)
    if isinstance(raw, int):
        if not INT32_MIN <= raw <= INT32_MAX:
            raise DispatchError(DISP_E_TYPEMISMATCH, f"Integer result {raw} does not fit VT_I4.")
        return TaggedValue.int32(raw)
    if isinstance(raw, str):
        return TaggedValue.string(raw)
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return TaggedValue.byte_array(ByteArray(raw))
    raise DispatchError(DISP_E_TYPEMISMATCH, f"Unsupported result type {type(raw).__name__}.")


def create_automation_object(
    prog_id: str = WINHTTP_REQUEST_PROGID,
    *,
    pythoncom_module: Any = None,
    pywintypes_module: Any = None,
    variant_factory: Callable[[int, Any], Any] | None = None,
) -> AutomationObject:
    """Look up the class registered for *prog_id* and instantiate it in-process.

    Raises :class:`ClassLookupError` or :class:`InstantiationError` depending
    on which step failed.
    """

    com = _require(pythoncom_module or pythoncom, "pythoncom")
    types_module = _require(pywintypes_module or pywintypes, "pywintypes")
    factory = _require(variant_factory or VARIANT, "win32com.client.VARIANT")

    try:
        clsid = types_module.IID(prog_id)
    except com.com_error as exc:
        raise ClassLookupError(prog_id, _hresult_of(exc)) from exc

    try:
        dispatch = com.CoCreateInstance(clsid, None, com.CLSCTX_INPROC_SERVER, com.IID_IDispatch)
    except com.com_error as exc:
        raise InstantiationError(prog_id, _hresult_of(exc)) from exc

    LOGGER.debug("Created automation object %s (%s)", prog_id, clsid)
    return AutomationObject(prog_id, dispatch, pythoncom_module=com, variant_factory=factory)


__all__ = [
    "WINHTTP_REQUEST_PROGID",
    "AutomationObject",
    "automation_context",
    "create_automation_object",
]
