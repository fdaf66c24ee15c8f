"""Tests for the pywin32-backed automation adapter."""
from __future__ import annotations

import pytest

from autofetch.core.errors import ClassLookupError, ComInitializationError, InstantiationError
from autofetch.dispatch.invoker import (
    DISP_E_TYPEMISMATCH,
    DISP_E_UNKNOWNNAME,
    DispatchInvoker,
    InvokeOutcome,
)
from autofetch.dispatch.variant import TaggedValue, VarType
from autofetch.platform.windows.automation import automation_context, create_automation_object

CLSID = "{2087C2F4-2CEF-4953-A8AB-66779B670495}"
CO_E_CLASSSTRING = 0x800401F3
REGDB_E_CLASSNOTREG = 0x80040154
CO_E_NOTINITIALIZED = 0x800401F0


class _ComError(Exception):
    def __init__(self, hresult: int) -> None:
        super().__init__(hresult - 2**32, "COM error", None, None)
        self.hresult = hresult - 2**32


class _Variant:
    def __init__(self, vt: int, value) -> None:
        self.varianttype = vt
        self.value = value


class _StubDispatch:
    def __init__(self, results: dict) -> None:
        self._ids = {name: index for index, name in enumerate(results, start=1)}
        self._results = {self._ids[name]: value for name, value in results.items()}
        self.invocations: list[tuple[int, int, int, bool, tuple]] = []

    def GetIDsOfNames(self, name):  # noqa: N802
        if name not in self._ids:
            raise _ComError(DISP_E_UNKNOWNNAME)
        return self._ids[name]

    def Invoke(self, dispid, lcid, flags, want_result, *args):  # noqa: N802
        self.invocations.append((dispid, lcid, flags, want_result, args))
        result = self._results[dispid]
        if isinstance(result, Exception):
            raise result
        return result


class _StubPythoncom:
    com_error = _ComError
    Empty = object()
    VT_I4 = 3
    VT_BSTR = 8
    VT_BOOL = 11
    VT_UI1 = 17
    VT_ARRAY = 0x2000
    CLSCTX_INPROC_SERVER = 0x1
    IID_IDispatch = "{00020400-0000-0000-C000-000000000046}"

    def __init__(self, dispatch=None, *, init_error=None, create_error=None) -> None:
        self._dispatch = dispatch
        self._init_error = init_error
        self._create_error = create_error
        self.initialized = 0
        self.uninitialized = 0
        self.created: list[tuple] = []

    def CoInitialize(self) -> None:  # noqa: N802
        if self._init_error is not None:
            raise self._init_error
        self.initialized += 1

    def CoUninitialize(self) -> None:  # noqa: N802
        self.uninitialized += 1

    def CoCreateInstance(self, clsid, outer, context, iid):  # noqa: N802
        if self._create_error is not None:
            raise self._create_error
        self.created.append((clsid, outer, context, iid))
        return self._dispatch


class _StubPywintypes:
    def __init__(self, known: dict[str, str]) -> None:
        self._known = known

    def IID(self, value):  # noqa: N802
        if value not in self._known:
            raise _ComError(CO_E_CLASSSTRING)
        return self._known[value]


def _create(dispatch=None, **kwargs):
    com = _StubPythoncom(dispatch, **kwargs)
    handle = create_automation_object(
        "WinHttp.WinHttpRequest.5.1",
        pythoncom_module=com,
        pywintypes_module=_StubPywintypes({"WinHttp.WinHttpRequest.5.1": CLSID}),
        variant_factory=_Variant,
    )
    return com, handle


def test_automation_context_pairs_init_and_uninit() -> None:
    com = _StubPythoncom()

    with pytest.raises(RuntimeError):
        with automation_context(pythoncom_module=com):
            assert com.initialized == 1
            raise RuntimeError("boom")

    assert com.uninitialized == 1


def test_automation_context_reports_init_failure() -> None:
    com = _StubPythoncom(init_error=_ComError(CO_E_NOTINITIALIZED))

    with pytest.raises(ComInitializationError) as excinfo:
        with automation_context(pythoncom_module=com):
            pass

    assert excinfo.value.hresult == CO_E_NOTINITIALIZED
    assert com.uninitialized == 0


def test_create_requests_in_process_dispatch_interface() -> None:
    com, handle = _create(_StubDispatch({}))

    assert com.created == [(CLSID, None, _StubPythoncom.CLSCTX_INPROC_SERVER, _StubPythoncom.IID_IDispatch)]
    assert not handle.released


def test_class_lookup_failure_is_distinct() -> None:
    com = _StubPythoncom()

    with pytest.raises(ClassLookupError) as excinfo:
        create_automation_object(
            "Missing.Class",
            pythoncom_module=com,
            pywintypes_module=_StubPywintypes({}),
            variant_factory=_Variant,
        )

    assert excinfo.value.hresult == CO_E_CLASSSTRING
    assert com.created == []


def test_instantiation_failure_is_distinct() -> None:
    with pytest.raises(InstantiationError) as excinfo:
        _create(create_error=_ComError(REGDB_E_CLASSNOTREG))

    assert excinfo.value.hresult == REGDB_E_CLASSNOTREG


def test_arguments_are_passed_in_declared_order_with_explicit_types() -> None:
    dispatch = _StubDispatch({"Open": None})
    com, handle = _create(dispatch)
    args = [TaggedValue.boolean(False), TaggedValue.string("https://example.test/x"), TaggedValue.string("GET")]

    invocation = DispatchInvoker().invoke(handle, "Open", args)

    assert invocation.ok
    assert invocation.result.tag is VarType.EMPTY
    _, _, _, want_result, passed = dispatch.invocations[0]
    assert want_result is True
    assert [(arg.varianttype, arg.value) for arg in passed] == [
        (com.VT_BSTR, "GET"),
        (com.VT_BSTR, "https://example.test/x"),
        (com.VT_BOOL, False),
    ]


def test_results_are_tagged() -> None:
    dispatch = _StubDispatch({"Status": 200, "ResponseBody": b"\x01\x02\x03\x04"})
    _, handle = _create(dispatch)
    invoker = DispatchInvoker()

    status = invoker.invoke(handle, "Status")
    body = invoker.invoke(handle, "ResponseBody")

    assert status.result == TaggedValue.int32(200)
    array = body.result.as_byte_array()
    assert (array.lower_bound, array.upper_bound) == (0, 3)


def test_unrepresentable_result_is_type_mismatch() -> None:
    _, handle = _create(_StubDispatch({"Timeout": 2.5}))

    invocation = DispatchInvoker().invoke(handle, "Timeout")

    assert invocation.status.outcome is InvokeOutcome.INVOCATION_FAILED
    assert invocation.status.hresult == DISP_E_TYPEMISMATCH


def test_unknown_name_maps_to_unknown_operation() -> None:
    _, handle = _create(_StubDispatch({}))

    invocation = DispatchInvoker().invoke(handle, "Abort")

    assert invocation.status.outcome is InvokeOutcome.UNKNOWN_OPERATION
    assert invocation.status.hresult == DISP_E_UNKNOWNNAME


def test_release_happens_once_and_blocks_further_calls() -> None:
    _, handle = _create(_StubDispatch({"Send": None}))

    with handle:
        pass
    handle.release()

    assert handle.released
    with pytest.raises(RuntimeError):
        handle.get_id_of_name("Send")
