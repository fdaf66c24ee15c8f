"""Late-bound invocation of named operations on an automation object."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol, Sequence, Tuple

from autofetch.dispatch.variant import TaggedValue

LOGGER = logging.getLogger(__name__)

S_OK = 0x00000000
E_FAIL = 0x80004005
DISP_E_MEMBERNOTFOUND = 0x80020003
DISP_E_UNKNOWNNAME = 0x80020006
DISP_E_EXCEPTION = 0x80020009
DISP_E_TYPEMISMATCH = 0x80020005
DISP_E_BADPARAMCOUNT = 0x8002000E

DISPATCH_METHOD = 0x1
DISPATCH_PROPERTYGET = 0x2

LOCALE_USER_DEFAULT = 0x0400


def format_hresult(hresult: int) -> str:
    return f"0x{hresult & 0xFFFFFFFF:08X}"


class DispatchError(Exception):
    """Failure reported by a dispatch target, carrying its HRESULT."""

    def __init__(self, hresult: int, message: str = "") -> None:
        super().__init__(message or f"Dispatch call failed ({format_hresult(hresult)}).")
        self.hresult = hresult & 0xFFFFFFFF


@dataclass(frozen=True)
class DispatchParams:
    """Positional parameter block for one call.

    ``args`` are stored in wire order: the last declared parameter first.
    Named arguments are not supported.
    """

    args: Tuple[TaggedValue, ...] = ()

    @property
    def c_args(self) -> int:
        return len(self.args)

    @property
    def c_named_args(self) -> int:
        return 0

    def declared(self) -> Tuple[TaggedValue, ...]:
        """Return the arguments in the operation's declared order."""

        return tuple(reversed(self.args))


class DispatchTarget(Protocol):
    """Adapter around a platform object exposing late-bound dispatch."""

    def get_id_of_name(self, name: str) -> int:
        ...

    def invoke(self, dispid: int, params: DispatchParams, flags: int) -> TaggedValue:
        ...


class InvokeOutcome(Enum):
    OK = "ok"
    UNKNOWN_OPERATION = "unknown operation"
    INVOCATION_FAILED = "invocation failed"


@dataclass(frozen=True)
class InvokeStatus:
    outcome: InvokeOutcome
    hresult: int = S_OK
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is InvokeOutcome.OK

    def __str__(self) -> str:
        if self.ok:
            return "ok"
        text = f"{self.outcome.value} ({format_hresult(self.hresult)})"
        return f"{text}: {self.detail}" if self.detail else text


@dataclass(frozen=True)
class Invocation:
    """Status and result of one call. ``result`` is empty unless ``status.ok``."""

    operation: str
    status: InvokeStatus
    result: TaggedValue

    @property
    def ok(self) -> bool:
        return self.status.ok


class DispatchInvoker:
    """Resolve an operation name and call it, reporting failures as status.

    Holds no state between calls; the name is resolved afresh every time.
    """

    def __init__(self, flags: int = DISPATCH_METHOD | DISPATCH_PROPERTYGET) -> None:
        self._flags = flags

    def invoke(self, target: DispatchTarget, name: str, args: Iterable[TaggedValue] = ()) -> Invocation:
        params = DispatchParams(tuple(_coerce_args(args)))
        try:
            dispid = target.get_id_of_name(name)
        except DispatchError as exc:
            LOGGER.warning("Unable to resolve operation '%s' (%s)", name, format_hresult(exc.hresult))
            status = InvokeStatus(InvokeOutcome.UNKNOWN_OPERATION, exc.hresult, str(exc))
            return Invocation(name, status, TaggedValue.empty())

        LOGGER.debug("Invoking %s (dispid=%s, cArgs=%s)", name, dispid, params.c_args)
        try:
            result = target.invoke(dispid, params, self._flags)
        except DispatchError as exc:
            LOGGER.warning("Invocation of '%s' failed (%s)", name, format_hresult(exc.hresult))
            status = InvokeStatus(InvokeOutcome.INVOCATION_FAILED, exc.hresult, str(exc))
            return Invocation(name, status, TaggedValue.empty())

        if result is None:
            result = TaggedValue.empty()
        return Invocation(name, InvokeStatus(InvokeOutcome.OK), result)


def _coerce_args(args: Iterable[object]) -> Sequence[TaggedValue]:
    return [TaggedValue.of(arg) for arg in args]


__all__ = [
    "DISPATCH_METHOD",
    "DISPATCH_PROPERTYGET",
    "DISP_E_BADPARAMCOUNT",
    "DISP_E_EXCEPTION",
    "DISP_E_MEMBERNOTFOUND",
    "DISP_E_TYPEMISMATCH",
    "DISP_E_UNKNOWNNAME",
    "E_FAIL",
    "LOCALE_USER_DEFAULT",
    "S_OK",
    "DispatchError",
    "DispatchInvoker",
    "DispatchParams",
    "DispatchTarget",
    "Invocation",
    "InvokeOutcome",
    "InvokeStatus",
    "format_hresult",
]
