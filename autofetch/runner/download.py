"""Drive an HTTP request object through its late-bound operations."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from autofetch.dispatch.invoker import DispatchInvoker, DispatchTarget, Invocation
from autofetch.dispatch.variant import INT32_MAX, INT32_MIN, TaggedValue, VarType

LOGGER = logging.getLogger(__name__)

# WinHttpRequestOption_SslErrorIgnoreFlags
SECURITY_FLAGS_OPTION = 4
# unknown CA | wrong usage | CN invalid | date invalid
IGNORE_ALL_SSL_ERRORS = 0x3300


class DownloadState(Enum):
    INIT = "init"
    OPENED = "opened"
    OPTIONS_SET = "options_set"
    SENT = "sent"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class RequestOptions:
    method: str = "GET"
    follow_redirects: bool = False
    security_option_index: int = SECURITY_FLAGS_OPTION
    security_flags: int = IGNORE_ALL_SSL_ERRORS
    best_effort: bool = True

    def __post_init__(self) -> None:
        if not INT32_MIN <= self.security_option_index <= INT32_MAX:
            raise ValueError(f"Option index {self.security_option_index} does not fit VT_I4.")
        if not 0 <= self.security_flags <= 0xFFFFFFFF:
            raise ValueError(f"Security flags {self.security_flags:#x} do not fit a DWORD.")


def dword_to_int32(value: int) -> int:
    """Reinterpret an unsigned 32-bit value as the signed integer with the same bits."""

    return value - 0x100000000 if value > INT32_MAX else value


@dataclass
class DownloadResult:
    state: DownloadState
    body: TaggedValue = field(default_factory=TaggedValue.empty)
    status_code: Optional[int] = None
    failed_at: Optional[str] = None
    invocations: List[Invocation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is DownloadState.COMPLETED


class DownloadOrchestrator:
    """Sequence Open, SetOption, Send, Status and ResponseBody on one object.

    Argument lists are given last-declared-first, the order the dispatch
    parameter block expects. A failed call moves the machine to ``FAILED``;
    with ``best_effort`` the remaining calls are still issued.
    """

    def __init__(self, invoker: DispatchInvoker | None = None, options: RequestOptions | None = None) -> None:
        self._invoker = invoker or DispatchInvoker()
        self._options = options or RequestOptions()

    def open_args(self, url: str) -> Sequence[TaggedValue]:
        return (
            TaggedValue.boolean(self._options.follow_redirects),
            TaggedValue.string(url),
            TaggedValue.string(self._options.method),
        )

    def option_args(self) -> Sequence[TaggedValue]:
        return (
            TaggedValue.int32(dword_to_int32(self._options.security_flags)),
            TaggedValue.int32(self._options.security_option_index),
        )

    def fetch(self, target: DispatchTarget, url: str) -> DownloadResult:
        result = DownloadResult(state=DownloadState.INIT)

        plan = (
            ("Open", self.open_args(url), DownloadState.OPENED),
            ("SetOption", self.option_args(), DownloadState.OPTIONS_SET),
            ("Send", (), DownloadState.SENT),
        )
        for name, args, next_state in plan:
            invocation = self._call(result, target, name, args)
            if invocation.ok:
                if result.state is not DownloadState.FAILED:
                    result.state = next_state
            elif not self._options.best_effort:
                return result

        status = self._call(result, target, "Status", ())
        if status.ok and status.result.tag is VarType.I4:
            result.status_code = status.result.as_int32()
            LOGGER.info("HTTP status: %d", result.status_code)
        elif status.ok:
            LOGGER.debug("Status returned %s; not reporting", status.result.tag.value)
        elif not self._options.best_effort:
            return result

        body = self._call(result, target, "ResponseBody", ())
        result.body = body.result
        if body.ok and result.state is DownloadState.SENT:
            result.state = DownloadState.COMPLETED
        return result

    def _call(self, result: DownloadResult, target: DispatchTarget, name: str, args: Sequence[TaggedValue]) -> Invocation:
        invocation = self._invoker.invoke(target, name, args)
        result.invocations.append(invocation)
        if not invocation.ok:
            LOGGER.error("%s failed: %s", name, invocation.status)
            result.state = DownloadState.FAILED
            if result.failed_at is None:
                result.failed_at = name
        return invocation


__all__ = [
    "IGNORE_ALL_SSL_ERRORS",
    "SECURITY_FLAGS_OPTION",
    "DownloadOrchestrator",
    "DownloadResult",
    "DownloadState",
    "RequestOptions",
    "dword_to_int32",
]
