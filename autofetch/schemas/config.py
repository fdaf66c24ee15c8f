"""Configuration schemas for autofetch.

Each section is a small dataclass with a ``from_dict`` constructor; missing
keys fall back to the defaults of the reference run.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from autofetch.dispatch.variant import INT32_MAX, INT32_MIN
from autofetch.platform.windows.automation import WINHTTP_REQUEST_PROGID
from autofetch.platform.windows.startup import DEFAULT_ENTRY_NAME, DEFAULT_LAUNCHER, RUN_SUBKEY
from autofetch.runner.download import IGNORE_ALL_SSL_ERRORS, SECURITY_FLAGS_OPTION, RequestOptions
from autofetch.runner.persist import DEFAULT_BASE_DIR_ENV, DEFAULT_FILENAME, MAX_PATH


def _require_text(value: Any, name: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValueError(f"'{name}' must be a non-empty string.")
    return text


def _require_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"'{name}' must be an integer, got {value!r}.")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"'{name}' must be an integer, got {value!r}.")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'{name}' must be an integer, got {value!r}.") from exc


@dataclass
class AutomationSchema:
    prog_id: str = WINHTTP_REQUEST_PROGID

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AutomationSchema":
        data = data or {}
        return cls(prog_id=_require_text(data.get("prog_id", WINHTTP_REQUEST_PROGID), "automation.prog_id"))


@dataclass
class RequestSchema:
    method: str = "GET"
    follow_redirects: bool = False
    security_option_index: int = SECURITY_FLAGS_OPTION
    security_flags: int = IGNORE_ALL_SSL_ERRORS
    best_effort: bool = True

    def __post_init__(self) -> None:
        if not INT32_MIN <= self.security_option_index <= INT32_MAX:
            raise ValueError("request.security_option_index must fit in a signed 32-bit integer.")
        if not 0 <= self.security_flags <= 0xFFFFFFFF:
            raise ValueError("request.security_flags must fit in an unsigned 32-bit integer.")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "RequestSchema":
        data = data or {}
        return cls(
            method=_require_text(data.get("method", "GET"), "request.method").upper(),
            follow_redirects=bool(data.get("follow_redirects", False)),
            security_option_index=_require_int(
                data.get("security_option_index", SECURITY_FLAGS_OPTION), "request.security_option_index"
            ),
            security_flags=_require_int(data.get("security_flags", IGNORE_ALL_SSL_ERRORS), "request.security_flags"),
            best_effort=bool(data.get("best_effort", True)),
        )

    def to_options(self) -> RequestOptions:
        return RequestOptions(
            method=self.method,
            follow_redirects=self.follow_redirects,
            security_option_index=self.security_option_index,
            security_flags=self.security_flags,
            best_effort=self.best_effort,
        )


@dataclass
class OutputSchema:
    base_dir_env: str = DEFAULT_BASE_DIR_ENV
    filename: str = DEFAULT_FILENAME
    max_path: int = MAX_PATH

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "OutputSchema":
        data = data or {}
        return cls(
            base_dir_env=_require_text(data.get("base_dir_env", DEFAULT_BASE_DIR_ENV), "output.base_dir_env"),
            filename=_require_text(data.get("filename", DEFAULT_FILENAME), "output.filename"),
            max_path=_require_int(data.get("max_path", MAX_PATH), "output.max_path"),
        )


@dataclass
class StartupSchema:
    enabled: bool = True
    entry_name: str = DEFAULT_ENTRY_NAME
    launcher: str = DEFAULT_LAUNCHER
    subkey: str = RUN_SUBKEY

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "StartupSchema":
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", True)),
            entry_name=_require_text(data.get("entry_name", DEFAULT_ENTRY_NAME), "startup.entry_name"),
            launcher=_require_text(data.get("launcher", DEFAULT_LAUNCHER), "startup.launcher"),
            subkey=_require_text(data.get("subkey", RUN_SUBKEY), "startup.subkey"),
        )


@dataclass
class LoggingSchema:
    level: str = "INFO"
    logfile: Optional[Path] = None

    @property
    def level_value(self) -> int:
        return logging.getLevelName(self.level)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "LoggingSchema":
        data = data or {}
        level = str(data.get("level", "INFO")).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{level}'.")
        logfile = data.get("logfile")
        return cls(level=level, logfile=Path(logfile) if logfile else None)


@dataclass
class AutofetchConfigSchema:
    automation: AutomationSchema = field(default_factory=AutomationSchema)
    request: RequestSchema = field(default_factory=RequestSchema)
    output: OutputSchema = field(default_factory=OutputSchema)
    startup: StartupSchema = field(default_factory=StartupSchema)
    logging: LoggingSchema = field(default_factory=LoggingSchema)
    exit_delay_ms: int = 10000

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AutofetchConfigSchema":
        data = data or {}
        exit_delay_ms = _require_int(data.get("exit_delay_ms", 10000), "exit_delay_ms")
        if exit_delay_ms < 0:
            raise ValueError("exit_delay_ms must not be negative.")
        return cls(
            automation=AutomationSchema.from_dict(data.get("automation")),
            request=RequestSchema.from_dict(data.get("request")),
            output=OutputSchema.from_dict(data.get("output")),
            startup=StartupSchema.from_dict(data.get("startup")),
            logging=LoggingSchema.from_dict(data.get("logging")),
            exit_delay_ms=exit_delay_ms,
        )

    @classmethod
    def parse_obj(cls, data: Mapping[str, Any] | None) -> "AutofetchConfigSchema":
        return cls.from_dict(data)


__all__ = [
    "AutofetchConfigSchema",
    "AutomationSchema",
    "LoggingSchema",
    "OutputSchema",
    "RequestSchema",
    "StartupSchema",
]
