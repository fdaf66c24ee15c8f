"""Per-user autostart entries under the ``Run`` registry key."""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

from autofetch.core.errors import StartupKeyOpenError, StartupValueWriteError

if sys.platform == "win32":
    import winreg
else:  # pragma: no cover - registry access only exists on Windows
    winreg = None

LOGGER = logging.getLogger(__name__)

RUN_SUBKEY = r"Software\Microsoft\Windows\CurrentVersion\Run"
DEFAULT_ENTRY_NAME = "OpenImage"
DEFAULT_LAUNCHER = "explorer.exe"


def build_command(launcher: str, file_path: str | Path) -> str:
    return f'{launcher} "{file_path}"'


class StartupRegistrar:
    """Write a command into the current user's startup namespace."""

    def __init__(
        self,
        *,
        subkey: str = RUN_SUBKEY,
        launcher: str = DEFAULT_LAUNCHER,
        winreg_module: Any = None,
    ) -> None:
        self._subkey = subkey
        self._launcher = launcher
        self._winreg = winreg_module or winreg

    def register(self, entry_name: str, file_path: str | Path) -> str:
        """Store ``<launcher> "<file_path>"`` under *entry_name* and return it.

        Raises :class:`StartupKeyOpenError` when the key cannot be opened and
        :class:`StartupValueWriteError` when the value cannot be written.
        """

        reg = self._winreg
        if reg is None:
            raise StartupKeyOpenError(self._subkey, None)

        command = build_command(self._launcher, file_path)
        try:
            key = reg.OpenKey(reg.HKEY_CURRENT_USER, self._subkey, 0, reg.KEY_SET_VALUE)
        except OSError as exc:
            raise StartupKeyOpenError(self._subkey, getattr(exc, "winerror", None) or exc.errno) from exc

        with key:
            try:
                reg.SetValueEx(key, entry_name, 0, reg.REG_SZ, command)
            except OSError as exc:
                raise StartupValueWriteError(entry_name, getattr(exc, "winerror", None) or exc.errno) from exc

        LOGGER.info("Registered startup entry %s: %s", entry_name, command)
        return command


__all__ = [
    "DEFAULT_ENTRY_NAME",
    "DEFAULT_LAUNCHER",
    "RUN_SUBKEY",
    "StartupRegistrar",
    "build_command",
]
