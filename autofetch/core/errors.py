"""Error taxonomy for a fetch-and-register run."""
from __future__ import annotations


class AutofetchError(RuntimeError):
    """Base error; ``exit_code`` is the process status the CLI reports."""

    exit_code = 1


class AutomationEnvironmentError(AutofetchError):
    pass


class ComInitializationError(AutomationEnvironmentError):
    def __init__(self, hresult: int) -> None:
        super().__init__(f"Failed to initialize COM library (hresult=0x{hresult & 0xFFFFFFFF:08X}).")
        self.hresult = hresult


class ClassLookupError(AutomationEnvironmentError):
    def __init__(self, prog_id: str, hresult: int) -> None:
        super().__init__(f"CLSIDFromProgID failed for '{prog_id}' (hresult=0x{hresult & 0xFFFFFFFF:08X}).")
        self.prog_id = prog_id
        self.hresult = hresult


class InstantiationError(AutomationEnvironmentError):
    def __init__(self, prog_id: str, hresult: int) -> None:
        super().__init__(f"Failed to create COM instance of '{prog_id}' (hresult=0x{hresult & 0xFFFFFFFF:08X}).")
        self.prog_id = prog_id
        self.hresult = hresult


class OutputPathError(AutofetchError):
    pass


class EnvironmentLookupError(OutputPathError):
    def __init__(self, variable: str) -> None:
        super().__init__(f"Failed to get {variable} path.")
        self.variable = variable


class PathTooLongError(OutputPathError):
    def __init__(self, path: str, limit: int) -> None:
        super().__init__(f"Output path exceeds {limit} characters: {path}")
        self.path = path
        self.limit = limit


class PayloadError(AutofetchError):
    pass


class NotBinaryPayloadError(PayloadError):
    def __init__(self, tag: object) -> None:
        super().__init__(f"Response is not a binary payload (tag={tag}).")
        self.tag = tag


class ShortWriteError(PayloadError):
    def __init__(self, expected: int, written: int) -> None:
        super().__init__(f"Short write: {written} of {expected} bytes written.")
        self.expected = expected
        self.written = written


class PayloadWriteError(PayloadError):
    def __init__(self, path: object, error: OSError) -> None:
        super().__init__(f"Failed to create file {path}: {error}")
        self.path = path
        self.error = error


class ArtifactMissingError(AutofetchError):
    def __init__(self, path: object) -> None:
        super().__init__(f"File does not exist: {path}")
        self.path = path


class StartupRegistrationError(AutofetchError):
    pass


class StartupKeyOpenError(StartupRegistrationError):
    def __init__(self, subkey: str, error: int | None) -> None:
        super().__init__(f"Failed to open registry key '{subkey}' (error={error}).")
        self.subkey = subkey
        self.error = error


class StartupValueWriteError(StartupRegistrationError):
    exit_code = 0

    def __init__(self, entry_name: str, error: int | None) -> None:
        super().__init__(f"Failed to set registry value '{entry_name}' (error={error}).")
        self.entry_name = entry_name
        self.error = error


__all__ = [
    "AutofetchError",
    "AutomationEnvironmentError",
    "ComInitializationError",
    "ClassLookupError",
    "InstantiationError",
    "OutputPathError",
    "EnvironmentLookupError",
    "PathTooLongError",
    "PayloadError",
    "NotBinaryPayloadError",
    "ShortWriteError",
    "PayloadWriteError",
    "ArtifactMissingError",
    "StartupRegistrationError",
    "StartupKeyOpenError",
    "StartupValueWriteError",
]
