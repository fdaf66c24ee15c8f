"""Output path construction and binary payload persistence."""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from autofetch.core.errors import (
    EnvironmentLookupError,
    NotBinaryPayloadError,
    PathTooLongError,
    PayloadWriteError,
    ShortWriteError,
)
from autofetch.dispatch.variant import TaggedValue, VarType

LOGGER = logging.getLogger(__name__)

MAX_PATH = 260
DEFAULT_BASE_DIR_ENV = "LOCALAPPDATA"
DEFAULT_FILENAME = "checkme.png"


def build_output_path(
    env: Optional[Mapping[str, str]] = None,
    *,
    base_dir_env: str = DEFAULT_BASE_DIR_ENV,
    filename: str = DEFAULT_FILENAME,
    max_path: int = MAX_PATH,
) -> Path:
    """Join the directory named by *base_dir_env* with *filename*.

    The joined path must fit in ``max_path`` characters including the
    terminator, the same bound a ``MAX_PATH`` buffer imposes.
    """

    environ = os.environ if env is None else env
    base = environ.get(base_dir_env)
    if not base:
        raise EnvironmentLookupError(base_dir_env)

    path = Path(base) / filename
    if len(str(path)) >= max_path:
        raise PathTooLongError(str(path), max_path)
    return path


def persist(value: TaggedValue, file_path: Path) -> int:
    """Write the byte array carried by *value* to *file_path*.

    The payload goes to a temporary sibling first and replaces the target only
    once every byte is on disk, so a failed write never leaves a partial file.
    Returns the number of bytes written.
    """

    array = value.as_byte_array() if value.tag is VarType.UI1_ARRAY else None
    if array is None:
        raise NotBinaryPayloadError(value.tag.value)

    with array.access() as view:
        size = array.element_count
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{file_path.name}.", suffix=".part", dir=file_path.parent)
        except OSError as exc:
            raise PayloadWriteError(file_path, exc) from exc
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                written = handle.write(view)
                handle.flush()
                os.fsync(handle.fileno())
            if written != size:
                raise ShortWriteError(size, written)
            os.replace(tmp_path, file_path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise PayloadWriteError(file_path, exc) from exc
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    LOGGER.info("Saved %s bytes to %s", written, file_path.name)
    return written


__all__ = [
    "DEFAULT_BASE_DIR_ENV",
    "DEFAULT_FILENAME",
    "MAX_PATH",
    "build_output_path",
    "persist",
]
