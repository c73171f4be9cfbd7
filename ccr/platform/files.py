"""Filesystem helpers."""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from ccr.core.result import Err, Ok, Result

__all__ = ["FileError", "atomic_write_text", "copy_file", "remove_file"]


@dataclass(frozen=True, slots=True)
class FileError:
    """A file operation failed.

    Attributes:
        path: The path the operation was about
        message: OS error text
        missing: True when the failure is "no such file"
    """

    path: Path
    message: str
    missing: bool = False


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def copy_file(source: Path, destination: Path) -> Result[None, FileError]:
    """Copy bytes (and mode) from source to destination, replacing it."""
    try:
        shutil.copy2(source, destination)
    except FileNotFoundError as e:
        return Err(FileError(path=source, message=str(e), missing=True))
    except OSError as e:
        return Err(FileError(path=destination, message=str(e)))
    return Ok(None)


def remove_file(target: Path) -> Result[None, FileError]:
    """Delete a single file."""
    try:
        target.unlink()
    except FileNotFoundError as e:
        return Err(FileError(path=target, message=str(e), missing=True))
    except OSError as e:
        return Err(FileError(path=target, message=str(e)))
    return Ok(None)
