"""package.json discovery and version write-back.

Discovery walks upward from the working directory. Each package.json found
is shown to the user, who accepts it, rejects it (the walk continues one
directory higher, but never above the repository root) or aborts the run.
"""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

from ccr.core.result import Err, Ok, Result
from ccr.core.structured import as_str_dict, get_str
from ccr.output.console import ConsoleProtocol
from ccr.platform.files import atomic_write_text
from ccr.release.errors import (
    ExhaustedSearchError,
    FileOperationError,
    InvalidVersionError,
    NoManifestFoundError,
    PromptUnavailableError,
    UserAbortedError,
)
from ccr.release.model import MANIFEST_FILENAME, Manifest
from ccr.release.prompt import PromptProtocol
from ccr.release.semver import is_valid, strip_prefix

__all__ = [
    "SearchError",
    "find_candidate",
    "read_manifest",
    "reload_manifest",
    "search_manifest",
    "update_manifest_version",
]

CHOICE_YES = "Yes"
CHOICE_NO = "No"
CHOICE_ABORT = "Abort"

SearchError = (
    ExhaustedSearchError
    | NoManifestFoundError
    | UserAbortedError
    | InvalidVersionError
    | FileOperationError
    | PromptUnavailableError
)


def manifest_question(path: Path) -> str:
    return f"Package.json found in {path}, is this file correct?"


def read_manifest(path: Path) -> Result[Manifest, InvalidVersionError | FileOperationError]:
    """Parse a package.json; its version must be a semantic version."""
    try:
        obj: object = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        return Err(FileOperationError(path=path, message=f"failed to read {path.name}: {e}"))

    data = as_str_dict(obj)
    if data is None:
        return Err(FileOperationError(path=path, message=f"{path} is not a JSON object"))

    version = get_str(data, "version") or ""
    if not is_valid(version):
        return Err(
            InvalidVersionError(
                value=version,
                message=(
                    "Version in selected package.json does not follow semver. "
                    f"File: {path}, version: {version or '<missing>'}"
                ),
            )
        )
    return Ok(Manifest(path=path, data=data, version=strip_prefix(version)))


def find_candidate(
    start: Path,
) -> Result[Manifest | None, InvalidVersionError | FileOperationError]:
    """Nearest package.json at or above `start`; None up to the filesystem root."""
    path = _nearest_manifest_path(start)
    if path is None:
        return Ok(None)
    return read_manifest(path)


def _nearest_manifest_path(start: Path) -> Path | None:
    for directory in (start, *start.parents):
        path = directory / MANIFEST_FILENAME
        if path.is_file():
            return path
    return None


def search_manifest(
    *,
    start: Path,
    repo_root: Path,
    prompt: PromptProtocol,
    console: ConsoleProtocol,
) -> Result[Manifest, SearchError]:
    """Walk upward asking the user to confirm each package.json found.

    Returns the accepted manifest (marked valid).
    """
    current = start.resolve()
    root = repo_root.resolve()

    while True:
        path = _nearest_manifest_path(current)
        if path is None:
            return Err(NoManifestFoundError())

        # Files above the repository are never parsed.
        directory = path.parent.resolve()
        if not directory.is_relative_to(root):
            return Err(ExhaustedSearchError())

        found = read_manifest(path)
        if isinstance(found, Err):
            return found
        manifest = found.value

        console.debug(f"manifest candidate: {manifest.path} ({manifest.version})")
        answer = prompt.choose_one(
            manifest_question(manifest.path), (CHOICE_YES, CHOICE_NO, CHOICE_ABORT)
        )
        if isinstance(answer, Err):
            return answer

        match answer.value:
            case "Yes":
                return Ok(replace(manifest, valid=True))
            case "Abort":
                return Err(UserAbortedError())
            case _:
                if directory == root:
                    return Err(ExhaustedSearchError())
                current = directory.parent


def reload_manifest(
    manifest: Manifest,
) -> Result[Manifest | None, InvalidVersionError | FileOperationError]:
    """Re-read a cached manifest from disk, keeping its validity.

    None when the file no longer exists.
    """
    if not manifest.path.is_file():
        return Ok(None)
    fresh = read_manifest(manifest.path)
    if isinstance(fresh, Err):
        return fresh
    return Ok(replace(fresh.value, valid=manifest.valid))


def update_manifest_version(
    manifest: Manifest,
    version: str,
    *,
    enabled: bool,
    console: ConsoleProtocol,
) -> Result[bool, FileOperationError]:
    """Write `version` (no "v") into the manifest file; Ok(True) if written.

    Every other field is kept as it is on disk, in the same order.
    """
    if not enabled:
        console.info("manifest version update disabled, package.json left as is")
        return Ok(False)
    if not manifest.valid:
        console.debug(f"manifest {manifest.path} is not confirmed, not updating it")
        return Ok(False)

    path = manifest.path
    try:
        obj: object = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        return Err(FileOperationError(path=path, message=f"failed to read {path.name}: {e}"))

    data = as_str_dict(obj)
    if data is None:
        return Err(FileOperationError(path=path, message=f"{path} is not a JSON object"))

    data["version"] = strip_prefix(version)
    try:
        atomic_write_text(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
    except OSError as e:
        return Err(FileOperationError(path=path, message=f"failed to write {path.name}: {e}"))

    console.debug(f"wrote version {strip_prefix(version)} to {path}")
    return Ok(True)
