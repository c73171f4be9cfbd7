"""Persisted release state.

One JSON file per repository under the user config directory:

  <user-config-dir>/repos/<digest>.json

with content like:

  {
    "repository": "/home/me/project",
    "packageJson": {
      "path": "/home/me/project/package.json",
      "pkg": {"name": "project", "version": "1.2.0"},
      "valid": true,
      "exhausted": true
    },
    "currentSemVer": "1.2.0",
    "configured": true,
    "developBranchName": "develop"
  }

`ConfigStore` is the raw key-value layer (dotted keys reach into nested
objects). `ReleaseConfig` is the typed record the orchestrator works on; it is
loaded once per run and written back with `save_release_config` at fixed
checkpoints.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from pathlib import Path

from ccr.core.result import Err, Ok, Result
from ccr.core.structured import StrDict, as_str_dict, get_bool, get_path, get_str, get_table
from ccr.platform.files import atomic_write_text
from ccr.platform.paths import user_config_dir
from ccr.release.errors import FileOperationError
from ccr.release.model import Manifest

__all__ = [
    "ConfigStore",
    "ReleaseConfig",
    "config_path_for",
    "load_release_config",
    "save_release_config",
]

KEY_MANIFEST = "packageJson"
KEY_CURRENT_SEMVER = "currentSemVer"
KEY_CONFIGURED = "configured"
KEY_DEVELOP_BRANCH = "developBranchName"
KEY_REPOSITORY = "repository"


def config_path_for(repo_root: Path) -> Path:
    digest = hashlib.sha256(str(repo_root.resolve()).encode("utf-8")).hexdigest()[:16]
    return user_config_dir() / "repos" / f"{digest}.json"


class ConfigStore:
    """JSON-backed key-value store; every mutation is written through."""

    def __init__(self, path: Path, data: StrDict | None = None) -> None:
        self.path = path
        self._data: StrDict = data if data is not None else {}

    @classmethod
    def open(cls, path: Path) -> Result[ConfigStore, FileOperationError]:
        if not path.exists():
            return Ok(cls(path))

        try:
            obj: object = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            return Err(
                FileOperationError(
                    path=path,
                    message=f"failed to read release config: {e}",
                    hint="Run with --reset to start from a clean configuration.",
                )
            )

        data = as_str_dict(obj)
        if data is None:
            return Err(
                FileOperationError(
                    path=path,
                    message="release config is not a JSON object",
                    hint="Run with --reset to start from a clean configuration.",
                )
            )
        return Ok(cls(path, data))

    @property
    def all(self) -> StrDict:
        return dict(self._data)

    def get(self, key: str) -> object | None:
        return get_path(self._data, key)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def set(self, key: str, value: object) -> Result[None, FileOperationError]:
        *parents, leaf = key.split(".")
        node = self._data
        for part in parents:
            child = as_str_dict(node.get(part))
            if child is None:
                child = {}
                node[part] = child
            node = child
        node[leaf] = value
        return self._write()

    def delete(self, key: str) -> Result[None, FileOperationError]:
        *parents, leaf = key.split(".")
        node: StrDict | None = self._data
        for part in parents:
            node = as_str_dict(node.get(part)) if node is not None else None
        if node is None or leaf not in node:
            return Ok(None)
        del node[leaf]
        return self._write()

    def clear(self) -> Result[None, FileOperationError]:
        return self.replace_all({})

    def replace_all(self, data: StrDict) -> Result[None, FileOperationError]:
        self._data = data
        return self._write()

    def _write(self) -> Result[None, FileOperationError]:
        try:
            atomic_write_text(self.path, json.dumps(self._data, indent=2) + "\n")
        except OSError as e:
            return Err(
                FileOperationError(path=self.path, message=f"failed to write release config: {e}")
            )
        return Ok(None)


@dataclass(slots=True)
class ReleaseConfig:
    """The state carried between runs for one repository."""

    manifest: Manifest | None = None
    manifest_exhausted: bool = False
    current_semver: str | None = None
    configured: bool = False
    develop_branch_name: str | None = None

    @property
    def manifest_valid(self) -> bool:
        return self.manifest is not None and self.manifest.valid

    @property
    def has_current_semver(self) -> bool:
        return self.current_semver is not None


def load_release_config(store: ConfigStore) -> ReleaseConfig:
    """Build the typed record; malformed entries read as absent."""
    data = store.all
    manifest: Manifest | None = None
    exhausted = False

    table = get_table(data, KEY_MANIFEST)
    if table is not None:
        exhausted = get_bool(table, "exhausted")
        path = get_str(table, "path")
        pkg = get_table(table, "pkg")
        if path is not None and pkg is not None:
            manifest = Manifest(
                path=Path(path),
                data=pkg,
                version=get_str(pkg, "version") or "",
                valid=get_bool(table, "valid"),
            )

    return ReleaseConfig(
        manifest=manifest,
        manifest_exhausted=exhausted,
        current_semver=get_str(data, KEY_CURRENT_SEMVER),
        configured=get_bool(data, KEY_CONFIGURED),
        develop_branch_name=get_str(data, KEY_DEVELOP_BRANCH),
    )


def save_release_config(
    store: ConfigStore,
    config: ReleaseConfig,
    *,
    repo_root: Path | None = None,
) -> Result[None, FileOperationError]:
    data: StrDict = store.all
    if repo_root is not None:
        data[KEY_REPOSITORY] = str(repo_root)

    manifest_entry: StrDict = {"exhausted": config.manifest_exhausted}
    if config.manifest is not None:
        manifest_entry.update(
            {
                "path": str(config.manifest.path),
                "pkg": config.manifest.data,
                "valid": config.manifest.valid,
            }
        )
    data[KEY_MANIFEST] = manifest_entry

    _put(data, KEY_CURRENT_SEMVER, config.current_semver)
    data[KEY_CONFIGURED] = config.configured
    _put(data, KEY_DEVELOP_BRANCH, config.develop_branch_name)

    return store.replace_all(data)


def _put(data: StrDict, key: str, value: object | None) -> None:
    if value is None:
        data.pop(key, None)
    else:
        data[key] = value
