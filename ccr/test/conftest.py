from __future__ import annotations

import json
import shutil
import subprocess
from collections.abc import Iterator
from pathlib import Path

import pytest

from ccr.platform.paths import clear_caches


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Keep persisted release state out of the real user config directory."""
    config_dir = tmp_path_factory.mktemp("ccr-config")
    monkeypatch.setenv("CCR_CONFIG_DIR", str(config_dir))
    clear_caches()
    yield config_dir
    clear_caches()


class GitRepo:
    """A throwaway git repository driven through the git CLI."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def git(self, *args: str) -> str:
        proc = subprocess.run(
            ["git", *args],
            cwd=self.path,
            capture_output=True,
            text=True,
            check=True,
        )
        return proc.stdout

    def commit(self, message: str, *, filename: str = "file.txt", content: str | None = None) -> str:
        target = self.path / filename
        previous = target.read_text(encoding="utf-8") if target.exists() else ""
        target.write_text(content if content is not None else previous + message + "\n", encoding="utf-8")
        self.git("add", "--", filename)
        self.git("commit", "-q", "-m", message)
        return self.head()

    def tag(self, label: str) -> None:
        self.git("tag", label)

    def tags(self) -> list[str]:
        return [t for t in self.git("tag").splitlines() if t.strip()]

    def head(self) -> str:
        return self.git("rev-parse", "HEAD").strip()

    def subjects(self) -> list[str]:
        return self.git("log", "--format=%s").splitlines()

    def write_manifest(self, version: str, **fields: object) -> Path:
        path = self.path / "package.json"
        data: dict[str, object] = {"name": "demo", "version": version, **fields}
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        return path


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepo:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    root = tmp_path / "repo"
    root.mkdir()
    repo = GitRepo(root.resolve())
    repo.git("init", "-q")
    repo.git("symbolic-ref", "HEAD", "refs/heads/main")
    repo.git("config", "user.name", "Release Bot")
    repo.git("config", "user.email", "release@example.com")
    repo.git("config", "commit.gpgsign", "false")
    repo.git("config", "tag.gpgsign", "false")
    return repo
