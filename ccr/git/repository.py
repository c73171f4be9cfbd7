"""Git repository gateway.

This module provides the Repository class: everything the release flow needs
to know about tags, commits and branches. All operations return Result types;
failed git invocations are translated into release error kinds
(LabelNotFoundError, TagAlreadyExistsError, GitCommandError).

Usage:
    match Repository.find_root(Path.cwd()):
        case Ok(root):
            repo = Repository(root)
        case Err(e):
            print(f"Error: {e.message}")

    match repo.all_tags_matching(PREFIXED_SEMVER):
        case Ok(tags):
            print(sort_descending(tags)[:1])
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

import os
import re
from collections.abc import Sequence
from pathlib import Path

from ccr.core.result import Err, Ok, Result
from ccr.platform.process import ProcessError
from ccr.platform.process import run as run_process
from ccr.release.errors import GitCommandError, LabelNotFoundError, TagAlreadyExistsError
from ccr.release.model import RepoCommit

_GIT_TIMEOUT_SECONDS = 30.0

# Separators for `git log` output: unit (field) and record.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"

__all__ = ["Repository"]


class Repository:
    """Git repository gateway.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    @staticmethod
    def find_root(start: Path) -> Result[Path, GitCommandError]:
        """Resolve the top-level directory of the repository enclosing `start`."""
        result = run_process(
            ["git", "rev-parse", "--show-toplevel"], cwd=start, timeout=_GIT_TIMEOUT_SECONDS
        )
        match result:
            case Err(e):
                return Err(
                    GitCommandError(
                        command="rev-parse --show-toplevel",
                        message=e.stderr.strip() or f"not a git repository: {start}",
                        hint="Run ccr from inside a git repository.",
                    )
                )
            case Ok(stdout):
                return Ok(Path(stdout.strip()).resolve())

    def list_tags(self) -> Result[list[str], GitCommandError]:
        """All tag names, in the order git prints them."""
        result = self._run(["tag"])
        if isinstance(result, Err):
            return Err(_git_error("tag", result.error))
        return Ok([line.strip() for line in result.value.splitlines() if line.strip()])

    def any_tag_exists(self) -> Result[bool, GitCommandError]:
        return self.list_tags().map(lambda tags: len(tags) > 0)

    def tag_exists(self, label: str) -> Result[bool, GitCommandError]:
        return self.list_tags().map(lambda tags: label in tags)

    def all_tags_matching(self, pattern: re.Pattern[str]) -> Result[list[str], GitCommandError]:
        """Tags accepted by `pattern`, unsorted."""
        return self.list_tags().map(lambda tags: [t for t in tags if pattern.match(t)])

    def hash_of_label(self, label: str) -> Result[str, LabelNotFoundError]:
        """Commit hash a tag points to (annotated tags are peeled)."""
        result = self._run(["rev-parse", "--verify", "--quiet", f"refs/tags/{label}^{{commit}}"])
        match result:
            case Err(_):
                return Err(
                    LabelNotFoundError(
                        label=label,
                        message=f"Label {label} not found.",
                    )
                )
            case Ok(stdout):
                return Ok(stdout.strip())

    def commits_since(self, commit_hash: str) -> Result[int, GitCommandError]:
        """Number of commits reachable from HEAD but not from `commit_hash`."""
        result = self._run(["rev-list", f"{commit_hash}..HEAD", "--count"])
        match result:
            case Err(e):
                return Err(_git_error("rev-list --count", e))
            case Ok(stdout):
                try:
                    return Ok(int(stdout.strip()))
                except ValueError:
                    return Err(
                        GitCommandError(
                            command="rev-list --count",
                            message=f"unexpected output: {stdout.strip()!r}",
                        )
                    )

    def create_tag(self, label: str) -> Result[None, TagAlreadyExistsError | GitCommandError]:
        """Create a lightweight tag at HEAD."""
        exists = self.tag_exists(label)
        if isinstance(exists, Err):
            return exists
        if exists.value:
            return Err(
                TagAlreadyExistsError(
                    label=label,
                    message=f"fatal: tag '{label}' already exists",
                )
            )

        result = self._run(["tag", label])
        if isinstance(result, Err):
            if "already exists" in result.error.stderr:
                return Err(TagAlreadyExistsError(label=label, message=result.error.stderr.strip()))
            return Err(_git_error("tag", result.error))
        return Ok(None)

    def commit(
        self,
        message: str,
        *,
        paths: Sequence[Path] = (),
        all_changes: bool = False,
    ) -> Result[None, GitCommandError]:
        """Stage `paths` (or every change) and commit.

        With paths, only those files go into the commit, even when other
        changes are staged. With neither paths nor all_changes, only what is
        already staged is committed; git fails when that is nothing.
        """
        pathspec = [str(p) for p in paths]
        if pathspec:
            staged = self._run(["add", "--", *pathspec])
            if isinstance(staged, Err):
                return Err(_git_error("add", staged.error))
        elif all_changes:
            staged = self._run(["add", "--all"])
            if isinstance(staged, Err):
                return Err(_git_error("add --all", staged.error))

        command = ["commit", "-m", message]
        if pathspec:
            command += ["--", *pathspec]
        result = self._run(command)
        if isinstance(result, Err):
            return Err(_git_error("commit", result.error))
        return Ok(None)

    def current_branch(self) -> str | None:
        """Get current branch name.

        Returns None if detached HEAD or error.
        """
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def log_since(self, label: str | None) -> Result[list[RepoCommit], GitCommandError]:
        """Commits after tag `label` up to HEAD, newest first (whole history if None)."""
        revision = f"refs/tags/{label}..HEAD" if label else "HEAD"
        result = self._run(["log", f"--format=%H{_FIELD_SEP}%B{_RECORD_SEP}", revision])
        if isinstance(result, Err):
            return Err(_git_error("log", result.error))
        return Ok(self._parse_log(result.value))

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        return run_process(
            ["git", "-C", str(self.path), *args],
            cwd=self.path,
            env=_git_env(),
            timeout=_GIT_TIMEOUT_SECONDS,
        )

    def _parse_log(self, output: str) -> list[RepoCommit]:
        commits: list[RepoCommit] = []
        for record in output.split(_RECORD_SEP):
            record = record.strip()
            if not record or _FIELD_SEP not in record:
                continue
            sha, body = record.split(_FIELD_SEP, 1)
            commits.append(RepoCommit(sha=sha.strip(), message=body.strip()))
        return commits


def _git_env() -> dict[str, str]:
    # Never block on a credential prompt.
    return {**os.environ, "GIT_TERMINAL_PROMPT": "0"}


def _git_error(command: str, error: ProcessError) -> GitCommandError:
    return GitCommandError(
        command=command,
        message=error.stderr.strip() or error.stdout.strip() or f"git {command} failed",
    )
