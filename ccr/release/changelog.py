"""Changelog backup, regeneration and restore.

The changelog is the first of `changelog.md`, `Changelog.md`, `CHANGELOG.md`
found in the repository root (matched case-insensitively). Before a release
rewrites it, a copy is kept next to it as `original.<name>`; a successful
release deletes the copy, a failed one leaves it for `ccr restore`.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from ccr.core.result import Err, Ok, Result
from ccr.platform.files import atomic_write_text, copy_file, remove_file
from ccr.release.commits import ParsedCommit, parse_commits
from ccr.release.errors import (
    BackupNotFoundError,
    ChangelogNotFoundError,
    FileOperationError,
    InvalidPresetError,
)
from ccr.release.model import RepoCommit

CHANGELOG_NAMES = ("changelog.md", "Changelog.md", "CHANGELOG.md")
BACKUP_PREFIX = "original"

_ANGULAR_SECTIONS = (
    ("feat", "Features"),
    ("fix", "Bug Fixes"),
    ("perf", "Performance Improvements"),
    ("revert", "Reverts"),
)

PRESETS: dict[str, tuple[tuple[str, str], ...]] = {
    "angular": _ANGULAR_SECTIONS,
    "conventionalcommits": _ANGULAR_SECTIONS
    + (
        ("docs", "Documentation"),
        ("refactor", "Code Refactoring"),
        ("test", "Tests"),
        ("build", "Build System"),
        ("ci", "Continuous Integration"),
        ("chore", "Miscellaneous Chores"),
    ),
}


def generate_release_notes(
    label: str,
    commits: Sequence[RepoCommit],
    *,
    preset: str = "angular",
    today: date | None = None,
) -> Result[str, InvalidPresetError]:
    """Render one release section from the commits since the previous tag."""
    sections = PRESETS.get(preset)
    if sections is None:
        return Err(
            InvalidPresetError(
                value=preset,
                message=f"unknown changelog preset: {preset}",
                hint=f"Available presets: {', '.join(sorted(PRESETS))}",
            )
        )

    day = (today or date.today()).isoformat()
    parsed = parse_commits(commits)
    lines = [f"## {label} ({day})", ""]

    for commit_type, title in sections:
        entries = [pc for pc in parsed if pc.type == commit_type]
        if not entries:
            continue
        lines.append(f"### {title}")
        lines.append("")
        lines.extend(_entry(pc, pc.description) for pc in entries)
        lines.append("")

    breaking = [pc for pc in parsed if pc.breaking]
    if breaking:
        lines.append("### BREAKING CHANGES")
        lines.append("")
        lines.extend(_entry(pc, pc.breaking_description or pc.description) for pc in breaking)
        lines.append("")

    return Ok("\n".join(lines))


def _entry(pc: ParsedCommit, text: str) -> str:
    scope = f"**{pc.scope}:** " if pc.scope else ""
    return f"* {scope}{text} ({pc.short_sha})"


@dataclass(frozen=True, slots=True)
class Changelog:
    """The changelog of one repository."""

    directory: Path
    backup_prefix: str = BACKUP_PREFIX

    def locate(self) -> Result[Path, ChangelogNotFoundError]:
        names = self._file_names()
        for candidate in CHANGELOG_NAMES:
            if candidate in names:
                return Ok(self.directory / candidate)
        for name in sorted(names):
            if name.lower() == "changelog.md":
                return Ok(self.directory / name)
        return Err(ChangelogNotFoundError(directory=self.directory))

    def backup_path(self, path: Path) -> Path:
        return path.with_name(f"{self.backup_prefix}.{path.name}")

    def find_backup(self) -> Result[Path, BackupNotFoundError]:
        """The backup left by `backup()`, whatever the changelog spelling."""
        names = self._file_names()
        expected = f"{self.backup_prefix}.changelog.md".lower()
        for candidate in CHANGELOG_NAMES:
            if f"{self.backup_prefix}.{candidate}" in names:
                return Ok(self.directory / f"{self.backup_prefix}.{candidate}")
        for name in sorted(names):
            if name.lower() == expected:
                return Ok(self.directory / name)
        return Err(
            BackupNotFoundError(path=self.directory / f"{self.backup_prefix}.CHANGELOG.md")
        )

    def backup(self) -> Result[Path, ChangelogNotFoundError | FileOperationError]:
        """Copy the changelog to its backup path; returns the backup path."""
        located = self.locate()
        if isinstance(located, Err):
            return located

        target = self.backup_path(located.value)
        copied = copy_file(located.value, target)
        if isinstance(copied, Err):
            return Err(FileOperationError(path=copied.error.path, message=copied.error.message))
        return Ok(target)

    def regenerate(
        self,
        label: str,
        commits: Sequence[RepoCommit],
        *,
        preset: str = "angular",
        append: bool = True,
        today: date | None = None,
    ) -> Result[Path, ChangelogNotFoundError | FileOperationError | InvalidPresetError]:
        """Write the release section for `label`.

        append=True keeps the existing text and puts the new section on top
        of it (below a leading "# " title, if any); append=False replaces the
        whole file.
        """
        located = self.locate()
        if isinstance(located, Err):
            return located
        path = located.value

        notes = generate_release_notes(label, commits, preset=preset, today=today)
        if isinstance(notes, Err):
            return notes

        try:
            existing = path.read_text(encoding="utf-8") if append else ""
        except OSError as e:
            return Err(FileOperationError(path=path, message=f"failed to read changelog: {e}"))

        content = _merge(notes.value, existing)
        try:
            atomic_write_text(path, content)
        except OSError as e:
            return Err(FileOperationError(path=path, message=f"failed to write changelog: {e}"))
        return Ok(path)

    def restore(self) -> Result[Path, BackupNotFoundError | FileOperationError]:
        """Copy the backup over the changelog and delete the backup."""
        found = self.find_backup()
        if isinstance(found, Err):
            return found
        backup = found.value
        target = backup.with_name(backup.name.removeprefix(f"{self.backup_prefix}."))

        copied = copy_file(backup, target)
        if isinstance(copied, Err):
            if copied.error.missing:
                return Err(BackupNotFoundError(path=backup))
            return Err(FileOperationError(path=copied.error.path, message=copied.error.message))

        removed = remove_file(backup)
        if isinstance(removed, Err):
            return Err(FileOperationError(path=backup, message=removed.error.message))
        return Ok(target)

    def discard_backup(self) -> Result[Path, BackupNotFoundError | FileOperationError]:
        found = self.find_backup()
        if isinstance(found, Err):
            return found

        removed = remove_file(found.value)
        if isinstance(removed, Err):
            if removed.error.missing:
                return Err(BackupNotFoundError(path=found.value))
            return Err(FileOperationError(path=found.value, message=removed.error.message))
        return Ok(found.value)

    def _file_names(self) -> set[str]:
        try:
            return {p.name for p in self.directory.iterdir() if p.is_file()}
        except OSError:
            return set()


def _merge(notes: str, existing: str) -> str:
    section = notes.rstrip("\n") + "\n"
    if not existing.strip():
        return section

    title, rest = "", existing
    first, sep, remainder = existing.partition("\n")
    if first.startswith("# "):
        title, rest = first + sep + "\n", remainder.lstrip("\n")
    return f"{title}{section}\n{rest}"
