"""Error types for the release flow.

Each failure the release flow can report is its own frozen dataclass, so
callers can `match` on the kind instead of parsing messages. Two of them are
expected outcomes rather than failures: `UserAbortedError` (a declined
prompt) and `NoNewCommitError` (nothing to release).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class UserAbortedError:
    message: str = "Aborting."
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class NoNewCommitError:
    label: str
    message: str = "No new commits since last tag, aborting."
    hint: str | None = "Use --forced to bump anyway."


@dataclass(frozen=True, slots=True)
class UnknownConfigStateError:
    message: str = "Unknown config state."
    hint: str | None = "Run with --reset to start from a clean configuration."


@dataclass(frozen=True, slots=True)
class InvalidTagError:
    label: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class LabelNotFoundError:
    label: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class TagAlreadyExistsError:
    label: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ChangelogNotFoundError:
    directory: Path
    message: str = "No changelog file found."
    hint: str | None = "Create CHANGELOG.md or run with --no-changelog."


@dataclass(frozen=True, slots=True)
class BackupNotFoundError:
    path: Path
    message: str = "The changelog backup file was not found."
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ExhaustedSearchError:
    message: str = "Exhausted all directories within repository."
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class NoManifestFoundError:
    message: str = "No package.json found."
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class InvalidVersionError:
    value: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class InvalidBumpTypeError:
    value: str
    message: str
    hint: str | None = (
        "Expected one of: major, minor, patch, premajor, preminor, prepatch, prerelease."
    )


@dataclass(frozen=True, slots=True)
class InvalidPresetError:
    value: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class GitCommandError:
    command: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class FileOperationError:
    path: Path
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class PromptUnavailableError:
    prompt: str
    message: str
    hint: str | None = 'Pre-seed the answer with --answer "<message>=<value>".'


ReleaseError = (
    UserAbortedError
    | NoNewCommitError
    | UnknownConfigStateError
    | InvalidTagError
    | LabelNotFoundError
    | TagAlreadyExistsError
    | ChangelogNotFoundError
    | BackupNotFoundError
    | ExhaustedSearchError
    | NoManifestFoundError
    | InvalidVersionError
    | InvalidBumpTypeError
    | InvalidPresetError
    | GitCommandError
    | FileOperationError
    | PromptUnavailableError
)
