from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal


BumpType = Literal[
    "major",
    "minor",
    "patch",
    "premajor",
    "preminor",
    "prepatch",
    "prerelease",
]

BUMP_TYPES: tuple[BumpType, ...] = (
    "major",
    "minor",
    "patch",
    "premajor",
    "preminor",
    "prepatch",
    "prerelease",
)

# First release when there is nothing to increment from.
SEED_VERSION = "0.1.0"

MANIFEST_FILENAME = "package.json"


class BranchStatus(Enum):
    """Where HEAD stands relative to the last release tag. Never persisted."""

    NO_TAG = "no_tag"  # repository has no tag at all
    FIRST_TAG = "first_tag"  # tags exist, none usable as a comparison point
    INVALID_TAG = "invalid_tag"  # resolved label is not a semantic version
    PRISTINE = "pristine"  # tag is at HEAD
    VALID = "valid"  # tag is behind HEAD

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Manifest:
    """A package.json the user was asked about.

    `data` is the whole parsed JSON object; only its "version" key is ever
    rewritten. `valid` means the user accepted the file and its version is a
    semantic version.
    """

    path: Path
    data: dict[str, object]
    version: str
    valid: bool = False


@dataclass(frozen=True, slots=True)
class RepoCommit:
    sha: str
    message: str

    @property
    def short_sha(self) -> str:
        return self.sha[:8]

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0].strip()


@dataclass(frozen=True, slots=True)
class ReleaseOptions:
    """Flags for a single release run."""

    cwd: Path
    auto: bool = True
    release: BumpType | None = None
    pre: bool = False
    identifier: str | None = None
    forced: bool = False
    prefix: bool = True
    commit: bool = True
    update_manifest: bool = True
    changelog: bool = False
    preset: str = "angular"
    append: bool = True
    search_manifest: bool = False
    reset: bool = False


@dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    label: str
    version: str
    committed: bool
    tagged: bool
    manifest_updated: bool
    changelog_path: Path | None = None

    def summary(self) -> str:
        if self.committed:
            return f"Bump to {self.label} completed."
        return f"Bump to {self.label} completed, no commits made."
