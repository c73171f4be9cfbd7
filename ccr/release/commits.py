"""Conventional Commit parsing and bump recommendation.

    feat(parser)!: drop the legacy syntax

    BREAKING CHANGE: v1 files no longer load

`type`, optional `(scope)`, optional `!`, then `: description`. A `!` or a
`BREAKING CHANGE:` / `BREAKING-CHANGE:` footer marks a breaking change.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from ccr.release.model import BumpType, RepoCommit

_HEADER = re.compile(r"^(?P<type>[a-zA-Z]+)(?:\((?P<scope>[^()\r\n]*)\))?(?P<bang>!)?: (?P<desc>.+)$")
_BREAKING_FOOTER = re.compile(r"^BREAKING[ -]CHANGE:\s*(?P<text>.*)$", re.MULTILINE)


@dataclass(frozen=True, slots=True)
class ParsedCommit:
    sha: str
    type: str
    scope: str | None
    description: str
    breaking: bool
    breaking_description: str | None = None

    @property
    def short_sha(self) -> str:
        return self.sha[:8]


def parse_commit(commit: RepoCommit) -> ParsedCommit | None:
    """Parse one commit; None when the subject is not conventional."""
    m = _HEADER.match(commit.subject)
    if m is None:
        return None

    footer = _BREAKING_FOOTER.search(commit.message)
    breaking_text = footer.group("text").strip() if footer else None
    return ParsedCommit(
        sha=commit.sha,
        type=m.group("type").lower(),
        scope=(m.group("scope") or "").strip() or None,
        description=m.group("desc").strip(),
        breaking=bool(m.group("bang")) or footer is not None,
        breaking_description=breaking_text or None,
    )


def parse_commits(commits: Iterable[RepoCommit]) -> list[ParsedCommit]:
    return [pc for pc in (parse_commit(c) for c in commits) if pc is not None]


def recommend_bump(commits: Iterable[RepoCommit]) -> BumpType:
    """Breaking change -> major, any feature -> minor, anything else -> patch."""
    parsed = parse_commits(commits)
    if any(pc.breaking for pc in parsed):
        return "major"
    if any(pc.type == "feat" for pc in parsed):
        return "minor"
    return "patch"


def as_prerelease(bump: BumpType) -> BumpType:
    """Map a release bump to its pre-release counterpart (major -> premajor)."""
    match bump:
        case "major":
            return "premajor"
        case "minor":
            return "preminor"
        case "patch":
            return "prepatch"
        case _:
            return bump
