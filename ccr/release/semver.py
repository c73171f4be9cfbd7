"""Semantic-version rules.

Validation, increment and ordering are delegated to python-semver; this
module only adds the tag conventions on top (an optional leading "v").
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import cmp_to_key

import semver

from ccr.core.result import Err, Ok, Result
from ccr.release.errors import InvalidBumpTypeError, InvalidVersionError
from ccr.release.model import BUMP_TYPES


# Tag-name patterns. They are looser than the semver grammar on purpose
# ("1.2.3-" matches); candidates still go through is_valid().
VALID_SEMVER = re.compile(r"^v?\d+\.\d+\.\d+-?(?:\d*|\w*\.\d+)$")
PREFIXED_SEMVER = re.compile(r"^v\d+\.\d+\.\d+-?(?:\d*|\w*\.\d+)$")
UNPREFIXED_SEMVER = re.compile(r"^\d+\.\d+\.\d+-?(?:\d*|\w*\.\d+)$")

_PRERELEASE_TOKEN = "rc"


def tag_pattern(*, prefix: bool | None) -> re.Pattern[str]:
    """Pattern for tags of one prefix convention (None accepts both)."""
    if prefix is None:
        return VALID_SEMVER
    return PREFIXED_SEMVER if prefix else UNPREFIXED_SEMVER


def strip_prefix(label: str) -> str:
    label = label.strip()
    return label[1:] if label.startswith("v") else label


def to_label(version: str, *, prefix: bool) -> str:
    """Render a version as a tag label in the given convention."""
    bare = strip_prefix(version)
    return f"v{bare}" if prefix else bare


def is_valid(label: str) -> bool:
    return semver.Version.is_valid(strip_prefix(label))


def increment(
    label: str,
    bump: str,
    identifier: str | None = None,
) -> Result[str, InvalidVersionError | InvalidBumpTypeError]:
    """Increment a version (prefix dropped) by a bump type.

    The identifier is only used for "prerelease", as the pre-release token.
    """
    if not is_valid(label):
        return Err(
            InvalidVersionError(
                value=label,
                message=f"The provided label {label} does not follow semver.",
            )
        )
    if bump not in BUMP_TYPES:
        return Err(InvalidBumpTypeError(value=bump, message=f"Invalid type {bump} provided."))

    current = semver.Version.parse(strip_prefix(label))
    match bump:
        case "major" | "minor" | "patch":
            new = current.next_version(part=bump)
        case "premajor":
            new = current.bump_major().bump_prerelease(token=_PRERELEASE_TOKEN)
        case "preminor":
            new = current.bump_minor().bump_prerelease(token=_PRERELEASE_TOKEN)
        case "prepatch":
            new = current.bump_patch().bump_prerelease(token=_PRERELEASE_TOKEN)
        case _:
            new = current.next_version(
                part="prerelease",
                prerelease_token=identifier or _PRERELEASE_TOKEN,
            )
    return Ok(str(new))


def reverse_compare(a: str, b: str) -> int:
    """Compare for a descending sort: -1 when a has higher precedence."""
    return semver.Version.parse(strip_prefix(b)).compare(strip_prefix(a))


def sort_descending(labels: Iterable[str]) -> list[str]:
    """Valid labels first, highest precedence first; invalid ones keep their order."""
    items = list(labels)
    valid = sorted((x for x in items if is_valid(x)), key=cmp_to_key(reverse_compare))
    return valid + [x for x in items if not is_valid(x)]
