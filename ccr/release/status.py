"""Branch status: where HEAD stands relative to the last release tag."""

from __future__ import annotations

from dataclasses import dataclass

from ccr.core.result import Err, Ok, Result
from ccr.release.errors import UnknownConfigStateError
from ccr.release.model import BranchStatus


@dataclass(frozen=True, slots=True)
class TagSnapshot:
    """Repository facts the status is derived from.

    Attributes:
        any_tag: the repository has at least one tag
        label: the candidate release label, if one was resolved
        label_valid: `label` is a semantic version
        comparison: the existing tag HEAD is measured against (the candidate
            itself, or a lower tag the user agreed to fall back to)
        commits_since: commits between `comparison` and HEAD
    """

    any_tag: bool
    label: str | None = None
    label_valid: bool = True
    comparison: str | None = None
    commits_since: int = 0


def evaluate_branch_status(snapshot: TagSnapshot) -> BranchStatus:
    if not snapshot.any_tag:
        return BranchStatus.NO_TAG
    if snapshot.label is not None and not snapshot.label_valid:
        return BranchStatus.INVALID_TAG
    if snapshot.comparison is None:
        return BranchStatus.FIRST_TAG
    if snapshot.commits_since == 0:
        return BranchStatus.PRISTINE
    return BranchStatus.VALID


def check_known_state(
    *, manifest_valid: bool, current_semver: str | None, seed_accepted: bool
) -> Result[None, UnknownConfigStateError]:
    """Fail when reconciliation left no version to start from."""
    if manifest_valid or current_semver is not None or seed_accepted:
        return Ok(None)
    return Err(UnknownConfigStateError())
