"""The release flow.

`Releaser.run` goes through these steps in order; any of them may end the run:

1. load the persisted record (cleared first with `reset`)
2. first-run questions (develop branch name)
3. package.json discovery, unless a previous run already settled it
4. reconcile the version sources into one candidate version
5. evaluate the branch status against the candidate tag
6. decide whether a bump is legitimate and from which base version
7. bump: changelog, persisted version, tag, package.json

The record is written back after steps 2, 3, 4 and 7, and once more before
any git side effect happens, so an interrupted run keeps its decision.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date

from ccr.core.result import Err, Ok, Result
from ccr.git.repository import Repository
from ccr.output.console import ConsoleProtocol
from ccr.release.changelog import Changelog
from ccr.release.commits import as_prerelease, recommend_bump
from ccr.release.config import ConfigStore, ReleaseConfig, load_release_config, save_release_config
from ccr.release.errors import (
    ExhaustedSearchError,
    InvalidBumpTypeError,
    InvalidTagError,
    NoManifestFoundError,
    NoNewCommitError,
    ReleaseError,
    UserAbortedError,
)
from ccr.release.manifest import reload_manifest, search_manifest, update_manifest_version
from ccr.release.model import SEED_VERSION, BranchStatus, BumpType, ReleaseOptions, ReleaseOutcome
from ccr.release.prompt import PromptProtocol
from ccr.release.semver import (
    increment,
    is_valid,
    reverse_compare,
    sort_descending,
    strip_prefix,
    tag_pattern,
    to_label,
)
from ccr.release.status import TagSnapshot, check_known_state, evaluate_branch_status

__all__ = [
    "ASK_DEVELOP_BRANCH",
    "ASK_FIRST_TAG",
    "ASK_NO_SEMVER_TAGS",
    "Releaser",
    "ask_tag_missing",
]

ASK_NO_SEMVER_TAGS = "No valid semver tags found, continue?"
ASK_FIRST_TAG = "No tags found, create first tag?"
ASK_DEVELOP_BRANCH = "Name of the develop branch?"
DEFAULT_DEVELOP_BRANCH = "develop"


def ask_tag_missing(label: str) -> str:
    return f"Tag {label} is not present in repository, continue?"


@dataclass(frozen=True, slots=True)
class BranchState:
    status: BranchStatus
    label: str | None  # candidate label
    comparison: str | None  # existing tag HEAD is measured against


class Releaser:
    """One release attempt over one repository."""

    def __init__(
        self,
        *,
        repo: Repository,
        store: ConfigStore,
        prompt: PromptProtocol,
        console: ConsoleProtocol,
        options: ReleaseOptions,
        today: date | None = None,
    ) -> None:
        self._repo = repo
        self._store = store
        self._prompt = prompt
        self._console = console
        self._options = options
        self._today = today
        self._config = ReleaseConfig()
        # Set when the user agreed to go on without any semver tag.
        self._first_release = False

    @property
    def config(self) -> ReleaseConfig:
        return self._config

    def run(self) -> Result[ReleaseOutcome, ReleaseError]:
        if self._options.reset:
            cleared = self._store.clear()
            if isinstance(cleared, Err):
                return cleared
            self._console.debug("release config cleared")
        self._config = load_release_config(self._store)

        for step in (self._configure_first_run, self._discover_manifest):
            done = step()
            if isinstance(done, Err):
                return done

        candidate_result = self._reconcile()
        if isinstance(candidate_result, Err):
            return candidate_result
        candidate = candidate_result.value

        known = check_known_state(
            manifest_valid=self._config.manifest_valid,
            current_semver=self._config.current_semver,
            seed_accepted=self._first_release,
        )
        if isinstance(known, Err):
            return known

        state_result = self._branch_state(candidate)
        if isinstance(state_result, Err):
            return state_result
        state = state_result.value
        self._console.debug(f"branch status: {state.status} (candidate {state.label})")

        base_result = self._decide(state)
        if isinstance(base_result, Err):
            return base_result

        return self._bump(base_result.value, state)

    def _configure_first_run(self) -> Result[None, ReleaseError]:
        if self._config.configured:
            return Ok(None)

        default = self._repo.current_branch() or DEFAULT_DEVELOP_BRANCH
        answer = self._prompt.ask(ASK_DEVELOP_BRANCH, default)
        if isinstance(answer, Err):
            return answer

        self._config.develop_branch_name = answer.value or default
        self._config.configured = True
        self._console.debug(f"develop branch: {self._config.develop_branch_name}")
        return self._save()

    def _discover_manifest(self) -> Result[None, ReleaseError]:
        config = self._config
        if config.manifest is not None:
            fresh = reload_manifest(config.manifest)
            if isinstance(fresh, Err):
                return fresh
            if fresh.value is None:
                self._console.debug(f"{config.manifest.path} is gone, searching again")
                config.manifest = None
                config.manifest_exhausted = False
            else:
                config.manifest = fresh.value

        if config.manifest_exhausted and not self._options.search_manifest:
            return Ok(None)

        found = search_manifest(
            start=self._options.cwd,
            repo_root=self._repo.path,
            prompt=self._prompt,
            console=self._console,
        )
        match found:
            case Ok(manifest):
                config.manifest = manifest
                self._console.debug(f"using {manifest.path} ({manifest.version})")
            case Err(ExhaustedSearchError() | NoManifestFoundError() as e):
                config.manifest = None
                self._console.debug(e.message)
            case Err(e):
                return Err(e)

        config.manifest_exhausted = True
        return self._save()

    def _reconcile(self) -> Result[str | None, ReleaseError]:
        """Pick the highest candidate label and persist it.

        None means the user agreed to release without any version to start
        from.
        """
        config = self._config
        if config.manifest is not None and config.manifest_valid:
            candidates = [config.manifest.version]
        else:
            tags = self._repo.all_tags_matching(tag_pattern(prefix=self._options.prefix))
            if isinstance(tags, Err):
                return tags
            candidates = tags.value

        if not candidates:
            config.current_semver = None
            saved = self._save()
            if isinstance(saved, Err):
                return saved
            proceed = self._prompt.confirm(ASK_NO_SEMVER_TAGS)
            if isinstance(proceed, Err):
                return proceed
            if not proceed.value:
                return Err(UserAbortedError())
            self._first_release = True
            return Ok(None)

        # An invalid top label is kept too; the branch status rejects it.
        top = sort_descending(candidates)[0]
        config.current_semver = strip_prefix(top)
        saved = self._save()
        if isinstance(saved, Err):
            return saved
        self._console.debug(f"latest version: {top} (from {len(candidates)} candidate(s))")
        return Ok(top)

    def _branch_state(self, candidate: str | None) -> Result[BranchState, ReleaseError]:
        any_tag = self._repo.any_tag_exists()
        if isinstance(any_tag, Err):
            return any_tag
        if not any_tag.value:
            return Ok(BranchState(status=BranchStatus.NO_TAG, label=None, comparison=None))

        if candidate is None:
            return Ok(BranchState(status=BranchStatus.FIRST_TAG, label=None, comparison=None))

        if not is_valid(candidate):
            snapshot = TagSnapshot(any_tag=True, label=candidate, label_valid=False)
            return Ok(BranchState(evaluate_branch_status(snapshot), candidate, None))

        label = to_label(candidate, prefix=self._options.prefix)
        exists = self._repo.tag_exists(label)
        if isinstance(exists, Err):
            return exists

        comparison: str | None = label
        if not exists.value:
            proceed = self._prompt.confirm(ask_tag_missing(label))
            if isinstance(proceed, Err):
                return proceed
            if not proceed.value:
                return Err(UserAbortedError())

            fallback = self._next_highest_tag(below=label)
            if isinstance(fallback, Err):
                return fallback
            comparison = fallback.value
            if comparison is not None:
                self._console.debug(f"comparing against {comparison} instead")

        count = 0
        if comparison is not None:
            sha = self._repo.hash_of_label(comparison)
            if isinstance(sha, Err):
                return sha
            counted = self._repo.commits_since(sha.value)
            if isinstance(counted, Err):
                return counted
            count = counted.value

        snapshot = TagSnapshot(
            any_tag=True,
            label=label,
            label_valid=True,
            comparison=comparison,
            commits_since=count,
        )
        return Ok(BranchState(evaluate_branch_status(snapshot), label, comparison))

    def _next_highest_tag(self, *, below: str) -> Result[str | None, ReleaseError]:
        tags = self._repo.all_tags_matching(tag_pattern(prefix=self._options.prefix))
        if isinstance(tags, Err):
            return tags
        for tag in sort_descending(tags.value):
            if is_valid(tag) and reverse_compare(tag, below) > 0:
                return Ok(tag)
        return Ok(None)

    def _decide(self, state: BranchState) -> Result[str | None, ReleaseError]:
        """Base version to increment from; None to release the seed version."""
        manifest = self._config.manifest if self._config.manifest_valid else None

        match state.status:
            case BranchStatus.INVALID_TAG:
                return Err(
                    InvalidTagError(
                        label=state.label or "",
                        message=f"Tag {state.label} does not follow semver.",
                    )
                )
            case BranchStatus.PRISTINE:
                if not self._options.forced:
                    return Err(NoNewCommitError(label=state.label or ""))
                self._console.info("no new commits since last tag, bumping anyway (--forced)")
                return Ok(manifest.version if manifest is not None else state.label)
            case BranchStatus.VALID:
                return Ok(manifest.version if manifest is not None else state.label)
            case BranchStatus.FIRST_TAG:
                return Ok(manifest.version if manifest is not None else None)
            case BranchStatus.NO_TAG:
                if manifest is not None:
                    return Ok(manifest.version)
                proceed = self._prompt.confirm(ASK_FIRST_TAG)
                if isinstance(proceed, Err):
                    return proceed
                if not proceed.value:
                    return Err(UserAbortedError())
                return Ok(None)

    def _bump_type(self, since: str | None) -> Result[BumpType, ReleaseError]:
        opts = self._options
        if opts.release is not None:
            bump = opts.release
        elif opts.auto:
            commits = self._repo.log_since(since)
            if isinstance(commits, Err):
                return commits
            bump = recommend_bump(commits.value)
            self._console.debug(f"recommended bump: {bump} ({len(commits.value)} commit(s))")
        else:
            return Err(
                InvalidBumpTypeError(value="", message="No release type given and --no-auto set.")
            )
        return Ok(as_prerelease(bump) if opts.pre else bump)

    def _bump(self, base: str | None, state: BranchState) -> Result[ReleaseOutcome, ReleaseError]:
        opts = self._options
        config = self._config

        if base is None:
            version = SEED_VERSION
        else:
            bump = self._bump_type(state.comparison)
            if isinstance(bump, Err):
                return bump
            bumped = increment(base, bump.value, opts.identifier)
            if isinstance(bumped, Err):
                return bumped
            version = bumped.value
        label = to_label(version, prefix=opts.prefix)
        self._console.info(f"next version: {label}")

        changelog: Changelog | None = None
        changelog_path = None
        if opts.changelog:
            changelog = Changelog(self._repo.path)
            backup = changelog.backup()
            if isinstance(backup, Err):
                return backup
            commits = self._repo.log_since(state.comparison)
            if isinstance(commits, Err):
                return commits
            written = changelog.regenerate(
                label,
                commits.value,
                preset=opts.preset,
                append=opts.append,
                today=self._today,
            )
            if isinstance(written, Err):
                return written
            changelog_path = written.value

            if opts.commit:
                committed = self._repo.commit(f"chore(release): {label}", paths=[changelog_path])
                if isinstance(committed, Err):
                    return committed
            else:
                self._console.info(
                    f"changelog regenerated, no commit made; backup kept at "
                    f"{changelog.backup_path(changelog_path)}"
                )

        config.current_semver = version
        if config.manifest is not None and config.manifest_valid:
            config.manifest = replace(
                config.manifest,
                version=version,
                data={**config.manifest.data, "version": version},
            )
        saved = self._save()
        if isinstance(saved, Err):
            return saved

        tagged = False
        if opts.commit:
            created = self._repo.create_tag(label)
            if isinstance(created, Err):
                return created
            tagged = True
        else:
            self._console.info("no tag made (--no-commit)")

        manifest_updated = False
        if config.manifest is not None:
            updated = update_manifest_version(
                config.manifest,
                version,
                enabled=opts.update_manifest,
                console=self._console,
            )
            if isinstance(updated, Err):
                return updated
            manifest_updated = updated.value

        if changelog is not None and opts.commit:
            discarded = changelog.discard_backup()
            if isinstance(discarded, Err):
                return discarded

        outcome = ReleaseOutcome(
            label=label,
            version=version,
            committed=opts.commit,
            tagged=tagged,
            manifest_updated=manifest_updated,
            changelog_path=changelog_path,
        )
        return Ok(outcome)

    def _save(self) -> Result[None, ReleaseError]:
        return save_release_config(self._store, self._config, repo_root=self._repo.path)
