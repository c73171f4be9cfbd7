"""End-to-end release runs against a real git repository.

Every prompt is answered through ScriptedPrompt, keyed by its exact text, and
each test checks that no seeded answer was left over.
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from ccr.core.result import Err, Ok, Result
from ccr.git.repository import Repository
from ccr.output.console import MockConsole
from ccr.release.config import ConfigStore, config_path_for, load_release_config
from ccr.release.errors import (
    InvalidPresetError,
    InvalidTagError,
    NoNewCommitError,
    PromptUnavailableError,
    ReleaseError,
    TagAlreadyExistsError,
    UserAbortedError,
)
from ccr.release.manifest import manifest_question
from ccr.release.model import ReleaseOptions, ReleaseOutcome
from ccr.release.orchestrator import (
    ASK_DEVELOP_BRANCH,
    ASK_FIRST_TAG,
    ASK_NO_SEMVER_TAGS,
    Releaser,
    ask_tag_missing,
)
from ccr.release.prompt import ScriptedPrompt

DAY = date(2024, 5, 17)


class Harness:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.console = MockConsole()

    def store(self) -> ConfigStore:
        result = ConfigStore.open(config_path_for(self.root))
        assert isinstance(result, Ok)
        return result.value

    def run(self, prompt: ScriptedPrompt, **options: object) -> Result[ReleaseOutcome, ReleaseError]:
        releaser = Releaser(
            repo=Repository(self.root),
            store=self.store(),
            prompt=prompt,
            console=self.console,
            options=ReleaseOptions(cwd=self.root, **options),  # type: ignore[arg-type]
            today=DAY,
        )
        result = releaser.run()
        prompt.assert_consumed()
        return result


@pytest.fixture
def harness(git_repo) -> Harness:
    return Harness(git_repo.path)


def _manifest_version(root: Path) -> str:
    return json.loads((root / "package.json").read_text(encoding="utf-8"))["version"]


# =============================================================================
# First release
# =============================================================================


class TestFirstRelease:
    """No tag, no package.json."""

    def test_seed_version_after_both_confirmations(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        prompt = ScriptedPrompt().seed(ASK_NO_SEMVER_TAGS, True).seed(ASK_FIRST_TAG, True)

        result = harness.run(prompt)

        assert isinstance(result, Ok)
        assert result.value.label == "v0.1.0"
        assert result.value.summary() == "Bump to v0.1.0 completed."
        assert git_repo.tags() == ["v0.1.0"]
        assert load_release_config(harness.store()).current_semver == "0.1.0"

    def test_decline_no_semver_tags(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        prompt = ScriptedPrompt().seed(ASK_NO_SEMVER_TAGS, False)

        result = harness.run(prompt)

        assert result == Err(UserAbortedError())
        assert git_repo.tags() == []

    def test_decline_first_tag(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        prompt = ScriptedPrompt().seed(ASK_NO_SEMVER_TAGS, True).seed(ASK_FIRST_TAG, "no")

        assert harness.run(prompt) == Err(UserAbortedError())
        assert git_repo.tags() == []

    def test_only_non_semver_tags_releases_seed(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("nightly")
        prompt = ScriptedPrompt().seed(ASK_NO_SEMVER_TAGS, True)

        result = harness.run(prompt, release="major")

        assert isinstance(result, Ok)
        assert result.value.label == "v0.1.0"
        assert sorted(git_repo.tags()) == ["nightly", "v0.1.0"]

    def test_unanswered_prompt_fails(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")

        result = harness.run(ScriptedPrompt())

        assert isinstance(result, Err)
        assert isinstance(result.error, PromptUnavailableError)
        assert result.error.prompt == ASK_NO_SEMVER_TAGS

    def test_first_run_stores_develop_branch(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        prompt = (
            ScriptedPrompt()
            .seed(ASK_DEVELOP_BRANCH, "next")
            .seed(ASK_NO_SEMVER_TAGS, True)
            .seed(ASK_FIRST_TAG, True)
        )

        harness.run(prompt)

        config = load_release_config(harness.store())
        assert config.configured is True
        assert config.develop_branch_name == "next"

    def test_develop_branch_defaults_to_current_branch(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        prompt = ScriptedPrompt().seed(ASK_NO_SEMVER_TAGS, True).seed(ASK_FIRST_TAG, True)

        harness.run(prompt)

        assert load_release_config(harness.store()).develop_branch_name == "main"


# =============================================================================
# Existing tags
# =============================================================================


class TestTaggedRepository:
    def test_no_new_commits(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")

        result = harness.run(ScriptedPrompt())

        assert result == Err(NoNewCommitError(label="v1.0.0"))
        assert git_repo.tags() == ["v1.0.0"]

    def test_forced_bump_without_new_commits(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")

        result = harness.run(ScriptedPrompt(), forced=True, release="patch")

        assert isinstance(result, Ok)
        assert result.value.label == "v1.0.1"
        assert harness.console.find("--forced")

    def test_explicit_major(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("fix: small thing")

        result = harness.run(ScriptedPrompt(), auto=False, release="major")

        assert isinstance(result, Ok)
        assert result.value.label == "v2.0.0"
        assert result.value.manifest_updated is False
        assert not (git_repo.path / "package.json").exists()
        assert sorted(git_repo.tags()) == ["v1.0.0", "v2.0.0"]

    def test_highest_tag_wins(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.2.0")
        git_repo.tag("v1.10.0")
        git_repo.tag("v1.9.0")
        git_repo.commit("fix: x")

        result = harness.run(ScriptedPrompt())

        assert isinstance(result, Ok)
        assert result.value.label == "v1.10.1"

    def test_auto_bump_from_commit_messages(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("fix: a")
        git_repo.commit("feat(api): b")

        result = harness.run(ScriptedPrompt())

        assert isinstance(result, Ok)
        assert result.value.label == "v1.1.0"

    def test_breaking_change_is_major(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("feat!: new config format")

        result = harness.run(ScriptedPrompt())

        assert isinstance(result, Ok)
        assert result.value.label == "v2.0.0"

    def test_pre_turns_bump_into_prerelease(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("feat: b")

        result = harness.run(ScriptedPrompt(), pre=True)

        assert isinstance(result, Ok)
        assert result.value.label == "v1.1.0-rc.1"

    def test_prerelease_identifier(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("fix: b")

        result = harness.run(ScriptedPrompt(), release="prerelease", identifier="beta")

        assert isinstance(result, Ok)
        assert result.value.label == "v1.0.1-beta.1"

    def test_unprefixed_convention(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("1.0.0")
        git_repo.tag("v9.0.0")
        git_repo.commit("fix: b")

        result = harness.run(ScriptedPrompt(), prefix=False)

        assert isinstance(result, Ok)
        assert result.value.label == "1.0.1"
        assert "1.0.1" in git_repo.tags()

    def test_invalid_tag(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.2.3-")
        git_repo.commit("fix: b")

        result = harness.run(ScriptedPrompt())

        assert isinstance(result, Err)
        assert isinstance(result.error, InvalidTagError)
        assert result.error.label == "v1.2.3-"

    def test_no_commit_mode_creates_no_tag(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("fix: b")

        result = harness.run(ScriptedPrompt(), commit=False)

        assert isinstance(result, Ok)
        assert result.value.tagged is False
        assert result.value.summary() == "Bump to v1.0.1 completed, no commits made."
        assert git_repo.tags() == ["v1.0.0"]
        assert harness.console.find("no tag made")
        # The decision is still recorded.
        assert load_release_config(harness.store()).current_semver == "1.0.1"


# =============================================================================
# package.json
# =============================================================================


class TestManifest:
    def _add_manifest(self, git_repo, version: str) -> Path:
        path = git_repo.write_manifest(version, private=True)
        git_repo.git("add", "package.json")
        git_repo.commit("chore: add package.json")
        return path

    def test_broken_manifest_outside_repository_is_ignored(self, git_repo, harness: Harness) -> None:
        (git_repo.path.parent / "package.json").write_text('{"version": "banana"}', encoding="utf-8")
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("fix: a")

        result = harness.run(ScriptedPrompt())

        assert isinstance(result, Ok)
        assert result.value.label == "v1.0.1"
        assert load_release_config(harness.store()).manifest_exhausted is True

    def test_manifest_version_without_matching_tag(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        path = self._add_manifest(git_repo, "3.0.0")
        prompt = (
            ScriptedPrompt()
            .seed(manifest_question(path), "Yes")
            .seed(ask_tag_missing("v3.0.0"), True)
        )

        result = harness.run(prompt, release="minor")

        assert isinstance(result, Ok)
        assert result.value.label == "v3.1.0"
        assert result.value.manifest_updated is True
        assert "v3.1.0" in git_repo.tags()
        assert _manifest_version(git_repo.path) == "3.1.0"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["private"] is True

        config = load_release_config(harness.store())
        assert config.current_semver == "3.1.0"
        assert config.manifest is not None
        assert config.manifest.version == "3.1.0"
        assert config.manifest_exhausted is True

    def test_decline_missing_tag(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        path = self._add_manifest(git_repo, "3.0.0")
        prompt = (
            ScriptedPrompt()
            .seed(manifest_question(path), "Yes")
            .seed(ask_tag_missing("v3.0.0"), False)
        )

        assert harness.run(prompt) == Err(UserAbortedError())
        assert _manifest_version(git_repo.path) == "3.0.0"

    def test_manifest_in_untagged_repository(self, git_repo, harness: Harness) -> None:
        path = self._add_manifest(git_repo, "3.0.0")
        prompt = ScriptedPrompt().seed(manifest_question(path), "Yes")

        result = harness.run(prompt, release="minor")

        assert isinstance(result, Ok)
        assert result.value.label == "v3.1.0"
        assert _manifest_version(git_repo.path) == "3.1.0"

    def test_manifest_overrides_higher_tag(self, git_repo, harness: Harness) -> None:
        path = self._add_manifest(git_repo, "2.0.0")
        git_repo.tag("v2.0.0")
        git_repo.commit("fix: b")
        git_repo.tag("v5.0.0-rc.1")
        git_repo.commit("fix: c")
        prompt = ScriptedPrompt().seed(manifest_question(path), "Yes")

        result = harness.run(prompt)

        assert isinstance(result, Ok)
        assert result.value.label == "v2.0.1"

    def test_update_manifest_disabled(self, git_repo, harness: Harness) -> None:
        path = self._add_manifest(git_repo, "3.0.0")
        prompt = ScriptedPrompt().seed(manifest_question(path), "Yes")

        result = harness.run(prompt, release="patch", update_manifest=False)

        assert isinstance(result, Ok)
        assert result.value.manifest_updated is False
        assert _manifest_version(git_repo.path) == "3.0.0"

    def test_rejected_manifest_falls_back_to_tags(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        path = self._add_manifest(git_repo, "3.0.0")
        prompt = ScriptedPrompt().seed(manifest_question(path), "No")

        result = harness.run(prompt, release="patch")

        assert isinstance(result, Ok)
        assert result.value.label == "v1.0.1"
        assert _manifest_version(git_repo.path) == "3.0.0"
        assert harness.console.find("Exhausted all directories")
        assert load_release_config(harness.store()).manifest_exhausted is True

    def test_abort_at_manifest_prompt(self, git_repo, harness: Harness) -> None:
        path = self._add_manifest(git_repo, "3.0.0")
        prompt = ScriptedPrompt().seed(manifest_question(path), "Abort")

        assert harness.run(prompt) == Err(UserAbortedError())
        assert git_repo.tags() == []

    def test_second_run_skips_search_and_rereads_file(self, git_repo, harness: Harness) -> None:
        path = self._add_manifest(git_repo, "3.0.0")
        first = harness.run(ScriptedPrompt().seed(manifest_question(path), "Yes"), release="patch")
        assert isinstance(first, Ok)

        # Hand edit between runs.
        git_repo.write_manifest("4.0.0", private=True)
        git_repo.git("add", "package.json")
        git_repo.commit("chore: bump by hand")

        second = harness.run(
            ScriptedPrompt().seed(ask_tag_missing("v4.0.0"), True), release="patch"
        )

        assert isinstance(second, Ok)
        assert second.value.label == "v4.0.1"

    def test_search_manifest_asks_again(self, git_repo, harness: Harness) -> None:
        path = self._add_manifest(git_repo, "3.0.0")
        harness.run(ScriptedPrompt().seed(manifest_question(path), "Yes"), release="patch")
        git_repo.commit("fix: more")

        prompt = ScriptedPrompt().seed(manifest_question(path), "Yes")
        result = harness.run(prompt, release="patch", search_manifest=True)

        assert isinstance(result, Ok)
        assert result.value.label == "v3.0.2"

    def test_removed_manifest_is_searched_again(self, git_repo, harness: Harness) -> None:
        path = self._add_manifest(git_repo, "3.0.0")
        harness.run(ScriptedPrompt().seed(manifest_question(path), "Yes"), release="patch")
        git_repo.git("rm", "-q", "-f", "package.json")
        git_repo.commit("chore: drop package.json")

        result = harness.run(ScriptedPrompt(), release="patch")

        assert isinstance(result, Ok)
        assert result.value.label == "v3.0.2"
        config = load_release_config(harness.store())
        assert config.manifest is None
        assert config.manifest_exhausted is True

    def test_existing_tag_for_new_version(self, git_repo, harness: Harness) -> None:
        path = self._add_manifest(git_repo, "1.0.0")
        git_repo.tag("v1.1.0")
        git_repo.tag("v1.0.0")
        git_repo.commit("feat: b")
        prompt = ScriptedPrompt().seed(manifest_question(path), "Yes")

        result = harness.run(prompt)

        assert isinstance(result, Err)
        assert isinstance(result.error, TagAlreadyExistsError)
        assert result.error.label == "v1.1.0"
        assert _manifest_version(git_repo.path) == "1.0.0"


# =============================================================================
# Changelog
# =============================================================================


class TestChangelog:
    def _prepare(self, git_repo) -> Path:
        path = git_repo.path / "CHANGELOG.md"
        path.write_text("Unrelated notes kept by hand.\n", encoding="utf-8")
        git_repo.git("add", "CHANGELOG.md")
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("feat: search by tag")
        git_repo.commit("fix(cli): exit code on abort")
        return path

    def test_regenerated_and_committed(self, git_repo, harness: Harness) -> None:
        path = self._prepare(git_repo)

        result = harness.run(ScriptedPrompt(), changelog=True)

        assert isinstance(result, Ok)
        assert result.value.label == "v1.1.0"
        assert result.value.changelog_path == path
        text = path.read_text(encoding="utf-8")
        assert text.startswith("## v1.1.0 (2024-05-17)")
        assert "### Features\n\n* search by tag" in text
        assert "### Bug Fixes\n\n* **cli:** exit code on abort" in text
        assert "Unrelated notes kept by hand." in text

        assert git_repo.subjects()[0] == "chore(release): v1.1.0"
        assert git_repo.git("rev-list", "-n", "1", "v1.1.0").strip() == git_repo.head()
        assert not (git_repo.path / "original.CHANGELOG.md").exists()
        assert git_repo.git("status", "--porcelain").strip() == ""

    def test_mixed_case_changelog_name(self, git_repo, harness: Harness) -> None:
        path = git_repo.path / "ChangeLog.md"
        path.write_text("notes\n", encoding="utf-8")
        git_repo.git("add", "ChangeLog.md")
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("feat: x")

        result = harness.run(ScriptedPrompt(), changelog=True)

        assert isinstance(result, Ok)
        assert result.value.changelog_path == path
        assert sorted(git_repo.tags()) == ["v1.0.0", "v1.1.0"]
        assert not (git_repo.path / "original.ChangeLog.md").exists()
        assert git_repo.git("status", "--porcelain").strip() == ""

    def test_release_commit_leaves_staged_files_alone(self, git_repo, harness: Harness) -> None:
        self._prepare(git_repo)
        (git_repo.path / "secret.txt").write_text("wip\n", encoding="utf-8")
        git_repo.git("add", "secret.txt")

        result = harness.run(ScriptedPrompt(), changelog=True)

        assert isinstance(result, Ok)
        changed = git_repo.git("show", "--name-only", "--format=", "HEAD").split()
        assert changed == ["CHANGELOG.md"]
        assert git_repo.git("diff", "--cached", "--name-only").split() == ["secret.txt"]

    def test_overwrite(self, git_repo, harness: Harness) -> None:
        path = self._prepare(git_repo)

        harness.run(ScriptedPrompt(), changelog=True, append=False)

        assert "Unrelated notes" not in path.read_text(encoding="utf-8")

    def test_failed_run_keeps_backup(self, git_repo, harness: Harness) -> None:
        path = self._prepare(git_repo)

        result = harness.run(ScriptedPrompt(), changelog=True, preset="nope")

        assert isinstance(result, Err)
        assert isinstance(result.error, InvalidPresetError)
        backup = git_repo.path / "original.CHANGELOG.md"
        assert backup.read_text(encoding="utf-8") == path.read_text(encoding="utf-8")
        assert git_repo.tags() == ["v1.0.0"]

    def test_no_commit_keeps_backup(self, git_repo, harness: Harness) -> None:
        path = self._prepare(git_repo)

        result = harness.run(ScriptedPrompt(), changelog=True, commit=False)

        assert isinstance(result, Ok)
        assert "### Features" in path.read_text(encoding="utf-8")
        assert (git_repo.path / "original.CHANGELOG.md").exists()
        assert git_repo.subjects()[0] == "fix(cli): exit code on abort"
        assert harness.console.find("no commit made")

    def test_missing_changelog(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("fix: a")

        result = harness.run(ScriptedPrompt(), changelog=True)

        assert isinstance(result, Err)
        assert result.error.message == "No changelog file found."
        assert git_repo.tags() == ["v1.0.0"]


# =============================================================================
# Persisted state
# =============================================================================


class TestPersistedState:
    def test_reset_asks_first_run_questions_again(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("fix: a")
        harness.run(ScriptedPrompt(), commit=False)

        prompt = ScriptedPrompt().seed(ASK_DEVELOP_BRANCH, "trunk")
        result = harness.run(prompt, reset=True, commit=False)

        assert isinstance(result, Ok)
        assert load_release_config(harness.store()).develop_branch_name == "trunk"

    def test_configured_repository_is_not_asked(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("fix: a")
        harness.run(ScriptedPrompt().seed(ASK_DEVELOP_BRANCH, "trunk"), commit=False)

        prompt = ScriptedPrompt()
        harness.run(prompt, commit=False)

        assert ASK_DEVELOP_BRANCH not in prompt.asked

    def test_stale_version_cleared_when_tags_are_gone(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.0.0")
        git_repo.commit("fix: a")
        assert isinstance(harness.run(ScriptedPrompt()), Ok)
        assert load_release_config(harness.store()).current_semver == "1.0.1"

        git_repo.git("tag", "-d", "v1.0.0", "v1.0.1")
        prompt = ScriptedPrompt().seed(ASK_NO_SEMVER_TAGS, True).seed(ASK_FIRST_TAG, False)

        assert harness.run(prompt) == Err(UserAbortedError())
        assert load_release_config(harness.store()).current_semver is None

    def test_invalid_top_tag_is_recorded(self, git_repo, harness: Harness) -> None:
        git_repo.commit("chore: init")
        git_repo.tag("v1.2.3-")
        git_repo.commit("fix: b")

        result = harness.run(ScriptedPrompt())

        assert isinstance(result, Err)
        assert isinstance(result.error, InvalidTagError)
        assert load_release_config(harness.store()).current_semver == "1.2.3-"
