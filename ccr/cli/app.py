from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn

import typer

from ccr import __version__
from ccr.cli.context import CLIContext, build_context
from ccr.core.errors import ErrorCode
from ccr.core.result import Err, Ok
from ccr.output.console import Style
from ccr.output.errors import print_release_error, release_error_exit_code
from ccr.release.changelog import PRESETS, Changelog
from ccr.release.model import BUMP_TYPES, BumpType, ReleaseOptions
from ccr.release.orchestrator import Releaser
from ccr.release.prompt import PromptProtocol, TyperPrompt, parse_answer_overrides

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)
config_app = typer.Typer(add_completion=False, no_args_is_help=True)
app.add_typer(config_app, name="config", help="Inspect or clear the persisted release state.")


def _exit(err: str, *, code: ErrorCode) -> NoReturn:
    typer.echo(f"error: {err}", err=True)
    raise typer.Exit(code=int(code))


def _parse_bump(value: str | None) -> BumpType | None:
    if value is None:
        return None
    for bump in BUMP_TYPES:
        if bump == value.strip().lower():
            return bump
    _exit(
        f"invalid release type: {value} (expected one of: {', '.join(BUMP_TYPES)})",
        code=ErrorCode.USER_ERROR,
    )


def _build_prompt(ctx: CLIContext, *, answers: list[str], interactive: bool) -> PromptProtocol:
    parsed = parse_answer_overrides(answers)
    if isinstance(parsed, Err):
        _exit(parsed.error, code=ErrorCode.USER_ERROR)
    prompt = parsed.value
    if interactive:
        prompt.fallback = TyperPrompt(ctx.console)
    return prompt


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
) -> None:
    pass


@app.command()
def release(
    auto: bool = typer.Option(
        True, "--auto/--no-auto", help="Pick the bump type from the commit messages."
    ),
    release_type: str | None = typer.Option(
        None,
        "--release",
        "-r",
        help="Bump type: major, minor, patch, premajor, preminor, prepatch, prerelease.",
    ),
    pre: bool = typer.Option(False, "--pre", help="Bump to a pre-release (major -> premajor)."),
    identifier: str | None = typer.Option(
        None, "--identifier", "-i", help="Pre-release identifier (e.g. alpha)."
    ),
    forced: bool = typer.Option(
        False, "--forced", help="Bump even when there is no commit since the last tag."
    ),
    prefix: bool = typer.Option(True, "--prefix/--no-prefix", help="Tag labels start with 'v'."),
    commit: bool = typer.Option(
        True, "--commit/--no-commit", help="Commit the changelog and create the tag."
    ),
    update_manifest: bool = typer.Option(
        True,
        "--update-manifest/--no-update-manifest",
        help="Write the new version into package.json.",
    ),
    changelog: bool = typer.Option(
        False, "--changelog/--no-changelog", help="Regenerate the changelog."
    ),
    preset: str = typer.Option("angular", "--preset", help="Changelog preset."),
    append: bool = typer.Option(
        True, "--append/--overwrite", help="Keep previous changelog content."
    ),
    search_manifest: bool = typer.Option(
        False, "--search-manifest", help="Search for package.json again."
    ),
    reset: bool = typer.Option(False, "--reset", help="Clear the persisted release state first."),
    no_interactive: bool = typer.Option(
        False, "--no-interactive", help="Never prompt; unanswered questions are errors."
    ),
    answer: list[str] = typer.Option(
        [],
        "--answer",
        help='Pre-seed a prompt answer: "<question>=<answer>" (repeatable).',
    ),
    cwd: Path | None = typer.Option(None, "--cwd", help="Run as if started in this directory."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output."),
) -> None:
    """Compute the next version, then tag, commit and update files."""
    bump = _parse_bump(release_type)
    if not auto and bump is None:
        _exit("--no-auto requires --release", code=ErrorCode.USER_ERROR)
    if preset not in PRESETS:
        _exit(
            f"unknown changelog preset: {preset} (expected one of: {', '.join(sorted(PRESETS))})",
            code=ErrorCode.USER_ERROR,
        )

    ctx = build_context(cwd=cwd, verbose=verbose, reset=reset)
    prompt = _build_prompt(ctx, answers=answer, interactive=not no_interactive)
    options = ReleaseOptions(
        cwd=ctx.cwd,
        auto=auto,
        release=bump,
        pre=pre,
        identifier=identifier,
        forced=forced,
        prefix=prefix,
        commit=commit,
        update_manifest=update_manifest,
        changelog=changelog,
        preset=preset,
        append=append,
        search_manifest=search_manifest,
        reset=reset,
    )

    releaser = Releaser(
        repo=ctx.repo,
        store=ctx.store,
        prompt=prompt,
        console=ctx.console,
        options=options,
    )
    match releaser.run():
        case Ok(outcome):
            ctx.console.success(outcome.summary())
            if outcome.manifest_updated:
                ctx.console.print(f"package.json: {outcome.version}", Style.DIM)
        case Err(e):
            print_release_error(e, ctx.console)
            code = release_error_exit_code(e)
            if code != 0:
                raise typer.Exit(code=code)


@app.command()
def restore(
    cwd: Path | None = typer.Option(None, "--cwd", help="Run as if started in this directory."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output."),
) -> None:
    """Put the changelog back from the backup an interrupted release left."""
    ctx = build_context(cwd=cwd, verbose=verbose)
    match Changelog(ctx.repo.path).restore():
        case Ok(path):
            ctx.console.success(f"restored {path.name}")
        case Err(e):
            print_release_error(e, ctx.console)
            raise typer.Exit(code=release_error_exit_code(e))


@config_app.command("show")
def config_show(
    cwd: Path | None = typer.Option(None, "--cwd", help="Run as if started in this directory."),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
) -> None:
    """Print the persisted release state of this repository."""
    ctx = build_context(cwd=cwd)
    data = ctx.store.all
    if as_json:
        typer.echo(json.dumps(data, indent=2))
        return

    ctx.console.header(f"config: {ctx.store.path}")
    if not data:
        ctx.console.print("(empty)", Style.DIM)
        return
    for key in ("currentSemVer", "configured", "developBranchName"):
        ctx.console.print(f"{key}: {data.get(key, '-')}")
    manifest = ctx.store.get("packageJson.path")
    ctx.console.print(f"packageJson: {manifest if manifest is not None else '-'}")
    ctx.console.print(f"packageJson.valid: {ctx.store.get('packageJson.valid') or False}")
    ctx.console.print(f"packageJson.exhausted: {ctx.store.get('packageJson.exhausted') or False}")


@config_app.command("reset")
def config_reset(
    cwd: Path | None = typer.Option(None, "--cwd", help="Run as if started in this directory."),
) -> None:
    """Clear the persisted release state of this repository."""
    ctx = build_context(cwd=cwd, reset=True)
    cleared = ctx.store.clear()
    if isinstance(cleared, Err):
        print_release_error(cleared.error, ctx.console)
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))
    ctx.console.success("release config cleared")


def main() -> None:
    app()
