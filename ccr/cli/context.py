from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from ccr.core.errors import ErrorCode
from ccr.core.result import Err, Ok
from ccr.git.repository import Repository
from ccr.output.console import ConsoleProtocol, RichConsole, Style
from ccr.release.config import ConfigStore, config_path_for


@dataclass(frozen=True, slots=True)
class CLIContext:
    cwd: Path
    repo: Repository
    store: ConfigStore
    console: ConsoleProtocol


def build_context(
    *, cwd: Path | None = None, verbose: bool = False, reset: bool = False
) -> CLIContext:
    console = RichConsole(verbose=verbose)

    try:
        start = (cwd or Path.cwd()).expanduser().resolve()
    except OSError as e:
        console.error(f"invalid --cwd: {e}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    root_result = Repository.find_root(start)
    if isinstance(root_result, Err):
        console.error(root_result.error.message)
        if root_result.error.hint:
            console.print(f"hint: {root_result.error.hint}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    root = root_result.value

    config_path = config_path_for(root)
    store_result = ConfigStore.open(config_path)
    if isinstance(store_result, Err) and reset:
        # An unreadable record is replaced by the reset anyway.
        console.debug(store_result.error.message)
        store_result = Ok(ConfigStore(config_path))
    if isinstance(store_result, Err):
        console.error(store_result.error.message)
        if store_result.error.hint:
            console.print(f"hint: {store_result.error.hint}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))

    return CLIContext(
        cwd=start,
        repo=Repository(root),
        store=store_result.value,
        console=console,
    )
