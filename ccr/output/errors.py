"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ccr.core.errors import ErrorCode
from ccr.output.console import Style
from ccr.release.errors import (
    BackupNotFoundError,
    ChangelogNotFoundError,
    ExhaustedSearchError,
    FileOperationError,
    GitCommandError,
    InvalidBumpTypeError,
    InvalidPresetError,
    InvalidTagError,
    InvalidVersionError,
    LabelNotFoundError,
    NoManifestFoundError,
    NoNewCommitError,
    PromptUnavailableError,
    ReleaseError,
    TagAlreadyExistsError,
    UnknownConfigStateError,
    UserAbortedError,
)

if TYPE_CHECKING:
    from ccr.output.console import ConsoleProtocol

__all__ = ["print_release_error", "release_error_exit_code"]


def print_release_error(error: ReleaseError, console: ConsoleProtocol) -> None:
    """Print a release error with the level its kind deserves."""
    match error:
        case UserAbortedError(message=message):
            console.info(message)
            return
        case NoNewCommitError(message=message):
            console.warning(message)
        case GitCommandError(command=command, message=message):
            console.error(f"git {command}: {message}")
        case _:
            console.error(error.message)

    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def release_error_exit_code(error: ReleaseError) -> int:
    """Get exit code for a release error."""
    match error:
        case UserAbortedError() | NoNewCommitError():
            return int(ErrorCode.OK)
        case InvalidBumpTypeError() | InvalidPresetError() | PromptUnavailableError():
            return int(ErrorCode.USER_ERROR)
        case GitCommandError():
            return int(ErrorCode.ENV_ERROR)
        case (
            UnknownConfigStateError()
            | InvalidTagError()
            | InvalidVersionError()
            | LabelNotFoundError()
            | TagAlreadyExistsError()
            | ExhaustedSearchError()
            | NoManifestFoundError()
        ):
            return int(ErrorCode.RELEASE_ERROR)
        case ChangelogNotFoundError() | BackupNotFoundError() | FileOperationError():
            return int(ErrorCode.IO_ERROR)
    return int(ErrorCode.RELEASE_ERROR)
