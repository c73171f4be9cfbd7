"""Error codes for CLI exit status.

A release that ends in a user abort or with nothing to release is not a
failure: both exit with `OK`. Everything else maps to a non-zero code.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success, user abort, or nothing to release
    - 1: User error (bad flags, invalid input, missing pre-seeded answer)
    - 2: Environment error (not a git repository, git missing)
    - 3: Release error (invalid tag, inconsistent state, tag already exists)
    - 5: I/O error (changelog or backup missing, file not writable)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    RELEASE_ERROR = 3
    IO_ERROR = 5

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
