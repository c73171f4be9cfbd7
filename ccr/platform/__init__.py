"""Platform abstraction layer."""

from .files import (
    FileError,
    atomic_write_text,
    copy_file,
    remove_file,
)
from .paths import (
    home,
    user_config_dir,
)
from .process import (
    ProcessError,
    run,
)

__all__ = [
    # files
    "FileError",
    "atomic_write_text",
    "copy_file",
    "remove_file",
    # paths
    "home",
    "user_config_dir",
    # process
    "ProcessError",
    "run",
]
