"""Git operations module.

Usage:
    from ccr.git import Repository

    repo = Repository(Path("/path/to/repo"))
    if repo.any_tag_exists().unwrap_or(False):
        print(repo.list_tags().unwrap())
"""

from ccr.git.repository import Repository

__all__ = [
    "Repository",
]
