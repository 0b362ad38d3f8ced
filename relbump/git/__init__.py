"""Git operations module.

Usage:
    from relbump.git import Repository

    repo = Repository(Path.cwd())
    tags = repo.list_tags()
"""

from relbump.git.repository import (
    GitError,
    GitStatus,
    Repository,
    StatusEntry,
)

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
]
