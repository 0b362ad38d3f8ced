"""Error codes for CLI exit status.

Each failure class of the release workflow maps to one of these codes so
that wrapper scripts can tell a conflict that needs a human apart from a
flaky network.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for relbump commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad config, malformed latest tag, tag already exists)
    - 2: Environment error (not a repository, missing branch or upstream)
    - 3: Conflict (branch diverged, stash could not be restored cleanly)
    - 4: Network error (fetch or push rejected/unreachable)
    - 5: Git error (any other git command failure)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    CONFLICT_ERROR = 3
    NETWORK_ERROR = 4
    GIT_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")
